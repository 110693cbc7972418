"""Weekly cumulative flow aggregation over a project's event stream."""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from typing import Iterable

from flow_engine.percentile import percentile_or_zero
from flow_engine.schema import PeriodDuration, PeriodSnapshot, ProjectConfig, WorkflowEvent

logger = logging.getLogger(__name__)

PERIOD = timedelta(weeks=1)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def week_start(horizon: datetime) -> datetime:
    """Return Monday 00:00:00 UTC of the ISO week containing the horizon."""

    horizon = _as_utc(horizon)
    monday = horizon.date() - timedelta(days=horizon.weekday())
    return datetime(monday.year, monday.month, monday.day, tzinfo=timezone.utc)


def _seconds(delta: timedelta) -> int:
    return int(delta.total_seconds())


class PeriodAggregator:
    """Replays workflow events and emits one snapshot/duration pair per elapsed week.

    Only weeks closed by an event at or after their end are emitted; the
    week holding the last event stays open.
    """

    def __init__(self, horizon: datetime, cfd_states: Iterable[str], done_states: Iterable[str]):
        self.cfd_states = tuple(cfd_states)
        self.done_states = frozenset(done_states)
        self.period_start = week_start(horizon)
        self.period_end = self.period_start + PERIOD

        # task -> (state, time the task entered it)
        self.task_states: dict[str, tuple[str, datetime]] = {}
        # state -> tasks in it as of the last boundary
        self.state_counts: dict[str, int] = {}
        # state -> dwell seconds observed in the open period
        self.dwell_samples: dict[str, list[int]] = defaultdict(list)
        self.done_count = 0

        self.snapshots: list[PeriodSnapshot] = []
        self.durations: list[PeriodDuration] = []

    def process(self, event: WorkflowEvent) -> None:
        """Roll over any weeks the event has moved past, then apply it."""

        at = _as_utc(event.timestamp)
        while at >= self.period_end:
            self._rollover()

        previous = self.task_states.get(event.task_id)
        if previous is not None:
            old_state, old_at = previous
            self.dwell_samples[old_state].append(_seconds(at - old_at))
        self.task_states[event.task_id] = (event.state, at)

        if event.state in self.done_states:
            self.done_count += 1

    def replay(self, events: Iterable[WorkflowEvent]) -> tuple[list[PeriodSnapshot], list[PeriodDuration]]:
        for event in events:
            self.process(event)
        return self.snapshots, self.durations

    def occupancy(self) -> dict[str, int]:
        """Task count per state, every state seen, as of the last emitted boundary."""

        return dict(self.state_counts)

    def _rollover(self) -> None:
        boundary = self.period_end

        # recount from scratch so tasks without events in this period are still counted
        counts: dict[str, int] = defaultdict(int)
        for state, entered_at in self.task_states.values():
            counts[state] += 1
            self.dwell_samples[state].append(_seconds(boundary - entered_at))
        self.state_counts = dict(counts)

        period = self.period_start.date()
        self.snapshots.append(
            PeriodSnapshot(
                period_start=period,
                state_counts=tuple(self.state_counts.get(state, 0) for state in self.cfd_states),
                done_count=self.done_count,
            )
        )
        self.durations.append(
            PeriodDuration(
                period_start=period,
                p90_seconds=tuple(percentile_or_zero(self.dwell_samples.get(state, [])) for state in self.cfd_states),
            )
        )

        self.dwell_samples.clear()
        self.done_count = 0
        self.period_start = boundary
        self.period_end = boundary + PERIOD


def build_cfd(
    events: Iterable[WorkflowEvent], project: ProjectConfig
) -> tuple[list[PeriodSnapshot], list[PeriodDuration]]:
    """Aggregate one project's ordered event stream into weekly CFD tables."""

    aggregator = PeriodAggregator(project.horizon, project.cfd_states, project.done_states)
    snapshots, durations = aggregator.replay(events)
    logger.info("%s: %d periods from %s", project.label, len(snapshots), week_start(project.horizon).date())
    return snapshots, durations
