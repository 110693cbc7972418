from datetime import date, datetime, timedelta, timezone

from flow_engine.cfd import PeriodAggregator, build_cfd, week_start
from flow_engine.schema import PeriodDuration, PeriodSnapshot, ProjectConfig, WorkflowEvent

DAY = 24 * 60 * 60
STATES = ("Todo", "Doing", "Done")


def ts(value: str) -> datetime:
    return datetime.fromisoformat(value).replace(tzinfo=timezone.utc)


def event(at: str, task_id: str, state: str) -> WorkflowEvent:
    return WorkflowEvent(ts(at), task_id, state)


def sample_config(horizon: str = "2024-01-01T00:00:00") -> ProjectConfig:
    return ProjectConfig(label="board", gid="p1", horizon=ts(horizon), cfd_states=STATES, done_states=("Done",))


def test_week_start_aligns_to_monday_utc():
    assert week_start(ts("2024-01-03T15:30:00")) == ts("2024-01-01T00:00:00")
    assert week_start(ts("2024-01-07T23:59:59")) == ts("2024-01-01T00:00:00")
    assert week_start(datetime(2024, 1, 1, 1, 0)) == ts("2024-01-01T00:00:00")


def test_week_start_converts_offset_horizon_to_utc():
    # Monday 01:00 at +02:00 is still Sunday in UTC
    horizon = datetime(2024, 1, 8, 1, 0, tzinfo=timezone(timedelta(hours=2)))
    assert week_start(horizon) == ts("2024-01-01T00:00:00")


def test_event_exactly_one_week_later_rolls_over_once():
    aggregator = PeriodAggregator(ts("2024-01-01T00:00:00"), STATES, ("Done",))
    aggregator.process(event("2024-01-02T00:00:00", "t1", "Todo"))
    assert aggregator.snapshots == []

    aggregator.process(event("2024-01-08T00:00:00", "t1", "Doing"))

    assert aggregator.snapshots == [PeriodSnapshot(date(2024, 1, 1), (1, 0, 0), 0)]
    assert aggregator.durations == [PeriodDuration(date(2024, 1, 1), (6 * DAY, 0, 0))]
    assert aggregator.period_start == ts("2024-01-08T00:00:00")


def test_event_just_before_boundary_does_not_roll_over():
    aggregator = PeriodAggregator(ts("2024-01-01T00:00:00"), STATES, ("Done",))
    aggregator.process(event("2024-01-07T23:59:59", "t1", "Todo"))
    assert aggregator.snapshots == []


def test_tracked_state_is_overwritten_by_each_event():
    aggregator = PeriodAggregator(ts("2024-01-01T00:00:00"), STATES, ("Done",))
    aggregator.process(event("2024-01-02T00:00:00", "t1", "Done"))
    aggregator.process(event("2024-01-03T00:00:00", "t1", "Todo"))
    assert aggregator.task_states["t1"] == ("Todo", ts("2024-01-03T00:00:00"))
    assert aggregator.dwell_samples["Done"] == [DAY]


def test_done_count_and_dwell_samples_reset_each_period():
    events = [
        event("2024-01-01T00:00:00", "t1", "Todo"),
        event("2024-01-01T00:00:00", "t2", "Todo"),
        event("2024-01-03T00:00:00", "t1", "Done"),
        event("2024-01-09T00:00:00", "t2", "Done"),
        event("2024-01-16T00:00:00", "t3", "Todo"),
    ]
    snapshots, durations = build_cfd(events, sample_config())

    assert snapshots == [
        PeriodSnapshot(date(2024, 1, 1), (1, 0, 1), 1),
        PeriodSnapshot(date(2024, 1, 8), (0, 0, 2), 1),
    ]
    assert durations == [
        PeriodDuration(date(2024, 1, 1), (2 * DAY, 0, 5 * DAY)),
        PeriodDuration(date(2024, 1, 8), (8 * DAY, 0, 6 * DAY)),
    ]


def test_gap_of_three_periods_emits_three_snapshots_with_same_occupancy():
    aggregator = PeriodAggregator(ts("2024-01-01T00:00:00"), STATES, ("Done",))
    aggregator.process(event("2024-01-02T00:00:00", "t1", "Todo"))
    aggregator.process(event("2024-01-03T00:00:00", "t2", "Doing"))
    aggregator.process(event("2024-01-23T00:00:00", "t1", "Done"))

    assert [snapshot.period_start for snapshot in aggregator.snapshots] == [
        date(2024, 1, 1),
        date(2024, 1, 8),
        date(2024, 1, 15),
    ]
    assert {snapshot.state_counts for snapshot in aggregator.snapshots} == {(1, 1, 0)}
    assert all(snapshot.done_count == 0 for snapshot in aggregator.snapshots)
    # empty weeks only carry the age of tasks still sitting in their state
    assert [duration.p90_seconds for duration in aggregator.durations] == [
        (6 * DAY, 5 * DAY, 0),
        (13 * DAY, 12 * DAY, 0),
        (20 * DAY, 19 * DAY, 0),
    ]
    # the week holding the last event is never flushed
    assert aggregator.done_count == 1


def test_occupancy_counts_every_task_seen_including_untracked_states():
    aggregator = PeriodAggregator(ts("2024-01-01T00:00:00"), STATES, ("Done",))
    aggregator.process(event("2024-01-01T10:00:00", "t1", "Todo"))
    aggregator.process(event("2024-01-02T10:00:00", "t2", "Archive"))
    aggregator.process(event("2024-01-03T10:00:00", "t3", "Doing"))
    aggregator.process(event("2024-01-04T10:00:00", "t1", "Doing"))
    aggregator.process(event("2024-01-20T10:00:00", "t4", "Todo"))

    assert aggregator.occupancy() == {"Doing": 2, "Archive": 1}
    assert sum(aggregator.occupancy().values()) == 3
    assert aggregator.snapshots[-1].state_counts == (0, 2, 0)


def test_no_events_produce_no_periods():
    assert build_cfd([], sample_config()) == ([], [])


def test_events_before_horizon_count_towards_first_period():
    events = [
        event("2023-12-01T00:00:00", "t1", "Todo"),
        event("2024-01-09T00:00:00", "t2", "Todo"),
    ]
    snapshots, durations = build_cfd(events, sample_config())
    assert snapshots == [PeriodSnapshot(date(2024, 1, 1), (1, 0, 0), 0)]
    assert durations[0].p90_seconds[0] == 38 * DAY


def test_replay_is_deterministic():
    events = [
        event("2024-01-01T08:00:00", "t1", "Todo"),
        event("2024-01-02T09:30:00", "t2", "Todo"),
        event("2024-01-04T12:00:00", "t1", "Doing"),
        event("2024-01-11T17:45:00", "t1", "Done"),
        event("2024-01-19T08:00:00", "t2", "Done"),
        event("2024-02-01T08:00:00", "t3", "Todo"),
    ]
    first = build_cfd(events, sample_config())
    second = build_cfd(events, sample_config())
    assert first == second
    assert repr(first) == repr(second)
