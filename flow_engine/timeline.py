"""Per-project workflow timelines rebuilt from task stories."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Iterable, Optional

from flow_engine.errors import MissingReferenceError
from flow_engine.schema import Dataset, Story, Task, WorkflowEvent
from flow_engine.transitions import story_transition

logger = logging.getLogger(__name__)


def current_states(dataset: Dataset) -> dict[str, dict[str, str]]:
    """Map task gid to {project name: current section name}."""

    sections = dataset.section_lookup()
    project_names = dataset.project_name_by_gid()

    states: dict[str, dict[str, str]] = {}
    for task in dataset.task_by_gid().values():
        by_project: dict[str, str] = {}
        for membership in task.memberships:
            # memberships cover every project the task is in, not only the exported ones
            if membership.section_gid not in sections:
                continue
            project_gid, section_name = sections[membership.section_gid]
            if project_gid not in project_names:
                raise MissingReferenceError(
                    "project", project_gid, f"section {membership.section_gid} of task {task.gid}"
                )
            by_project[project_names[project_gid]] = section_name
        states[task.gid] = by_project
    return states


def task_events(
    task: Task,
    stories: Iterable[Story],
    current: dict[str, str],
    tracked_projects: set[str],
) -> dict[str, list[WorkflowEvent]]:
    """Rebuild one task's state history in every tracked project.

    The first section change seen for a project also yields an event for its
    "from" section at the task's creation time. Projects the task sits in
    without any recorded move get a single creation-time event for the
    current section. Each project's list is sorted by timestamp.
    """

    events: dict[str, list[WorkflowEvent]] = {}
    for story in stories:
        transition = story_transition(story, task.gid)
        if transition is None:
            continue
        if transition.project_name not in tracked_projects:
            logger.debug("task %s: skipping move in untracked project %r", task.gid, transition.project_name)
            continue

        project_events = events.get(transition.project_name)
        if project_events is None:
            project_events = events[transition.project_name] = [
                WorkflowEvent(task.created_at, task.gid, transition.from_state)
            ]
        project_events.append(WorkflowEvent(story.created_at, task.gid, transition.to_state))

    for project_name, state in current.items():
        if project_name in tracked_projects and project_name not in events:
            events[project_name] = [WorkflowEvent(task.created_at, task.gid, state)]

    for project_events in events.values():
        project_events.sort(key=lambda event: event.timestamp)
    return events


def reconstruct(
    dataset: Dataset, tracked_projects: Optional[set[str]] = None
) -> dict[str, list[WorkflowEvent]]:
    """Build a timestamp-ordered event stream for every tracked project."""

    if tracked_projects is None:
        tracked_projects = dataset.project_names()

    tasks = dataset.task_by_gid()
    stories = dataset.stories_by_task()
    for task_gid in stories:
        if task_gid not in tasks:
            raise MissingReferenceError("task", task_gid, "referenced by task stories")

    states = current_states(dataset)
    known_sections = dataset.section_names_by_project()

    streams: dict[str, list[WorkflowEvent]] = defaultdict(list)
    for task in tasks.values():
        per_project = task_events(task, stories.get(task.gid, []), states[task.gid], tracked_projects)
        for project_name, project_events in per_project.items():
            sections = known_sections.get(project_name, set())
            for event in project_events:
                if event.state not in sections:
                    logger.debug(
                        "task %s: state %r is not a current section of %r", task.gid, event.state, project_name
                    )
            streams[project_name].extend(project_events)

    for project_name, project_events in streams.items():
        project_events.sort(key=lambda event: event.timestamp)
        logger.debug("project %r: %d events", project_name, len(project_events))
    return dict(streams)
