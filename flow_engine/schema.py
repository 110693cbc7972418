"""Core data schema for work-item history and CFD reports."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional


@dataclass(frozen=True)
class User:
    gid: str
    name: str
    email: str


@dataclass(frozen=True)
class Project:
    gid: str
    name: str
    created_at: datetime


@dataclass(frozen=True)
class Section:
    gid: str
    name: str


@dataclass(frozen=True)
class ProjectSections:
    project_gid: str
    sections: list[Section]


@dataclass(frozen=True)
class ProjectTaskIds:
    project_gid: str
    task_gids: list[str]


@dataclass(frozen=True)
class Membership:
    """A task's current placement: one section of one project."""

    project_gid: str
    section_gid: str


@dataclass(frozen=True)
class Task:
    gid: str
    name: str
    created_at: datetime
    completed: bool
    completed_at: Optional[datetime] = None
    assignee_gid: Optional[str] = None
    memberships: list[Membership] = field(default_factory=list)


@dataclass(frozen=True)
class Story:
    """One activity log entry attached to a task."""

    created_at: datetime
    resource_subtype: str
    text: str


@dataclass(frozen=True)
class TaskStories:
    task_gid: str
    stories: list[Story]


@dataclass
class Dataset:
    """Fully materialized export consumed by the timeline reconstructor."""

    users: list[User] = field(default_factory=list)
    projects: list[Project] = field(default_factory=list)
    project_sections: list[ProjectSections] = field(default_factory=list)
    project_task_gids: list[ProjectTaskIds] = field(default_factory=list)
    tasks: list[Task] = field(default_factory=list)
    task_stories: list[TaskStories] = field(default_factory=list)

    def project_names(self) -> set[str]:
        return {project.name for project in self.projects}

    def project_name_by_gid(self) -> dict[str, str]:
        return {project.gid: project.name for project in self.projects}

    def section_lookup(self) -> dict[str, tuple[str, str]]:
        """Map section gid to (project gid, section name)."""

        return {
            section.gid: (entry.project_gid, section.name)
            for entry in self.project_sections
            for section in entry.sections
        }

    def section_names_by_project(self) -> dict[str, set[str]]:
        names = self.project_name_by_gid()
        return {
            names.get(entry.project_gid, entry.project_gid): {section.name for section in entry.sections}
            for entry in self.project_sections
        }

    def task_by_gid(self) -> dict[str, Task]:
        """Map task gid to task, keeping the first copy.

        Exports list a task once per project it belongs to.
        """

        tasks: dict[str, Task] = {}
        for task in self.tasks:
            tasks.setdefault(task.gid, task)
        return tasks

    def stories_by_task(self) -> dict[str, list[Story]]:
        grouped: dict[str, list[Story]] = {}
        for entry in self.task_stories:
            # repeated copies of a task carry the same story list
            grouped.setdefault(entry.task_gid, list(entry.stories))
        return grouped


@dataclass(frozen=True)
class ProjectConfig:
    """Reporting settings for one project, keyed by a short label."""

    label: str
    gid: str
    horizon: datetime
    cfd_states: tuple[str, ...]
    done_states: tuple[str, ...]


@dataclass(frozen=True)
class ReportConfig:
    projects: tuple[ProjectConfig, ...]


@dataclass(frozen=True)
class Transition:
    from_state: str
    to_state: str
    project_name: str


@dataclass(frozen=True)
class WorkflowEvent:
    """A task entering a state at a point in time."""

    timestamp: datetime
    task_id: str
    state: str


@dataclass(frozen=True)
class PeriodSnapshot:
    period_start: date
    state_counts: tuple[int, ...]
    done_count: int


@dataclass(frozen=True)
class PeriodDuration:
    period_start: date
    p90_seconds: tuple[int, ...]


@dataclass
class ProjectReport:
    """CFD tables for one configured project."""

    label: str
    name: str
    cfd_states: tuple[str, ...]
    done_states: tuple[str, ...]
    snapshots: list[PeriodSnapshot]
    durations: list[PeriodDuration]

    def to_dict(self) -> dict:
        return {
            "label": self.label,
            "name": self.name,
            "cfd_states": list(self.cfd_states),
            "done_states": list(self.done_states),
            "snapshots": [
                {
                    "period_start": snapshot.period_start.isoformat(),
                    "state_counts": list(snapshot.state_counts),
                    "done_count": snapshot.done_count,
                }
                for snapshot in self.snapshots
            ],
            "durations": [
                {
                    "period_start": duration.period_start.isoformat(),
                    "p90_seconds": list(duration.p90_seconds),
                }
                for duration in self.durations
            ],
        }


@dataclass
class Report:
    projects: list[ProjectReport]

    def to_dict(self) -> dict:
        return {"projects": [project.to_dict() for project in self.projects]}
