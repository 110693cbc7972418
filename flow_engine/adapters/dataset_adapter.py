"""JSON adapter for exported work-item history."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Callable, TypeVar

from flow_engine.schema import (
    Dataset,
    Membership,
    Project,
    ProjectSections,
    ProjectTaskIds,
    Section,
    Story,
    Task,
    TaskStories,
    User,
)

T = TypeVar("T")

_COLLECTIONS = ("users", "projects", "project_sections", "project_task_gids", "tasks", "task_stories")


def parse_timestamp(value: Any) -> datetime:
    """Parse an ISO-8601 timestamp ('Z' suffix allowed) into an aware UTC datetime."""

    if not isinstance(value, str):
        raise ValueError(f"expected ISO-8601 string, got {value!r}")
    parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _require(item: Any, fields: tuple[str, ...], where: str) -> None:
    if not isinstance(item, dict):
        raise ValueError(f"{where}: expected an object, got {item!r}")
    missing = [name for name in fields if item.get(name) in (None, "")]
    if missing:
        raise ValueError(f"{where}: missing required fields {missing}")


def _list(item: dict, name: str, where: str) -> list:
    value = item.get(name)
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError(f"{where}: '{name}' must be a list")
    return value


def _timestamp(item: dict, name: str, where: str) -> datetime:
    try:
        return parse_timestamp(item[name])
    except Exception as exc:  # noqa: BLE001
        raise ValueError(f"{where}: malformed {name}") from exc


def _gid(ref: Any, where: str) -> str:
    if not isinstance(ref, dict) or not ref.get("gid"):
        raise ValueError(f"{where}: expected an object with a gid, got {ref!r}")
    return str(ref["gid"])


def _parse_user(item: dict, where: str) -> User:
    _require(item, ("gid",), where)
    return User(gid=str(item["gid"]), name=str(item.get("name", "")), email=str(item.get("email", "")))


def _parse_project(item: dict, where: str) -> Project:
    _require(item, ("gid", "name", "created_at"), where)
    return Project(gid=str(item["gid"]), name=str(item["name"]), created_at=_timestamp(item, "created_at", where))


def _parse_project_sections(item: dict, where: str) -> ProjectSections:
    _require(item, ("project_gid",), where)
    sections = []
    for index, section in enumerate(_list(item, "sections", where), start=1):
        _require(section, ("gid", "name"), f"{where} section {index}")
        sections.append(Section(gid=str(section["gid"]), name=str(section["name"])))
    return ProjectSections(project_gid=str(item["project_gid"]), sections=sections)


def _parse_project_task_gids(item: dict, where: str) -> ProjectTaskIds:
    _require(item, ("project_gid",), where)
    return ProjectTaskIds(
        project_gid=str(item["project_gid"]),
        task_gids=[str(gid) for gid in _list(item, "task_gids", where)],
    )


def _parse_task(item: dict, where: str) -> Task:
    _require(item, ("gid", "created_at"), where)

    memberships = []
    for membership in _list(item, "memberships", where):
        if not isinstance(membership, dict) or "section" not in membership:
            raise ValueError(f"{where}: membership without a section")
        project_ref = membership.get("project")
        memberships.append(
            Membership(
                project_gid=_gid(project_ref, where) if project_ref is not None else "",
                section_gid=_gid(membership["section"], where),
            )
        )

    assignee = item.get("assignee")
    completed_at = _timestamp(item, "completed_at", where) if item.get("completed_at") else None

    return Task(
        gid=str(item["gid"]),
        name=str(item.get("name", "")),
        created_at=_timestamp(item, "created_at", where),
        completed=bool(item.get("completed", False)),
        completed_at=completed_at,
        assignee_gid=_gid(assignee, where) if assignee is not None else None,
        memberships=memberships,
    )


def _parse_task_stories(item: dict, where: str) -> TaskStories:
    _require(item, ("task_gid",), where)
    stories = []
    for index, story in enumerate(_list(item, "stories", where), start=1):
        story_where = f"{where} story {index}"
        _require(story, ("created_at", "resource_subtype"), story_where)
        stories.append(
            Story(
                created_at=_timestamp(story, "created_at", story_where),
                resource_subtype=str(story["resource_subtype"]),
                text=str(story.get("text") or ""),
            )
        )
    return TaskStories(task_gid=str(item["task_gid"]), stories=stories)


def _parse_collection(payload: dict, name: str, parse_item: Callable[[dict, str], T]) -> list[T]:
    items = payload.get(name) or []
    if not isinstance(items, list):
        raise ValueError(f"'{name}' must be a list of objects")
    parsed = []
    for index, item in enumerate(items, start=1):
        where = f"{name} item {index}"
        if not isinstance(item, dict):
            raise ValueError(f"{where}: expected an object")
        parsed.append(parse_item(item, where))
    return parsed


def from_payload(payload: Any) -> Dataset:
    """Build a Dataset from an already decoded JSON document."""

    if not isinstance(payload, dict):
        raise ValueError("JSON payload must be an object with keys " + ", ".join(_COLLECTIONS))

    return Dataset(
        users=_parse_collection(payload, "users", _parse_user),
        projects=_parse_collection(payload, "projects", _parse_project),
        project_sections=_parse_collection(payload, "project_sections", _parse_project_sections),
        project_task_gids=_parse_collection(payload, "project_task_gids", _parse_project_task_gids),
        tasks=_parse_collection(payload, "tasks", _parse_task),
        task_stories=_parse_collection(payload, "task_stories", _parse_task_stories),
    )


def parse(file_path: str) -> Dataset:
    """Parse an exported history JSON file into a Dataset."""

    with open(file_path, encoding="utf-8") as handle:
        payload = json.load(handle)
    return from_payload(payload)
