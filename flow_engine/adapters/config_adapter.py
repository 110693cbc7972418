"""JSON adapter for report configuration."""

from __future__ import annotations

import json
from typing import Any

from flow_engine.adapters.dataset_adapter import parse_timestamp
from flow_engine.schema import ProjectConfig, ReportConfig

_REQUIRED_FIELDS = ("gid", "horizon", "cfd_states", "done_states")


def _state_list(value: Any, field: str, label: str) -> tuple[str, ...]:
    if not isinstance(value, list) or not all(isinstance(state, str) and state for state in value):
        raise ValueError(f"Project '{label}': '{field}' must be a list of state names")
    return tuple(value)


def _parse_project(label: str, item: Any) -> ProjectConfig:
    if not isinstance(item, dict):
        raise ValueError(f"Project '{label}': expected an object")

    missing = [field for field in _REQUIRED_FIELDS if item.get(field) in (None, "")]
    if missing:
        raise ValueError(f"Project '{label}': missing required fields {missing}")

    try:
        horizon = parse_timestamp(item["horizon"])
    except Exception as exc:  # noqa: BLE001
        raise ValueError(f"Project '{label}': malformed horizon") from exc

    cfd_states = _state_list(item["cfd_states"], "cfd_states", label)
    if not cfd_states:
        raise ValueError(f"Project '{label}': 'cfd_states' must not be empty")

    return ProjectConfig(
        label=label,
        gid=str(item["gid"]),
        horizon=horizon,
        cfd_states=cfd_states,
        done_states=_state_list(item["done_states"], "done_states", label),
    )


def from_payload(payload: Any) -> ReportConfig:
    """Build a ReportConfig from {"projects": {label: {...}}}."""

    if not isinstance(payload, dict) or not isinstance(payload.get("projects"), dict):
        raise ValueError("Config must be an object with a 'projects' mapping")
    return ReportConfig(
        projects=tuple(_parse_project(str(label), item) for label, item in payload["projects"].items())
    )


def parse(file_path: str) -> ReportConfig:
    """Parse a JSON config file into a ReportConfig."""

    with open(file_path, encoding="utf-8") as handle:
        payload = json.load(handle)
    return from_payload(payload)
