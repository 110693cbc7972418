"""Section change extraction from task stories."""

from __future__ import annotations

import re

from flow_engine.errors import TransitionFormatError
from flow_engine.schema import Story, Transition

SECTION_CHANGED = "section_changed"

_SECTION_CHANGED_RE = re.compile(r'^moved this Task from "([^"]+?)" to "([^"]+?)" in (.+)$')


def parse_transition(text: str, task_id: str | None = None) -> Transition:
    """Parse 'moved this Task from "A" to "B" in Project' into a Transition."""

    match = _SECTION_CHANGED_RE.match(text)
    if match is None:
        raise TransitionFormatError(text, task_id)
    from_state, to_state, project_name = match.groups()
    return Transition(from_state=from_state, to_state=to_state, project_name=project_name)


def story_transition(story: Story, task_id: str | None = None) -> Transition | None:
    """Return the transition described by a story, or None for other story types."""

    if story.resource_subtype != SECTION_CHANGED:
        return None
    return parse_transition(story.text, task_id)
