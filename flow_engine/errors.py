"""Errors raised when the exported history cannot be reconciled."""

from __future__ import annotations


class FlowEngineError(ValueError):
    """Base class for fatal input problems; a report run stops on the first one."""


class TransitionFormatError(FlowEngineError):
    """A state-change story whose text no longer matches the expected wording."""

    def __init__(self, text: str, task_id: str | None = None):
        self.text = text
        self.task_id = task_id
        where = f"task {task_id}: " if task_id else ""
        super().__init__(f"{where}unrecognized section change text {text!r}")


class MissingReferenceError(FlowEngineError):
    """A task, project or section referenced by the data is not in the dataset."""

    def __init__(self, kind: str, gid: str, context: str = ""):
        self.kind = kind
        self.gid = gid
        suffix = f" ({context})" if context else ""
        super().__init__(f"unknown {kind} '{gid}'{suffix}")
