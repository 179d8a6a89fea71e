# src/gtd/core/errors.py

"""
Typed failures raised by the task core.

Every error is surfaced to the caller; nothing here is retried internally.
The CLI layer decides how to print them (exit codes, hints, colors).
"""

from __future__ import annotations

from collections.abc import Sequence

from ..tasks.task_ids import short_form


class GTDError(Exception):
    """Base class for all task-core errors."""


class ConfigError(GTDError, ValueError):
    pass


class ValidationError(GTDError, ValueError):
    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class TaskNotFoundError(GTDError, LookupError):
    """
    An id or prefix resolved to zero tasks.

    suggestions: human-readable "short (title)" strings for similar tasks.
    """

    def __init__(self, ref: str, suggestions: Sequence[str] = ()) -> None:
        self.ref = ref
        self.suggestions = list(suggestions)
        super().__init__(self._build_message())

    def _build_message(self) -> str:
        msg = f"task not found: {self.ref}"
        if len(self.suggestions) == 1:
            msg += f"\n\nDid you mean: {self.suggestions[0]}?"
        elif self.suggestions:
            msg += "\n\nDid you mean one of these?"
            for s in self.suggestions:
                msg += f"\n  - {s}"
        return msg


class AmbiguousIDError(GTDError, LookupError):
    """A prefix matched more than one task; the caller should ask for a longer one."""

    def __init__(self, prefix: str, count: int, candidates: Sequence[str] = ()) -> None:
        self.prefix = prefix
        self.count = int(count)
        self.candidates = list(candidates)
        super().__init__(f"ambiguous hash prefix '{prefix}' matches {self.count} tasks")


class IllegalTransitionError(GTDError):
    def __init__(self, current: str, target: str, allowed: Sequence[str] = ()) -> None:
        self.current = str(current)
        self.target = str(target)
        self.allowed = [str(a) for a in allowed]
        if self.allowed:
            hint = "valid transitions: " + ", ".join(self.allowed)
        else:
            hint = f"{self.current} tasks cannot be transitioned to other states"
        super().__init__(f"cannot transition from {self.current} to {self.target} ({hint})")


class ParentIncompleteError(GTDError):
    def __init__(self, child_id: str, child_state: str) -> None:
        self.child_id = child_id
        self.child_state = str(child_state)
        super().__init__(
            f"cannot mark parent task as DONE: child task {short_form(child_id)} "
            f"is in {self.child_state} state"
        )


class SelfBlockError(GTDError):
    def __init__(self, task_id: str) -> None:
        self.task_id = task_id
        super().__init__("cannot block a task by itself")


class ConstraintViolation(GTDError):
    """Backend integrity failure (dangling parent, duplicate id, CHECK), message kept verbatim."""


class MigrationError(GTDError):
    pass
