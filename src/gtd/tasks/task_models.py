# src/gtd/tasks/task_models.py

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import StrEnum

from ..core.errors import ValidationError
from .task_ids import short_form

TAG_SEPARATOR = ","


class TaskKind(StrEnum):
    BUG = "BUG"
    FEATURE = "FEATURE"
    REGRESSION = "REGRESSION"


class TaskPriority(StrEnum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return PRIORITY_RANK[self]

    @classmethod
    def from_db(cls, raw: str | None) -> TaskPriority:
        if not raw:
            return cls.MEDIUM
        return cls(raw)


class TaskState(StrEnum):
    """
    Task lifecycle state.

    Notes:
    - INBOX is the untriaged starting state for every new task.
    - INVALID is terminal (rejected / out of scope).
    """

    INBOX = "INBOX"
    NEW = "NEW"
    IN_PROGRESS = "IN_PROGRESS"
    DONE = "DONE"
    CANCELLED = "CANCELLED"
    INVALID = "INVALID"

    @property
    def rank(self) -> int:
        return STATE_RANK.get(self, 2)

    @classmethod
    def from_db(cls, raw: str | None) -> TaskState:
        if not raw:
            return cls.INBOX
        return cls(raw)


# Listing order keys. Never compare the raw enum text: "medium" > "low" > "high".
PRIORITY_RANK: dict[TaskPriority, int] = {
    TaskPriority.HIGH: 0,
    TaskPriority.MEDIUM: 1,
    TaskPriority.LOW: 2,
}

STATE_RANK: dict[TaskState, int] = {
    TaskState.IN_PROGRESS: 0,
    TaskState.NEW: 1,
}

FINISHED_STATES = frozenset({TaskState.DONE, TaskState.CANCELLED})
ACTIVE_STATES = frozenset({TaskState.NEW, TaskState.IN_PROGRESS})


def parse_tags(text: str | None) -> list[str]:
    """Split stored tag text into labels (order kept, blanks and duplicates dropped)."""
    if not text:
        return []
    out: list[str] = []
    for part in text.split(TAG_SEPARATOR):
        tag = part.strip()
        if tag and tag not in out:
            out.append(tag)
    return out


def format_tags(tags: Iterable[str] | None) -> str:
    if not tags:
        return ""
    return TAG_SEPARATOR.join(parse_tags(TAG_SEPARATOR.join(str(t) for t in tags)))


@dataclass(slots=True)
class Task:
    id: str
    kind: TaskKind
    title: str
    description: str
    author: str

    priority: TaskPriority = TaskPriority.MEDIUM
    state: TaskState = TaskState.INBOX

    parent: str | None = None
    blocked_by: str | None = None

    tags: list[str] = field(default_factory=list)
    source: str | None = None

    created: float = 0.0
    updated: float = 0.0

    @property
    def short_id(self) -> str:
        return short_form(self.id)

    @property
    def is_blocked(self) -> bool:
        return self.blocked_by is not None

    @property
    def tags_text(self) -> str:
        return format_tags(self.tags)


def validate_task(task: Task) -> None:
    """
    Raise ValidationError for the first failing check.

    Order: title, description, kind, priority, state. The same predicate runs
    on create and on update; errors are never aggregated.
    """
    if not (task.title or "").strip():
        raise ValidationError("title is required")
    if not (task.description or "").strip():
        raise ValidationError(
            "description is required - tasks must have a body explaining the work"
        )
    if task.kind not in _KINDS:
        raise ValidationError(f"invalid kind: {task.kind}")
    if task.priority not in _PRIORITIES:
        raise ValidationError(f"invalid priority: {task.priority}")
    if task.state not in _STATES:
        raise ValidationError(f"invalid state: {task.state}")


_KINDS = frozenset(k.value for k in TaskKind)
_PRIORITIES = frozenset(p.value for p in TaskPriority)
_STATES = frozenset(s.value for s in TaskState)
