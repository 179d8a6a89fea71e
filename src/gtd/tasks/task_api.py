# src/gtd/tasks/task_api.py

"""
High-level task operations used by command handlers (add, accept, done, ...).

Every helper takes the AppState explicitly and goes through state.task_store,
so the lifecycle rules in lifecycle.py and the store's validation always apply.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from ..core.errors import IllegalTransitionError
from ..core.providers import resolve_author
from ..core.state import AppState
from .lifecycle import allowed_transitions
from .task_ids import generate_id
from .task_models import (
    ACTIVE_STATES,
    FINISHED_STATES,
    Task,
    TaskKind,
    TaskPriority,
    TaskState,
)
from .task_store import ListOptions

logger = logging.getLogger(__name__)


def new_task(
    state: AppState,
    kind: str,
    title: str,
    description: str,
    *,
    priority: str | None = None,
    source: str | None = None,
    tags: Iterable[str] | None = None,
    parent: str | None = None,
) -> Task:
    """
    Build (but do not persist) an INBOX task with an id and author.

    kind/priority are passed through as given; validation happens in the store
    so a bad value is reported as ValidationError, not as an enum crash.
    """
    now = state.clock.now()
    if priority is None:
        priority = getattr(state.settings, "default_priority", TaskPriority.MEDIUM)
    return Task(
        id=generate_id(kind, title, description, now),
        kind=_coerce(TaskKind, kind),
        title=title,
        description=description,
        author=resolve_author(state.identity),
        priority=_coerce(TaskPriority, str(priority).lower()),
        state=TaskState.INBOX,
        parent=parent,
        tags=list(tags or []),
        source=source or None,
        created=now,
        updated=now,
    )


def _coerce(enum_cls, raw):
    try:
        return enum_cls(raw)
    except ValueError:
        return raw


def add_task(
    state: AppState,
    kind: str,
    title: str,
    description: str,
    *,
    priority: str | None = None,
    source: str | None = None,
    tags: Iterable[str] | None = None,
    parent: str | None = None,
) -> Task:
    task = new_task(
        state,
        kind,
        title,
        description,
        priority=priority,
        source=source,
        tags=tags,
        parent=parent,
    )
    return state.task_store.create(task)


def add_subtask(
    state: AppState,
    parent_ref: str,
    kind: str,
    title: str,
    description: str,
    *,
    priority: str | None = None,
    source: str | None = None,
    tags: Iterable[str] | None = None,
) -> Task:
    """Resolve the parent (prefix allowed) and add a child under it."""
    parent = state.task_store.get_by_id(parent_ref)
    return add_task(
        state,
        kind,
        title,
        description,
        priority=priority,
        source=source,
        tags=tags,
        parent=parent.id,
    )


# ---- lifecycle shortcuts ----


def accept_task(state: AppState, ref: str) -> Task:
    """INBOX -> NEW (reviewed and accepted for work)."""
    task = state.task_store.get_by_id(ref)
    if task.state != TaskState.INBOX:
        raise IllegalTransitionError(
            task.state, TaskState.NEW, allowed_transitions(task.state)
        )
    return state.task_store.update_state(task.id, TaskState.NEW)


def reject_task(state: AppState, ref: str) -> Task:
    """Mark a task INVALID; completed work is never rejected."""
    task = state.task_store.get_by_id(ref)
    if task.state == TaskState.DONE:
        raise IllegalTransitionError(
            task.state, TaskState.INVALID, allowed_transitions(task.state)
        )
    return state.task_store.update_state(task.id, TaskState.INVALID)


def start_task(state: AppState, ref: str) -> Task:
    return state.task_store.update_state(ref, TaskState.IN_PROGRESS)


def complete_task(state: AppState, ref: str) -> Task:
    return state.task_store.update_state(ref, TaskState.DONE)


def cancel_task(state: AppState, ref: str) -> Task:
    return state.task_store.update_state(ref, TaskState.CANCELLED)


def reopen_task(state: AppState, ref: str) -> Task:
    """CANCELLED -> NEW."""
    task = state.task_store.get_by_id(ref)
    if task.state != TaskState.CANCELLED:
        raise IllegalTransitionError(
            task.state, TaskState.NEW, allowed_transitions(task.state)
        )
    return state.task_store.update_state(task.id, TaskState.NEW)


def block_task(state: AppState, ref: str, blocker_ref: str) -> Task:
    return state.task_store.block(ref, blocker_ref)


def unblock_task(state: AppState, ref: str) -> Task:
    return state.task_store.unblock(ref)


# ---- review / summary ----


def review_inbox(state: AppState) -> tuple[list[Task], int]:
    """
    INBOX tasks (newest first) plus how many active tasks are still listed,
    so the caller can warn before triage.
    """
    active = state.task_store.list(ListOptions())
    inbox = state.task_store.list_by_state(TaskState.INBOX)
    logger.debug("Inbox review: inbox=%d active=%d", len(inbox), len(active))
    return inbox, len(active)


@dataclass(slots=True)
class TaskSummary:
    total: int = 0
    active: int = 0
    blocked: int = 0
    parents: int = 0
    subtasks: int = 0
    by_state: dict[str, int] = field(default_factory=dict)
    by_kind: dict[str, int] = field(default_factory=dict)
    by_priority: dict[str, int] = field(default_factory=dict)


def summarize(tasks: Sequence[Task], *, active_only: bool = False) -> TaskSummary:
    """
    Counts by state, kind and priority, plus blocked/parent/subtask totals.

    active_only skips DONE and CANCELLED tasks. A parent is any counted task
    that some task in `tasks` points to.
    """
    parent_ids = {t.parent for t in tasks if t.parent}
    counted = [t for t in tasks if not (active_only and t.state in FINISHED_STATES)]

    by_state: Counter[str] = Counter({str(s): 0 for s in TaskState})
    by_kind: Counter[str] = Counter({str(k): 0 for k in TaskKind})
    by_priority: Counter[str] = Counter({str(p): 0 for p in TaskPriority})
    for t in counted:
        by_state[str(t.state)] += 1
        by_kind[str(t.kind)] += 1
        by_priority[str(t.priority)] += 1

    return TaskSummary(
        total=len(counted),
        active=sum(1 for t in counted if t.state in ACTIVE_STATES),
        blocked=sum(1 for t in counted if t.is_blocked),
        parents=sum(1 for t in counted if t.id in parent_ids),
        subtasks=sum(1 for t in counted if t.parent),
        by_state=dict(by_state),
        by_kind=dict(by_kind),
        by_priority=dict(by_priority),
    )


def summary(state: AppState, *, active_only: bool = False) -> TaskSummary:
    return summarize(state.task_store.list_all(), active_only=active_only)
