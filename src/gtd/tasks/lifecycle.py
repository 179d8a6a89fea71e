# src/gtd/tasks/lifecycle.py

"""
Task lifecycle state machine.

INBOX is where every task starts, INVALID is terminal. The parent/child rule
overlays the table: a task with children reaches DONE only once every child is
DONE or CANCELLED. blocked_by is advisory and never consulted here.
"""

from __future__ import annotations

from collections.abc import Sequence

from ..core.errors import IllegalTransitionError, ParentIncompleteError
from .task_models import FINISHED_STATES, Task, TaskState

TRANSITIONS: dict[TaskState, tuple[TaskState, ...]] = {
    TaskState.INBOX: (TaskState.NEW, TaskState.INVALID),
    TaskState.NEW: (TaskState.IN_PROGRESS, TaskState.DONE, TaskState.CANCELLED),
    TaskState.IN_PROGRESS: (TaskState.DONE, TaskState.CANCELLED),
    TaskState.DONE: (TaskState.IN_PROGRESS,),
    TaskState.CANCELLED: (TaskState.NEW, TaskState.IN_PROGRESS),
    TaskState.INVALID: (),
}


def allowed_transitions(state: str) -> tuple[TaskState, ...]:
    try:
        return TRANSITIONS[TaskState(state)]
    except ValueError:
        return ()


def first_incomplete_child(children: Sequence[Task]) -> Task | None:
    for child in children:
        if child.state not in FINISHED_STATES:
            return child
    return None


def can_transition_to(task: Task, target: str, children: Sequence[Task] = ()) -> bool:
    """Pure check: table lookup plus the DONE-needs-finished-children overlay."""
    if target not in allowed_transitions(task.state):
        return False
    if target == TaskState.DONE and first_incomplete_child(children) is not None:
        return False
    return True


def check_transition(task: Task, target: str, children: Sequence[Task] = ()) -> None:
    """
    Raise the error explaining why `task` may not move to `target`.

    ParentIncompleteError wins over IllegalTransitionError so the user learns
    which child to finish first.
    """
    if target == TaskState.DONE:
        child = first_incomplete_child(children)
        if child is not None:
            raise ParentIncompleteError(child.id, child.state)

    allowed = allowed_transitions(task.state)
    if target not in allowed:
        raise IllegalTransitionError(task.state, target, allowed)
