# tests/test_task_api.py

from __future__ import annotations

import dataclasses

import pytest

from gtd.core.errors import IllegalTransitionError, TaskNotFoundError, ValidationError
from gtd.core.providers import UNKNOWN_AUTHOR
from gtd.core.state import AppState
from gtd.tasks import task_api
from gtd.tasks.task_models import TaskKind, TaskPriority, TaskState

from .fakes import make_task


def test_add_task_starts_in_inbox_with_author(state: AppState) -> None:
    task = task_api.add_task(state, "FEATURE", "Dark mode", "Add a dark theme", tags=["ui"])

    loaded = state.task_store.get_by_id(task.id)
    assert loaded.state == TaskState.INBOX
    assert loaded.kind == TaskKind.FEATURE
    assert loaded.priority == TaskPriority.MEDIUM
    assert loaded.author == "Test User <test@example.com>"
    assert loaded.tags == ["ui"]


def test_author_falls_back_when_identity_fails(state: AppState) -> None:
    state.identity.fail = True
    task = task_api.add_task(state, "BUG", "Crash", "Crashes on start")
    assert task.author == UNKNOWN_AUTHOR


def test_default_priority_comes_from_settings(state: AppState) -> None:
    state.settings = dataclasses.replace(state.settings, default_priority="high")
    task = task_api.add_task(state, "BUG", "Crash", "Crashes on start")
    assert task.priority == TaskPriority.HIGH

    task = task_api.add_task(state, "BUG", "Typo", "Typo in help", priority="LOW")
    assert task.priority == TaskPriority.LOW


def test_bad_kind_is_a_validation_error(state: AppState) -> None:
    with pytest.raises(ValidationError) as exc:
        task_api.add_task(state, "CHORE", "Tidy", "Tidy up")
    assert exc.value.reason == "invalid kind: CHORE"


def test_add_subtask_resolves_parent_prefix(state: AppState) -> None:
    parent = task_api.add_task(state, "FEATURE", "Parent", "Big feature")
    child = task_api.add_subtask(state, parent.short_id, "BUG", "Child", "Part of it")

    assert child.parent == parent.id
    assert [t.id for t in state.task_store.get_children(parent.id)] == [child.id]

    with pytest.raises(TaskNotFoundError):
        task_api.add_subtask(state, "ffffffff", "BUG", "Orphan", "No parent")


def test_accept_only_from_inbox(state: AppState) -> None:
    task = task_api.add_task(state, "BUG", "Crash", "Crashes on start")
    assert task_api.accept_task(state, task.short_id).state == TaskState.NEW

    with pytest.raises(IllegalTransitionError):
        task_api.accept_task(state, task.id)


def test_full_lifecycle_shortcuts(state: AppState) -> None:
    task = task_api.add_task(state, "BUG", "Crash", "Crashes on start")
    task_api.accept_task(state, task.id)
    assert task_api.start_task(state, task.id).state == TaskState.IN_PROGRESS
    assert task_api.cancel_task(state, task.id).state == TaskState.CANCELLED
    assert task_api.reopen_task(state, task.id).state == TaskState.NEW
    assert task_api.complete_task(state, task.id).state == TaskState.DONE


def test_reject_refuses_done_tasks(state: AppState) -> None:
    inbox = task_api.add_task(state, "BUG", "Dupe", "Duplicate report")
    assert task_api.reject_task(state, inbox.id).state == TaskState.INVALID

    done = state.task_store.create(make_task(title="Shipped", state="DONE"))
    with pytest.raises(IllegalTransitionError):
        task_api.reject_task(state, done.id)


def test_reopen_requires_cancelled(state: AppState) -> None:
    task = task_api.add_task(state, "BUG", "Crash", "Crashes on start")
    with pytest.raises(IllegalTransitionError):
        task_api.reopen_task(state, task.id)


def test_block_helpers(state: AppState) -> None:
    a = task_api.add_task(state, "BUG", "A", "first")
    b = task_api.add_task(state, "BUG", "B", "second")
    assert task_api.block_task(state, a.id, b.id).blocked_by == b.id
    assert task_api.unblock_task(state, a.id).blocked_by is None


def test_review_inbox_reports_active_count(state: AppState) -> None:
    older = task_api.add_task(state, "BUG", "Older", "in inbox")
    newer = task_api.add_task(state, "BUG", "Newer", "in inbox")
    state.task_store.create(make_task(title="Working", state="IN_PROGRESS"))

    inbox, active = task_api.review_inbox(state)
    assert [t.id for t in inbox] == [newer.id, older.id]
    assert active == 1


def test_summarize_counts() -> None:
    parent = make_task(title="Parent", state=TaskState.NEW, kind=TaskKind.FEATURE)
    child = make_task(title="Child", state=TaskState.DONE, parent=parent.id)
    blocked = make_task(
        title="Blocked",
        state=TaskState.IN_PROGRESS,
        priority=TaskPriority.HIGH,
        blocked_by=parent.id,
    )
    tasks = [parent, child, blocked]

    s = task_api.summarize(tasks)
    assert s.total == 3
    assert s.active == 2
    assert s.blocked == 1
    assert s.parents == 1
    assert s.subtasks == 1
    assert s.by_state["DONE"] == 1
    assert s.by_state["INVALID"] == 0
    assert s.by_kind == {"BUG": 2, "FEATURE": 1, "REGRESSION": 0}
    assert s.by_priority == {"high": 1, "medium": 2, "low": 0}

    active = task_api.summarize(tasks, active_only=True)
    assert active.total == 2
    assert active.subtasks == 0
    assert active.parents == 1


def test_summary_reads_the_store(state: AppState) -> None:
    task_api.add_task(state, "BUG", "One", "first")
    assert task_api.summary(state).by_state["INBOX"] == 1
