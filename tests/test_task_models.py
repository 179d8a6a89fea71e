# tests/test_task_models.py

from __future__ import annotations

import pytest

from gtd.core.errors import ParentIncompleteError, ValidationError
from gtd.tasks.task_ids import short_form
from gtd.tasks.task_models import (
    TaskPriority,
    TaskState,
    format_tags,
    parse_tags,
    validate_task,
)

from .fakes import make_task


def test_valid_task_passes() -> None:
    validate_task(make_task())


@pytest.mark.parametrize(
    ("overrides", "reason"),
    [
        ({"title": "   "}, "title is required"),
        ({"description": ""}, "description is required"),
        ({"kind": "TASK"}, "invalid kind: TASK"),
        ({"priority": "urgent"}, "invalid priority: urgent"),
        ({"state": "OPEN"}, "invalid state: OPEN"),
    ],
)
def test_validation_reports_reason(overrides: dict, reason: str) -> None:
    task = make_task(**overrides)
    with pytest.raises(ValidationError) as exc:
        validate_task(task)
    assert reason in exc.value.reason


def test_validation_stops_at_first_failure() -> None:
    task = make_task(title="", description="", kind="NOPE", state="NOPE")
    with pytest.raises(ValidationError) as exc:
        validate_task(task)
    assert exc.value.reason == "title is required"


def test_plain_strings_are_accepted_for_enum_fields() -> None:
    validate_task(make_task(kind="REGRESSION", priority="low", state="IN_PROGRESS"))


def test_defaults_are_inbox_and_medium() -> None:
    task = make_task()
    assert task.state == TaskState.INBOX
    assert task.priority == TaskPriority.MEDIUM
    assert not task.is_blocked


def test_rank_mapping_orders_high_medium_low() -> None:
    ranked = sorted(TaskPriority, key=lambda p: p.rank)
    assert ranked == [TaskPriority.HIGH, TaskPriority.MEDIUM, TaskPriority.LOW]
    assert TaskState.IN_PROGRESS.rank < TaskState.NEW.rank < TaskState.DONE.rank
    assert TaskState.INBOX.rank == TaskState.CANCELLED.rank == 2


def test_tags_round_trip_through_separator() -> None:
    assert parse_tags(" db , ui,,db ") == ["db", "ui"]
    assert parse_tags(None) == []
    assert format_tags(["backend", " api ", "backend"]) == "backend,api"
    assert format_tags([]) == ""
    assert make_task(tags=["a", "b"]).tags_text == "a,b"


def test_short_id_uses_the_shared_short_form() -> None:
    task = make_task(task_id="0123456789" + "a" * 30)
    assert task.short_id == short_form(task.id) == "0123456"
    assert f"child task {task.short_id} is in NEW" in str(ParentIncompleteError(task.id, "NEW"))
