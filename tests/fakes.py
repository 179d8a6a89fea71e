# tests/fakes.py

from __future__ import annotations

from dataclasses import dataclass

from gtd.tasks.task_ids import generate_id
from gtd.tasks.task_models import Task, TaskKind, TaskPriority, TaskState


class FakeClock:
    """
    Deterministic clock for unit tests.

    Every now() call advances by `step`, so creation order is always strictly
    increasing and "newest first" orderings are testable.
    """

    def __init__(self, start: float = 1_700_000_000.0, step: float = 1.0) -> None:
        self.current = start
        self.step = step

    def now(self) -> float:
        self.current += self.step
        return self.current


@dataclass(slots=True)
class FakeIdentity:
    """IdentityProvider stand-in; `fail=True` simulates a missing git config."""

    author: str = "Test User <test@example.com>"
    fail: bool = False

    def get_author(self) -> str:
        if self.fail:
            raise RuntimeError("git user.name and user.email must be configured")
        return self.author


def make_task(
    title: str = "Fix leak",
    description: str = "leaks memory",
    *,
    kind: TaskKind | str = TaskKind.BUG,
    priority: TaskPriority | str = TaskPriority.MEDIUM,
    state: TaskState | str = TaskState.INBOX,
    task_id: str | None = None,
    parent: str | None = None,
    blocked_by: str | None = None,
    tags: list[str] | None = None,
    source: str | None = None,
) -> Task:
    return Task(
        id=task_id or generate_id(str(kind), title, description, 0.0),
        kind=kind,
        title=title,
        description=description,
        author="Test User <test@example.com>",
        priority=priority,
        state=state,
        parent=parent,
        blocked_by=blocked_by,
        tags=list(tags or []),
        source=source,
    )
