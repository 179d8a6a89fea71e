# src/gtd/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The core depends on Protocols instead of concrete implementations.
Command handlers, the git author lookup and the wall clock stay swappable,
which keeps the task core testable without a terminal or a git checkout.
"""

from typing import Any, Protocol


class Clock(Protocol):
    """Source of `created` / `updated` timestamps (epoch seconds)."""
    def now(self) -> float: ...


class IdentityProvider(Protocol):
    """
    Who is creating a task, e.g. "Name <email>" from git config.

    May raise; callers fall back to a placeholder author instead of failing.
    """
    def get_author(self) -> str: ...


class TaskRepo(Protocol):
    # CRUD
    def create(self, task: Any) -> Any: ...
    def update(self, task: Any) -> Any: ...
    def delete(self, task_id: str) -> None: ...
    def get_by_id(self, ref: str) -> Any: ...

    # Queries
    def get_children(self, parent_id: str) -> list[Any]: ...
    def list(self, opts: Any = None) -> list[Any]: ...
    def list_by_state(self, state: str) -> list[Any]: ...
    def search(self, text: str) -> list[Any]: ...
    def count_tasks(self) -> int: ...

    # Lifecycle / blocking
    def update_state(self, ref: str, target: str) -> Any: ...
    def block(self, task_ref: str, blocker_ref: str) -> Any: ...
    def unblock(self, task_ref: str) -> Any: ...
