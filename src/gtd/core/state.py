# src/gtd/core/state.py

from __future__ import annotations

from dataclasses import dataclass

from .ports import Clock, IdentityProvider, TaskRepo


@dataclass
class AppState:
    """
    Everything a command handler needs, passed explicitly (no process-wide store).

    Built once by cli.bootstrap.create_initial_state().
    """

    # Store Settings on the state for easy access in other modules later.
    settings: object

    task_store: TaskRepo
    identity: IdentityProvider
    clock: Clock
