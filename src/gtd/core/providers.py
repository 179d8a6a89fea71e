# src/gtd/core/providers.py

"""Default implementations of the outbound ports (clock, author identity)."""

from __future__ import annotations

import logging
import time

from .ports import IdentityProvider

logger = logging.getLogger(__name__)

UNKNOWN_AUTHOR = "Unknown <unknown@example.com>"


class SystemClock:
    def now(self) -> float:
        return time.time()


class SettingsIdentityProvider:
    """Author taken from settings (GTD_AUTHOR). Raises when nothing is configured."""

    def __init__(self, settings=None) -> None:
        self._settings = settings

    def get_author(self) -> str:
        author = str(getattr(self._settings, "author", None) or "").strip()
        if not author:
            raise LookupError("no author configured (set GTD_AUTHOR)")
        return author


def resolve_author(identity: IdentityProvider | None) -> str:
    """Never fails: any provider error falls back to UNKNOWN_AUTHOR."""
    if identity is None:
        return UNKNOWN_AUTHOR
    try:
        author = str(identity.get_author() or "").strip()
    except Exception:
        logger.debug("Identity provider failed; using placeholder author.", exc_info=True)
        return UNKNOWN_AUTHOR
    return author or UNKNOWN_AUTHOR
