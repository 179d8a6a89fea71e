# src/gtd/tasks/task_ids.py

"""
Git-style task identifiers.

Ids look like content hashes (40 hex chars, 7-char short form) but are
unique-by-construction: a random nonce goes into the digest, so identical
content never deduplicates.
"""

from __future__ import annotations

import hashlib
import random
from collections.abc import Iterable

ID_LENGTH = 40
SHORT_ID_LENGTH = 7
MIN_PREFIX_LENGTH = 4

_rng = random.SystemRandom()


def generate_id(kind: str, title: str, description: str, created_at: float) -> str:
    nonce = _rng.getrandbits(63)
    payload = f"{kind}{title}{description}{int(created_at)}{nonce}"
    return hashlib.sha1(payload.encode("utf-8")).hexdigest()


def short_form(task_id: str) -> str:
    return task_id[:SHORT_ID_LENGTH]


def is_prefix_candidate(ref: str) -> bool:
    """Inputs shorter than MIN_PREFIX_LENGTH are never expanded as prefixes."""
    return MIN_PREFIX_LENGTH <= len(ref) < ID_LENGTH


def suggest_similar(ref: str, candidates: Iterable[tuple[str, str]], limit: int = 3) -> list[str]:
    """
    "short (title)" hints for a reference that resolved to nothing.

    Id prefix matches first, then id substring matches, then title matches.
    """
    ref_l = (ref or "").strip().lower()
    if not ref_l:
        return []
    items = list(candidates)
    out: list[str] = []

    passes = (
        lambda tid, title: tid.lower().startswith(ref_l),
        lambda tid, title: ref_l in tid.lower(),
        lambda tid, title: ref_l in (title or "").lower(),
    )
    for match in passes:
        for tid, title in items:
            if not match(tid, title):
                continue
            out.append(f"{short_form(tid)} ({title})")
            if len(out) >= limit:
                return out
        if out:
            return out
    return out
