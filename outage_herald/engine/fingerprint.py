"""Stable item fingerprints derived from prioritised feed fields."""

from __future__ import annotations

import hashlib
from typing import Iterable

from ..errors import MalformedItemError

_SEPARATOR = "\x1f"


def fingerprint(candidates: Iterable[str | None]) -> str:
    """Return a filename-safe digest over the present candidates.

    Candidates are given in priority order; absent or blank values are
    dropped and the rest are hashed in that order, so the same feed entry
    yields the same digest on every poll and across restarts.
    """

    present = [str(value).strip() for value in candidates if value is not None and str(value).strip()]
    if not present:
        raise MalformedItemError("No usable fingerprint candidate")
    return hashlib.sha256(_SEPARATOR.join(present).encode("utf-8")).hexdigest()


__all__ = ["fingerprint"]
