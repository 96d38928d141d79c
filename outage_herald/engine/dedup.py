"""Marker-backed deduplication of announced items.

Callers must guarantee that no other writer targets the same source between
a ``has`` check and the following ``mark``: the stores do no locking of
their own. The poll scheduler satisfies this by running at most one cycle
per source at a time.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Mapping, Protocol

import structlog


class MarkerStore(Protocol):
    def has(self, source_id: str, fingerprint: str) -> bool: ...

    def mark(self, source_id: str, fingerprint: str, payload: Mapping[str, Any]) -> bool: ...


def marker_name(source_id: str, fingerprint: str) -> str:
    return f"{source_id}-{fingerprint}"


class FileMarkerStore:
    """One file per ``(source, fingerprint)``; existence is the only signal."""

    def __init__(self, directory: Path, logger: structlog.BoundLogger | None = None) -> None:
        self.directory = directory
        self.directory.mkdir(parents=True, exist_ok=True)
        self.logger = logger or structlog.get_logger("outage_herald.dedup")

    def path_for(self, source_id: str, fingerprint: str) -> Path:
        return self.directory / marker_name(source_id, fingerprint)

    def has(self, source_id: str, fingerprint: str) -> bool:
        return self.path_for(source_id, fingerprint).exists()

    def mark(self, source_id: str, fingerprint: str, payload: Mapping[str, Any]) -> bool:
        path = self.path_for(source_id, fingerprint)
        try:
            path.write_text(
                json.dumps(dict(payload), ensure_ascii=False, default=str),
                encoding="utf-8",
            )
        except OSError as exc:
            self.logger.error("marker_write_failed", path=str(path), error=str(exc))
            return False
        self.logger.debug("marker_written", path=str(path))
        return True

    def count(self, source_id: str | None = None) -> int:
        pattern = f"{source_id}-*" if source_id else "*"
        return sum(1 for path in self.directory.glob(pattern) if path.is_file())


class MemoryMarkerStore:
    """In-process store used by tests and dry runs."""

    def __init__(self) -> None:
        self.markers: dict[tuple[str, str], dict[str, Any]] = {}

    def has(self, source_id: str, fingerprint: str) -> bool:
        return (source_id, fingerprint) in self.markers

    def mark(self, source_id: str, fingerprint: str, payload: Mapping[str, Any]) -> bool:
        self.markers[(source_id, fingerprint)] = dict(payload)
        return True

    def count(self, source_id: str | None = None) -> int:
        if source_id is None:
            return len(self.markers)
        return sum(1 for key in self.markers if key[0] == source_id)


__all__ = ["FileMarkerStore", "MarkerStore", "MemoryMarkerStore", "marker_name"]
