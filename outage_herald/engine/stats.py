"""Process-wide counters reported by the uptime command."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

_UNITS = (
    ("day", 86400),
    ("hour", 3600),
    ("minute", 60),
    ("second", 1),
)


def format_duration(delta: timedelta) -> str:
    remaining = max(int(delta.total_seconds()), 0)
    parts: list[str] = []
    for name, size in _UNITS:
        amount, remaining = divmod(remaining, size)
        if amount:
            parts.append(f"{amount} {name}{'' if amount == 1 else 's'}")
    return ", ".join(parts) if parts else "0 seconds"


@dataclass(slots=True)
class RunStats:
    """Start time and announcement count, created once at startup."""

    up_since: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    announced: int = 0

    def record_announcement(self) -> None:
        self.announced += 1

    def uptime(self, now: datetime | None = None) -> timedelta:
        return (now or datetime.now(timezone.utc)) - self.up_since


__all__ = ["RunStats", "format_duration"]
