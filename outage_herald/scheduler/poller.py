"""Self-rescheduling poll loops, one per source."""

from __future__ import annotations

from typing import Iterable

import structlog

from ..engine.watcher import SourceWatcher
from .apsched_adapter import APSchedulerAdapter


class PollScheduler:
    """Drive each watcher's cycles through the scheduler.

    The first cycle of every source runs immediately and silently. After a
    cycle finishes, the next one is armed with the delay the cycle reported,
    so a source never has two cycles in flight.
    """

    def __init__(
        self,
        adapter: APSchedulerAdapter,
        watchers: Iterable[SourceWatcher],
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.adapter = adapter
        self.watchers = list(watchers)
        self.logger = logger or structlog.get_logger("outage_herald.poller")

    def start(self) -> None:
        for watcher in self.watchers:
            self.adapter.schedule_in(watcher.source_id, self.tick, 0, args=[watcher, True])
        self.adapter.start()

    async def tick(self, watcher: SourceWatcher, silent: bool = False) -> float:
        try:
            next_minutes = await watcher.run_cycle(silent=silent)
        except Exception as exc:  # noqa: BLE001
            self.logger.error("poll_cycle_crashed", source=watcher.source_id, error=str(exc))
            next_minutes = watcher.default_interval_minutes
        self.adapter.schedule_in(watcher.source_id, self.tick, next_minutes, args=[watcher, False])
        return next_minutes

    def shutdown(self) -> None:
        for watcher in self.watchers:
            self.adapter.remove_source(watcher.source_id)
        self.adapter.shutdown()


__all__ = ["PollScheduler"]
