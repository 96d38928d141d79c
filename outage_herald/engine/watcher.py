"""One poll cycle for a single feed: fetch, filter new items, announce."""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Protocol

import structlog

from .adapters import NormalizedItem, SourceDescriptor
from .dedup import MarkerStore
from .fetcher import FeedDocument
from .sequencer import Action, FloodSequencer
from .stats import RunStats

Announcer = Callable[[str], Awaitable[Any]]


class DocumentFetcher(Protocol):
    async def fetch(self, url: str) -> FeedDocument: ...


class SourceWatcher:
    """Run poll cycles for one source and report the delay before the next."""

    def __init__(
        self,
        descriptor: SourceDescriptor,
        fetcher: DocumentFetcher,
        store: MarkerStore,
        announce: Announcer,
        stats: RunStats,
        *,
        default_interval_minutes: float,
        flood_delay_ms: int,
        sequencer: FloodSequencer | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.descriptor = descriptor
        self.fetcher = fetcher
        self.store = store
        self.announce = announce
        self.stats = stats
        self.default_interval_minutes = default_interval_minutes
        self.flood_delay_ms = flood_delay_ms
        self.logger = logger or structlog.get_logger("outage_herald.watcher").bind(
            source=descriptor.source_id
        )
        self.sequencer = sequencer or FloodSequencer(logger=self.logger)

    @property
    def source_id(self) -> str:
        return self.descriptor.source_id

    async def run_cycle(self, silent: bool = False) -> float:
        """Poll once and return the number of minutes until the next cycle.

        In silent mode new items are marked but not announced, which seeds
        the store on startup without flooding the channel.
        """

        adapter = self.descriptor.adapter
        try:
            document = await self.fetcher.fetch(self.descriptor.url)
            batch = adapter.normalize(document)
        except Exception as exc:  # noqa: BLE001
            self.logger.warning(
                "poll_failed",
                url=self.descriptor.url,
                error=str(exc),
                next_minutes=self.default_interval_minutes,
            )
            return self.default_interval_minutes

        for raw in batch.rejected:
            self.logger.warning("malformed_item_skipped", title=raw.get("title"))

        actions: list[Action] = []
        for item in batch.items:
            if self.store.has(self.source_id, item.fingerprint):
                self.logger.debug("item_already_marked", fingerprint=item.fingerprint)
                continue
            self.store.mark(self.source_id, item.fingerprint, item.payload())
            self.logger.info("item_marked", fingerprint=item.fingerprint, silent=silent)
            if not silent:
                actions.append(self._announcement(item))

        # Awaited so that announcing time counts against the next delay and
        # cycles of the same source never interleave their sends.
        result = await self.sequencer.run(actions, self.flood_delay_ms)

        next_minutes = batch.next_interval_minutes or self.default_interval_minutes
        self.logger.info(
            "poll_complete",
            items=len(batch.items),
            announced=result.succeeded,
            failed=result.failed,
            next_minutes=next_minutes,
        )
        return next_minutes

    def _announcement(self, item: NormalizedItem) -> Action:
        async def _send() -> None:
            line = self.descriptor.adapter.render(item)
            self.logger.info("announcing", line=line)
            await self.announce(line)
            self.stats.record_announcement()

        return _send


__all__ = ["Announcer", "DocumentFetcher", "SourceWatcher"]
