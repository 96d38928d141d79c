"""Async feed retrieval producing plain item mappings."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

import feedparser
import httpx
import structlog

from ..errors import FeedParseError

RawItem = dict[str, Any]


@dataclass(slots=True)
class FeedDocument:
    """Items of one feed poll plus the channel-level cache lifetime."""

    url: str
    items: list[RawItem] = field(default_factory=list)
    ttl: str | None = None


def _iso_date(entry: Any) -> str | None:
    parsed = entry.get("published_parsed") or entry.get("updated_parsed")
    if not parsed:
        return None
    return datetime(*parsed[:6], tzinfo=timezone.utc).isoformat().replace("+00:00", "Z")


def entry_to_item(entry: Any) -> RawItem:
    """Flatten a feedparser entry into the fields adapters rely on."""

    entry_id = entry.get("id")
    return {
        "title": entry.get("title"),
        "link": entry.get("link"),
        "pub_date": entry.get("published") or entry.get("updated"),
        "iso_date": _iso_date(entry),
        "guid": entry_id,
        "id": entry_id,
        "summary": entry.get("summary"),
    }


def parse_feed(url: str, content: bytes | str) -> FeedDocument:
    parsed = feedparser.parse(content)
    if parsed.get("bozo") and not parsed.entries:
        reason = parsed.get("bozo_exception")
        raise FeedParseError(f"Unreadable feed at {url}: {reason}")
    ttl = parsed.feed.get("ttl") if parsed.get("feed") else None
    return FeedDocument(
        url=url,
        items=[entry_to_item(entry) for entry in parsed.entries],
        ttl=str(ttl) if ttl not in (None, "") else None,
    )


class FeedFetcher:
    """Fetch RSS/Atom documents over HTTP."""

    USER_AGENT = "outage-herald/0.3 (+status feed watcher)"
    ACCEPT = "application/rss+xml, application/atom+xml, application/xml, text/xml, */*"

    def __init__(
        self,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self._client = client or httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
            headers={"User-Agent": self.USER_AGENT, "Accept": self.ACCEPT},
        )
        self.logger = logger or structlog.get_logger("outage_herald.fetcher")

    async def fetch(self, url: str) -> FeedDocument:
        response = await self._client.get(url)
        response.raise_for_status()
        document = parse_feed(url, response.content)
        self.logger.debug("feed_fetched", url=url, items=len(document.items), ttl=document.ttl)
        return document

    async def aclose(self) -> None:
        await self._client.aclose()


__all__ = ["FeedDocument", "FeedFetcher", "RawItem", "entry_to_item", "parse_feed"]
