"""Per-provider normalisation and rendering of feed items."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, tzinfo
from email.utils import parsedate_to_datetime
from types import MappingProxyType
from typing import Any, ClassVar, Mapping

from ..errors import MalformedItemError, UnknownSourceError
from .fetcher import FeedDocument, RawItem
from .fingerprint import fingerprint


@dataclass(frozen=True, slots=True)
class NormalizedItem:
    """A feed item tagged with its fingerprint."""

    fingerprint: str
    title: str | None = None
    link: str | None = None
    pub_date: str | None = None
    iso_date: str | None = None
    guid: str | None = None
    raw: Mapping[str, Any] = field(default_factory=dict, repr=False)

    def payload(self) -> dict[str, Any]:
        data = dict(self.raw)
        data["fingerprint"] = self.fingerprint
        return data


@dataclass(slots=True)
class NormalizedBatch:
    items: list[NormalizedItem] = field(default_factory=list)
    next_interval_minutes: float | None = None
    rejected: list[RawItem] = field(default_factory=list)


class SourceAdapter:
    """Normalize a feed document and render its items for one provider.

    Subclasses list the fields that identify an entry in ``fingerprint_fields``
    (highest priority first) and implement :meth:`render`.
    """

    label: ClassVar[str] = ""
    fingerprint_fields: ClassVar[tuple[str, ...]] = ("pub_date", "iso_date", "guid")
    honours_ttl: ClassVar[bool] = False

    def normalize(self, document: FeedDocument) -> NormalizedBatch:
        batch = NormalizedBatch(next_interval_minutes=self._interval(document))
        for raw in document.items:
            try:
                digest = fingerprint(raw.get(name) for name in self.fingerprint_fields)
            except MalformedItemError:
                batch.rejected.append(raw)
                continue
            batch.items.append(
                NormalizedItem(
                    fingerprint=digest,
                    title=raw.get("title"),
                    link=raw.get("link"),
                    pub_date=raw.get("pub_date"),
                    iso_date=raw.get("iso_date"),
                    guid=raw.get("guid"),
                    raw=MappingProxyType(dict(raw)),
                )
            )
        return batch

    def render(self, item: NormalizedItem) -> str:
        raise NotImplementedError

    def _interval(self, document: FeedDocument) -> float | None:
        if not self.honours_ttl or document.ttl is None:
            return None
        try:
            minutes = float(document.ttl)
        except (TypeError, ValueError):
            return None
        return minutes if minutes > 0 else None


class AWSAdapter(SourceAdapter):
    label = "AWS"
    honours_ttl = True

    def render(self, item: NormalizedItem) -> str:
        return f'AWS event at {item.pub_date}: "{item.title}" -- {item.guid}'


class AzureAdapter(SourceAdapter):
    label = "Azure"
    fingerprint_fields = ("pub_date", "iso_date", "guid", "link")

    def render(self, item: NormalizedItem) -> str:
        return f'Azure event at {item.pub_date}: "{item.title}" -- {item.link}'


class GCPAdapter(SourceAdapter):
    label = "GCP"
    fingerprint_fields = ("pub_date", "iso_date", "id")

    def __init__(self, tz: tzinfo | None = None) -> None:
        self.tz = tz

    def render(self, item: NormalizedItem) -> str:
        return f'GCP event at {self._local_date(item.pub_date)}: "{item.title}" -- {item.link}'

    def _local_date(self, value: str | None) -> str | None:
        if not value:
            return value
        try:
            moment = parsedate_to_datetime(value)
        except (TypeError, ValueError):
            try:
                moment = datetime.fromisoformat(value.replace("Z", "+00:00"))
            except ValueError:
                return value
        if moment.tzinfo is not None:
            moment = moment.astimezone(self.tz)
        hour = moment.hour % 12 or 12
        meridiem = "AM" if moment.hour < 12 else "PM"
        return (
            f"{moment.month}/{moment.day}/{moment.year}, "
            f"{hour}:{moment.minute:02d}:{moment.second:02d} {meridiem}"
        )


class OracleAdapter(SourceAdapter):
    label = "Oracle Cloud"

    def render(self, item: NormalizedItem) -> str:
        return f'Oracle Cloud event at {item.pub_date}: "{item.title}" -- {item.guid}'


ADAPTERS: Mapping[str, type[SourceAdapter]] = MappingProxyType(
    {
        "aws": AWSAdapter,
        "azure": AzureAdapter,
        "gcp": GCPAdapter,
        "oracle": OracleAdapter,
    }
)


@dataclass(frozen=True, slots=True)
class SourceDescriptor:
    source_id: str
    url: str
    adapter: SourceAdapter


def resolve_sources(feeds: Mapping[str, str]) -> list[SourceDescriptor]:
    """Build one descriptor per configured feed; unknown ids are fatal."""

    descriptors: list[SourceDescriptor] = []
    for source_id, url in feeds.items():
        adapter_cls = ADAPTERS.get(source_id)
        if adapter_cls is None:
            raise UnknownSourceError(source_id)
        descriptors.append(SourceDescriptor(source_id=source_id, url=url, adapter=adapter_cls()))
    return descriptors


__all__ = [
    "ADAPTERS",
    "AWSAdapter",
    "AzureAdapter",
    "GCPAdapter",
    "NormalizedBatch",
    "NormalizedItem",
    "OracleAdapter",
    "SourceAdapter",
    "SourceDescriptor",
    "resolve_sources",
]
