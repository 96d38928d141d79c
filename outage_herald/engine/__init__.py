"""Engine components orchestrating fetch → normalize → dedup → announce."""

from .adapters import (
    ADAPTERS,
    NormalizedBatch,
    NormalizedItem,
    SourceAdapter,
    SourceDescriptor,
    resolve_sources,
)
from .dedup import FileMarkerStore, MarkerStore, MemoryMarkerStore
from .fetcher import FeedDocument, FeedFetcher
from .fingerprint import fingerprint
from .sequencer import FloodSequencer, SequenceResult
from .stats import RunStats, format_duration
from .watcher import SourceWatcher

__all__ = [
    "ADAPTERS",
    "FeedDocument",
    "FeedFetcher",
    "FileMarkerStore",
    "FloodSequencer",
    "MarkerStore",
    "MemoryMarkerStore",
    "NormalizedBatch",
    "NormalizedItem",
    "RunStats",
    "SequenceResult",
    "SourceAdapter",
    "SourceDescriptor",
    "SourceWatcher",
    "fingerprint",
    "format_duration",
    "resolve_sources",
]
