"""Exception hierarchy shared across the herald."""

from __future__ import annotations


class HeraldError(Exception):
    """Base class for every error raised by outage-herald."""


class MalformedItemError(HeraldError):
    """Raised when a feed item offers no usable fingerprint candidate."""


class UnknownSourceError(HeraldError):
    """Raised when a configured feed has no registered adapter."""

    def __init__(self, source_id: str) -> None:
        super().__init__(f"No adapter registered for source '{source_id}'")
        self.source_id = source_id


class FeedParseError(HeraldError):
    """Raised when a fetched document cannot be read as a feed."""


class CertificateParseError(HeraldError):
    """Raised when a PEM bundle does not hold exactly one key and one certificate."""


class TransportError(HeraldError):
    """Raised when the chat session cannot be established or used."""


__all__ = [
    "CertificateParseError",
    "FeedParseError",
    "HeraldError",
    "MalformedItemError",
    "TransportError",
    "UnknownSourceError",
]
