"""Outage herald: announce new cloud status-feed entries into an IRC channel."""

__version__ = "0.3.0"
