"""Scheduling of per-source poll loops."""

from .apsched_adapter import APSchedulerAdapter
from .poller import PollScheduler

__all__ = ["APSchedulerAdapter", "PollScheduler"]
