"""APScheduler wrapper re-arming one date job per source."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Sequence

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.date import DateTrigger


def job_id(source_id: str) -> str:
    return f"source::{source_id}"


class APSchedulerAdapter:
    """Manage APScheduler jobs for watched sources."""

    def __init__(self, scheduler: AsyncIOScheduler | None = None) -> None:
        self.scheduler = scheduler or AsyncIOScheduler(timezone=timezone.utc)
        self.logger = structlog.get_logger("outage_herald.scheduler")
        self.started = False

    def start(self) -> None:
        if not self.started:
            self.scheduler.start()
            self.started = True
            self.logger.info("apscheduler_started")

    def shutdown(self) -> None:
        if self.started:
            self.scheduler.shutdown(wait=False)
            self.started = False
            self.logger.info("apscheduler_stopped")

    def schedule_in(
        self,
        source_id: str,
        callback: Callable[..., Any],
        delay_minutes: float,
        args: Sequence[Any] = (),
    ) -> datetime:
        run_date = datetime.now(timezone.utc) + timedelta(minutes=delay_minutes)
        self.scheduler.add_job(
            callback,
            trigger=DateTrigger(run_date=run_date),
            id=job_id(source_id),
            args=list(args),
            replace_existing=True,
            misfire_grace_time=None,
        )
        self.logger.debug("job_scheduled", source=source_id, run_date=run_date.isoformat())
        return run_date

    def remove_source(self, source_id: str) -> None:
        try:
            self.scheduler.remove_job(job_id(source_id))
        except Exception:  # noqa: BLE001
            self.logger.warning("job_remove_failed", source=source_id)


__all__ = ["APSchedulerAdapter", "job_id"]
