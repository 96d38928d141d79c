from __future__ import annotations

import asyncio

from outage_herald.scheduler import PollScheduler


class RecordingAdapter:
    def __init__(self) -> None:
        self.scheduled: list[tuple[str, float, list]] = []
        self.events: list[str] = []

    def schedule_in(self, source_id, callback, delay_minutes, args=()):  # noqa: ANN001
        self.scheduled.append((source_id, delay_minutes, list(args)))

    def start(self) -> None:
        self.events.append("start")

    def shutdown(self) -> None:
        self.events.append("shutdown")

    def remove_source(self, source_id: str) -> None:
        self.events.append(f"remove {source_id}")


class StubWatcher:
    def __init__(self, source_id: str, result: float | Exception) -> None:
        self.source_id = source_id
        self.result = result
        self.default_interval_minutes = 5
        self.cycles: list[bool] = []

    async def run_cycle(self, silent: bool = False) -> float:
        self.cycles.append(silent)
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


def test_start_runs_every_source_immediately_in_silent_mode() -> None:
    adapter = RecordingAdapter()
    aws, gcp = StubWatcher("aws", 5), StubWatcher("gcp", 5)
    poller = PollScheduler(adapter, [aws, gcp])  # type: ignore[arg-type]
    poller.start()
    assert [(s, d, a[1]) for s, d, a in adapter.scheduled] == [("aws", 0, True), ("gcp", 0, True)]
    assert adapter.events == ["start"]


def test_tick_rearms_with_reported_interval() -> None:
    adapter = RecordingAdapter()
    watcher = StubWatcher("aws", 12.0)
    poller = PollScheduler(adapter, [watcher])  # type: ignore[arg-type]
    assert asyncio.run(poller.tick(watcher, True)) == 12.0
    assert watcher.cycles == [True]
    assert adapter.scheduled == [("aws", 12.0, [watcher, False])]


def test_tick_survives_crashing_cycle() -> None:
    adapter = RecordingAdapter()
    watcher = StubWatcher("aws", RuntimeError("boom"))
    poller = PollScheduler(adapter, [watcher])  # type: ignore[arg-type]
    assert asyncio.run(poller.tick(watcher)) == 5
    assert adapter.scheduled[-1][1] == 5


def test_shutdown_removes_jobs() -> None:
    adapter = RecordingAdapter()
    poller = PollScheduler(adapter, [StubWatcher("aws", 5)])  # type: ignore[arg-type]
    poller.shutdown()
    assert adapter.events == ["remove aws", "shutdown"]

