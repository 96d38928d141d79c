"""Ordered, rate-limited execution of deferred send actions."""

from __future__ import annotations

import asyncio
import inspect
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Sequence

import structlog

Action = Callable[[], Any]
Sleeper = Callable[[float], Awaitable[Any]]


@dataclass(slots=True)
class SequenceResult:
    succeeded: int = 0
    failed: int = 0

    @property
    def total(self) -> int:
        return self.succeeded + self.failed


class FloodSequencer:
    """Run actions one after another with a minimum gap between them.

    The gap follows each action whether it succeeded or failed, and is
    skipped after the last one. A failing action is logged and the run moves
    on; nothing is retried.
    """

    def __init__(
        self,
        logger: structlog.BoundLogger | None = None,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        self.logger = logger or structlog.get_logger("outage_herald.sequencer")
        self._sleep = sleep

    async def run(self, actions: Sequence[Action], min_delay_ms: int) -> SequenceResult:
        result = SequenceResult()
        last_index = len(actions) - 1
        for index, action in enumerate(actions):
            try:
                outcome = action()
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception as exc:  # noqa: BLE001
                result.failed += 1
                self.logger.warning("sequenced_action_failed", index=index, error=str(exc))
            else:
                result.succeeded += 1
            if index < last_index and min_delay_ms > 0:
                await self._sleep(min_delay_ms / 1000)
        return result


__all__ = ["Action", "FloodSequencer", "SequenceResult"]
