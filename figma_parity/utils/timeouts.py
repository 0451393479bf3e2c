"""Deadline tracking for network-bound pipeline stages."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, TypeVar

from figma_parity.errors import StageTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")

SLOW_STAGE_RATIO = 0.8


class Deadline:
    """An overall time budget that individual stages draw from.

    Each stage gets ``min(stage_cap, remaining)`` seconds. Once the budget
    is spent every further stage fails immediately with StageTimeoutError.
    """

    def __init__(self, seconds: float, name: str = "operation"):
        self.seconds = seconds
        self.name = name
        self._started = time.monotonic()

    def elapsed(self) -> float:
        return time.monotonic() - self._started

    def remaining(self) -> float:
        return self.seconds - self.elapsed()

    def budget(self, stage: str, cap: float | None = None) -> float:
        remaining = self.remaining()
        if remaining <= 0:
            logger.warning("TIMEOUT: %s budget of %.1fs exhausted before %s", self.name, self.seconds, stage)
            raise StageTimeoutError(stage, 0.0, f"{self.name} exceeded {self.seconds:.1f}s before {stage}")
        return remaining if cap is None else min(cap, remaining)

    async def run(self, stage: str, awaitable: Awaitable[T], cap: float | None = None) -> T:
        try:
            seconds = self.budget(stage, cap)
        except StageTimeoutError:
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            raise
        return await run_stage(stage, awaitable, seconds)


async def run_stage(stage: str, awaitable: Awaitable[T], seconds: float) -> T:
    """Await ``awaitable`` for at most ``seconds``; raise StageTimeoutError past that."""
    start = time.monotonic()
    try:
        result = await asyncio.wait_for(awaitable, timeout=seconds)
    except asyncio.TimeoutError:
        logger.warning("TIMEOUT: %s exceeded %.1fs", stage, seconds)
        raise StageTimeoutError(stage, seconds) from None
    duration = time.monotonic() - start
    if duration > seconds * SLOW_STAGE_RATIO:
        logger.warning("Slow stage: %s took %.2fs (limit %.1fs)", stage, duration, seconds)
    return result
