from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable


class AdaptiveWaitScheduler:
    """Owns the delay between a round start and signal sampling.

    The wait only shrinks: every failed wager moves the next cycle's sampling
    earlier by a fixed number of block intervals, never below ``floor_ms``.
    """

    def __init__(
        self,
        initial_ms: int,
        *,
        block_interval_ms: int = 3000,
        reduction_blocks: int = 2,
        floor_ms: int = 0,
    ):
        if initial_ms < 0 or floor_ms < 0:
            raise ValueError("wait times must be non-negative")
        self.step_ms = max(0, int(block_interval_ms) * int(reduction_blocks))
        self.floor_ms = int(floor_ms)
        self._wait_ms = max(self.floor_ms, int(initial_ms))
        self.failures = 0

    def current_wait(self) -> int:
        return self._wait_ms

    def on_settlement_failure(self) -> int:
        self.failures += 1
        self._wait_ms = max(self.floor_ms, self._wait_ms - self.step_ms)
        return self._wait_ms

    async def wait(self, sleep: Callable[[float], Awaitable[None]] = asyncio.sleep) -> int:
        waited = self._wait_ms
        await sleep(waited / 1000.0)
        return waited
