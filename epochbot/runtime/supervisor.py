from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable


class LoopSupervisor:
    """Restarts the poller and round consumer after failure.

    Backoff grows on back-to-back crashes and snaps back to ``base_delay``
    once a run has stayed up for ``healthy_after`` seconds, so a single RPC
    blip after hours of uptime does not inherit an old penalty.
    """

    def __init__(
        self,
        *,
        base_delay: float = 2.0,
        max_delay: float = 20.0,
        healthy_after: float = 60.0,
        events=None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.healthy_after = healthy_after
        self.events = events
        self.restarts: dict[str, int] = {}
        self._sleep = sleep
        self._clock = clock

    async def run_forever(self, name: str, fn: Callable[[], Awaitable[None]], log) -> None:
        delay = self.base_delay
        while True:
            started = self._clock()
            try:
                await fn()
                log.warning("loop %s exited cleanly; restarting", name)
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                self.restarts[name] = self.restarts.get(name, 0) + 1
                log.exception("loop %s crashed: %s", name, exc)
                if self.events is not None:
                    self.events.emit("loop.crash", name=name, error=str(exc), restarts=self.restarts[name])
            if self._clock() - started >= self.healthy_after:
                delay = self.base_delay
            await self._sleep(delay)
            delay = min(self.max_delay, max(self.base_delay, delay * 1.5))
