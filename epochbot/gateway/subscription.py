from __future__ import annotations

import asyncio

from epochbot.domain import RoundStarted


class RoundStartPoller:
    """Polls StartRound logs and pushes RoundStarted events into a queue.

    Starts from the current head, so rounds that began before the process
    came up are never replayed.
    """

    def __init__(self, gateway, queue: asyncio.Queue, *, poll_interval: float = 3.0, log=None, events=None):
        self.gateway = gateway
        self.queue = queue
        self.poll_interval = float(poll_interval)
        self.log = log
        self.events = events
        self._last_block: int | None = None

    async def poll_once(self) -> list[RoundStarted]:
        head = await self.gateway.block_number()
        if self._last_block is None:
            self._last_block = head
            return []
        if head <= self._last_block:
            return []
        found = await self.gateway.round_starts(self._last_block + 1, head)
        self._last_block = head
        for ev in found:
            self.queue.put_nowait(ev)
            if self.log is not None:
                self.log.debug("round start epoch=%s block=%s", ev.epoch, ev.block_number)
            if self.events is not None:
                self.events.emit("round.start", epoch=ev.epoch, block=ev.block_number)
        return found

    async def run(self) -> None:
        while True:
            await self.poll_once()
            await asyncio.sleep(self.poll_interval)
