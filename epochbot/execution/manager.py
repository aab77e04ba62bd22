from __future__ import annotations

from collections import deque
from dataclasses import dataclass

from epochbot.domain import Decision, Direction
from epochbot.errors import GatewayError


@dataclass(frozen=True)
class WagerResult:
    ok: bool
    reason: str
    epoch: int
    direction: Direction
    stake_wei: int = 0
    tx_hash: str = ""


class WagerManager:
    """Wager boundary. One wager per epoch, never retried."""

    def __init__(self, gateway, *, stake_wei: int, dry_run: bool = True, log=None, remember: int = 64):
        self.gateway = gateway
        self.stake_wei = int(stake_wei)
        self.dry_run = dry_run
        self.log = log
        self._placed: deque[int] = deque(maxlen=max(1, remember))

    def already_placed(self, epoch: int) -> bool:
        return epoch in self._placed

    async def place(self, epoch: int, decision: Decision) -> WagerResult:
        direction = decision.direction
        if direction is Direction.SKIP:
            return WagerResult(ok=True, reason="skip", epoch=epoch, direction=direction)
        if self.already_placed(epoch):
            return WagerResult(ok=False, reason="duplicate_epoch", epoch=epoch, direction=direction)

        self._placed.append(epoch)
        if self.dry_run:
            return WagerResult(
                ok=True,
                reason="dry_run",
                epoch=epoch,
                direction=direction,
                stake_wei=self.stake_wei,
            )
        try:
            tx_hash = await self.gateway.place_wager(epoch, direction, self.stake_wei)
        except GatewayError as exc:
            if self.log is not None:
                self.log.error("%s betting tx error epoch=%s err=%s", direction.value, epoch, exc)
            return WagerResult(
                ok=False,
                reason=exc.error_code,
                epoch=epoch,
                direction=direction,
                stake_wei=self.stake_wei,
            )
        return WagerResult(
            ok=True,
            reason="placed",
            epoch=epoch,
            direction=direction,
            stake_wei=self.stake_wei,
            tx_hash=tx_hash,
        )
