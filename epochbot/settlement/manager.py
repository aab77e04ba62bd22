from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from epochbot.domain import ClaimBatch, PayoutEvent, RedistributionTransfer
from epochbot.errors import GatewayError
from epochbot.infra import NullEventLogger
from epochbot.settlement.transforms import PayoutTransform


@dataclass(frozen=True)
class TransferResult:
    ok: bool
    transfer: RedistributionTransfer
    tx_hash: str = ""
    message: str = ""


@dataclass(frozen=True)
class ClaimResult:
    ok: bool
    reason: str
    epochs: tuple[int, ...] = ()
    claimed_wei: int = 0
    tx_hash: str = ""
    transfers: tuple[TransferResult, ...] = field(default_factory=tuple)

    @property
    def failed_transfers(self) -> int:
        return sum(1 for t in self.transfers if not t.ok)


def plan_transfers(
    payouts: Iterable[PayoutEvent],
    destination: str,
    transform: PayoutTransform,
) -> list[RedistributionTransfer]:
    """One transfer per payout event, in receipt order; zero amounts are dropped."""
    plan = []
    for ev in payouts:
        amount = int(transform(ev.amount))
        if amount <= 0:
            continue
        plan.append(RedistributionTransfer(destination=destination, amount=amount, source_epoch=ev.epoch))
    return plan


class ClaimManager:
    """Claims resolved rounds in one batch, then forwards the configured share of each payout."""

    def __init__(
        self,
        gateway,
        *,
        lookback: int = 5,
        beneficiary: str | None = None,
        transform: PayoutTransform | None = None,
        dry_run: bool = True,
        log=None,
        events=None,
    ):
        self.gateway = gateway
        self.lookback = int(lookback)
        self.beneficiary = beneficiary
        self.transform = transform
        self.dry_run = dry_run
        self.log = log
        self.events = events if events is not None else NullEventLogger()

    @property
    def redistribution_enabled(self) -> bool:
        return bool(self.beneficiary) and self.transform is not None

    async def run(self, epoch: int) -> ClaimResult:
        try:
            batch: ClaimBatch = await self.gateway.claimable_epochs(epoch, lookback=self.lookback)
        except GatewayError as exc:
            self._error("claimable lookup failed epoch=%s err=%s", epoch, exc)
            self.events.emit("claim.error", epoch=epoch, stage="lookup", error=str(exc))
            return ClaimResult(ok=False, reason=exc.error_code)

        if not batch:
            return ClaimResult(ok=True, reason="nothing_to_claim")

        epochs = batch.epochs
        if self.dry_run:
            self._info("dry-run: would claim epochs=%s", list(epochs))
            self.events.emit("claim.dry_run", epoch=epoch, epochs=list(epochs))
            return ClaimResult(ok=True, reason="dry_run", epochs=epochs)

        self._info("claim tx started epochs=%s", list(epochs))
        try:
            receipt = await self.gateway.claim(epochs)
        except GatewayError as exc:
            self._error("claim tx error epochs=%s err=%s", list(epochs), exc)
            self.events.emit("claim.error", epoch=epoch, stage="submit", epochs=list(epochs), error=str(exc))
            return ClaimResult(ok=False, reason=exc.error_code, epochs=epochs)

        claimed = sum(p.amount for p in receipt.payouts)
        self.events.emit("claim.ok", epoch=epoch, epochs=list(epochs), claimed_wei=claimed, tx=receipt.tx_hash)

        transfers: tuple[TransferResult, ...] = ()
        if self.redistribution_enabled:
            plan = plan_transfers(receipt.payouts, self.beneficiary, self.transform)
            transfers = tuple([await self._send(t) for t in plan])

        return ClaimResult(
            ok=True,
            reason="claimed",
            epochs=epochs,
            claimed_wei=claimed,
            tx_hash=receipt.tx_hash,
            transfers=transfers,
        )

    async def _send(self, transfer: RedistributionTransfer) -> TransferResult:
        try:
            tx_hash = await self.gateway.transfer(transfer.destination, transfer.amount)
        except GatewayError as exc:
            self._error(
                "transfer error source_epoch=%s amount=%s err=%s",
                transfer.source_epoch,
                transfer.amount,
                exc,
            )
            self.events.emit(
                "transfer.error", source_epoch=transfer.source_epoch, amount=transfer.amount, error=str(exc)
            )
            return TransferResult(ok=False, transfer=transfer, message=str(exc))
        self.events.emit("transfer.ok", source_epoch=transfer.source_epoch, amount=transfer.amount, tx=tx_hash)
        return TransferResult(ok=True, transfer=transfer, tx_hash=tx_hash)

    def _info(self, msg: str, *args) -> None:
        if self.log is not None:
            self.log.info(msg, *args)

    def _error(self, msg: str, *args) -> None:
        if self.log is not None:
            self.log.error(msg, *args)
