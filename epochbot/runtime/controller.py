from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from enum import Enum

from web3 import Web3

from epochbot.domain import Decision, Direction, Round, RoundStarted, SignalPair, SignalSample
from epochbot.errors import GatewayError, SignalSampleError
from epochbot.execution import WagerManager, WagerResult
from epochbot.infra import B, G, R, NullEventLogger, paint
from epochbot.runtime.scheduler import AdaptiveWaitScheduler
from epochbot.settlement import ClaimManager, ClaimResult
from epochbot.strategy import DecisionEngine


class Stage(str, Enum):
    WAITING_FOR_START = "waiting_for_start"
    DELAYING = "delaying"
    SAMPLING = "sampling"
    DECIDING = "deciding"
    WAGERING = "wagering"
    CLAIMING = "claiming"
    IDLE = "idle"


@dataclass(frozen=True)
class CycleReport:
    epoch: int
    stage: Stage
    wait_ms: int
    round: Round | None = None
    samples: tuple[SignalSample, ...] = field(default_factory=tuple)
    decision: Decision | None = None
    wager: WagerResult | None = None
    claim: ClaimResult | None = None
    error: str = ""

    @property
    def completed(self) -> bool:
        return self.stage is Stage.IDLE


def _ether(wei: int) -> str:
    return f"{Web3.from_wei(int(wei), 'ether'):f}"


class RoundController:
    """Drives one round end to end: wait, sample, decide, wager, claim.

    Cycles are serialized through ``consume``: one round-start event is
    handled at a time and an epoch is never handled twice.
    """

    def __init__(
        self,
        *,
        gateway,
        signal_source,
        pairs: Sequence[SignalPair],
        engine: DecisionEngine,
        scheduler: AdaptiveWaitScheduler,
        wagers: WagerManager,
        claims: ClaimManager,
        call_timeout: float = 30.0,
        log=None,
        events=None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if not pairs:
            raise ValueError("at least one signal pair is required")
        self.gateway = gateway
        self.signal_source = signal_source
        self.pairs = tuple(pairs)
        self.engine = engine
        self.scheduler = scheduler
        self.wagers = wagers
        self.claims = claims
        self.call_timeout = float(call_timeout)
        self.log = log
        self.events = events if events is not None else NullEventLogger()
        self._sleep = sleep
        self.stage = Stage.WAITING_FOR_START
        self.last_epoch: int | None = None
        self.skipped_epochs: list[int] = []

    # ── event loop ────────────────────────────────────────────────────────────
    @staticmethod
    def _coalesce(queue: asyncio.Queue, started: RoundStarted) -> tuple[RoundStarted, list[int]]:
        """Keep only the newest queued start; older rounds are already locked."""
        dropped = []
        while not queue.empty():
            newer = queue.get_nowait()
            queue.task_done()
            if newer.epoch > started.epoch:
                dropped.append(started.epoch)
                started = newer
            else:
                dropped.append(newer.epoch)
        return started, dropped

    def accepts(self, epoch: int) -> bool:
        return self.last_epoch is None or epoch > self.last_epoch

    async def consume(self, queue: asyncio.Queue) -> None:
        while True:
            started = await queue.get()
            try:
                started, dropped = self._coalesce(queue, started)
                if dropped:
                    self.skipped_epochs.extend(dropped)
                    self._warn("coalesced stale round starts %s -> epoch=%s", dropped, started.epoch)
                    self.events.emit("round.coalesced", dropped=dropped, epoch=started.epoch)
                if not self.accepts(started.epoch):
                    self._warn("ignoring epoch=%s (last handled epoch=%s)", started.epoch, self.last_epoch)
                    continue
                self.last_epoch = started.epoch
                await self.run_cycle(started)
            except Exception as exc:
                self.stage = Stage.WAITING_FOR_START
                if self.log is not None:
                    self.log.exception("cycle crashed epoch=%s err=%s", started.epoch, exc)
                self.events.emit("round.crash", epoch=started.epoch, error=str(exc))
            finally:
                queue.task_done()

    # ── one cycle ─────────────────────────────────────────────────────────────
    async def run_cycle(self, started: RoundStarted) -> CycleReport:
        epoch = started.epoch
        wait_ms = self.scheduler.current_wait()

        self.stage = Stage.DELAYING
        self._info("started epoch=%s, now waiting for %.2f min", epoch, wait_ms / 60000)
        await self.scheduler.wait(self._sleep)

        rnd = await self._read_round(epoch)

        self.stage = Stage.SAMPLING
        try:
            samples = await self._sample_all()
        except SignalSampleError as exc:
            self._error("signal sampling failed epoch=%s %s:%s err=%s", epoch, exc.symbol, exc.interval, exc)
            self.events.emit("round.signal_error", epoch=epoch, **exc.to_dict())
            self.stage = Stage.WAITING_FOR_START
            return CycleReport(epoch=epoch, stage=Stage.SAMPLING, wait_ms=wait_ms, round=rnd, error=str(exc))

        for s in samples:
            self._info("%s %s buy=%s sell=%s neutral=%s", s.interval, s.symbol, s.buy_count, s.sell_count, s.neutral_count)

        self.stage = Stage.DECIDING
        decision, reason = self.engine.decide(samples)
        self.events.emit(
            "round.decision",
            epoch=epoch,
            direction=decision.direction.value,
            score=decision.aggregate_score,
            threshold=decision.threshold,
            reason=reason,
        )
        if decision.is_wager:
            self._info(
                paint(G, "betting on %s epoch=%s score=%s threshold=%s"),
                decision.direction.value,
                epoch,
                decision.aggregate_score,
                decision.threshold,
            )
        else:
            self._info(
                paint(R, "no bet this round epoch=%s score=%s within +/-%s"),
                epoch,
                decision.aggregate_score,
                decision.threshold,
            )

        self.stage = Stage.WAGERING
        wager = await self.wagers.place(epoch, decision)
        self._after_wager(wager)

        self.stage = Stage.CLAIMING
        claim = await self.claims.run(epoch)
        self._after_claim(epoch, claim)

        self.stage = Stage.IDLE
        report = CycleReport(
            epoch=epoch,
            stage=Stage.IDLE,
            wait_ms=wait_ms,
            round=rnd,
            samples=tuple(samples),
            decision=decision,
            wager=wager,
            claim=claim,
        )
        self.stage = Stage.WAITING_FOR_START
        return report

    async def _read_round(self, epoch: int) -> Round | None:
        try:
            rnd = await self.gateway.get_round(epoch)
        except GatewayError as exc:
            self._warn("round lookup failed epoch=%s err=%s", epoch, exc)
            return None
        self._info(paint(G, "bull amount %s | bear amount %s"), _ether(rnd.bull_pool), _ether(rnd.bear_pool))
        return rnd

    async def _sample_one(self, pair: SignalPair) -> SignalSample:
        try:
            return await asyncio.wait_for(
                self.signal_source.sample(pair.symbol, pair.interval), timeout=self.call_timeout
            )
        except asyncio.TimeoutError as exc:
            raise SignalSampleError(
                f"signal source timed out after {self.call_timeout:.0f}s",
                symbol=pair.symbol,
                interval=pair.interval,
            ) from exc

    async def _sample_all(self) -> list[SignalSample]:
        return list(await asyncio.gather(*[self._sample_one(p) for p in self.pairs]))

    def _after_wager(self, wager: WagerResult) -> None:
        epoch = wager.epoch
        if wager.direction is Direction.SKIP:
            self._info("technical analysis not definitive enough, skipping epoch=%s", epoch)
            return
        if wager.ok:
            self._info(paint(B, "%s betting tx success epoch=%s (%s)"), wager.direction.value, epoch, wager.reason)
            self.events.emit("wager.ok", epoch=epoch, direction=wager.direction.value, tx=wager.tx_hash, reason=wager.reason)
            return
        if wager.reason == "duplicate_epoch":
            self._warn("wager already placed for epoch=%s", epoch)
            return
        new_wait = self.scheduler.on_settlement_failure()
        self._error("%s betting tx error epoch=%s; next wait %.1fs", wager.direction.value, epoch, new_wait / 1000)
        self.events.emit("wager.error", epoch=epoch, direction=wager.direction.value, reason=wager.reason)
        self.events.emit("schedule.shrink", wait_ms=new_wait, failures=self.scheduler.failures)

    def _after_claim(self, epoch: int, claim: ClaimResult) -> None:
        if claim.reason == "nothing_to_claim":
            self.events.emit("claim.empty", epoch=epoch)
            return
        if claim.ok:
            self._info(
                paint(G, "claim tx success epochs=%s claimed=%s transfers=%s/%s"),
                list(claim.epochs),
                _ether(claim.claimed_wei),
                len(claim.transfers) - claim.failed_transfers,
                len(claim.transfers),
            )
        else:
            self._error("claim tx error epoch=%s reason=%s", epoch, claim.reason)

    def _info(self, msg: str, *args) -> None:
        if self.log is not None:
            self.log.info(msg, *args)

    def _warn(self, msg: str, *args) -> None:
        if self.log is not None:
            self.log.warning(msg, *args)

    def _error(self, msg: str, *args) -> None:
        if self.log is not None:
            self.log.error(msg, *args)
