from __future__ import annotations

import asyncio

from web3 import Web3

from epochbot.config import Settings
from epochbot.errors import ConfigurationError, GatewayError
from epochbot.execution import WagerManager
from epochbot.gateway import PredictionGateway, RoundStartPoller, connect_web3, get_profile
from epochbot.infra import B, G, RuntimeEventLogger, get_logger, paint
from epochbot.runtime.controller import RoundController
from epochbot.runtime.scheduler import AdaptiveWaitScheduler
from epochbot.runtime.supervisor import LoopSupervisor
from epochbot.settlement import ClaimManager, share_transform
from epochbot.signals import HttpService, TradingViewSignalSource
from epochbot.strategy import DecisionConfig, DecisionEngine


def stake_to_wei(amount: str) -> int:
    try:
        wei = Web3.to_wei(amount, "ether")
    except (ValueError, TypeError, ArithmeticError) as exc:
        raise ConfigurationError(f"BET_AMOUNT must be an amount in ether, got {amount!r}") from exc
    if wei <= 0:
        raise ConfigurationError("BET_AMOUNT must be positive")
    return int(wei)


class App:
    """Wires the gateway, signal source and round controller together."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.log = get_logger("epochbot", settings.log_level)
        self.events = RuntimeEventLogger(settings.data_dir)
        self.queue: asyncio.Queue = asyncio.Queue()

    def build_scheduler(self) -> AdaptiveWaitScheduler:
        s = self.settings
        return AdaptiveWaitScheduler(
            s.waiting_time_ms,
            block_interval_ms=s.block_interval_ms,
            reduction_blocks=s.wait_reduction_blocks,
            floor_ms=s.min_waiting_time_ms,
        )

    def build_claims(self, gateway) -> ClaimManager:
        s = self.settings
        transform = share_transform(s.redistribute_bps) if s.redistribute_to and s.redistribute_bps > 0 else None
        return ClaimManager(
            gateway,
            lookback=s.claim_lookback,
            beneficiary=s.redistribute_to,
            transform=transform,
            dry_run=s.dry_run,
            log=self.log,
            events=self.events,
        )

    async def run(self) -> None:
        s = self.settings
        profile = get_profile(s.contract_profile)
        stake_wei = stake_to_wei(s.bet_amount)

        gateway = PredictionGateway(
            connect_web3(s.rpc_url),
            profile=profile,
            contract_address=s.contract_address,
            private_key=s.private_key,
            chain_id=s.chain_id,
            call_timeout=s.call_timeout_sec,
            tx_timeout=s.tx_timeout_sec,
        )
        http = HttpService()
        source = TradingViewSignalSource(
            http, exchange=s.signal_exchange, screener=s.signal_screener, timeout=s.call_timeout_sec
        )
        engine = DecisionEngine(
            DecisionConfig(threshold_per_sample=s.threshold_per_sample, threshold_override=s.bull_threshold)
        )
        controller = RoundController(
            gateway=gateway,
            signal_source=source,
            pairs=s.signal_pairs,
            engine=engine,
            scheduler=self.build_scheduler(),
            wagers=WagerManager(gateway, stake_wei=stake_wei, dry_run=s.dry_run, log=self.log),
            claims=self.build_claims(gateway),
            call_timeout=s.call_timeout_sec,
            log=self.log,
            events=self.events,
        )
        poller = RoundStartPoller(gateway, self.queue, poll_interval=s.poll_interval_sec, log=self.log, events=self.events)

        self.log.info(paint(G, "%s bot"), profile.label)
        self.log.info(
            paint(B, "starting wallet=%s stake=%s BNB dry_run=%s pairs=%s threshold=%s"),
            f"{gateway.address[:10]}...",
            s.bet_amount,
            s.dry_run,
            ",".join(str(p) for p in s.signal_pairs),
            engine.cfg.threshold_for(len(s.signal_pairs)),
        )
        if s.redistribute_to and s.redistribute_bps > 0:
            self.log.info("redistributing %s bps of each payout to %s", s.redistribute_bps, s.redistribute_to)
        try:
            epoch, balance = await asyncio.gather(gateway.current_epoch(), gateway.balance())
            self.log.info("current epoch=%s balance=%s BNB", epoch, Web3.from_wei(balance, "ether"))
        except GatewayError as exc:
            self.log.warning("startup chain read failed: %s", exc)
        self.log.info("waiting for the next round, it may take up to 5 minutes")
        self.events.emit(
            "engine.start",
            profile=profile.name,
            wallet=f"{gateway.address[:10]}...",
            dry_run=bool(s.dry_run),
            wait_ms=s.waiting_time_ms,
        )

        supervisor = LoopSupervisor(events=self.events)
        try:
            await asyncio.gather(
                supervisor.run_forever("round_start_poller", poller.run, self.log),
                supervisor.run_forever("round_controller", lambda: controller.consume(self.queue), self.log),
            )
        finally:
            await http.close()


def run_main(settings: Settings) -> None:
    asyncio.run(App(settings).run())
