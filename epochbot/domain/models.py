from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class Direction(str, Enum):
    BULL = "Bull"
    BEAR = "Bear"
    SKIP = "Skip"


@dataclass(frozen=True)
class SignalPair:
    symbol: str
    interval: str

    def __str__(self) -> str:
        return f"{self.symbol}:{self.interval}"


@dataclass(frozen=True)
class SignalSample:
    symbol: str
    interval: str
    buy_count: int
    sell_count: int
    neutral_count: int = 0

    def __post_init__(self) -> None:
        if self.buy_count < 0 or self.sell_count < 0:
            raise ValueError("signal counts must be non-negative")

    @property
    def delta(self) -> int:
        return self.buy_count - self.sell_count


@dataclass(frozen=True)
class Decision:
    direction: Direction
    aggregate_score: int
    threshold: int
    sample_count: int = 0

    @property
    def is_wager(self) -> bool:
        return self.direction is not Direction.SKIP


@dataclass(frozen=True)
class RoundStarted:
    epoch: int
    block_number: int = 0


@dataclass(frozen=True)
class Round:
    epoch: int
    bull_pool: int
    bear_pool: int
    lock_timestamp: int = 0
    close_timestamp: int = 0


@dataclass(frozen=True)
class ClaimBatch:
    reference_epoch: int
    epochs: tuple[int, ...] = ()

    def __bool__(self) -> bool:
        return bool(self.epochs)

    def __len__(self) -> int:
        return len(self.epochs)


@dataclass(frozen=True)
class PayoutEvent:
    epoch: int
    amount: int


@dataclass(frozen=True)
class ClaimReceipt:
    tx_hash: str
    payouts: tuple[PayoutEvent, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class RedistributionTransfer:
    destination: str
    amount: int
    source_epoch: int
