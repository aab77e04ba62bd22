from .models import (
    ClaimBatch,
    ClaimReceipt,
    Decision,
    Direction,
    PayoutEvent,
    RedistributionTransfer,
    Round,
    RoundStarted,
    SignalPair,
    SignalSample,
)

__all__ = [
    "ClaimBatch",
    "ClaimReceipt",
    "Decision",
    "Direction",
    "PayoutEvent",
    "RedistributionTransfer",
    "Round",
    "RoundStarted",
    "SignalPair",
    "SignalSample",
]
