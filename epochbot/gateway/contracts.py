from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass


def _fn(
    name: str,
    inputs: Sequence[tuple[str, str]],
    outputs: Sequence[tuple[str, str]] = (),
    *,
    mutability: str = "view",
) -> dict:
    return {
        "inputs": [{"name": n, "type": t} for n, t in inputs],
        "name": name,
        "outputs": [{"name": n, "type": t} for n, t in outputs],
        "stateMutability": mutability,
        "type": "function",
    }


def _event(name: str, inputs: Sequence[tuple[str, str, bool]]) -> dict:
    return {
        "anonymous": False,
        "inputs": [{"indexed": idx, "name": n, "type": t} for n, t, idx in inputs],
        "name": name,
        "type": "event",
    }


@dataclass(frozen=True)
class ContractProfile:
    """Function names and tuple layouts for one deployed prediction contract."""

    name: str
    label: str
    abi: tuple
    round_fn: str
    bet_bull_fn: str
    bet_bear_fn: str
    claim_fn: str
    ledger_fn: str
    round_bull_index: int
    round_bear_index: int
    round_lock_index: int
    round_close_index: int
    claim_epoch_arg: str = "epoch"
    ledger_amount_index: int = 1
    ledger_claimed_index: int = 2

    def bet_fn(self, bull: bool) -> str:
        return self.bet_bull_fn if bull else self.bet_bear_fn


_LEDGER_OUT = [("position", "uint8"), ("amount", "uint256"), ("claimed", "bool")]

PANCAKE_V2_ABI = (
    _event("StartRound", [("epoch", "uint256", True)]),
    _event("Claim", [("sender", "address", True), ("epoch", "uint256", True), ("amount", "uint256", False)]),
    _fn("currentEpoch", [], [("", "uint256")]),
    _fn(
        "rounds",
        [("", "uint256")],
        [
            ("epoch", "uint256"),
            ("startTimestamp", "uint256"),
            ("lockTimestamp", "uint256"),
            ("closeTimestamp", "uint256"),
            ("lockPrice", "int256"),
            ("closePrice", "int256"),
            ("lockOracleId", "uint256"),
            ("closeOracleId", "uint256"),
            ("totalAmount", "uint256"),
            ("bullAmount", "uint256"),
            ("bearAmount", "uint256"),
            ("rewardBaseCalAmount", "uint256"),
            ("rewardAmount", "uint256"),
            ("oracleCalled", "bool"),
        ],
    ),
    _fn("ledger", [("", "uint256"), ("", "address")], _LEDGER_OUT),
    _fn("claimable", [("epoch", "uint256"), ("user", "address")], [("", "bool")]),
    _fn("refundable", [("epoch", "uint256"), ("user", "address")], [("", "bool")]),
    _fn("betBull", [("epoch", "uint256")], mutability="payable"),
    _fn("betBear", [("epoch", "uint256")], mutability="payable"),
    _fn("claim", [("epochs", "uint256[]")], mutability="nonpayable"),
)

CANDLE_GENIE_V3_ABI = (
    _event("StartRound", [("epoch", "uint256", True)]),
    _event("Claim", [("sender", "address", True), ("currentEpoch", "uint256", True), ("amount", "uint256", False)]),
    _fn("currentEpoch", [], [("", "uint256")]),
    _fn(
        "Rounds",
        [("", "uint256")],
        [
            ("epoch", "uint256"),
            ("bullAmount", "uint256"),
            ("bearAmount", "uint256"),
            ("rewardBaseCalAmount", "uint256"),
            ("rewardAmount", "uint256"),
            ("lockPrice", "int256"),
            ("closePrice", "int256"),
            ("startTimestamp", "uint256"),
            ("lockTimestamp", "uint256"),
            ("closeTimestamp", "uint256"),
            ("lockPriceTimestamp", "uint256"),
            ("closePriceTimestamp", "uint256"),
            ("closed", "bool"),
            ("cancelled", "bool"),
        ],
    ),
    _fn("Bets", [("", "uint256"), ("", "address")], _LEDGER_OUT),
    _fn("claimable", [("epoch", "uint256"), ("user", "address")], [("", "bool")]),
    _fn("refundable", [("epoch", "uint256"), ("user", "address")], [("", "bool")]),
    _fn("user_BetBull", [("epoch", "uint256")], mutability="payable"),
    _fn("user_BetBear", [("epoch", "uint256")], mutability="payable"),
    _fn("user_Claim", [("epochs", "uint256[]")], mutability="nonpayable"),
)

PROFILES: dict[str, ContractProfile] = {
    "pancake_v2": ContractProfile(
        name="pancake_v2",
        label="PancakeSwap Prediction V2",
        abi=PANCAKE_V2_ABI,
        round_fn="rounds",
        bet_bull_fn="betBull",
        bet_bear_fn="betBear",
        claim_fn="claim",
        ledger_fn="ledger",
        round_bull_index=9,
        round_bear_index=10,
        round_lock_index=2,
        round_close_index=3,
    ),
    "candle_genie_v3": ContractProfile(
        name="candle_genie_v3",
        label="CandleGenie Prediction V3",
        abi=CANDLE_GENIE_V3_ABI,
        round_fn="Rounds",
        bet_bull_fn="user_BetBull",
        bet_bear_fn="user_BetBear",
        claim_fn="user_Claim",
        ledger_fn="Bets",
        round_bull_index=1,
        round_bear_index=2,
        round_lock_index=8,
        round_close_index=9,
        claim_epoch_arg="currentEpoch",
    ),
}


def get_profile(name: str) -> ContractProfile:
    try:
        return PROFILES[name]
    except KeyError:
        raise KeyError(f"unknown contract profile {name!r}; known: {', '.join(PROFILES)}") from None
