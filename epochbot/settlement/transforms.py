from __future__ import annotations

from collections.abc import Callable

PayoutTransform = Callable[[int], int]

BPS_DENOMINATOR = 10_000


def share_transform(bps: int) -> PayoutTransform:
    """Integer share of a payout in basis points, rounded down."""
    if not 0 <= int(bps) <= BPS_DENOMINATOR:
        raise ValueError("bps must be within 0..10000")
    bps = int(bps)

    def transform(amount: int) -> int:
        return int(amount) * bps // BPS_DENOMINATOR

    return transform
