from __future__ import annotations

from epochbot.domain import Direction


def threshold_gate(score: int, threshold: int) -> tuple[Direction, str]:
    if threshold <= 0:
        raise ValueError("threshold must be positive")
    if score >= threshold:
        return Direction.BULL, "bull_cleared"
    if score <= -threshold:
        return Direction.BEAR, "bear_cleared"
    return Direction.SKIP, "inside_band"
