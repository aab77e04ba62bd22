from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from epochbot.domain import Decision, SignalSample
from epochbot.strategy.gates import threshold_gate


def aggregate_score(samples: Sequence[SignalSample]) -> int:
    return sum(s.delta for s in samples)


def decide(samples: Sequence[SignalSample], bull_threshold: int) -> Decision:
    """Sum buy-minus-sell deltas and compare against +/- bull_threshold."""
    score = aggregate_score(samples)
    direction, _ = threshold_gate(score, bull_threshold)
    return Decision(
        direction=direction,
        aggregate_score=score,
        threshold=bull_threshold,
        sample_count=len(samples),
    )


@dataclass(frozen=True)
class DecisionConfig:
    threshold_per_sample: int = 8
    threshold_override: int | None = None

    def threshold_for(self, sample_count: int) -> int:
        if self.threshold_override is not None:
            return int(self.threshold_override)
        return self.threshold_per_sample * max(1, int(sample_count))


class DecisionEngine:
    """Stateless: the same samples always produce the same decision."""

    def __init__(self, cfg: DecisionConfig):
        self.cfg = cfg

    def decide(self, samples: Sequence[SignalSample]) -> tuple[Decision, str]:
        threshold = self.cfg.threshold_for(len(samples))
        score = aggregate_score(samples)
        direction, reason = threshold_gate(score, threshold)
        decision = Decision(
            direction=direction,
            aggregate_score=score,
            threshold=threshold,
            sample_count=len(samples),
        )
        return decision, reason
