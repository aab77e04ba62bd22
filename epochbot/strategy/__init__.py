from .engine import DecisionConfig, DecisionEngine, aggregate_score, decide
from .gates import threshold_gate

__all__ = ["DecisionConfig", "DecisionEngine", "aggregate_score", "decide", "threshold_gate"]
