from .controller import CycleReport, RoundController, Stage
from .scheduler import AdaptiveWaitScheduler
from .supervisor import LoopSupervisor

__all__ = ["CycleReport", "RoundController", "Stage", "AdaptiveWaitScheduler", "LoopSupervisor"]
