from .log import B, G, R, RS, W, Y, get_logger, paint
from .telemetry import NullEventLogger, RuntimeEventLogger

__all__ = [
    "B",
    "G",
    "R",
    "RS",
    "W",
    "Y",
    "get_logger",
    "paint",
    "NullEventLogger",
    "RuntimeEventLogger",
]
