from __future__ import annotations

import logging
import sys

G = "\033[92m"
R = "\033[91m"
Y = "\033[93m"
B = "\033[94m"
W = "\033[97m"
RS = "\033[0m"

_LEVEL_COLORS = {
    logging.WARNING: Y,
    logging.ERROR: R,
    logging.CRITICAL: R,
}


class ColorFormatter(logging.Formatter):
    """Colors whole lines by level unless the message already carries a color."""

    def __init__(self, *, use_color: bool = True):
        super().__init__("%(asctime)s %(levelname)-7s %(name)s | %(message)s", "%H:%M:%S")
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        if not self.use_color:
            return line
        color = _LEVEL_COLORS.get(record.levelno)
        if color and "\033[" not in line:
            return f"{color}{line}{RS}"
        return line


def get_logger(name: str, level: str = "INFO") -> logging.Logger:
    log = logging.getLogger(name)
    log.setLevel(getattr(logging, str(level).upper(), logging.INFO))
    if not log.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(ColorFormatter(use_color=sys.stdout.isatty()))
        log.addHandler(handler)
        log.propagate = False
    return log


def paint(color: str, text: str) -> str:
    return f"{color}{text}{RS}"
