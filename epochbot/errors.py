"""
Error taxonomy for the round engine.

Only ConfigurationError is fatal. Everything under GatewayError or
SignalSampleError ends at most the current round cycle:
  - WagerError      recoverable, compensated by shrinking the next wait
  - ClaimError      recoverable, no state adjustment
  - TransferError   recoverable per transfer, the batch continues
"""

from __future__ import annotations

__all__ = [
    "EpochBotError",
    "ConfigurationError",
    "SignalSampleError",
    "GatewayError",
    "CallTimeoutError",
    "WagerError",
    "ClaimError",
    "TransferError",
]


class EpochBotError(Exception):
    """Root exception for the bot.

    Attributes:
        retryable: the process may keep running after this error.
        error_code: machine-readable code written to runtime events.
    """

    retryable: bool = True
    error_code: str = "EPOCHBOT_ERROR"

    def __init__(self, message: str, *, detail: str | None = None):
        self.detail = detail
        super().__init__(message)

    def to_dict(self) -> dict:
        return {
            "error_code": self.error_code,
            "message": str(self),
            "detail": self.detail,
            "retryable": self.retryable,
        }


class ConfigurationError(EpochBotError):
    """Missing credentials or invalid settings. Halts startup."""

    retryable = False
    error_code = "CONFIG_ERROR"


class SignalSampleError(EpochBotError):
    """A signal source could not produce a sample; the round is abandoned."""

    error_code = "SIGNAL_SAMPLE_ERROR"

    def __init__(self, message: str, *, symbol: str = "", interval: str = "", **kwargs):
        self.symbol = symbol
        self.interval = interval
        super().__init__(message, **kwargs)

    def to_dict(self) -> dict:
        d = super().to_dict()
        d["symbol"] = self.symbol
        d["interval"] = self.interval
        return d


class GatewayError(EpochBotError):
    """Base for failures talking to the settlement contract."""

    error_code = "GATEWAY_ERROR"


class CallTimeoutError(GatewayError):
    """An external call exceeded its time budget."""

    error_code = "CALL_TIMEOUT"


class WagerError(GatewayError):
    error_code = "WAGER_ERROR"


class ClaimError(GatewayError):
    error_code = "CLAIM_ERROR"


class TransferError(GatewayError):
    error_code = "TRANSFER_ERROR"
