from .http_service import HttpService
from .tradingview import TradingViewSignalSource, tally

__all__ = ["HttpService", "TradingViewSignalSource", "tally"]
