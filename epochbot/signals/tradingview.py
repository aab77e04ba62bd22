"""
TradingView scanner adapter.

One scan returns the indicator values for a ticker on one interval; each of
the 11 oscillators and 15 moving averages casts a BUY, SELL or NEUTRAL vote
and the sample is the vote count.
"""

from __future__ import annotations

import math
from collections.abc import Mapping

from epochbot.domain import SignalSample
from epochbot.errors import SignalSampleError
from epochbot.signals.http_service import HttpService

SCANNER_URL = "https://scanner.tradingview.com/{screener}/scan"

INTERVAL_SUFFIX = {
    "1m": "|1",
    "5m": "|5",
    "15m": "|15",
    "30m": "|30",
    "1h": "|60",
    "2h": "|120",
    "4h": "|240",
    "1d": "",
    "1W": "|1W",
    "1M": "|1M",
}

MA_COLUMNS = (
    "EMA10", "SMA10", "EMA20", "SMA20", "EMA30", "SMA30",
    "EMA50", "SMA50", "EMA100", "SMA100", "EMA200", "SMA200",
)
REC_MA_COLUMNS = ("Rec.Ichimoku", "Rec.VWMA", "Rec.HullMA9")
REC_OSC_COLUMNS = ("Rec.Stoch.RSI", "Rec.WR", "Rec.BBPower", "Rec.UO")
OSC_COLUMNS = (
    "RSI", "RSI[1]",
    "Stoch.K", "Stoch.D", "Stoch.K[1]", "Stoch.D[1]",
    "CCI20", "CCI20[1]",
    "ADX", "ADX+DI", "ADX-DI", "ADX+DI[1]", "ADX-DI[1]",
    "AO", "AO[1]", "AO[2]",
    "Mom", "Mom[1]",
    "MACD.macd", "MACD.signal",
)
COLUMNS = ("close",) + OSC_COLUMNS + REC_OSC_COLUMNS + MA_COLUMNS + REC_MA_COLUMNS

BUY, SELL, NEUTRAL = "BUY", "SELL", "NEUTRAL"


def _num(values: Mapping[str, object], key: str) -> float | None:
    v = values.get(key)
    if v is None:
        return None
    try:
        f = float(v)
    except (TypeError, ValueError):
        return None
    return None if math.isnan(f) else f


def vote_ma(ma: float | None, close: float | None) -> str:
    if ma is None or close is None:
        return NEUTRAL
    if ma < close:
        return BUY
    if ma > close:
        return SELL
    return NEUTRAL


def vote_rec(value: float | None) -> str:
    if value == 1:
        return BUY
    if value == -1:
        return SELL
    return NEUTRAL


def _oscillator_votes(v: Mapping[str, object]) -> list[str]:
    def n(key: str) -> float | None:
        return _num(v, key)

    votes = []

    rsi, rsi1 = n("RSI"), n("RSI[1]")
    if None in (rsi, rsi1):
        votes.append(NEUTRAL)
    elif rsi < 30 and rsi1 < rsi:
        votes.append(BUY)
    elif rsi > 70 and rsi1 > rsi:
        votes.append(SELL)
    else:
        votes.append(NEUTRAL)

    k, d, k1, d1 = n("Stoch.K"), n("Stoch.D"), n("Stoch.K[1]"), n("Stoch.D[1]")
    if None in (k, d, k1, d1):
        votes.append(NEUTRAL)
    elif k < 20 and d < 20 and k > d and k1 < d1:
        votes.append(BUY)
    elif k > 80 and d > 80 and k < d and k1 > d1:
        votes.append(SELL)
    else:
        votes.append(NEUTRAL)

    cci, cci1 = n("CCI20"), n("CCI20[1]")
    if None in (cci, cci1):
        votes.append(NEUTRAL)
    elif cci < -100 and cci > cci1:
        votes.append(BUY)
    elif cci > 100 and cci < cci1:
        votes.append(SELL)
    else:
        votes.append(NEUTRAL)

    adx, pdi, ndi, pdi1, ndi1 = n("ADX"), n("ADX+DI"), n("ADX-DI"), n("ADX+DI[1]"), n("ADX-DI[1]")
    if None in (adx, pdi, ndi, pdi1, ndi1):
        votes.append(NEUTRAL)
    elif adx > 20 and pdi1 < ndi1 and pdi > ndi:
        votes.append(BUY)
    elif adx > 20 and pdi1 > ndi1 and pdi < ndi:
        votes.append(SELL)
    else:
        votes.append(NEUTRAL)

    ao, ao1, ao2 = n("AO"), n("AO[1]"), n("AO[2]")
    if None in (ao, ao1, ao2):
        votes.append(NEUTRAL)
    elif (ao > 0 and ao1 < 0) or (ao > 0 and ao1 > 0 and ao > ao1 and ao2 > ao1):
        votes.append(BUY)
    elif (ao < 0 and ao1 > 0) or (ao < 0 and ao1 < 0 and ao < ao1 and ao2 < ao1):
        votes.append(SELL)
    else:
        votes.append(NEUTRAL)

    mom, mom1 = n("Mom"), n("Mom[1]")
    if None in (mom, mom1) or mom == mom1:
        votes.append(NEUTRAL)
    else:
        votes.append(BUY if mom > mom1 else SELL)

    macd, signal = n("MACD.macd"), n("MACD.signal")
    if None in (macd, signal) or macd == signal:
        votes.append(NEUTRAL)
    else:
        votes.append(BUY if macd > signal else SELL)

    votes.extend(vote_rec(n(col)) for col in REC_OSC_COLUMNS)
    return votes


def _ma_votes(v: Mapping[str, object]) -> list[str]:
    close = _num(v, "close")
    votes = [vote_ma(_num(v, col), close) for col in MA_COLUMNS]
    votes.extend(vote_rec(_num(v, col)) for col in REC_MA_COLUMNS)
    return votes


def tally(values: Mapping[str, object]) -> tuple[int, int, int]:
    """Return (buy, sell, neutral) vote counts for one indicator snapshot."""
    votes = _oscillator_votes(values) + _ma_votes(values)
    return votes.count(BUY), votes.count(SELL), votes.count(NEUTRAL)


class TradingViewSignalSource:
    def __init__(self, http: HttpService, *, exchange: str = "BINANCE", screener: str = "crypto", timeout: float = 10.0):
        self.http = http
        self.exchange = exchange
        self.screener = screener
        self.timeout = float(timeout)

    def _payload(self, symbol: str, interval: str) -> dict:
        suffix = INTERVAL_SUFFIX[interval]
        return {
            "symbols": {"tickers": [f"{self.exchange}:{symbol}"], "query": {"types": []}},
            "columns": [f"{col}{suffix}" for col in COLUMNS],
        }

    async def sample(self, symbol: str, interval: str) -> SignalSample:
        if interval not in INTERVAL_SUFFIX:
            raise SignalSampleError(f"unsupported interval {interval!r}", symbol=symbol, interval=interval)
        url = SCANNER_URL.format(screener=self.screener)
        try:
            data = await self.http.post_json(url, self._payload(symbol, interval), timeout=self.timeout)
        except RuntimeError as exc:
            raise SignalSampleError(str(exc), symbol=symbol, interval=interval) from exc

        if not isinstance(data, dict):
            raise SignalSampleError(
                f"unexpected scanner payload {type(data).__name__}", symbol=symbol, interval=interval
            )
        rows = data.get("data") or []
        if not isinstance(rows, list) or not rows or not isinstance(rows[0], dict) or not rows[0].get("d"):
            raise SignalSampleError(
                f"no scanner data for {self.exchange}:{symbol}", symbol=symbol, interval=interval
            )
        values = dict(zip(COLUMNS, rows[0]["d"]))
        buy, sell, neutral = tally(values)
        return SignalSample(symbol=symbol, interval=interval, buy_count=buy, sell_count=sell, neutral_count=neutral)
