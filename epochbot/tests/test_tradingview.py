import asyncio

import pytest

from epochbot.errors import SignalSampleError
from epochbot.signals.tradingview import COLUMNS, MA_COLUMNS, TradingViewSignalSource, tally


def _bullish_row() -> dict:
    values = {col: None for col in COLUMNS}
    values["close"] = 600.0
    for col in MA_COLUMNS:
        values[col] = 590.0
    values.update({"Rec.Ichimoku": 1, "Rec.VWMA": 1, "Rec.HullMA9": -1})
    values.update({"Mom": 3.0, "Mom[1]": 1.0, "MACD.macd": 1.2, "MACD.signal": 0.8})
    values.update({"RSI": 55.0, "RSI[1]": 50.0})
    return values


def test_tally_counts_votes() -> None:
    buy, sell, neutral = tally(_bullish_row())
    assert buy == 12 + 2 + 2
    assert sell == 1
    assert buy + sell + neutral == 26


def test_tally_all_missing_is_neutral() -> None:
    assert tally({}) == (0, 0, 26)


class _FakeHttp:
    def __init__(self, payload=None, exc: Exception | None = None):
        self.payload = payload
        self.exc = exc
        self.requests: list[tuple[str, dict]] = []

    async def post_json(self, url, payload, *, timeout=10.0):
        self.requests.append((url, payload))
        if self.exc is not None:
            raise self.exc
        return self.payload


def test_sample_builds_scan_request() -> None:
    row = _bullish_row()
    http = _FakeHttp({"data": [{"s": "BINANCE:BNBUSDT", "d": [row[c] for c in COLUMNS]}], "totalCount": 1})
    source = TradingViewSignalSource(http)
    sample = asyncio.run(source.sample("BNBUSDT", "5m"))
    assert (sample.buy_count, sample.sell_count) == (16, 1)
    url, payload = http.requests[0]
    assert url == "https://scanner.tradingview.com/crypto/scan"
    assert payload["symbols"]["tickers"] == ["BINANCE:BNBUSDT"]
    assert payload["columns"][0] == "close|5"


def test_sample_empty_result_raises() -> None:
    source = TradingViewSignalSource(_FakeHttp({"data": [], "totalCount": 0}))
    with pytest.raises(SignalSampleError):
        asyncio.run(source.sample("BNBUSDT", "1m"))


def test_sample_http_failure_raises() -> None:
    source = TradingViewSignalSource(_FakeHttp(exc=RuntimeError("http 503")))
    with pytest.raises(SignalSampleError) as err:
        asyncio.run(source.sample("BNBUSDT", "1m"))
    assert err.value.interval == "1m"


@pytest.mark.parametrize("payload", [[], ["BINANCE:BNBUSDT"], "rate limited", {"data": "oops"}, {"data": [None]}])
def test_sample_malformed_payload_raises(payload) -> None:
    source = TradingViewSignalSource(_FakeHttp(payload))
    with pytest.raises(SignalSampleError):
        asyncio.run(source.sample("BNBUSDT", "5m"))
