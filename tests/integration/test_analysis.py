import asyncio
import datetime as dt
import logging
import random

import pytest

from stock_engine.core import analysis as analysis_module
from stock_engine.core.analysis import AnalysisEngine
from stock_engine.core.cache import TTLCache
from stock_engine.core.errors import UnsupportedIndicator
from stock_engine.core.ohlc_fetcher import ProviderChain
from stock_engine.core.providers import FetchResult, QuoteResult
from stock_engine.core.series import bars_to_frame
from stock_engine.core.synthetic import SyntheticProvider

BUNDLE = {"sma20", "sma50", "ema12", "ema26", "rsi", "macd", "bollingerBands", "stochastic", "atr"}


class StaticProvider:
    """Serves one fixed series for every request."""

    name = "static"
    synthetic = False

    def __init__(self, df):
        self.df = df
        self.calls = 0

    async def try_fetch(self, symbol, time_range):
        self.calls += 1
        return FetchResult(self.name, series=self.df)

    async def try_quote(self, symbol):
        return QuoteResult(self.name, quote={"symbol": symbol, "price": float(self.df["close"].iloc[-1])})


def rising_series(n=80):
    start = dt.date(2024, 1, 1)
    rows = []
    for i in range(n):
        close = 100.0 + i
        rows.append({"date": start + dt.timedelta(days=i), "open": close - 0.5,
                     "high": close + 1, "low": close - 1, "close": close, "volume": 1000 + i})
    return bars_to_frame(rows)


def _engine(*providers):
    cache = TTLCache()
    synthetic = SyntheticProvider(random.Random(4), today=lambda: dt.date(2024, 6, 1))
    chain = ProviderChain(list(providers) + [synthetic], cache, timeout=1.0)
    return AnalysisEngine(chain, cache), cache


def test_get_indicator_records_and_cache():
    engine, cache = _engine()
    records = asyncio.run(engine.get_indicator("AAPL", "SMA", "3m"))
    assert len(records) == 91
    assert records[18]["value"] is None and records[19]["value"] is not None
    assert cache.get("indicator_AAPL_sma20_3m") is records
    assert asyncio.run(engine.get_indicator("AAPL", "sma20", "3m")) is records


def test_unsupported_indicator_carries_context():
    engine, _ = _engine()
    with pytest.raises(UnsupportedIndicator) as exc:
        asyncio.run(engine.get_indicator("AAPL", "ichimoku", "1m"))
    assert exc.value.symbol == "AAPL"
    assert exc.value.time_range == "1m"


def test_full_analysis_envelope():
    engine, cache = _engine()
    result = asyncio.run(engine.get_full_analysis("MSFT", "6m"))
    assert set(result) == {"symbol", "timeRange", "indicators", "signals", "sentiment", "timestamp"}
    assert result["symbol"] == "MSFT"
    assert result["timeRange"] == "6m"
    assert set(result["indicators"]) == BUNDLE
    assert all(len(v) == 181 for v in result["indicators"].values())
    assert result["sentiment"] in {"Bullish", "Bearish", "Neutral"}
    for sig in result["signals"]:
        assert sig["type"] in {"BUY", "SELL"}
    assert asyncio.run(engine.get_full_analysis("MSFT", "6m")) is result
    assert cache.get("technical_analysis_MSFT_6m") is result


def test_full_analysis_signals_on_rising_series():
    static = StaticProvider(rising_series())
    engine, _ = _engine(static)
    result = asyncio.run(engine.get_full_analysis("UP", "3m"))
    names = [s["name"] for s in result["signals"]]
    assert names[:2] == ["Golden Cross", "Overbought"]
    assert result["indicators"]["rsi"][-1]["value"] == 100.0
    assert static.calls == 1


def test_indicator_failure_falls_back_to_synthetic(monkeypatch, caplog):
    real_compute = analysis_module.compute
    calls = []

    def flaky(kind, df):
        calls.append(len(df))
        if len(calls) == 1:
            raise ValueError("bad input")
        return real_compute(kind, df)

    monkeypatch.setattr(analysis_module, "compute", flaky)
    engine, _ = _engine(StaticProvider(rising_series(40)))
    with caplog.at_level(logging.WARNING, logger="stock_engine.analysis"):
        records = asyncio.run(engine.get_indicator("UP", "rsi", "1m"))
    # second computation ran over the 31-bar synthetic month
    assert calls == [40, 31]
    assert len(records) == 31
    assert any("indicator=rsi" in r.getMessage() for r in caplog.records)


def test_compare_fetches_each_symbol():
    engine, cache = _engine()
    result = asyncio.run(engine.compare(["AAPL", "MSFT"], "1w"))
    assert list(result) == ["AAPL", "MSFT"]
    assert all(len(v) == 8 for v in result.values())
    assert cache.get("compare_AAPL_MSFT_1w") is result


def test_52_week_range_uses_one_year_series():
    df = rising_series(30)
    engine, _ = _engine(StaticProvider(df))
    result = asyncio.run(engine.get_52_week_range("UP"))
    assert result == {"symbol": "UP", "fiftyTwoWeekHigh": 130.0, "fiftyTwoWeekLow": 99.0}


def test_series_and_quote_passthrough():
    engine, _ = _engine(StaticProvider(rising_series(5)))
    bars = asyncio.run(engine.get_series("UP", "5d"))
    assert bars[0] == {"date": "2024-01-01", "open": 99.5, "high": 101.0, "low": 99.0,
                       "close": 100.0, "volume": 1000}
    quote = asyncio.run(engine.get_quote("UP"))
    assert quote == {"symbol": "UP", "price": 104.0}
