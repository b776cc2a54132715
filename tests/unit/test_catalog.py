import datetime as dt
import random

import pytest

from stock_engine.core.catalog import (
    ALIASES,
    BUNDLE_KEYS,
    IndicatorKind,
    compute_records,
    parse_indicator,
)
from stock_engine.core.errors import UnsupportedIndicator
from stock_engine.core.synthetic import generate_series


@pytest.fixture
def series():
    return generate_series("AAPL", "3m", random.Random(11), dt.date(2024, 5, 1))


@pytest.mark.parametrize(
    "name,kind",
    [("sma", IndicatorKind.SMA20), ("SMA50", IndicatorKind.SMA50), ("ema", IndicatorKind.EMA12),
     ("Ema26", IndicatorKind.EMA26), ("bb", IndicatorKind.BOLLINGER), ("MACD", IndicatorKind.MACD),
     (" rsi ", IndicatorKind.RSI), ("stochastic", IndicatorKind.STOCHASTIC), ("atr", IndicatorKind.ATR)],
)
def test_parse_indicator(name, kind):
    assert parse_indicator(name) is kind


def test_unknown_indicator_is_typed_error():
    with pytest.raises(UnsupportedIndicator) as exc:
        parse_indicator("vwap", symbol="AAPL", time_range="1m")
    assert exc.value.symbol == "AAPL"
    assert exc.value.indicator == "vwap"
    assert exc.value.to_dict()["error"] == "UnsupportedIndicator"


def test_every_alias_and_kind_is_computable(series):
    assert set(ALIASES.values()) == set(IndicatorKind) == set(BUNDLE_KEYS)
    for kind in IndicatorKind:
        records = compute_records(kind, series)
        assert len(records) == len(series)
        assert records[0]["date"] == series.index[0].isoformat()


def test_single_value_records(series):
    records = compute_records(IndicatorKind.SMA20, series)
    assert all(r["value"] is None for r in records[:19])
    assert all(r["value"] is not None for r in records[19:])
    assert records[-1]["price"] == series["close"].iloc[-1]


def test_rsi_and_atr_records_warm_up_by_period(series):
    for kind in (IndicatorKind.RSI, IndicatorKind.ATR):
        records = compute_records(kind, series)
        nulls = [r["value"] is None for r in records]
        assert nulls[:14] == [True] * 14
        assert not any(nulls[14:])


def test_composite_record_layouts(series):
    macd = compute_records(IndicatorKind.MACD, series)[-1]
    assert set(macd) == {"date", "macd", "signal", "histogram"}
    bb = compute_records(IndicatorKind.BOLLINGER, series)[-1]
    assert set(bb) == {"date", "upper", "middle", "lower", "price"}
    assert bb["lower"] <= bb["middle"] <= bb["upper"]
    stoch = compute_records(IndicatorKind.STOCHASTIC, series)
    assert set(stoch[-1]) == {"date", "k", "d"}
    assert stoch[13]["k"] is not None and stoch[13]["d"] is None
