import asyncio
import datetime as dt
import random

from stock_engine.core.synthetic import (
    SyntheticProvider,
    base_price,
    generate_bars,
    generate_quote,
    generate_series,
)


def test_base_price_from_symbol():
    # A=65 A=65 P=80 L=76
    assert base_price("AAPL") == 10 + (65 + 65 + 80 + 76) % 490
    assert 10 <= base_price("ZZZZZ") < 500


def test_mock_series_shape_is_stable():
    first = generate_series("AAPL", "1m")
    second = generate_series("AAPL", "1m")
    for df in (first, second):
        assert len(df) == 31
        assert (df["close"] > 0).all()
        days = [(b - a).days for a, b in zip(df.index[:-1], df.index[1:])]
        assert set(days) == {1}
        assert df.index[-1] == dt.date.today()


def test_seeded_rng_reproduces_bars():
    today = dt.date(2024, 6, 30)
    a = generate_bars("MSFT", "3m", random.Random(42), today)
    b = generate_bars("MSFT", "3m", random.Random(42), today)
    assert a == b
    assert len(a) == 91


def test_daily_steps_are_bounded():
    bars = generate_bars("TSLA", "1y", random.Random(1), dt.date(2024, 1, 1))
    opens = [b["open"] for b in bars]
    for prev, cur in zip(opens, opens[1:]):
        # rounding to cents adds a little slack
        assert abs(cur / prev - 1) <= 0.021 + 0.02 / prev
    for b in bars:
        assert b["low"] <= b["close"] <= b["high"]
        assert 500_000 <= b["volume"] < 10_500_000


def test_unknown_range_defaults_to_one_month():
    assert len(generate_bars("IBM", "weird", random.Random(3))) == 31


def test_quote_shape():
    quote = generate_quote("AAPL", random.Random(5))
    assert quote["symbol"] == "AAPL"
    assert quote["price"] == base_price("AAPL")
    assert quote["fiftyTwoWeekLow"] < quote["price"] < quote["fiftyTwoWeekHigh"]


def test_provider_always_succeeds():
    provider = SyntheticProvider(random.Random(9), today=lambda: dt.date(2024, 3, 1))
    result = asyncio.run(provider.try_fetch("X", "1w"))
    assert result.ok
    assert len(result.series) == 8
    assert result.series.index[-1] == dt.date(2024, 3, 1)
