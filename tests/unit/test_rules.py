import pandas as pd

from stock_engine.core.rules import (
    IndicatorSnapshot,
    Signal,
    SignalType,
    Strength,
    evaluate_rules,
    generate_signals,
    latest_snapshot,
    overall_sentiment,
)


def _names(signals):
    return [s.name for s in signals]


def test_golden_cross():
    signals = evaluate_rules(IndicatorSnapshot(price=100, sma20=95, sma50=90))
    assert len(signals) == 1
    sig = signals[0]
    assert sig.type is SignalType.BUY
    assert sig.name == "Golden Cross"
    assert sig.strength is Strength.STRONG


def test_death_cross():
    signals = evaluate_rules(IndicatorSnapshot(price=80, sma20=85, sma50=90))
    assert _names(signals) == ["Death Cross"]
    assert signals[0].type is SignalType.SELL


def test_overbought_and_golden_cross_fire_together():
    signals = evaluate_rules(IndicatorSnapshot(price=100, sma20=95, sma50=90, rsi=75))
    assert _names(signals) == ["Golden Cross", "Overbought"]
    assert signals[1].type is SignalType.SELL
    assert signals[1].strength is Strength.MEDIUM
    assert "75.00" in signals[1].rationale


def test_oversold():
    assert _names(evaluate_rules(IndicatorSnapshot(rsi=25))) == ["Oversold"]


def test_macd_rules():
    bull = IndicatorSnapshot(macd=1.0, macd_signal=0.5, macd_histogram=0.5)
    bear = IndicatorSnapshot(macd=-1.0, macd_signal=-0.5, macd_histogram=-0.5)
    assert _names(evaluate_rules(bull)) == ["MACD Bullish"]
    assert _names(evaluate_rules(bear)) == ["MACD Bearish"]


def test_bollinger_breaches():
    upper = IndicatorSnapshot(price=110, bb_upper=105, bb_lower=95)
    lower = IndicatorSnapshot(price=90, bb_upper=105, bb_lower=95)
    assert _names(evaluate_rules(upper)) == ["Upper Breach"]
    assert _names(evaluate_rules(lower)) == ["Lower Breach"]


def test_rules_with_missing_inputs_are_skipped():
    assert evaluate_rules(IndicatorSnapshot(price=100, sma20=95)) == []
    assert evaluate_rules(IndicatorSnapshot(price=100, sma20=float("nan"), sma50=90)) == []
    assert evaluate_rules(IndicatorSnapshot()) == []


def test_all_rules_in_fixed_order():
    snap = IndicatorSnapshot(
        price=120, sma20=110, sma50=100, rsi=80,
        macd=2.0, macd_signal=1.0, macd_histogram=1.0,
        bb_upper=115, bb_lower=90,
    )
    assert _names(evaluate_rules(snap)) == ["Golden Cross", "Overbought", "MACD Bullish", "Upper Breach"]


def test_generate_signals_reads_last_row():
    idx = pd.RangeIndex(3)
    df = pd.DataFrame({"close": [90.0, 95.0, 100.0]}, index=idx)
    bundle = {
        "sma20": pd.Series([float("nan"), 93.0, 95.0], index=idx),
        "sma50": pd.Series([float("nan"), 91.0, 90.0], index=idx),
        "rsi": pd.Series([float("nan"), 50.0, float("nan")], index=idx),
    }
    snap = latest_snapshot(df, bundle)
    assert snap.price == 100.0 and snap.rsi is None
    assert _names(generate_signals(df, bundle)) == ["Golden Cross"]


def test_overall_sentiment():
    buy = Signal(SignalType.BUY, "x", Strength.MEDIUM, "")
    sell = Signal(SignalType.SELL, "y", Strength.MEDIUM, "")
    assert overall_sentiment([buy, buy, sell]) == "Bullish"
    assert overall_sentiment([sell]) == "Bearish"
    assert overall_sentiment([buy, sell]) == "Neutral"
    assert overall_sentiment([]) == "Neutral"


def test_signal_to_dict():
    sig = evaluate_rules(IndicatorSnapshot(price=100, sma20=95, sma50=90))[0]
    assert sig.to_dict() == {
        "type": "BUY",
        "name": "Golden Cross",
        "strength": "Strong",
        "rationale": "Price above SMA20, SMA20 above SMA50",
    }
