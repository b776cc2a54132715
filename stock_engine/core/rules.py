"""
Trading signal rules evaluated on the latest indicator values.

Each rule looks at the most recent bar only and emits at most one
:class:`Signal`.  Rules are independent of each other, may all fire at
once, and are always evaluated in the same order so the output list is
deterministic.  A rule whose inputs are not all defined is skipped.
"""
from __future__ import annotations

import math
from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, List, Mapping, Optional

import pandas as pd


class SignalType(str, Enum):
    BUY = "BUY"
    SELL = "SELL"


class Strength(str, Enum):
    WEAK = "Weak"
    MEDIUM = "Medium"
    STRONG = "Strong"


@dataclass(frozen=True)
class Signal:
    type: SignalType
    name: str
    strength: Strength
    rationale: str

    def to_dict(self) -> dict:
        return {
            "type": self.type.value,
            "name": self.name,
            "strength": self.strength.value,
            "rationale": self.rationale,
        }


@dataclass(frozen=True)
class IndicatorSnapshot:
    """Latest value of every indicator the rules read; ``None`` = undefined."""
    price: Optional[float] = None
    sma20: Optional[float] = None
    sma50: Optional[float] = None
    rsi: Optional[float] = None
    macd: Optional[float] = None
    macd_signal: Optional[float] = None
    macd_histogram: Optional[float] = None
    bb_upper: Optional[float] = None
    bb_lower: Optional[float] = None


def _defined(*values: Optional[float]) -> bool:
    return all(v is not None and not math.isnan(v) for v in values)


def ma_trend_rule(s: IndicatorSnapshot) -> Optional[Signal]:
    if not _defined(s.price, s.sma20, s.sma50):
        return None
    if s.price > s.sma20 > s.sma50:
        return Signal(SignalType.BUY, "Golden Cross", Strength.STRONG,
                      "Price above SMA20, SMA20 above SMA50")
    if s.price < s.sma20 < s.sma50:
        return Signal(SignalType.SELL, "Death Cross", Strength.STRONG,
                      "Price below SMA20, SMA20 below SMA50")
    return None


def rsi_rule(s: IndicatorSnapshot, low: float = 30.0, high: float = 70.0) -> Optional[Signal]:
    if not _defined(s.rsi):
        return None
    if s.rsi > high:
        return Signal(SignalType.SELL, "Overbought", Strength.MEDIUM,
                      f"RSI at {s.rsi:.2f} indicates overbought conditions")
    if s.rsi < low:
        return Signal(SignalType.BUY, "Oversold", Strength.MEDIUM,
                      f"RSI at {s.rsi:.2f} indicates oversold conditions")
    return None


def macd_rule(s: IndicatorSnapshot) -> Optional[Signal]:
    if not _defined(s.macd, s.macd_signal, s.macd_histogram):
        return None
    if s.macd > s.macd_signal and s.macd_histogram > 0:
        return Signal(SignalType.BUY, "MACD Bullish", Strength.MEDIUM,
                      "MACD line above signal line with positive histogram")
    if s.macd < s.macd_signal and s.macd_histogram < 0:
        return Signal(SignalType.SELL, "MACD Bearish", Strength.MEDIUM,
                      "MACD line below signal line with negative histogram")
    return None


def bollinger_rule(s: IndicatorSnapshot) -> Optional[Signal]:
    if not _defined(s.price, s.bb_upper, s.bb_lower):
        return None
    if s.price > s.bb_upper:
        return Signal(SignalType.SELL, "Upper Breach", Strength.MEDIUM,
                      "Price above upper Bollinger Band")
    if s.price < s.bb_lower:
        return Signal(SignalType.BUY, "Lower Breach", Strength.MEDIUM,
                      "Price below lower Bollinger Band")
    return None


RULES: List[Callable[[IndicatorSnapshot], Optional[Signal]]] = [
    ma_trend_rule,
    rsi_rule,
    macd_rule,
    bollinger_rule,
]


def evaluate_rules(snapshot: IndicatorSnapshot) -> List[Signal]:
    return [sig for sig in (rule(snapshot) for rule in RULES) if sig is not None]


def _last(obj: Any, column: Optional[str] = None) -> Optional[float]:
    if obj is None:
        return None
    if column is not None:
        if column not in obj:
            return None
        obj = obj[column]
    if len(obj) == 0:
        return None
    value = obj.iloc[-1]
    return None if pd.isna(value) else float(value)


def latest_snapshot(df: pd.DataFrame, bundle: Mapping[str, Any]) -> IndicatorSnapshot:
    """Read the last row of each indicator in ``bundle``.

    ``bundle`` holds raw indicator output keyed like a full analysis
    (``sma20``, ``sma50``, ``rsi``, ``macd``, ``bollingerBands``).
    """
    macd = bundle.get("macd")
    bb = bundle.get("bollingerBands")
    return IndicatorSnapshot(
        price=_last(df["close"]) if not df.empty else None,
        sma20=_last(bundle.get("sma20")),
        sma50=_last(bundle.get("sma50")),
        rsi=_last(bundle.get("rsi")),
        macd=_last(macd, "macd"),
        macd_signal=_last(macd, "signal"),
        macd_histogram=_last(macd, "histogram"),
        bb_upper=_last(bb, "upper"),
        bb_lower=_last(bb, "lower"),
    )


def generate_signals(df: pd.DataFrame, bundle: Mapping[str, Any]) -> List[Signal]:
    """Signals for the most recent bar of ``df``."""
    return evaluate_rules(latest_snapshot(df, bundle))


def overall_sentiment(signals: List[Signal]) -> str:
    """Majority vote of BUY vs SELL; ties are Neutral."""
    votes = Counter(sig.type for sig in signals)
    if votes[SignalType.BUY] > votes[SignalType.SELL]:
        return "Bullish"
    if votes[SignalType.SELL] > votes[SignalType.BUY]:
        return "Bearish"
    return "Neutral"
