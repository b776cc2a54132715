"""Supported indicators and their JSON-shaped output.

Callers name indicators with short strings (``sma``, ``bb``, ``MACD``...).
Those are resolved once to an :class:`IndicatorKind`, which selects the
computation from a fixed table and the record layout used to serialize
the result.
"""
from __future__ import annotations

from enum import Enum
from typing import Any, Callable, Dict, List, Optional

import numpy as np
import pandas as pd

from .errors import UnsupportedIndicator
from .indicators import (
    compute_atr,
    compute_bollinger,
    compute_ema,
    compute_macd,
    compute_rsi,
    compute_sma,
    compute_stochastic,
)


class IndicatorKind(str, Enum):
    SMA20 = "sma20"
    SMA50 = "sma50"
    EMA12 = "ema12"
    EMA26 = "ema26"
    RSI = "rsi"
    MACD = "macd"
    BOLLINGER = "bollinger"
    STOCHASTIC = "stochastic"
    ATR = "atr"


ALIASES: Dict[str, IndicatorKind] = {
    "sma": IndicatorKind.SMA20,
    "sma20": IndicatorKind.SMA20,
    "sma50": IndicatorKind.SMA50,
    "ema": IndicatorKind.EMA12,
    "ema12": IndicatorKind.EMA12,
    "ema26": IndicatorKind.EMA26,
    "rsi": IndicatorKind.RSI,
    "macd": IndicatorKind.MACD,
    "bollinger": IndicatorKind.BOLLINGER,
    "bb": IndicatorKind.BOLLINGER,
    "stochastic": IndicatorKind.STOCHASTIC,
    "atr": IndicatorKind.ATR,
}

# Keys of the indicator bundle in a full analysis
BUNDLE_KEYS: Dict[IndicatorKind, str] = {
    IndicatorKind.SMA20: "sma20",
    IndicatorKind.SMA50: "sma50",
    IndicatorKind.EMA12: "ema12",
    IndicatorKind.EMA26: "ema26",
    IndicatorKind.RSI: "rsi",
    IndicatorKind.MACD: "macd",
    IndicatorKind.BOLLINGER: "bollingerBands",
    IndicatorKind.STOCHASTIC: "stochastic",
    IndicatorKind.ATR: "atr",
}


def parse_indicator(
    name: Optional[str], symbol: Optional[str] = None, time_range: Optional[str] = None
) -> IndicatorKind:
    kind = ALIASES.get((name or "").strip().lower())
    if kind is None:
        raise UnsupportedIndicator(str(name), symbol=symbol, time_range=time_range)
    return kind


_COMPUTE: Dict[IndicatorKind, Callable[[pd.DataFrame], Any]] = {
    IndicatorKind.SMA20: lambda df: compute_sma(df["close"], 20),
    IndicatorKind.SMA50: lambda df: compute_sma(df["close"], 50),
    IndicatorKind.EMA12: lambda df: compute_ema(df["close"], 12),
    IndicatorKind.EMA26: lambda df: compute_ema(df["close"], 26),
    IndicatorKind.RSI: lambda df: compute_rsi(df["close"], 14),
    IndicatorKind.MACD: lambda df: compute_macd(df["close"], 12, 26, 9),
    IndicatorKind.BOLLINGER: lambda df: compute_bollinger(df["close"], 20, 2.0),
    IndicatorKind.STOCHASTIC: lambda df: compute_stochastic(df["high"], df["low"], df["close"], 14, 3),
    IndicatorKind.ATR: lambda df: compute_atr(df["high"], df["low"], df["close"], 14),
}


def compute(kind: IndicatorKind, df: pd.DataFrame):
    """Raw indicator output (Series or DataFrame aligned to ``df``)."""
    return _COMPUTE[kind](df)


def _num(value: Any) -> Optional[float]:
    if value is None:
        return None
    value = float(value)
    return None if np.isnan(value) or np.isinf(value) else value


def to_records(kind: IndicatorKind, df: pd.DataFrame, result: Any) -> List[Dict[str, Any]]:
    """Per-date records; NaN becomes ``None``."""
    dates = [d.isoformat() for d in df.index]
    closes = df["close"].tolist()
    if kind is IndicatorKind.MACD:
        return [
            {"date": d, "macd": _num(m), "signal": _num(s), "histogram": _num(h)}
            for d, m, s, h in zip(dates, result["macd"], result["signal"], result["histogram"])
        ]
    if kind is IndicatorKind.BOLLINGER:
        return [
            {"date": d, "upper": _num(u), "middle": _num(m), "lower": _num(lo), "price": _num(p)}
            for d, u, m, lo, p in zip(dates, result["upper"], result["middle"], result["lower"], closes)
        ]
    if kind is IndicatorKind.STOCHASTIC:
        return [
            {"date": d, "k": _num(k), "d": _num(dv)}
            for d, k, dv in zip(dates, result["k"], result["d"])
        ]
    return [
        {"date": d, "value": _num(v), "price": _num(p)}
        for d, v, p in zip(dates, result, closes)
    ]


def compute_records(kind: IndicatorKind, df: pd.DataFrame) -> List[Dict[str, Any]]:
    return to_records(kind, df, compute(kind, df))
