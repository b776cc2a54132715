"""Core of the stock indicator engine.

This package provides helpers for fetching daily OHLCV data through a
chain of providers with a shared TTL cache, computing technical
indicators, turning the latest indicator values into trading signals,
and orchestrating all of it per request.  Indicator and rule functions
are side‑effect free and deterministic when given the same inputs.
"""

from .analysis import AnalysisEngine
from .cache import TTLCache, cache_key
from .catalog import IndicatorKind, compute_records, parse_indicator
from .config import EngineSettings
from .errors import EmptySeries, EngineError, MalformedBar, ProviderFailure, UnsupportedIndicator
from .indicators import (
    compute_sma,
    compute_ema,
    compute_rsi,
    compute_macd,
    compute_bollinger,
    compute_stochastic,
    compute_atr,
)
from .ohlc_fetcher import AlphaVantageProvider, ProviderChain, YahooFinanceProvider
from .rules import (
    IndicatorSnapshot,
    Signal,
    SignalType,
    Strength,
    evaluate_rules,
    generate_signals,
    overall_sentiment,
)
from .series import bars_to_frame, normalize_range, range_to_days
from .synthetic import SyntheticProvider, generate_series

__all__ = [
    "AnalysisEngine",
    "TTLCache",
    "cache_key",
    "IndicatorKind",
    "compute_records",
    "parse_indicator",
    "EngineSettings",
    "EngineError",
    "EmptySeries",
    "MalformedBar",
    "ProviderFailure",
    "UnsupportedIndicator",
    "compute_sma",
    "compute_ema",
    "compute_rsi",
    "compute_macd",
    "compute_bollinger",
    "compute_stochastic",
    "compute_atr",
    "AlphaVantageProvider",
    "ProviderChain",
    "YahooFinanceProvider",
    "IndicatorSnapshot",
    "Signal",
    "SignalType",
    "Strength",
    "evaluate_rules",
    "generate_signals",
    "overall_sentiment",
    "bars_to_frame",
    "normalize_range",
    "range_to_days",
    "SyntheticProvider",
    "generate_series",
]
