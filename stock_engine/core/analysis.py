"""Analysis orchestration: series → indicators → signals, with caching.

:class:`AnalysisEngine` is the single entry point used by the request
layer.  It owns no global state; the cache and provider chain are
handed in at construction time.
"""
from __future__ import annotations

import asyncio
import datetime as dt
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd

from .cache import TTLCache, cache_key
from .catalog import BUNDLE_KEYS, IndicatorKind, compute, parse_indicator, to_records
from .config import ANALYSIS_TTL, COMPARISON_TTL, INDICATOR_TTL, REFERENCE_TTL
from .errors import EmptySeries
from .log import get_logger
from .ohlc_fetcher import ProviderChain
from .rules import generate_signals, overall_sentiment
from .series import frame_to_records, normalize_range
from .synthetic import SyntheticProvider

logger = get_logger("analysis")

FULL_ANALYSIS_KINDS: List[IndicatorKind] = list(BUNDLE_KEYS)


class AnalysisEngine:
    def __init__(
        self,
        chain: ProviderChain,
        cache: TTLCache,
        synthetic: Optional[SyntheticProvider] = None,
    ) -> None:
        self.chain = chain
        self.cache = cache
        self.synthetic = synthetic or chain.synthetic or SyntheticProvider()

    async def _series(self, symbol: str, time_range: str) -> pd.DataFrame:
        df = await self.chain.fetch_series(symbol, time_range)
        if df is None or df.empty:
            raise EmptySeries(symbol, time_range)
        return df

    def _compute(self, kind: IndicatorKind, df: pd.DataFrame, symbol: str, time_range: str):
        """Compute ``kind`` over ``df``; on failure recompute over a synthetic series.

        Returns ``(frame_used, raw_result)``.
        """
        try:
            return df, compute(kind, df)
        except Exception as e:  # degrade to synthetic data rather than fail the request
            logger.warning(
                "Indicator computation failed symbol=%s indicator=%s range=%s reason=%s; using synthetic series",
                symbol, kind.value, time_range, e,
            )
            fallback = self.synthetic.series(symbol, time_range)
            return fallback, compute(kind, fallback)

    async def get_series(self, symbol: str, time_range: str = "1m") -> List[Dict[str, Any]]:
        time_range = normalize_range(time_range)
        return frame_to_records(await self._series(symbol, time_range))

    async def get_indicator(
        self, symbol: str, name: str, time_range: str = "1m"
    ) -> List[Dict[str, Any]]:
        time_range = normalize_range(time_range)
        kind = parse_indicator(name, symbol=symbol, time_range=time_range)
        key = cache_key("indicator", symbol, kind.value, time_range)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        df = await self._series(symbol, time_range)
        used, result = self._compute(kind, df, symbol, time_range)
        records = to_records(kind, used, result)
        self.cache.set(key, records, INDICATOR_TTL)
        return records

    async def get_full_analysis(self, symbol: str, time_range: str = "3m") -> Dict[str, Any]:
        time_range = normalize_range(time_range)
        key = cache_key("technical_analysis", symbol, time_range)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        df = await self._series(symbol, time_range)
        outputs = await asyncio.gather(*(
            asyncio.to_thread(self._compute, kind, df, symbol, time_range)
            for kind in FULL_ANALYSIS_KINDS
        ))

        raw: Dict[str, Any] = {}
        indicators: Dict[str, List[Dict[str, Any]]] = {}
        for kind, (used, result) in zip(FULL_ANALYSIS_KINDS, outputs):
            name = BUNDLE_KEYS[kind]
            # signals only read values aligned with the real series
            if used is df:
                raw[name] = result
            indicators[name] = to_records(kind, used, result)

        signals = generate_signals(df, raw)
        analysis = {
            "symbol": symbol,
            "timeRange": time_range,
            "indicators": indicators,
            "signals": [s.to_dict() for s in signals],
            "sentiment": overall_sentiment(signals),
            "timestamp": dt.datetime.now(dt.timezone.utc).isoformat(),
        }
        self.cache.set(key, analysis, ANALYSIS_TTL)
        return analysis

    async def get_quote(self, symbol: str) -> Dict[str, Any]:
        return await self.chain.fetch_quote(symbol)

    async def compare(self, symbols: Sequence[str], time_range: str = "1m") -> Dict[str, Any]:
        time_range = normalize_range(time_range)
        key = cache_key("compare", "_".join(symbols), time_range)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        frames = await asyncio.gather(*(self._series(s, time_range) for s in symbols))
        comparison = {s: frame_to_records(df) for s, df in zip(symbols, frames)}
        self.cache.set(key, comparison, COMPARISON_TTL)
        return comparison

    async def get_52_week_range(self, symbol: str) -> Dict[str, Any]:
        key = cache_key("52week", symbol)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        df = await self._series(symbol, "1y")
        highs = df["high"][df["high"] > 0]
        lows = df["low"][df["low"] > 0]
        result = {
            "symbol": symbol,
            "fiftyTwoWeekHigh": float(highs.max()) if not highs.empty else None,
            "fiftyTwoWeekLow": float(lows.min()) if not lows.empty else None,
        }
        self.cache.set(key, result, REFERENCE_TTL)
        return result
