"""Deterministic-shape synthetic market data.

Used as the last link of the provider chain (it cannot fail) and
whenever live data is switched off.  Prices start from a base derived
from the symbol's characters and follow a bounded random walk; the
random source is injected so tests can pin it with a seed.
"""
from __future__ import annotations

import datetime as dt
import random
from typing import Any, Callable, Dict, List, Optional

import pandas as pd

from .providers import FetchResult, QuoteResult
from .series import bars_to_frame, normalize_range, range_to_days

DAILY_STEP = 0.02  # max relative move per day
INTRADAY_SPREAD = 0.015
MIN_PRICE = 1.0


def base_price(symbol: str) -> float:
    """``10 + sum(ord(c)) % 490``: a stable price in [10, 500)."""
    return float(10 + sum(ord(c) for c in symbol) % 490)


def generate_bars(
    symbol: str,
    time_range: str,
    rng: Optional[random.Random] = None,
    today: Optional[dt.date] = None,
) -> List[Dict[str, Any]]:
    """One bar per calendar day for ``days(range)`` days back up to today."""
    rng = rng or random.Random()
    today = today or dt.date.today()
    num_days = range_to_days(time_range)
    price = base_price(symbol)
    bars = []
    for i in range(num_days, -1, -1):
        price += price * rng.uniform(-DAILY_STEP, DAILY_STEP)
        price = max(price, MIN_PRICE)
        open_ = price
        high = open_ * (1 + rng.random() * INTRADAY_SPREAD)
        low = open_ * (1 - rng.random() * INTRADAY_SPREAD)
        close = low + rng.random() * (high - low)
        bars.append({
            "date": today - dt.timedelta(days=i),
            "open": round(open_, 2),
            "high": round(high, 2),
            "low": round(low, 2),
            "close": round(close, 2),
            "volume": rng.randrange(500_000, 10_500_000),
        })
    return bars


def generate_series(
    symbol: str,
    time_range: str,
    rng: Optional[random.Random] = None,
    today: Optional[dt.date] = None,
) -> pd.DataFrame:
    return bars_to_frame(generate_bars(symbol, time_range, rng, today), symbol)


def generate_quote(symbol: str, rng: Optional[random.Random] = None) -> Dict[str, Any]:
    rng = rng or random.Random()
    price = base_price(symbol)
    change = (rng.random() - 0.5) * 10
    high_52 = price * (1.2 + rng.random() * 0.3)
    low_52 = price * (0.5 + rng.random() * 0.3)
    return {
        "symbol": symbol,
        "price": round(price, 2),
        "change": round(change, 2),
        "changePercent": round(change / price * 100, 2),
        "previousClose": round(price - change, 2),
        "open": round(price * 0.99, 2),
        "dayHigh": round(price * 1.05, 2),
        "dayLow": round(price * 0.95, 2),
        "volume": rng.randrange(500_000, 10_500_000),
        "fiftyTwoWeekHigh": round(high_52, 2),
        "fiftyTwoWeekLow": round(low_52, 2),
        "source": "synthetic",
        "timestamp": dt.datetime.now(dt.timezone.utc).isoformat(),
    }


class SyntheticProvider:
    """Pure computation; always succeeds."""

    name = "synthetic"
    synthetic = True

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        today: Optional[Callable[[], dt.date]] = None,
    ) -> None:
        self.rng = rng or random.Random()
        self._today = today or dt.date.today

    async def try_fetch(self, symbol: str, time_range: str) -> FetchResult:
        return FetchResult(self.name, series=self.series(symbol, time_range))

    async def try_quote(self, symbol: str) -> QuoteResult:
        return QuoteResult(self.name, quote=generate_quote(symbol, self.rng))

    def series(self, symbol: str, time_range: str) -> pd.DataFrame:
        return generate_series(symbol, normalize_range(time_range), self.rng, self._today())
