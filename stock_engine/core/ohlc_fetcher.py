# core/ohlc_fetcher.py
"""Fetch daily OHLCV data for equities from public APIs.

Tries Yahoo Finance first (unauthenticated).  If Yahoo is unavailable
for the requested symbol, falls back to Alpha Vantage when an API key is
configured, and finally to the synthetic generator, which never fails.
Every attempt is time-bounded and every fallback transition is logged.

Dates are calendar dates in the exchange's timezone.  Prices are floats,
volumes integers.
"""
from __future__ import annotations

import asyncio
import datetime as dt
import time
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

import httpx
import pandas as pd

from .cache import TTLCache, cache_key
from .config import QUOTE_TTL, EngineSettings, series_ttl
from .errors import EmptySeries, ProviderFailure
from .log import get_logger, mask_secret
from .providers import DataProvider, FetchResult, QuoteResult
from .series import bars_to_frame, is_valid_series, normalize_range, range_to_days
from .synthetic import SyntheticProvider

# ──────────────────────────────────────────────────────────────────────────────
# Logging
# ──────────────────────────────────────────────────────────────────────────────

logger = get_logger("ohlc_fetcher")

_HEADERS = {"User-Agent": "Mozilla/5.0 (compatible; stock-engine/0.1)"}
_PROVIDER_ERRORS = (httpx.HTTPError, ValueError, KeyError, TypeError, IndexError)

# ──────────────────────────────────────────────────────────────────────────────
# Helpers
# ──────────────────────────────────────────────────────────────────────────────


def _period_bounds(time_range: str, now: Optional[float] = None) -> tuple[int, int]:
    end = int(now if now is not None else time.time())
    start = end - range_to_days(time_range) * 86_400
    return start, end


def _opt_float(value: Any) -> Optional[float]:
    return None if value is None else float(value)


# ──────────────────────────────────────────────────────────────────────────────
# Yahoo Finance
# ──────────────────────────────────────────────────────────────────────────────


class YahooFinanceProvider:
    """Primary live source: the v8 chart endpoint, daily interval."""

    name = "yahoo"
    synthetic = False

    def __init__(
        self,
        base_url: str = "https://query1.finance.yahoo.com",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._transport = transport

    async def _get_chart(self, symbol: str, params: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self.base_url}/v8/finance/chart/{symbol}"
        async with httpx.AsyncClient(transport=self._transport, headers=_HEADERS) as client:
            resp = await client.get(url, params=params)
            resp.raise_for_status()
            data = resp.json()
        chart = data.get("chart") or {}
        if chart.get("error"):
            raise ValueError(f"chart error: {chart['error']}")
        results = chart.get("result") or []
        if not results:
            raise ValueError(f"No data found for symbol {symbol}")
        return results[0]

    @staticmethod
    def _rows(result: Dict[str, Any]) -> List[Dict[str, Any]]:
        offset = int(result.get("meta", {}).get("gmtoffset") or 0)
        stamps = result.get("timestamp") or []
        quote = result["indicators"]["quote"][0]
        rows = []
        for i, ts in enumerate(stamps):
            rows.append({
                "date": dt.datetime.fromtimestamp(ts + offset, tz=dt.timezone.utc).date(),
                "open": quote["open"][i],
                "high": quote["high"][i],
                "low": quote["low"][i],
                "close": quote["close"][i],
                "volume": quote["volume"][i],
            })
        return rows

    async def try_fetch(self, symbol: str, time_range: str) -> FetchResult:
        start, end = _period_bounds(time_range)
        params = {"period1": start, "period2": end, "interval": "1d", "includePrePost": "false"}
        try:
            result = await self._get_chart(symbol, params)
            df = bars_to_frame(self._rows(result), symbol)
        except _PROVIDER_ERRORS as e:
            return FetchResult(self.name, error=ProviderFailure(self.name, str(e), symbol, time_range))
        if df.empty:
            return FetchResult(self.name, error=ProviderFailure(self.name, "empty series", symbol, time_range))
        return FetchResult(self.name, series=df)

    async def try_quote(self, symbol: str) -> QuoteResult:
        try:
            result = await self._get_chart(symbol, {"range": "1d", "interval": "1d"})
            meta = result["meta"]
            price = float(meta["regularMarketPrice"])
            prev = _opt_float(meta.get("chartPreviousClose") or meta.get("previousClose"))
            opens = result.get("indicators", {}).get("quote", [{}])[0].get("open") or [None]
        except _PROVIDER_ERRORS as e:
            return QuoteResult(self.name, error=ProviderFailure(self.name, str(e), symbol))
        change = price - prev if prev else None
        return QuoteResult(self.name, quote={
            "symbol": symbol,
            "price": price,
            "change": change,
            "changePercent": (change / prev * 100) if change is not None else None,
            "previousClose": prev,
            "open": _opt_float(opens[-1]),
            "dayHigh": _opt_float(meta.get("regularMarketDayHigh")),
            "dayLow": _opt_float(meta.get("regularMarketDayLow")),
            "volume": meta.get("regularMarketVolume"),
            "fiftyTwoWeekHigh": _opt_float(meta.get("fiftyTwoWeekHigh")),
            "fiftyTwoWeekLow": _opt_float(meta.get("fiftyTwoWeekLow")),
            "source": self.name,
            "timestamp": dt.datetime.now(dt.timezone.utc).isoformat(),
        })


# ──────────────────────────────────────────────────────────────────────────────
# Alpha Vantage (secondary, needs a key)
# ──────────────────────────────────────────────────────────────────────────────


class AlphaVantageProvider:
    name = "alpha_vantage"
    synthetic = False

    _SERIES_KEY = "Time Series (Daily)"
    _ERROR_KEYS = ("Error Message", "Note", "Information")

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://www.alphavantage.co",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self._transport = transport

    async def _query(self, params: Dict[str, Any]) -> Dict[str, Any]:
        params = dict(params, apikey=self.api_key)
        async with httpx.AsyncClient(transport=self._transport) as client:
            resp = await client.get(f"{self.base_url}/query", params=params)
            resp.raise_for_status()
            data = resp.json()
        for key in self._ERROR_KEYS:
            if key in data:
                raise ValueError(f"Alpha Vantage {key.lower()}: {data[key]}")
        return data

    async def try_fetch(self, symbol: str, time_range: str) -> FetchResult:
        days = range_to_days(time_range)
        params = {
            "function": "TIME_SERIES_DAILY",
            "symbol": symbol,
            "outputsize": "compact" if days <= 100 else "full",
        }
        try:
            data = await self._query(params)
            series = data[self._SERIES_KEY]
            rows = [
                {
                    "date": day,
                    "open": values["1. open"],
                    "high": values["2. high"],
                    "low": values["3. low"],
                    "close": values["4. close"],
                    "volume": values["5. volume"],
                }
                for day, values in series.items()
            ]
            df = bars_to_frame(rows, symbol)
        except _PROVIDER_ERRORS as e:
            return FetchResult(self.name, error=ProviderFailure(self.name, str(e), symbol, time_range))
        cutoff = dt.date.today() - dt.timedelta(days=days)
        df = df[[d >= cutoff for d in df.index]] if not df.empty else df
        if df.empty:
            return FetchResult(self.name, error=ProviderFailure(self.name, "empty series", symbol, time_range))
        return FetchResult(self.name, series=df)

    async def try_quote(self, symbol: str) -> QuoteResult:
        try:
            data = await self._query({"function": "GLOBAL_QUOTE", "symbol": symbol})
            q = data["Global Quote"]
            quote = {
                "symbol": symbol,
                "price": float(q["05. price"]),
                "change": float(q["09. change"]),
                "changePercent": float(str(q["10. change percent"]).rstrip("%")),
                "previousClose": float(q["08. previous close"]),
                "open": float(q["02. open"]),
                "dayHigh": float(q["03. high"]),
                "dayLow": float(q["04. low"]),
                "volume": int(q["06. volume"]),
                "fiftyTwoWeekHigh": None,
                "fiftyTwoWeekLow": None,
                "source": self.name,
                "timestamp": dt.datetime.now(dt.timezone.utc).isoformat(),
            }
        except _PROVIDER_ERRORS as e:
            return QuoteResult(self.name, error=ProviderFailure(self.name, str(e), symbol))
        return QuoteResult(self.name, quote=quote)


# ──────────────────────────────────────────────────────────────────────────────
# Chain
# ──────────────────────────────────────────────────────────────────────────────


class ProviderChain:
    """Ordered providers tried one after another until one succeeds.

    Successful series and quotes are written to the shared cache.  No
    lock is held while a provider is running.
    """

    def __init__(
        self,
        providers: Sequence[DataProvider],
        cache: TTLCache,
        timeout: float = 10.0,
    ) -> None:
        if not providers:
            raise ValueError("provider chain needs at least one provider")
        self.providers = list(providers)
        self.cache = cache
        self.timeout = timeout

    @classmethod
    def from_settings(
        cls,
        settings: EngineSettings,
        cache: TTLCache,
        synthetic: Optional[SyntheticProvider] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "ProviderChain":
        providers: List[DataProvider] = []
        if settings.use_live_data:
            providers.append(YahooFinanceProvider(settings.yahoo_base_url, transport=transport))
            if settings.alpha_vantage_api_key:
                providers.append(AlphaVantageProvider(
                    settings.alpha_vantage_api_key,
                    settings.alpha_vantage_base_url,
                    transport=transport,
                ))
        providers.append(synthetic or SyntheticProvider())
        logger.info(
            "Provider chain=%s live=%s alpha_vantage_key=%s timeout=%.1fs",
            [p.name for p in providers],
            settings.use_live_data,
            mask_secret(settings.alpha_vantage_api_key),
            settings.provider_timeout,
        )
        return cls(providers, cache, timeout=settings.provider_timeout)

    @property
    def synthetic(self) -> Optional[SyntheticProvider]:
        for p in self.providers:
            if isinstance(p, SyntheticProvider):
                return p
        return None

    async def _attempt(self, provider: DataProvider, call: Callable[..., Awaitable[Any]],
                       symbol: str, time_range: Optional[str] = None) -> Any:
        """Run one provider call under the timeout; failures come back as values."""
        args = (symbol,) if time_range is None else (symbol, time_range)
        try:
            return await asyncio.wait_for(call(*args), timeout=self.timeout)
        except asyncio.TimeoutError:
            return ProviderFailure(provider.name, f"timed out after {self.timeout:.1f}s", symbol, time_range)
        except Exception as e:  # a misbehaving provider must not break the chain
            logger.debug("Provider %s raised", provider.name, exc_info=True)
            return ProviderFailure(provider.name, f"{type(e).__name__}: {e}", symbol, time_range)

    def _fallback(self, provider: DataProvider, symbol: str, time_range: Optional[str], reason: Any) -> None:
        logger.warning(
            "Provider fallback provider=%s symbol=%s range=%s reason=%s",
            provider.name, symbol, time_range, reason,
        )

    async def fetch_series(self, symbol: str, time_range: str = "1m") -> pd.DataFrame:
        time_range = normalize_range(time_range)
        key = cache_key("stock", symbol, time_range)
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("Returning cached data for %s", symbol)
            return cached

        for provider in self.providers:
            result = await self._attempt(provider, provider.try_fetch, symbol, time_range)
            if isinstance(result, ProviderFailure):
                self._fallback(provider, symbol, time_range, result)
                continue
            if not result.ok or not is_valid_series(result.series):
                self._fallback(provider, symbol, time_range, result.error or "empty or malformed series")
                continue
            logger.info("Fetched %d bars for %s/%s from %s", len(result.series), symbol, time_range, provider.name)
            self.cache.set(key, result.series, series_ttl(time_range, provider.synthetic))
            return result.series

        raise EmptySeries(symbol, time_range)

    async def fetch_quote(self, symbol: str) -> Dict[str, Any]:
        key = cache_key("quote", symbol)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        for provider in self.providers:
            result = await self._attempt(provider, provider.try_quote, symbol)
            if isinstance(result, ProviderFailure):
                self._fallback(provider, symbol, None, result)
                continue
            if not result.ok:
                self._fallback(provider, symbol, None, result.error or "empty quote")
                continue
            self.cache.set(key, result.quote, QUOTE_TTL)
            return result.quote

        raise EmptySeries(symbol)
