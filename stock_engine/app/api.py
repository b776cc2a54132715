"""
FastAPI application exposing the engine over HTTP: price series,
quotes, single indicators, full technical analysis, 52-week range and
multi-symbol comparison.  The cache and engine are built once at
startup and torn down on shutdown; nothing here keeps state of its own.
"""
from __future__ import annotations
import asyncio
import contextlib
import datetime as dt
import re
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from ..core import AnalysisEngine, EngineSettings, ProviderChain, TTLCache
from ..core.errors import EmptySeries, EngineError, UnsupportedIndicator
from ..core.log import get_logger

logger = get_logger("api")

SYMBOL_RE = re.compile(r"^[A-Z0-9.]{1,5}$")


# ----------------------------------------------------------------------
# Models
# ----------------------------------------------------------------------
class OHLCResponse(BaseModel):
    date: dt.date
    open: float
    high: float
    low: float
    close: float
    volume: int


class SignalResponse(BaseModel):
    type: str
    name: str
    strength: str
    rationale: str


class AnalysisResponse(BaseModel):
    symbol: str
    timeRange: str
    indicators: Dict[str, List[Dict[str, Any]]]
    signals: List[SignalResponse]
    sentiment: str
    timestamp: str


class FiftyTwoWeekResponse(BaseModel):
    symbol: str
    fiftyTwoWeekHigh: Optional[float] = Field(None, description="Highest positive high over 1y")
    fiftyTwoWeekLow: Optional[float] = Field(None, description="Lowest positive low over 1y")


def _symbol(raw: str) -> str:
    symbol = raw.strip().upper()
    if not SYMBOL_RE.match(symbol):
        raise HTTPException(400, detail=f"Invalid symbol {raw!r}")
    return symbol


def build_engine(settings: EngineSettings, cache: Optional[TTLCache] = None) -> AnalysisEngine:
    cache = cache or TTLCache()
    chain = ProviderChain.from_settings(settings, cache)
    return AnalysisEngine(chain, cache)


async def _sweep_cache(cache: TTLCache, every: float) -> None:
    while True:
        await asyncio.sleep(every)
        cache.purge_expired()


def create_app(
    settings: Optional[EngineSettings] = None,
    engine: Optional[AnalysisEngine] = None,
) -> FastAPI:
    @contextlib.asynccontextmanager
    async def lifespan(app: FastAPI):
        conf = settings or EngineSettings.from_env()
        app.state.engine = engine or build_engine(conf)
        sweeper = asyncio.create_task(_sweep_cache(app.state.engine.cache, conf.cache_sweep_secs))
        try:
            yield
        finally:
            sweeper.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await sweeper
            app.state.engine.cache.clear()

    app = FastAPI(title="Stock Indicator & Signal API", lifespan=lifespan)

    @app.exception_handler(EngineError)
    async def _engine_error(request: Request, exc: EngineError):
        status = 500
        if isinstance(exc, UnsupportedIndicator):
            status = 400
        elif isinstance(exc, EmptySeries):
            status = 404
        else:
            logger.error("Unhandled engine error on %s: %s", request.url.path, exc)
        return JSONResponse(status_code=status, content=exc.to_dict())

    def _engine(request: Request) -> AnalysisEngine:
        return request.app.state.engine

    # ------------------------------------------------------------------
    # Endpoints
    # ------------------------------------------------------------------
    @app.get("/compare")
    async def compare(
        request: Request,
        symbols: str = Query(..., description="Comma-separated symbols, e.g. AAPL,MSFT"),
        time_range: str = Query("1m", alias="range", description="1d, 5d, 1w, 1m, 3m, 6m, 1y, 5y, max"),
    ) -> Dict[str, Any]:
        wanted = [_symbol(s) for s in symbols.split(",") if s.strip()]
        if not wanted:
            raise HTTPException(400, detail="No symbols requested")
        return await _engine(request).compare(wanted, time_range)

    @app.get("/stocks/{symbol}", response_model=List[OHLCResponse])
    async def get_series(request: Request, symbol: str, time_range: str = Query("1m", alias="range")):
        """Return daily OHLCV bars for the given range."""
        return await _engine(request).get_series(_symbol(symbol), time_range)

    @app.get("/stocks/{symbol}/quote")
    async def get_quote(request: Request, symbol: str) -> Dict[str, Any]:
        return await _engine(request).get_quote(_symbol(symbol))

    @app.get("/stocks/{symbol}/indicators")
    async def get_indicator(
        request: Request,
        symbol: str,
        indicator: str = Query("sma", description="sma, sma50, ema, ema26, macd, rsi, bb, stochastic, atr"),
        time_range: str = Query("1m", alias="range"),
    ) -> List[Dict[str, Any]]:
        return await _engine(request).get_indicator(_symbol(symbol), indicator, time_range)

    @app.get("/stocks/{symbol}/technical-analysis", response_model=AnalysisResponse)
    async def technical_analysis(request: Request, symbol: str, time_range: str = Query("3m", alias="range")):
        return await _engine(request).get_full_analysis(_symbol(symbol), time_range)

    @app.get("/stocks/{symbol}/52week", response_model=FiftyTwoWeekResponse)
    async def fifty_two_week(request: Request, symbol: str):
        return await _engine(request).get_52_week_range(_symbol(symbol))

    return app


app = create_app()
