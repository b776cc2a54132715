"""Error types raised (or captured) by the engine.

Every error remembers the symbol it concerns and, where relevant, the
indicator and time range, so callers can report them without parsing
messages.
"""
from __future__ import annotations

from typing import Optional


class EngineError(Exception):
    def __init__(
        self,
        message: str,
        symbol: Optional[str] = None,
        indicator: Optional[str] = None,
        time_range: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.symbol = symbol
        self.indicator = indicator
        self.time_range = time_range

    def to_dict(self) -> dict:
        out = {"error": type(self).__name__, "message": self.message}
        if self.symbol is not None:
            out["symbol"] = self.symbol
        if self.indicator is not None:
            out["indicator"] = self.indicator
        if self.time_range is not None:
            out["timeRange"] = self.time_range
        return out


class ProviderFailure(EngineError):
    """One provider attempt failed; the chain moves on to the next one."""

    def __init__(self, provider: str, message: str, symbol: Optional[str] = None,
                 time_range: Optional[str] = None) -> None:
        super().__init__(f"{provider}: {message}", symbol=symbol, time_range=time_range)
        self.provider = provider


class EmptySeries(EngineError):
    def __init__(self, symbol: str, time_range: Optional[str] = None) -> None:
        super().__init__(f"No data for symbol {symbol}", symbol=symbol, time_range=time_range)


class UnsupportedIndicator(EngineError):
    def __init__(self, indicator: str, symbol: Optional[str] = None,
                 time_range: Optional[str] = None) -> None:
        super().__init__(
            f"Unsupported indicator: {indicator}",
            symbol=symbol,
            indicator=indicator,
            time_range=time_range,
        )


class MalformedBar(EngineError):
    pass
