"""Common types for OHLCV data providers.

A provider never raises out of ``try_fetch``/``try_quote``: it returns a
result that holds either the data or the :class:`ProviderFailure` that
explains why there is none.  The chain inspects results instead of
catching exceptions.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol

import pandas as pd

from .errors import ProviderFailure


@dataclass
class FetchResult:
    provider: str
    series: Optional[pd.DataFrame] = None
    error: Optional[ProviderFailure] = None

    @property
    def ok(self) -> bool:
        return self.series is not None and not self.series.empty and self.error is None


@dataclass
class QuoteResult:
    provider: str
    quote: Optional[Dict[str, Any]] = None
    error: Optional[ProviderFailure] = None

    @property
    def ok(self) -> bool:
        return bool(self.quote) and self.error is None


class DataProvider(Protocol):
    name: str
    synthetic: bool

    async def try_fetch(self, symbol: str, time_range: str) -> FetchResult:
        ...

    async def try_quote(self, symbol: str) -> QuoteResult:
        ...
