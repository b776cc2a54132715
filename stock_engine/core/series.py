"""Canonical in-memory OHLCV series.

A series is a pandas DataFrame indexed by calendar ``date`` (ascending,
no duplicates) with float ``open``/``high``/``low``/``close`` columns and
an integer ``volume`` column.  Providers hand raw rows to
:func:`bars_to_frame`; everything downstream only ever sees the
normalized frame.
"""
from __future__ import annotations

import datetime as dt
import math
from typing import Any, Dict, Iterable, List, Mapping

import numpy as np
import pandas as pd

from .errors import MalformedBar
from .log import get_logger

logger = get_logger("series")

OHLC_COLUMNS = ["open", "high", "low", "close"]
COLUMNS = OHLC_COLUMNS + ["volume"]

RANGE_DAYS: Dict[str, int] = {
    "1d": 1,
    "5d": 5,
    "1w": 7,
    "1m": 30,
    "3m": 90,
    "6m": 180,
    "1y": 365,
    "5y": 365 * 5,
    "max": 365 * 10,
}
DEFAULT_RANGE = "1m"


def normalize_range(time_range: str | None) -> str:
    """Map anything outside the range table to the default ``1m``."""
    if time_range and time_range.lower() in RANGE_DAYS:
        return time_range.lower()
    return DEFAULT_RANGE


def range_to_days(time_range: str | None) -> int:
    return RANGE_DAYS[normalize_range(time_range)]


def empty_frame() -> pd.DataFrame:
    df = pd.DataFrame(columns=COLUMNS)
    df.index.name = "date"
    return df


def _to_date(value: Any) -> dt.date:
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    if isinstance(value, pd.Timestamp):
        return value.date()
    return dt.date.fromisoformat(str(value)[:10])


def validate_bar(row: Mapping[str, Any]) -> Dict[str, Any]:
    """Coerce one raw row into a bar dict or raise :class:`MalformedBar`."""
    try:
        bar: Dict[str, Any] = {"date": _to_date(row["date"])}
        for col in OHLC_COLUMNS:
            bar[col] = float(row[col])
        volume = row.get("volume")
        bar["volume"] = 0 if volume is None else float(volume)
    except (KeyError, TypeError, ValueError) as e:
        raise MalformedBar(f"unparseable bar {dict(row)!r}: {e}") from e
    values = [bar[c] for c in COLUMNS]
    if any(math.isnan(v) or math.isinf(v) for v in values):
        raise MalformedBar(f"non-finite field in bar for {bar['date']}")
    if bar["volume"] < 0:
        raise MalformedBar(f"negative volume in bar for {bar['date']}")
    bar["volume"] = int(bar["volume"])
    return bar


def bars_to_frame(rows: Iterable[Mapping[str, Any]], symbol: str = "") -> pd.DataFrame:
    """Build a normalized series from raw rows.

    Malformed rows are dropped (logged), rows are sorted by date and a
    later row for an already seen date replaces the earlier one.
    """
    bars: List[Dict[str, Any]] = []
    dropped = 0
    for row in rows:
        try:
            bars.append(validate_bar(row))
        except MalformedBar as e:
            dropped += 1
            logger.warning("Dropping bar symbol=%s reason=%s", symbol, e)
    if dropped:
        logger.warning("Dropped %d malformed bar(s) for %s", dropped, symbol)
    if not bars:
        return empty_frame()

    df = pd.DataFrame(bars).set_index("date")
    df = df[~df.index.duplicated(keep="last")].sort_index()
    df[OHLC_COLUMNS] = df[OHLC_COLUMNS].astype(float)
    df["volume"] = df["volume"].astype(np.int64)
    return df[COLUMNS]


def is_valid_series(df: pd.DataFrame | None) -> bool:
    """True for a non-empty, sorted frame with the expected columns and finite prices."""
    if df is None or not isinstance(df, pd.DataFrame) or df.empty:
        return False
    if any(c not in df.columns for c in COLUMNS):
        return False
    if not np.isfinite(df[OHLC_COLUMNS].to_numpy(dtype=float)).all():
        return False
    return bool(df.index.is_monotonic_increasing and df.index.is_unique)


def frame_to_records(df: pd.DataFrame) -> List[Dict[str, Any]]:
    """JSON-shaped bar dicts (ISO dates)."""
    return [
        {
            "date": idx.isoformat(),
            "open": float(row["open"]),
            "high": float(row["high"]),
            "low": float(row["low"]),
            "close": float(row["close"]),
            "volume": int(row["volume"]),
        }
        for idx, row in df.iterrows()
    ]
