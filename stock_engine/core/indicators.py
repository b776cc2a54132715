"""Implement common technical indicators using pure pandas.

This module provides stand‑alone implementations of SMA, EMA, RSI,
MACD, Bollinger Bands, the Stochastic Oscillator and ATR without
relying on external TA libraries.  Every function returns output
aligned to the input index; leading points without enough history are
NaN and nothing here raises on NaN or degenerate input.
"""

from __future__ import annotations
import pandas as pd
import numpy as np


def compute_sma(close: pd.Series, window: int) -> pd.Series:
    """
    Compute the simple moving average (SMA) over the given window.
    Missing values in the initial window remain NaN to avoid look‑ahead.
    """
    return close.astype(float).rolling(window=window, min_periods=window).mean()


def _valid_runs(values: pd.Series):
    """Yield each maximal run of consecutive non-NaN values."""
    valid = values.notna()
    run_id = (valid != valid.shift()).cumsum()
    for _, run in values[valid].groupby(run_id[valid]):
        yield run


def compute_ema(close: pd.Series, window: int) -> pd.Series:
    """
    Compute the exponential moving average (EMA) with ``k = 2/(window+1)``.

    The first defined value is the plain average of the first ``window``
    valid inputs; leading NaNs (e.g. the warm-up of another indicator)
    are skipped before seeding.  A NaN further in breaks the average,
    which is re-seeded once ``window`` valid inputs follow it.
    """
    values = close.astype(float).reset_index(drop=True)
    out = pd.Series(np.nan, index=values.index)
    for run in _valid_runs(values):
        if len(run) < window:
            continue
        seeded = run.iloc[window - 1:].copy()
        seeded.iloc[0] = run.iloc[:window].mean()
        out.loc[seeded.index] = seeded.ewm(alpha=2.0 / (window + 1), adjust=False).mean()
    return pd.Series(out.to_numpy(), index=close.index)


def _rsi_from_averages(avg_gain: np.ndarray, avg_loss: np.ndarray) -> np.ndarray:
    # avg_loss == 0 saturates at 100; a flat window (no gains either) is 50
    with np.errstate(divide="ignore", invalid="ignore"):
        rsi = 100.0 - 100.0 / (1.0 + avg_gain / avg_loss)
    rsi = np.where((avg_loss == 0) & (avg_gain > 0), 100.0, rsi)
    rsi = np.where((avg_loss == 0) & (avg_gain == 0), 50.0, rsi)
    return rsi


def compute_rsi(close: pd.Series, window: int = 14) -> pd.Series:
    """
    Compute the Relative Strength Index (RSI) using Wilder’s method.
    RSI oscillates between 0 and 100. Oversold <30, overbought >70.

    The averages are seeded with the mean gain/loss of the first
    ``window`` price changes, so the first value lands on index ``window``.
    A missing close voids the changes on both sides of it and the
    averages start over from the next ``window`` complete changes.
    """
    delta = close.astype(float).diff().reset_index(drop=True)
    out = pd.Series(np.nan, index=delta.index)
    for run in _valid_runs(delta):
        if len(run) < window:
            continue
        gain = run.clip(lower=0.0)
        loss = (-run).clip(lower=0.0)
        g = gain.iloc[window - 1:].copy()
        l = loss.iloc[window - 1:].copy()
        g.iloc[0] = gain.iloc[:window].mean()
        l.iloc[0] = loss.iloc[:window].mean()
        avg_gain = g.ewm(alpha=1.0 / window, adjust=False).mean().to_numpy()
        avg_loss = l.ewm(alpha=1.0 / window, adjust=False).mean().to_numpy()
        out.loc[g.index] = _rsi_from_averages(avg_gain, avg_loss)
    return pd.Series(out.to_numpy(), index=close.index)


def compute_macd(
    close: pd.Series, fast: int = 12, slow: int = 26, signal: int = 9
) -> pd.DataFrame:
    """
    Compute the Moving Average Convergence Divergence (MACD).
    Returns a DataFrame with columns macd, signal and histogram.
    """
    ema_fast = compute_ema(close, fast)
    ema_slow = compute_ema(close, slow)
    macd_line = ema_fast - ema_slow
    signal_line = compute_ema(macd_line, signal)
    histogram = macd_line - signal_line
    return pd.DataFrame(
        {"macd": macd_line, "signal": signal_line, "histogram": histogram}
    )


def compute_bollinger(
    close: pd.Series, window: int = 20, n_std: float = 2.0
) -> pd.DataFrame:
    """
    Compute Bollinger Bands (upper, middle, lower) using a rolling mean
    (middle band) and rolling population standard deviation.  Missing
    values in the initial window remain NaN.
    """
    close = close.astype(float)
    mid = close.rolling(window=window, min_periods=window).mean()
    std = close.rolling(window=window, min_periods=window).std(ddof=0)
    upper = mid + n_std * std
    lower = mid - n_std * std
    return pd.DataFrame({"upper": upper, "middle": mid, "lower": lower})


def compute_stochastic(
    high: pd.Series,
    low: pd.Series,
    close: pd.Series,
    window: int = 14,
    smooth: int = 3,
) -> pd.DataFrame:
    """
    Compute the Stochastic Oscillator.  %K places the close inside the
    high/low range of the last ``window`` bars; %D is the SMA of %K.
    A zero-width range yields %K = 50.
    """
    lowest = low.astype(float).rolling(window=window, min_periods=window).min()
    highest = high.astype(float).rolling(window=window, min_periods=window).max()
    span = highest - lowest
    with np.errstate(divide="ignore", invalid="ignore"):
        k = (close.astype(float) - lowest) / span * 100.0
    k = k.where(span != 0, 50.0)
    d = k.rolling(window=smooth, min_periods=smooth).mean()
    return pd.DataFrame({"k": k, "d": d})


def compute_true_range(high: pd.Series, low: pd.Series, close: pd.Series) -> pd.Series:
    """True range; undefined on the first bar, which has no previous close."""
    prev_close = close.astype(float).shift(1)
    ranges = pd.concat(
        [high - low, (high - prev_close).abs(), (low - prev_close).abs()], axis=1
    )
    return ranges.max(axis=1, skipna=False)


def compute_atr(
    high: pd.Series, low: pd.Series, close: pd.Series, window: int = 14
) -> pd.Series:
    """
    Compute the Average True Range as the SMA of the true range.
    """
    tr = compute_true_range(high.astype(float), low.astype(float), close)
    return tr.rolling(window=window, min_periods=window).mean()
