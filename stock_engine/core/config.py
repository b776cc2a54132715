"""Runtime configuration for the engine.

Values are read from the environment once, at application startup, and
handed to the components that need them.  Cache lifetimes are fixed per
product according to how quickly the underlying data goes stale.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from .log import get_logger

logger = get_logger("config")

# ──────────────────────────────────────────────────────────────────────────────
# Cache lifetimes (seconds)
# ──────────────────────────────────────────────────────────────────────────────

QUOTE_TTL = 30
SHORT_SERIES_TTL = 60
LONG_SERIES_TTL = 300
SYNTHETIC_SERIES_TTL = 300
INDICATOR_TTL = 300
COMPARISON_TTL = 300
ANALYSIS_TTL = 600
REFERENCE_TTL = 3600

SHORT_RANGES = frozenset({"1d", "5d", "1w", "1m"})


# ──────────────────────────────────────────────────────────────────────────────
# Env helpers (strip quotes/whitespace so .env "KEY=value " doesn’t break things)
# ──────────────────────────────────────────────────────────────────────────────

def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    v = os.getenv(name)
    if v is None:
        return default
    v = v.strip()
    if (v.startswith('"') and v.endswith('"')) or (v.startswith("'") and v.endswith("'")):
        v = v[1:-1].strip()
    return v or default


def _env_bool(name: str, default: bool) -> bool:
    v = _env(name)
    if v is None:
        return default
    return v.lower() not in {"0", "false", "no", "off"}


def _env_float(name: str, default: float) -> float:
    v = _env(name)
    if v is None:
        return default
    try:
        return float(v)
    except ValueError:
        logger.warning("Ignoring %s=%r (not a number); using %s", name, v, default)
        return default


@dataclass(frozen=True)
class EngineSettings:
    use_live_data: bool = True
    alpha_vantage_api_key: Optional[str] = None
    provider_timeout: float = 10.0
    yahoo_base_url: str = "https://query1.finance.yahoo.com"
    alpha_vantage_base_url: str = "https://www.alphavantage.co"
    cache_sweep_secs: float = 600.0

    @classmethod
    def from_env(cls) -> "EngineSettings":
        return cls(
            use_live_data=_env_bool("USE_LIVE_DATA", True),
            alpha_vantage_api_key=_env("ALPHA_VANTAGE_API_KEY"),
            provider_timeout=_env_float("PROVIDER_TIMEOUT_SECS", 10.0),
            yahoo_base_url=(_env("YAHOO_BASE_URL", cls.yahoo_base_url) or "").rstrip("/"),
            alpha_vantage_base_url=(
                _env("ALPHA_VANTAGE_BASE_URL", cls.alpha_vantage_base_url) or ""
            ).rstrip("/"),
            cache_sweep_secs=_env_float("CACHE_SWEEP_SECS", 600.0),
        )


def series_ttl(time_range: str, synthetic: bool) -> int:
    """TTL for a fetched series: live short ranges refresh fastest."""
    if synthetic:
        return SYNTHETIC_SERIES_TTL
    return SHORT_SERIES_TTL if time_range in SHORT_RANGES else LONG_SERIES_TTL
