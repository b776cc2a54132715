"""In-memory key/value cache with a TTL per write.

One instance is created at application startup and passed to the
provider chain and the analysis engine.  Individual ``get``/``set``
calls are atomic; the lock is never held while computing or fetching a
value, so concurrent writers to the same key simply race and the last
one wins.
"""
from __future__ import annotations

import threading
import time
from typing import Any, Callable, Dict, Optional, Tuple

from .log import get_logger

logger = get_logger("cache")


def cache_key(operation: str, *parts: Any) -> str:
    """Deterministic key, e.g. ``indicator_AAPL_rsi_1m``."""
    return "_".join([operation, *(str(p) for p in parts if p is not None)])


class TTLCache:
    """Thread-safe cache; expired entries behave as absent."""

    def __init__(self, default_ttl: float = 300.0, clock: Callable[[], float] = time.monotonic):
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: Dict[str, Tuple[Any, float]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                logger.debug("Cache EXPIRED: %s", key)
                return None
        logger.debug("Cache HIT: %s", key)
        return value

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        ttl = self.default_ttl if ttl is None else ttl
        with self._lock:
            self._entries[key] = (value, self._clock() + ttl)

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def purge_expired(self) -> int:
        """Drop every expired entry; returns how many were removed."""
        with self._lock:
            now = self._clock()
            expired = [k for k, (_, exp) in self._entries.items() if now >= exp]
            for k in expired:
                del self._entries[k]
        if expired:
            logger.debug("Cache sweep removed %d entries", len(expired))
        return len(expired)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
