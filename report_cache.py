"""
In-memory TTL cache for finished reports, keyed by ``<endpoint>-<address>``.
"""
from __future__ import annotations

import copy
import threading
import time
from typing import Any, Callable, Dict, Optional, Tuple


class ReportCache:
    """Single TTL map; every entry expires *ttl* seconds after it was stored."""

    def __init__(self, ttl: float = 600, clock: Callable[[], float] = time.monotonic) -> None:
        self.ttl = ttl
        self._clock = clock
        self._entries: Dict[str, Tuple[float, Any]] = {}
        self._lock = threading.Lock()

    @staticmethod
    def key(endpoint: str, address: str) -> str:
        return f"{endpoint}-{address}"

    def get(self, key: str) -> Optional[Any]:
        """Return a copy of the cached value, or ``None`` if absent or expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, value = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                return None
            return copy.deepcopy(value)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._entries[key] = (self._clock() + self.ttl, copy.deepcopy(value))
            self._purge_expired()

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            self._purge_expired()
            return len(self._entries)

    def _purge_expired(self) -> None:
        now = self._clock()
        for k in [k for k, (exp, _) in self._entries.items() if now >= exp]:
            del self._entries[k]


__all__ = ["ReportCache"]
