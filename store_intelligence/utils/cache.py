"""In-memory TTL cache shared by every signal fetcher.

Usage:
    cache = TTLCache(default_ttl=600)

    cached = cache.get(f"traffic_{store_id}")
    if cached is not None:
        return cached
    # ... upstream call ...
    cache.set(f"traffic_{store_id}", result, ttl=600)

Entries expire only by TTL. Expired entries are removed lazily on the next
read of the same key; there is no size bound and no background sweep, key
cardinality is bounded by the number of active stores.
"""
import threading
import time
from typing import Any, Callable, Optional


class TTLCache:
    """Thread-safe key -> payload store with per-entry expiry."""

    def __init__(self, default_ttl: float = 300, clock: Callable[[], float] = time.monotonic):
        self._store: dict[str, tuple[float, Optional[float], Any]] = {}
        self._lock = threading.Lock()
        self._default_ttl = default_ttl
        self._clock = clock

    def get(self, key: str, default_ttl: Optional[float] = None) -> Any | None:
        """
        Return the cached payload, or None on a miss.

        The TTL given to set() wins; entries stored without one fall back to
        `default_ttl` and then to the cache-wide default.
        """
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return None
            stored_at, entry_ttl, payload = entry
            ttl = entry_ttl if entry_ttl is not None else (
                default_ttl if default_ttl is not None else self._default_ttl
            )
            if self._clock() - stored_at >= ttl:
                del self._store[key]
                return None
            return payload

    def set(self, key: str, payload: Any, ttl: Optional[float] = None) -> None:
        """Store a payload. Last write wins for concurrent writers of the same key."""
        with self._lock:
            self._store[key] = (self._clock(), ttl, payload)

    def delete(self, key: str) -> None:
        with self._lock:
            self._store.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._store.clear()

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)
