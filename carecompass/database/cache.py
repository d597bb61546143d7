"""
Short-lived session lookup cache

Saves a store round trip on every authenticated request. An entry never
outlives the session it holds.
"""
import time
from threading import Lock
from typing import Any, Dict, Optional, Tuple

DEFAULT_MAX_ENTRIES = 1024


class TTLCache:
    """
    Thread-safe in-memory cache with TTL (Time To Live)

    set() can cap an entry's lifetime with an absolute expiry (epoch seconds).
    When full, expired entries go first, then the ones closest to expiring.
    """
    def __init__(self, ttl_seconds: int = 60, max_entries: int = DEFAULT_MAX_ENTRIES):
        self.ttl = ttl_seconds
        self.max_entries = max_entries
        self._entries: Dict[str, Tuple[Any, float]] = {}
        self._lock = Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            hit = self._entries.get(key)
            if hit is None:
                return None
            value, deadline = hit
            if time.time() >= deadline:
                del self._entries[key]
                return None
            return value

    def set(self, key: str, value: Any, expires_at: Optional[float] = None):
        now = time.time()
        deadline = now + self.ttl
        if expires_at is not None:
            deadline = min(deadline, expires_at)
        with self._lock:
            if key not in self._entries and len(self._entries) >= self.max_entries:
                self._evict(now)
            self._entries[key] = (value, deadline)

    def _evict(self, now: float):
        stale = [k for k, (_, deadline) in self._entries.items() if deadline <= now]
        for k in stale:
            del self._entries[k]
        if len(self._entries) >= self.max_entries:
            soonest = min(self._entries, key=lambda k: self._entries[k][1])
            del self._entries[soonest]

    def invalidate(self, key: str):
        with self._lock:
            self._entries.pop(key, None)

    def clear(self):
        with self._lock:
            self._entries.clear()


_session_cache = TTLCache(ttl_seconds=30)


def get_session_cache() -> TTLCache:
    return _session_cache
