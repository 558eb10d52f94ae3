"""
Time-bounded caching for region, route search and route detail lookups.
"""
from typing import Any, Callable, Dict, Hashable, Optional
import threading
import time

from busalert.config import CACHE_TTL_SECONDS


class CacheEntry:
    """Stored value with its absolute expiry time."""

    __slots__ = ("value", "expires_at")

    def __init__(self, value: Any, expires_at: float):
        self.value = value
        self.expires_at = expires_at


class _InFlight:
    """Marker for a producer call that other callers can wait on."""

    def __init__(self):
        self.done = threading.Event()
        self.value: Any = None
        self.error: Optional[BaseException] = None


class TTLCache:
    """
    Expiring key/value store.

    Entries expire lazily: a lookup after `expires_at` behaves as a miss,
    but the stale value stays available through `peek` until it is
    overwritten or purged. No eviction beyond TTL.
    """

    def __init__(self, ttl_seconds: float = CACHE_TTL_SECONDS,
                 clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[Hashable, CacheEntry] = {}
        self._in_flight: Dict[Hashable, _InFlight] = {}
        self._lock = threading.Lock()

    def get(self, key: Hashable) -> Optional[Any]:
        """Get a live cached value, or None if absent or expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and self._clock() < entry.expires_at:
                return entry.value
        return None

    def put(self, key: Hashable, value: Any) -> None:
        """Cache a value until now + ttl."""
        with self._lock:
            self._entries[key] = CacheEntry(value, self._clock() + self.ttl_seconds)

    def has(self, key: Hashable) -> bool:
        return self.get(key) is not None

    def peek(self, key: Hashable) -> Optional[Any]:
        """Last stored value for key, ignoring expiry."""
        with self._lock:
            entry = self._entries.get(key)
            return entry.value if entry is not None else None

    def get_or_fetch(self, key: Hashable, producer: Callable[[], Any]) -> Any:
        """
        Return the cached value for key, calling producer on a miss.

        Concurrent callers for the same key wait for the single in-flight
        producer call instead of calling it again. A producer error is
        re-raised to every waiter and nothing is cached.
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and self._clock() < entry.expires_at:
                print(f"[Cache] Hit: {key}")
                return entry.value
            pending = self._in_flight.get(key)
            owner = pending is None
            if owner:
                pending = _InFlight()
                self._in_flight[key] = pending

        if not owner:
            print(f"[Cache] Waiting on in-flight fetch: {key}")
            pending.done.wait()
            if pending.error is not None:
                raise pending.error
            return pending.value

        print(f"[Cache] Miss: {key}")
        try:
            value = producer()
        except BaseException as e:
            pending.error = e
            raise
        else:
            pending.value = value
            self.put(key, value)
            return value
        finally:
            with self._lock:
                self._in_flight.pop(key, None)
            pending.done.set()

    def purge_expired(self) -> int:
        """Drop expired entries. Returns the number removed."""
        with self._lock:
            now = self._clock()
            expired = [key for key, entry in self._entries.items() if now >= entry.expires_at]
            for key in expired:
                del self._entries[key]
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


def coordinate_key(lat: float, lon: float, precision: int) -> str:
    """Quantize a coordinate pair into a cache key fragment."""
    return f"{round(lat, precision)},{round(lon, precision)}"
