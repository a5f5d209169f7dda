"""
In-memory counters with expire-after-write semantics.

Each limiter owns its own instance. Counters are not persisted, so a process
restart resets every window.
"""
import logging
import threading
from collections import OrderedDict
from datetime import datetime, timedelta, timezone
from typing import Callable, Hashable, Optional

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class _Entry:
    __slots__ = ("count", "expires_at")

    def __init__(self, count: int, expires_at: datetime):
        self.count = count
        self.expires_at = expires_at


class TimeWindowedCounterCache:
    """
    Thread-safe mapping of key -> int counter.

    Entries expire ``ttl`` after their last write (increment/decrement); reads
    never extend an entry. When ``max_entries`` is reached, expired entries are
    purged first, then the least recently written ones are evicted.
    """

    def __init__(
        self,
        ttl: timedelta,
        max_entries: int = 10000,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        if ttl <= timedelta(0):
            raise ValueError("ttl must be positive")
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.ttl = ttl
        self.max_entries = max_entries
        self._clock = clock or _utcnow
        self._entries: "OrderedDict[Hashable, _Entry]" = OrderedDict()
        self._lock = threading.Lock()

    def increment(self, key: Hashable) -> int:
        """Add one and return the post-increment value."""
        return self._add(key, 1)

    def decrement(self, key: Hashable) -> int:
        """Subtract one (never below zero) and return the new value."""
        return self._add(key, -1)

    def peek(self, key: Hashable, default: int = 0) -> int:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return default
            if entry.expires_at <= now:
                del self._entries[key]
                return default
            return entry.count

    def invalidate(self, key: Hashable) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        now = self._clock()
        with self._lock:
            self._purge_expired(now)
            return len(self._entries)

    def _add(self, key: Hashable, delta: int) -> int:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None or entry.expires_at <= now:
                count = max(0, delta)
                if key not in self._entries:
                    self._make_room(now)
                self._entries[key] = _Entry(count, now + self.ttl)
            else:
                entry.count = max(0, entry.count + delta)
                entry.expires_at = now + self.ttl
                count = entry.count
            self._entries.move_to_end(key)
            return count

    def _make_room(self, now: datetime) -> None:
        if len(self._entries) < self.max_entries:
            return
        self._purge_expired(now)
        while len(self._entries) >= self.max_entries:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug(f"Counter cache full, evicted {evicted!r}")

    def _purge_expired(self, now: datetime) -> None:
        expired = [key for key, entry in self._entries.items() if entry.expires_at <= now]
        for key in expired:
            del self._entries[key]
