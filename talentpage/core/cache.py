"""Time-bounded result cache shared by the scraper and the market researcher.

Entries are stored fully built and never mutated in place, so concurrent
readers can only observe a complete value or a miss.
"""

import logging
import time
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)


class TTLCache:
    """In-process cache with a fixed TTL per instance.

    Usage::

        cache = TTLCache(ttl_seconds=3600, name="brand")
        if cache.has(key):
            return cache.get(key)
        cache.set(key, value)
    """

    def __init__(
        self,
        ttl_seconds: float,
        *,
        name: str = "cache",
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl_seconds
        self._name = name
        self._clock = clock
        self._entries: dict[str, tuple[float, Any]] = {}
        self._next_sweep = clock() + ttl_seconds

    def get(self, key: str) -> Any | None:
        """Return the cached value, or None when missing or expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if self._clock() >= expires_at:
            self._entries.pop(key, None)
            logger.debug("%s cache entry expired: %s", self._name, key)
            return None
        return value

    def set(self, key: str, value: Any) -> None:
        now = self._clock()
        # Sweep at most once per TTL so keys that are never read again still go.
        if now >= self._next_sweep:
            removed = self.evict_expired()
            if removed:
                logger.debug("%s cache swept %d expired entries", self._name, removed)
            self._next_sweep = now + self._ttl
        self._entries[key] = (now + self._ttl, value)

    def has(self, key: str) -> bool:
        return self.get(key) is not None

    def evict_expired(self) -> int:
        """Drop every expired entry. Returns the number removed."""
        now = self._clock()
        expired = [k for k, (exp, _) in self._entries.items() if now >= exp]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)
