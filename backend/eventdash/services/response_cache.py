"""Short-TTL memo for page-1 event listings.

One instance lives on ``app.state`` and is handed to the query engine through
the ``get_response_cache`` dependency. Entries expire ``ttl_seconds`` after
insertion and are purged lazily on lookup; ``max_entries`` bounds the key
count with least-recently-used eviction.
"""
import logging
import threading
import time
from collections import OrderedDict
from typing import Any, Callable, Hashable, Optional

from fastapi import Request

logger = logging.getLogger(__name__)


class ResponseCache:
    def __init__(
        self,
        ttl_seconds: float = 60.0,
        max_entries: Optional[int] = 1024,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: "OrderedDict[Hashable, tuple[float, Any]]" = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: Hashable) -> Any:
        """Return the cached value, or None if absent or expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            inserted_at, value = entry
            if self._clock() - inserted_at >= self.ttl_seconds:
                del self._entries[key]
                return None
            self._entries.move_to_end(key)
            return value

    def set(self, key: Hashable, value: Any) -> None:
        """Store ``value``; an existing entry is overwritten and its TTL restarted."""
        with self._lock:
            self._entries[key] = (self._clock(), value)
            self._entries.move_to_end(key)
            if self.max_entries is not None:
                while len(self._entries) > self.max_entries:
                    evicted, _ = self._entries.popitem(last=False)
                    logger.debug("Evicted listing cache entry %s", evicted)

    def invalidate(self) -> None:
        """Drop every entry. Called after any event or reminder mutation."""
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
        if count:
            logger.info("Cleared %d listing cache entries", count)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


def get_response_cache(request: Request) -> ResponseCache:
    """FastAPI dependency returning the app-wide cache instance."""
    return request.app.state.response_cache
