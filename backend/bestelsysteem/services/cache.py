"""
Process-wide keyed cache used for product lists and system settings.

Entries stay until invalidated, or until they are older than ttl_seconds
when a TTL is configured. Writers call invalidate() after their
transaction commits.
"""

import logging
import threading
import time
from typing import Any, Callable, Dict, Hashable, Tuple

logger = logging.getLogger(__name__)

_MISSING = object()


class KeyedCache:
    """Small thread-safe cache keyed by system id (or any hashable key)."""

    def __init__(self, name: str, ttl_seconds: float = 0.0, clock: Callable[[], float] = time.monotonic):
        self.name = name
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[Hashable, Tuple[float, Any]] = {}
        self._lock = threading.Lock()

    def get(self, key: Hashable, default: Any = None) -> Any:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return default
            stored_at, value = entry
            if self.ttl_seconds and self._clock() - stored_at > self.ttl_seconds:
                del self._entries[key]
                return default
            return value

    def set(self, key: Hashable, value: Any) -> None:
        with self._lock:
            self._entries[key] = (self._clock(), value)

    def invalidate(self, key: Hashable) -> None:
        with self._lock:
            removed = self._entries.pop(key, None)
        if removed is not None:
            logger.debug(f"[{self.name}] invalidated key {key!r}")

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def get_or_load(self, key: Hashable, loader: Callable[[], Any]) -> Any:
        """
        Return the cached value for key, calling loader() on a miss.

        The loader runs outside the lock; two concurrent misses may both load,
        the last one stored wins.
        """
        value = self.get(key, _MISSING)
        if value is not _MISSING:
            return value
        value = loader()
        self.set(key, value)
        logger.debug(f"[{self.name}] loaded key {key!r}")
        return value

    def __contains__(self, key: Hashable) -> bool:
        return self.get(key, _MISSING) is not _MISSING

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
