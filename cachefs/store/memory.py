"""
In-Memory Key-Value Store

An embedded store implementing the full KeyValueStore interface:
- set/get/delete_multi with optional per-key TTL
- gets/cas with per-key version tokens
- keys(prefix) enumeration
- LRU eviction when the store is full
"""

import itertools
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ..config.settings import settings
from .base import KeyValueStore
from .eviction import LRUEvictionPolicy

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Entry:
    value: bytes
    expires_at: float  # 0 means no expiration
    version: int

    def expired(self, now: float) -> bool:
        return bool(self.expires_at) and self.expires_at <= now


class MemoryStore(KeyValueStore):
    """
    Thread-safe in-memory store with TTL, LRU eviction and CAS.

    Every call takes a single lock, so each individual call is atomic.
    Sequences of calls made by a client are not.

    Internal Storage:
        LRUEvictionPolicy mapping key -> _Entry(value, expires_at, version).
        Versions come from a store-wide counter, so a key that is deleted
        and re-created never reuses an old version.

    Attributes:
        max_size: Maximum number of keys allowed in the store
    """

    def __init__(self, max_size: int = None):
        """
        Args:
            max_size: Maximum number of keys (default from settings.MAX_KEYS)
        """
        self.max_size = max_size if max_size is not None else settings.MAX_KEYS
        self._index = LRUEvictionPolicy(self.max_size)
        self._versions = itertools.count(1)
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    # ------------------------------------------------------------------
    # Internal helpers (caller holds the lock)
    # ------------------------------------------------------------------

    def _live(self, key: str, touch: bool = True) -> Optional[_Entry]:
        """Return the unexpired entry for key, dropping it if expired."""
        entry = self._index.peek(key)
        if entry is None:
            return None

        if entry.expired(time.time()):
            # Lazy expiration
            self._index.pop(key)
            return None

        if touch:
            self._index.get(key)
        return entry

    def _write(self, key: str, value: bytes, ttl: int) -> None:
        expires_at = time.time() + ttl if ttl and ttl > 0 else 0
        entry = _Entry(value=value, expires_at=expires_at, version=next(self._versions))
        evicted = self._index.put(key, entry)
        if evicted is not None:
            self._evictions += 1
            logger.debug(f"Evicted LRU key {evicted[0]}")

    # ------------------------------------------------------------------
    # KeyValueStore interface
    # ------------------------------------------------------------------

    def get(self, key: str) -> Optional[bytes]:
        with self._lock:
            entry = self._live(key)
            if entry is None:
                self._misses += 1
                return None
            self._hits += 1
            return entry.value

    def set(self, key: str, value: bytes, ttl: int = 0) -> bool:
        with self._lock:
            self._write(key, value, ttl)
            return True

    def delete(self, key: str) -> bool:
        """
        Delete a single key.

        Returns:
            True if key was deleted, False if it didn't exist or had expired
        """
        with self._lock:
            existed = self._live(key, touch=False) is not None
            self._index.pop(key)
            return existed

    def delete_multi(self, keys: Iterable[str]) -> bool:
        with self._lock:
            all_existed = True
            for key in keys:
                if self._live(key, touch=False) is None:
                    all_existed = False
                self._index.pop(key)
            return all_existed

    def gets(self, key: str) -> Optional[Tuple[bytes, int]]:
        with self._lock:
            entry = self._live(key)
            if entry is None:
                self._misses += 1
                return None
            self._hits += 1
            return entry.value, entry.version

    def cas(self, key: str, value: bytes, version: int, ttl: int = 0) -> bool:
        with self._lock:
            entry = self._live(key, touch=False)
            current = entry.version if entry is not None else 0
            if current != version:
                logger.debug(f"CAS conflict on {key}: expected {version}, found {current}")
                return False
            self._write(key, value, ttl)
            return True

    def keys(self, prefix: str = "") -> List[str]:
        with self._lock:
            now = time.time()
            return [
                key for key, entry in self._index.items()
                if key.startswith(prefix) and not entry.expired(now)
            ]

    # ------------------------------------------------------------------
    # Housekeeping
    # ------------------------------------------------------------------

    def exists(self, key: str) -> bool:
        """Check if a key exists and is not expired."""
        with self._lock:
            return self._live(key, touch=False) is not None

    def size(self) -> int:
        """
        Current number of keys in the store.

        Note: This may include expired keys that haven't been cleaned up yet.
        """
        with self._lock:
            return self._index.size()

    def clear(self) -> None:
        """Remove all keys from the store."""
        with self._lock:
            self._index.clear()

    def cleanup_expired(self) -> int:
        """
        Remove all expired keys from the store (active expiration).

        Returns:
            Number of keys removed
        """
        with self._lock:
            now = time.time()
            expired = [key for key, entry in self._index.items() if entry.expired(now)]
            for key in expired:
                self._index.pop(key)
        if expired:
            logger.debug(f"Removed {len(expired)} expired keys")
        return len(expired)

    def get_stats(self) -> Dict[str, Any]:
        """
        Get statistics about the store.

        Returns:
            Dictionary containing:
            - total_keys: Total keys in store
            - expired_keys: Count of expired (but not yet cleaned) keys
            - active_keys: Count of non-expired keys
            - max_size: Maximum capacity
            - utilization: Current usage as fraction of max_size
            - hits / misses / evictions: Lookup and eviction counters
        """
        with self._lock:
            now = time.time()
            items = self._index.items()
            expired = sum(1 for _, entry in items if entry.expired(now))

            return {
                "total_keys": len(items),
                "expired_keys": expired,
                "active_keys": len(items) - expired,
                "max_size": self.max_size,
                "utilization": len(items) / self.max_size,
                "hits": self._hits,
                "misses": self._misses,
                "evictions": self._evictions,
            }
