"""
LRU Eviction Policy Module

This module implements the Least Recently Used (LRU) index that backs
MemoryStore.

LRU Concept:
- Most recently accessed items are at the END of the OrderedDict
- Least recently accessed items are at the BEGINNING
- On access (get/put), move item to end
- On eviction, remove from beginning
"""

from collections import OrderedDict
from typing import Any, Dict, List, Optional, Tuple


class LRUEvictionPolicy:
    """
    Least Recently Used (LRU) eviction policy implementation.

    All operations are O(1) using Python's OrderedDict, which maintains
    insertion order and provides O(1) move_to_end() for reordering.

    Usage:
        lru = LRUEvictionPolicy(max_size=100)
        lru.put("key1", entry)
        lru.get("key1")   # Returns entry, marks as recently used
        lru.peek("key1")  # Returns entry, order untouched

    When the index reaches max_size, putting a new key evicts the least
    recently used one and hands it back to the caller.
    """

    def __init__(self, max_size: int):
        """
        Args:
            max_size: Maximum number of items (must be positive)

        Raises:
            ValueError: If max_size is not positive
        """
        if max_size <= 0:
            raise ValueError("max_size must be positive")
        self.max_size = max_size
        self._items: "OrderedDict[str, Any]" = OrderedDict()

    def get(self, key: str) -> Optional[Any]:
        """Get an item and mark it as recently used."""
        if key not in self._items:
            return None

        self._items.move_to_end(key)
        return self._items[key]

    def peek(self, key: str) -> Optional[Any]:
        """Get an item without updating LRU order."""
        return self._items.get(key)

    def put(self, key: str, value: Any) -> Optional[Tuple[str, Any]]:
        """
        Insert or replace an item, evicting the LRU item if necessary.

        Returns:
            The evicted (key, value) pair, or None if nothing was evicted
        """
        if key in self._items:
            self._items[key] = value
            self._items.move_to_end(key)
            return None

        evicted = None
        if len(self._items) >= self.max_size:
            evicted = self._items.popitem(last=False)

        self._items[key] = value
        return evicted

    def pop(self, key: str) -> Optional[Any]:
        """Remove an item and return it, or None if not present."""
        return self._items.pop(key, None)

    def contains(self, key: str) -> bool:
        """Check membership without updating LRU order."""
        return key in self._items

    def items(self) -> List[Tuple[str, Any]]:
        """Snapshot of all items from LRU (oldest) to MRU (newest)."""
        return list(self._items.items())

    def get_lru_key(self) -> Optional[str]:
        """Key of the least recently used item, without evicting it."""
        if not self._items:
            return None
        return next(iter(self._items))

    def get_mru_key(self) -> Optional[str]:
        """Key of the most recently used item."""
        if not self._items:
            return None
        return next(reversed(self._items))

    def size(self) -> int:
        return len(self._items)

    def is_full(self) -> bool:
        return len(self._items) >= self.max_size

    def clear(self) -> None:
        self._items.clear()

    def get_stats(self) -> Dict[str, Any]:
        """Get index statistics."""
        return {
            "size": len(self._items),
            "max_size": self.max_size,
            "utilization": len(self._items) / self.max_size,
            "lru_key": self.get_lru_key(),
            "mru_key": self.get_mru_key(),
        }
