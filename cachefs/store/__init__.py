"""Key-value store backends for cachefs."""

from .base import KeyValueStore
from .eviction import LRUEvictionPolicy
from .memory import MemoryStore
from .remote import RemoteStore

__all__ = ["KeyValueStore", "LRUEvictionPolicy", "MemoryStore", "RemoteStore"]
