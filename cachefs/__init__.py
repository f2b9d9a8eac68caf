"""
cachefs: A Filesystem on Top of a Key-Value Cache

Lets code written against a filesystem-shaped interface store its files
in a key-value cache, either embedded in-process or behind an asyncio
TCP server.
"""

from .exceptions import (
    CacheFSError,
    ConcurrentModification,
    FileNotFound,
    NotSupported,
    StoreError,
)
from .filesystem import CacheFilesystem
from .store import KeyValueStore, MemoryStore, RemoteStore

__version__ = "1.0.0"

__all__ = [
    "CacheFilesystem",
    "KeyValueStore",
    "MemoryStore",
    "RemoteStore",
    "CacheFSError",
    "ConcurrentModification",
    "FileNotFound",
    "NotSupported",
    "StoreError",
]
