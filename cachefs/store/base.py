"""
Key-Value Store Interface

The filesystem adapter only talks to a store through this interface.
The three core methods mirror a memcached-style client; the remaining
methods are optional capabilities that a store may or may not offer.
"""

from abc import ABC, abstractmethod
from typing import Iterable, List, Optional, Tuple

from ..exceptions import NotSupported


class KeyValueStore(ABC):
    """
    Abstract key-value store consumed by CacheFilesystem.

    Required:
        get(key)              -> bytes or None
        set(key, value, ttl)  -> bool
        delete_multi(keys)    -> bool

    Hook (no-op unless overridden):
        check_key(key)        -> raises if the store cannot hold key

    Optional (raise NotSupported unless overridden):
        gets(key)                      -> (bytes, version) or None
        cas(key, value, version, ttl)  -> bool
        keys(prefix)                   -> list of live keys
    """

    @abstractmethod
    def get(self, key: str) -> Optional[bytes]:
        """Return the value for key, or None if absent or expired."""
        ...

    @abstractmethod
    def set(self, key: str, value: bytes, ttl: int = 0) -> bool:
        """Store value under key unconditionally."""
        ...

    @abstractmethod
    def delete_multi(self, keys: Iterable[str]) -> bool:
        """Delete every key in one call. True only if all of them existed."""
        ...

    def check_key(self, key: str) -> None:
        """
        Raise if key cannot be stored. Stores without key limits accept anything.

        Lets callers validate every key of a multi-key write up front.
        """

    def gets(self, key: str) -> Optional[Tuple[bytes, int]]:
        """Return (value, version) for key, or None if absent."""
        raise NotSupported(f"{type(self).__name__} does not support gets")

    def cas(self, key: str, value: bytes, version: int, ttl: int = 0) -> bool:
        """
        Compare-and-swap write.

        Stores value only if the current version of key equals version.
        A version of 0 means "key must not exist yet".

        Returns:
            True if stored, False on version mismatch
        """
        raise NotSupported(f"{type(self).__name__} does not support cas")

    def keys(self, prefix: str = "") -> List[str]:
        """Return all live keys starting with prefix."""
        raise NotSupported(f"{type(self).__name__} cannot enumerate keys")

    @property
    def supports_cas(self) -> bool:
        """True if gets()/cas() are implemented."""
        return type(self).cas is not KeyValueStore.cas

    @property
    def supports_keys(self) -> bool:
        """True if keys() is implemented."""
        return type(self).keys is not KeyValueStore.keys
