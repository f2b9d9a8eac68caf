"""
Caching Filesystem Adapter

Presents a key-value store as a filesystem. Every method translates a
filesystem verb into get/set/delete calls on the store.

Storage layout:
    <key>                  -> file contents (bytes)
    <key>::lastModified    -> Unix timestamp of the last write (ASCII digits)

The marker key is the only thing exists() looks at. If the marker is
gone while the value key is still there (expired separately, written
by another client), the file is reported as missing.

Directories do not exist in a key-value store. The directory verbs
succeed without touching anything; files()/all_files() list keys by
prefix when the store can enumerate them.

Composite operations (append, prepend, move, copy, link) are sequences
of store calls. By default nothing serializes them, so callers racing
on one key can lose updates. With atomic=True, append/prepend use
gets/cas and move re-checks the source version before deleting it.
"""

import logging
import time
from typing import Callable, Iterable, List, Optional, Union

from .config.settings import settings
from .exceptions import ConcurrentModification, FileNotFound, NotSupported
from .store.base import KeyValueStore

logger = logging.getLogger(__name__)

Contents = Union[bytes, bytearray, str]


class CacheFilesystem:
    """
    Filesystem-shaped facade over a KeyValueStore.

    Holds no state besides the store handle and its options.

    Usage:
        fs = CacheFilesystem(MemoryStore())
        fs.put("views/home.html", "<h1>hi</h1>")
        fs.get("views/home.html")            # b"<h1>hi</h1>"
        fs.last_modified("views/home.html")  # 1760870000

    Attributes:
        store: The key-value store all calls are forwarded to
        default_ttl: TTL in seconds applied to every write (0 = none)
        marker_suffix: Suffix forming the modification-marker key
        atomic: Use CAS primitives for append/prepend/move
    """

    def __init__(
            self,
            store: KeyValueStore,
            default_ttl: int = None,
            marker_suffix: str = None,
            atomic: bool = False,
    ):
        """
        Args:
            store: Backing key-value store
            default_ttl: TTL for every write (default from settings.DEFAULT_TTL)
            marker_suffix: Marker key suffix (default from settings.MARKER_SUFFIX)
            atomic: Enable CAS-backed composites; the store must support gets/cas

        Raises:
            NotSupported: If atomic is requested on a store without CAS
        """
        if atomic and not store.supports_cas:
            raise NotSupported(f"{type(store).__name__} has no gets/cas; atomic mode unavailable")

        self.store = store
        self.default_ttl = default_ttl if default_ttl is not None else settings.DEFAULT_TTL
        self.marker_suffix = marker_suffix if marker_suffix is not None else settings.MARKER_SUFFIX
        self.atomic = atomic

    def _marker_key(self, key: str) -> str:
        return key + self.marker_suffix

    def _is_marker(self, key: str) -> bool:
        return key.endswith(self.marker_suffix)

    @staticmethod
    def _to_bytes(contents: Contents) -> bytes:
        if isinstance(contents, str):
            return contents.encode("utf-8")
        return bytes(contents)

    def _touch(self, key: str) -> bool:
        """Write the modification marker for key."""
        stamp = str(int(time.time())).encode("ascii")
        return self.store.set(self._marker_key(key), stamp, ttl=self.default_ttl)

    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------

    def exists(self, key: str) -> bool:
        """Determine if a file exists (its modification marker is present)."""
        return bool(self.store.get(self._marker_key(key)))

    def missing(self, key: str) -> bool:
        """Determine if a file is missing."""
        return not self.exists(key)

    def get(self, key: str, lock: bool = False) -> bytes:
        """
        Get the contents of a file.

        lock is accepted for interface compatibility and ignored.

        Raises:
            FileNotFound: If the value is absent, expired or empty
        """
        data = self.store.get(key)
        if not data:
            raise FileNotFound(key)
        return data

    def put(self, key: str, contents: Contents, lock: bool = False) -> bool:
        """
        Write the contents of a file, replacing whatever was there.

        The value is written first and the marker second, so a reader
        never sees a marker for a value that was not stored. The marker
        key is the longer of the two, so it is checked against the
        store's key limits before anything is written.

        Returns:
            True if both the value and the marker were stored

        Raises:
            Whatever the store's check_key() raises for an unstorable key
        """
        self.store.check_key(self._marker_key(key))

        stored = self.store.set(key, self._to_bytes(contents), ttl=self.default_ttl)
        if not stored:
            logger.warning(f"Store refused write for {key}")
            return False
        if not self._touch(key):
            logger.warning(f"Store refused modification marker for {key}")
            return False
        return True

    def append(self, key: str, data: Contents) -> bool:
        """Append to a file, creating it if it does not exist."""
        data = self._to_bytes(data)
        if self.atomic:
            return self._update(key, lambda current: current + data)

        if self.exists(key):
            return self.put(key, self.get(key) + data)

        return self.put(key, data)

    def prepend(self, key: str, data: Contents) -> bool:
        """Prepend to a file, creating it if it does not exist."""
        data = self._to_bytes(data)
        if self.atomic:
            return self._update(key, lambda current: data + current)

        if self.exists(key):
            return self.put(key, data + self.get(key))

        return self.put(key, data)

    def _update(self, key: str, combine: Callable[[bytes], bytes]) -> bool:
        """
        Read-modify-write key through gets/cas, retrying on conflict.

        The value record is the source of truth here, not the marker:
        a concurrent writer's marker lands after its value, so checking
        the marker would discard values that are already committed.

        Raises:
            ConcurrentModification: If every attempt lost its race
        """
        self.store.check_key(self._marker_key(key))

        retries = settings.CAS_RETRIES
        for attempt in range(1, retries + 1):
            found = self.store.gets(key)
            current, version = found if found is not None else (b"", 0)

            if self.store.cas(key, combine(current), version, ttl=self.default_ttl):
                if not self._touch(key):
                    logger.warning(f"Store refused modification marker for {key}")
                    return False
                return True

            logger.debug(f"CAS retry {attempt}/{retries} for {key}")

        raise ConcurrentModification(key, retries)

    def chmod(self, key: str, mode: Optional[int] = None) -> bool:
        """Permissions are not stored; always succeeds."""
        return True

    def delete(self, *keys: Union[str, Iterable[str]]) -> bool:
        """
        Delete one or more files and their modification markers.

        Accepts delete("a"), delete("a", "b") or delete(["a", "b"]).
        Everything goes to the store in a single batch call.

        Returns:
            The store's batch result: True only if every value and
            marker key was present
        """
        if len(keys) == 1 and not isinstance(keys[0], str):
            keys = tuple(keys[0])

        batch: List[str] = []
        for key in keys:
            batch.append(key)
            batch.append(self._marker_key(key))

        if not batch:
            return True
        return self.store.delete_multi(batch)

    def move(self, key: str, target: str) -> bool:
        """
        Move a file to a new location.

        Raises:
            FileNotFound: If the source does not exist
            ConcurrentModification: In atomic mode, if the source changed
                while it was being copied
        """
        if key == target:
            self.get(key)
            return True

        if self.atomic:
            return self._move_checked(key, target)

        if not self.put(target, self.get(key)):
            logger.warning(f"Move {key} -> {target} aborted: copy failed")
            return False
        self.delete(key)
        return True

    def _move_checked(self, key: str, target: str) -> bool:
        found = self.store.gets(key)
        if found is None or not found[0]:
            raise FileNotFound(key)
        value, version = found

        if not self.put(target, value):
            logger.warning(f"Move {key} -> {target} aborted: copy failed")
            return False

        after = self.store.gets(key)
        if after is None or after[1] != version:
            raise ConcurrentModification(key)

        self.delete(key)
        return True

    def copy(self, key: str, target: str) -> bool:
        """
        Copy a file to a new location.

        Raises:
            FileNotFound: If the source does not exist
        """
        return self.put(target, self.get(key))

    def link(self, target: str, link: str) -> bool:
        """
        "Link" a file by duplicating its contents under a second key.

        The two keys are independent afterwards.

        Raises:
            FileNotFound: If the target does not exist
        """
        return self.put(link, self.get(target))

    def last_modified(self, key: str) -> int:
        """Get the file's last modification time, or 0 if unknown."""
        raw = self.store.get(self._marker_key(key))
        if not raw:
            return 0
        try:
            return int(raw)
        except ValueError:
            logger.warning(f"Unreadable modification marker for {key}: {raw!r}")
            return 0

    def size(self, key: str) -> int:
        """
        Get the size of a file in bytes.

        Raises:
            FileNotFound: If the file does not exist
        """
        return len(self.get(key))

    # ------------------------------------------------------------------
    # Listing
    # ------------------------------------------------------------------

    @staticmethod
    def _prefix(directory: str) -> str:
        """Key prefix for a directory; the root maps to the empty prefix."""
        return directory.rstrip("/") + "/" if directory.strip("/") else ""

    def _list(self, prefix: str) -> List[str]:
        """Files under prefix, judged by their markers the same way exists() is."""
        if not self.store.supports_keys:
            raise NotSupported(f"{type(self.store).__name__} cannot list files")

        listed = self.store.keys(prefix)
        markers = {key for key in listed if self._is_marker(key)}
        return sorted(
            key for key in listed
            if not self._is_marker(key) and self._marker_key(key) in markers
        )

    def files(self, directory: str = "") -> List[str]:
        """
        List the files directly inside a directory.

        Raises:
            NotSupported: If the store cannot enumerate keys
        """
        prefix = self._prefix(directory)
        return [key for key in self._list(prefix) if "/" not in key[len(prefix):]]

    def all_files(self, directory: str = "") -> List[str]:
        """
        List every file below a directory, recursively.

        Raises:
            NotSupported: If the store cannot enumerate keys
        """
        return self._list(self._prefix(directory))

    # ------------------------------------------------------------------
    # Directories (no-ops)
    # ------------------------------------------------------------------

    def make_directory(self, path: str, mode: int = 0o755, recursive: bool = False, force: bool = False) -> bool:
        """Create a directory. Nothing to create; always succeeds."""
        return True

    def move_directory(self, source: str, destination: str, overwrite: bool = False) -> bool:
        return True

    def copy_directory(self, directory: str, destination: str, options: Optional[int] = None) -> bool:
        return True

    def delete_directory(self, directory: str, preserve: bool = False) -> bool:
        """Recursively delete a directory. Entries below it are left alone."""
        return True

    def delete_directories(self, directory: str) -> bool:
        return True

    def clean_directory(self, directory: str) -> bool:
        return True

    def __repr__(self) -> str:
        return f"CacheFilesystem(store={self.store!r}, atomic={self.atomic})"
