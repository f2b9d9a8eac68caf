"""Exceptions raised by cachefs."""


class CacheFSError(Exception):
    """Base class for all cachefs errors."""


class FileNotFound(CacheFSError, FileNotFoundError):
    """Raised when reading a key that is absent, expired or empty."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"File does not exist at path {path}")


class NotSupported(CacheFSError):
    """Raised when a store lacks an optional capability."""


class ConcurrentModification(CacheFSError):
    """Raised when an atomic composite operation loses a race."""

    def __init__(self, key: str, attempts: int = 1):
        self.key = key
        self.attempts = attempts
        super().__init__(f"Key {key} was modified concurrently ({attempts} attempts)")


class StoreError(CacheFSError):
    """Raised when a remote store cannot be reached or answers with an error."""
