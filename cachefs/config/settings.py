"""
cachefs Configuration Settings

This module contains all configuration constants for the cache server,
the store clients and the filesystem adapter.
"""

import os
from dataclasses import dataclass


@dataclass
class Settings:
    """Runtime configuration settings."""

    # Network settings
    HOST: str = os.environ.get("CACHEFS_HOST", "0.0.0.0")
    PORT: int = int(os.environ.get("CACHEFS_PORT", "7171"))

    # Store settings
    MAX_KEYS: int = int(os.environ.get("CACHEFS_MAX_KEYS", "10000"))
    MAX_KEY_LENGTH: int = 250
    MAX_VALUE_LENGTH: int = 1024 * 1024  # Base64-encoded length on the wire

    # TTL settings
    DEFAULT_TTL: int = int(os.environ.get("CACHEFS_DEFAULT_TTL", "0"))  # 0 means no expiration
    CLEANUP_INTERVAL: int = 60  # Seconds between active cleanup runs

    # Connection settings
    READ_BUFFER_SIZE: int = 2 * 1024 * 1024  # Must fit one full request line
    CLIENT_TIMEOUT: float = float(os.environ.get("CACHEFS_CLIENT_TIMEOUT", "5.0"))

    # Filesystem adapter settings
    MARKER_SUFFIX: str = "::lastModified"
    CAS_RETRIES: int = 10

    # Logging settings
    DEBUG: bool = os.environ.get("CACHEFS_DEBUG", "false").lower() == "true"
    LOG_LEVEL: str = os.environ.get("CACHEFS_LOG_LEVEL", "INFO")


# Global settings instance
settings = Settings()
