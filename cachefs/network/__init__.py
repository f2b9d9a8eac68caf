"""Network module for cachefs."""

from .tcp_server import CacheServer

__all__ = ["CacheServer"]
