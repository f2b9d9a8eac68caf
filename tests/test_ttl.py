"""
Tests for TTL Support

These tests verify Time-To-Live (TTL) functionality:
- Keys expire after specified TTL
- Expired keys behave as absent for every store call
- Lazy and active cleanup of expired keys
- Expiry seen through CacheFilesystem

Run with: python -m pytest tests/test_ttl.py -v

Note: Some tests use time.sleep() and may be slow.
Run with -m "not slow" to skip slow tests.
"""

import time

import pytest

from cachefs.exceptions import FileNotFound
from cachefs.filesystem import CacheFilesystem
from cachefs.store.memory import MemoryStore


class TestTTLBasic:
    """Test basic TTL functionality."""

    def test_set_with_zero_ttl(self, store: MemoryStore):
        """TTL=0 means no expiration."""
        store.set("key", b"value", ttl=0)
        assert store.get("key") == b"value"

    def test_key_accessible_before_expiry(self, store: MemoryStore):
        store.set("key", b"value", ttl=10)

        assert store.get("key") == b"value"
        assert store.exists("key") is True

    @pytest.mark.slow
    def test_key_expires_after_ttl(self, store: MemoryStore):
        store.set("key", b"value", ttl=1)
        assert store.get("key") == b"value"

        time.sleep(1.1)

        assert store.get("key") is None
        assert store.gets("key") is None
        assert store.exists("key") is False

    @pytest.mark.slow
    def test_delete_expired_key_returns_false(self, store: MemoryStore):
        store.set("key", b"value", ttl=1)
        time.sleep(1.1)

        assert store.delete("key") is False
        assert store.delete_multi(["key"]) is False

    @pytest.mark.slow
    def test_cas_treats_expired_as_missing(self, store: MemoryStore):
        store.set("key", b"value", ttl=1)
        _, version = store.gets("key")
        time.sleep(1.1)

        assert store.cas("key", b"new", version) is False
        assert store.cas("key", b"new", 0) is True

    @pytest.mark.slow
    def test_keys_skips_expired(self, store: MemoryStore):
        store.set("short", b"v", ttl=1)
        store.set("long", b"v", ttl=60)
        time.sleep(1.1)

        assert store.keys() == ["long"]


class TestTTLUpdate:
    """Test TTL behavior on updates."""

    @pytest.mark.slow
    def test_update_resets_ttl(self, store: MemoryStore):
        store.set("key", b"value1", ttl=1)
        time.sleep(0.5)
        store.set("key", b"value2", ttl=2)
        time.sleep(0.7)  # Original would have expired

        assert store.get("key") == b"value2"

    @pytest.mark.slow
    def test_update_removes_ttl(self, store: MemoryStore):
        store.set("key", b"value1", ttl=1)
        store.set("key", b"value2", ttl=0)
        time.sleep(1.1)

        assert store.get("key") == b"value2"


class TestTTLCleanup:
    """Test lazy and active cleanup of expired keys."""

    @pytest.mark.slow
    def test_get_removes_expired_key(self, store: MemoryStore):
        store.set("key", b"value", ttl=1)
        time.sleep(1.1)

        assert store.get("key") is None
        assert store.size() == 0

    @pytest.mark.slow
    def test_cleanup_expired_removes_keys(self, store: MemoryStore):
        store.set("key1", b"value1", ttl=1)
        store.set("key2", b"value2", ttl=1)
        store.set("key3", b"value3", ttl=0)
        time.sleep(1.1)

        assert store.cleanup_expired() == 2
        assert store.size() == 1
        assert store.get("key3") == b"value3"

    def test_cleanup_expired_empty_store(self, store: MemoryStore):
        assert store.cleanup_expired() == 0

    def test_cleanup_no_expired_keys(self, store: MemoryStore):
        store.set("key1", b"value1", ttl=60)
        store.set("key2", b"value2", ttl=0)

        assert store.cleanup_expired() == 0
        assert store.size() == 2

    @pytest.mark.slow
    def test_get_stats_shows_expired(self, store: MemoryStore):
        store.set("key1", b"value1", ttl=1)
        store.set("key2", b"value2", ttl=0)
        time.sleep(1.1)

        stats = store.get_stats()

        assert stats["total_keys"] == 2
        assert stats["expired_keys"] == 1
        assert stats["active_keys"] == 1


class TestTTLThroughFilesystem:
    """Expiry is delegated to the store; the adapter just reports it."""

    @pytest.mark.slow
    def test_file_expires(self, store: MemoryStore):
        fs = CacheFilesystem(store, default_ttl=1)
        fs.put("f", "data")
        assert fs.exists("f") is True

        time.sleep(1.1)

        assert fs.exists("f") is False
        assert fs.last_modified("f") == 0
        with pytest.raises(FileNotFound):
            fs.get("f")

    @pytest.mark.slow
    def test_expired_marker_hides_live_value(self, store: MemoryStore):
        """Marker expiring before its value makes the file look missing."""
        fs = CacheFilesystem(store)
        fs.put("f", "data")
        store.set("f::lastModified", b"1700000000", ttl=1)

        time.sleep(1.1)

        assert fs.exists("f") is False
        assert fs.get("f") == b"data"
