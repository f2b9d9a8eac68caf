"""
Pytest Configuration and Fixtures

This module provides shared fixtures and configuration for all tests.
"""

import asyncio
import socket
import threading
import time
from contextlib import closing
from typing import AsyncGenerator, Generator

import pytest
import pytest_asyncio

from cachefs.filesystem import CacheFilesystem
from cachefs.network.tcp_server import CacheServer
from cachefs.protocol.parser import ProtocolParser
from cachefs.store.eviction import LRUEvictionPolicy
from cachefs.store.memory import MemoryStore
from cachefs.store.remote import RemoteStore


def find_free_port() -> int:
    """Find an available port for testing."""
    with closing(socket.socket(socket.AF_INET, socket.SOCK_STREAM)) as s:
        s.bind(('', 0))
        s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        return s.getsockname()[1]


# ============================================================================
# Store Fixtures
# ============================================================================

@pytest.fixture
def store() -> MemoryStore:
    """Create a fresh MemoryStore with default size (100 keys)."""
    return MemoryStore(max_size=100)


@pytest.fixture
def small_store() -> MemoryStore:
    """Create a MemoryStore with small capacity for eviction testing (5 keys)."""
    return MemoryStore(max_size=5)


@pytest.fixture
def lru_cache() -> LRUEvictionPolicy:
    """Create an LRU index for testing (5 items max)."""
    return LRUEvictionPolicy(max_size=5)


# ============================================================================
# Filesystem Fixtures
# ============================================================================

@pytest.fixture
def fs(store: MemoryStore) -> CacheFilesystem:
    """CacheFilesystem over a fresh MemoryStore, non-atomic."""
    return CacheFilesystem(store)


@pytest.fixture
def atomic_fs(store: MemoryStore) -> CacheFilesystem:
    """CacheFilesystem over a fresh MemoryStore with CAS-backed composites."""
    return CacheFilesystem(store, atomic=True)


# ============================================================================
# Protocol Fixtures
# ============================================================================

@pytest.fixture
def parser() -> ProtocolParser:
    """Create a ProtocolParser instance."""
    return ProtocolParser()


# ============================================================================
# Async Server Fixtures
# ============================================================================

@pytest.fixture
def server_port() -> int:
    """Get a free port for server testing."""
    return find_free_port()


@pytest_asyncio.fixture
async def server(server_port: int) -> AsyncGenerator[CacheServer, None]:
    """
    Create and start a server instance on the test's event loop.

    For use with raw asyncio clients only; blocking clients would
    stall the loop the server runs on.
    """
    srv = CacheServer(host='127.0.0.1', port=server_port, cleanup_interval=0)

    server_task = asyncio.create_task(srv.start())
    await asyncio.sleep(0.1)

    yield srv

    await srv.stop()
    server_task.cancel()
    try:
        await server_task
    except asyncio.CancelledError:
        pass


class AsyncClient:
    """
    Helper class for testing server interactions at the protocol level.

    Usage:
        async with AsyncClient('127.0.0.1', 7171) as client:
            response = await client.send_command("SET key dmFsdWU=")
            assert response == "OK stored"
    """

    def __init__(self, host: str, port: int):
        self.host = host
        self.port = port
        self.reader = None
        self.writer = None

    async def connect(self) -> None:
        self.reader, self.writer = await asyncio.open_connection(self.host, self.port)

    async def disconnect(self) -> None:
        if self.writer:
            self.writer.close()
            try:
                await self.writer.wait_closed()
            except ConnectionError:
                pass

    async def send_command(self, command: str) -> str:
        """Send a command and return the response line without newline."""
        if not command.endswith('\n'):
            command += '\n'

        self.writer.write(command.encode())
        await self.writer.drain()

        response = await self.reader.readline()
        return response.decode().strip()

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.disconnect()


@pytest.fixture
def client_factory(server_port: int):
    """
    Factory fixture to create protocol-level test clients.

    Usage:
        async def test_something(server, client_factory):
            async with client_factory() as client:
                response = await client.send_command("GET key")
    """
    def factory() -> AsyncClient:
        return AsyncClient('127.0.0.1', server_port)
    return factory


# ============================================================================
# Threaded Server Fixtures (for blocking RemoteStore clients)
# ============================================================================

class ServerThread(threading.Thread):
    """Runs a CacheServer on its own event loop in a background thread."""

    def __init__(self, server: CacheServer):
        super().__init__(daemon=True)
        self.server = server
        self.loop = asyncio.new_event_loop()

    def run(self) -> None:
        asyncio.set_event_loop(self.loop)
        self.loop.run_until_complete(self.server.start())

    def wait_ready(self, timeout: float = 2.0) -> None:
        deadline = time.monotonic() + timeout
        while not self.server.is_running():
            if time.monotonic() > deadline:
                raise RuntimeError("server did not start")
            time.sleep(0.01)

    def shutdown(self) -> None:
        asyncio.run_coroutine_threadsafe(self.server.stop(), self.loop).result(timeout=5)
        self.join(timeout=5)
        self.loop.close()


@pytest.fixture
def threaded_server(server_port: int) -> Generator[CacheServer, None, None]:
    """A CacheServer running in a background thread."""
    srv = CacheServer(host='127.0.0.1', port=server_port, cleanup_interval=0)
    thread = ServerThread(srv)
    thread.start()
    thread.wait_ready()

    yield srv

    thread.shutdown()


@pytest.fixture
def remote_store(threaded_server: CacheServer, server_port: int) -> Generator[RemoteStore, None, None]:
    """A RemoteStore connected to the threaded server."""
    client = RemoteStore('127.0.0.1', server_port, timeout=2.0)
    yield client
    client.close()


@pytest.fixture
def remote_fs(remote_store: RemoteStore) -> CacheFilesystem:
    """CacheFilesystem running over the network."""
    return CacheFilesystem(remote_store)


# ============================================================================
# Pytest Configuration
# ============================================================================

def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
