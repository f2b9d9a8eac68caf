"""
Remote Key-Value Store Client

A blocking TCP client that speaks the cachefs text protocol to a
CacheServer and exposes it through the KeyValueStore interface.
"""

import logging
import socket
import threading
from typing import Iterable, List, Optional, Tuple

from ..config.settings import settings
from ..exceptions import StoreError
from ..protocol.commands import Command, CommandType, Response
from ..protocol.parser import ProtocolParser
from .base import KeyValueStore

logger = logging.getLogger(__name__)


class RemoteStore(KeyValueStore):
    """
    KeyValueStore backed by a remote CacheServer.

    Keeps one persistent connection, opened lazily on the first call.
    Calls are serialized with a lock so one instance can be shared
    between threads. There are no retries: a broken connection raises
    StoreError and is reopened on the next call.

    Usage:
        with RemoteStore("127.0.0.1", 7171) as store:
            store.set("key", b"value")
            store.get("key")  # b"value"
    """

    def __init__(self, host: str = "localhost", port: int = None, timeout: float = None):
        self.host = host
        self.port = port if port is not None else settings.PORT
        self.timeout = timeout if timeout is not None else settings.CLIENT_TIMEOUT
        self.parser = ProtocolParser()
        self._socket: Optional[socket.socket] = None
        self._reader = None
        self._lock = threading.Lock()

    def connect(self) -> None:
        """Open the connection if it is not open already."""
        if self._socket is not None:
            return
        try:
            sock = socket.create_connection((self.host, self.port), timeout=self.timeout)
        except OSError as exc:
            raise StoreError(f"cannot connect to {self.host}:{self.port}: {exc}") from exc

        self._socket = sock
        self._reader = sock.makefile("rb")
        logger.debug(f"Connected to {self.host}:{self.port}")

    def close(self) -> None:
        """Send QUIT and close the connection."""
        with self._lock:
            if self._socket is None:
                return
            try:
                self._socket.sendall(self.parser.format_request(Command(type=CommandType.QUIT)).encode())
            except OSError:
                logger.debug(f"QUIT to {self.host}:{self.port} not delivered")
            self._drop()

    def _drop(self) -> None:
        try:
            if self._reader is not None:
                self._reader.close()
            if self._socket is not None:
                self._socket.close()
        finally:
            self._reader = None
            self._socket = None

    def _call(self, command: Command) -> Response:
        """Send one command and read its response line."""
        request = self.parser.format_request(command).encode("utf-8")

        with self._lock:
            self.connect()
            try:
                self._socket.sendall(request)
                line = self._reader.readline()
            except socket.timeout as exc:
                self._drop()
                raise StoreError(f"request to {self.host}:{self.port} timed out") from exc
            except OSError as exc:
                self._drop()
                raise StoreError(f"connection to {self.host}:{self.port} failed: {exc}") from exc

            if not line:
                self._drop()
                raise StoreError(f"connection closed by {self.host}:{self.port}")

        try:
            response = self.parser.parse_response(line.decode("utf-8"), command.type)
        except (UnicodeDecodeError, ValueError) as exc:
            raise StoreError(f"malformed response to {command.type.name}: {exc}") from exc

        if not response.is_ok and response.message not in ("key not found", "exists"):
            raise StoreError(f"{command.type.name} failed: {response.message}")
        return response

    # ------------------------------------------------------------------
    # KeyValueStore interface
    # ------------------------------------------------------------------

    def check_key(self, key: str) -> None:
        """
        Reject keys the protocol cannot carry as a single token.

        Keys travel unencoded, so whitespace or control characters would
        split the request line or start a new one.

        Raises:
            StoreError: If key is empty, too long or not a single printable token
        """
        if not key:
            raise StoreError("empty key")
        if len(key) > self.parser.max_key_length:
            raise StoreError(f"key longer than {self.parser.max_key_length}: {key[:32]!r}...")
        if not key.isprintable() or " " in key:
            raise StoreError(f"key contains whitespace or control characters: {key!r}")

    def get(self, key: str) -> Optional[bytes]:
        self.check_key(key)
        response = self._call(Command(type=CommandType.GET, key=key))
        return response.value if response.is_ok else None

    def set(self, key: str, value: bytes, ttl: int = 0) -> bool:
        self.check_key(key)
        response = self._call(Command(type=CommandType.SET, key=key, value=value, ttl=ttl))
        return response.is_ok

    def delete_multi(self, keys: Iterable[str]) -> bool:
        keys = list(keys)
        if not keys:
            return True
        for key in keys:
            self.check_key(key)
        response = self._call(Command(type=CommandType.DELETE, keys=keys))
        return response.is_ok

    def gets(self, key: str) -> Optional[Tuple[bytes, int]]:
        self.check_key(key)
        response = self._call(Command(type=CommandType.GETS, key=key))
        if not response.is_ok:
            return None
        return response.value, response.version

    def cas(self, key: str, value: bytes, version: int, ttl: int = 0) -> bool:
        self.check_key(key)
        command = Command(type=CommandType.CAS, key=key, value=value, version=version, ttl=ttl)
        return self._call(command).is_ok

    def keys(self, prefix: str = "") -> List[str]:
        if prefix:
            self.check_key(prefix)
        return self._call(Command(type=CommandType.KEYS, key=prefix)).keys

    def exists(self, key: str) -> bool:
        """Check if a raw key exists on the server."""
        self.check_key(key)
        return self._call(Command(type=CommandType.EXISTS, key=key)).message == "1"

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def __repr__(self) -> str:
        return f"RemoteStore(host={self.host!r}, port={self.port})"
