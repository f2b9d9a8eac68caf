"""
Async TCP Server Module

Serves a MemoryStore over the cachefs text protocol so that
RemoteStore clients (and through them, CacheFilesystem) can share it.

Key asyncio pieces:
- asyncio.start_server(): Create a TCP server
- StreamReader.readline(): Read a line from client
- StreamWriter.write() / drain(): Send data to client
- A background task for active expiry of stale keys
"""

import asyncio
import logging
from asyncio import StreamReader, StreamWriter
from typing import Optional

from ..config.settings import settings
from ..protocol.commands import Command, CommandType, Response
from ..protocol.parser import ProtocolParser
from ..store.memory import MemoryStore

logger = logging.getLogger(__name__)


class CacheServer:
    """
    Asynchronous TCP server for a shared MemoryStore.

    Each client connection is handled in its own coroutine, allowing
    many concurrent clients without threading. Store calls are short
    and synchronous, so each command executes atomically with respect
    to other connections.

    Usage:
        server = CacheServer(host='0.0.0.0', port=7171)
        await server.start()  # Runs until stop() or cancellation

    Attributes:
        host: Server bind address (e.g., '0.0.0.0')
        port: Server port number (e.g., 7171)
        store: The MemoryStore instance shared by all connections
        parser: The ProtocolParser for parsing commands
        cleanup_interval: Seconds between active expiry sweeps (0 disables)
    """

    def __init__(
            self,
            host: str = None,
            port: int = None,
            store: MemoryStore = None,
            cleanup_interval: int = None,
    ):
        self.host = host if host is not None else settings.HOST
        self.port = port if port is not None else settings.PORT
        self.store = store if store is not None else MemoryStore()
        self.parser = ProtocolParser()
        self.cleanup_interval = (
            cleanup_interval if cleanup_interval is not None else settings.CLEANUP_INTERVAL
        )

        # Server state
        self._server: Optional[asyncio.Server] = None
        self._cleanup_task: Optional[asyncio.Task] = None
        self._running = False
        self._connection_count = 0
        self._total_requests = 0

    async def handle_client(self, reader: StreamReader, writer: StreamWriter) -> None:
        """
        Handle a single client connection.

        Reads commands line by line, executes them on the store and
        writes one response line per command, until the client
        disconnects or sends QUIT.
        """
        addr = writer.get_extra_info('peername')
        self._connection_count += 1
        logger.debug(f"Client connected: {addr}")

        try:
            while True:
                try:
                    data = await reader.readline()
                except ValueError:
                    # Line exceeded the stream limit; the rest of it is unusable
                    logger.warning(f"Request line too long from {addr}")
                    writer.write(self.parser.format_response(Response.error("line too long")).encode())
                    await writer.drain()
                    break

                if not data:
                    logger.debug(f"Client disconnected: {addr}")
                    break

                try:
                    raw = data.decode().rstrip('\r\n')
                except UnicodeDecodeError:
                    writer.write(self.parser.format_response(Response.error("invalid encoding")).encode())
                    await writer.drain()
                    continue

                command = self.parser.parse_request(raw)

                if command.type == CommandType.QUIT:
                    logger.debug(f"Client requested quit: {addr}")
                    break

                if not command.is_valid:
                    response = Response.error("invalid command")
                else:
                    self._total_requests += 1
                    response = self._execute_command(command)

                writer.write(self.parser.format_response(response).encode())
                await writer.drain()

        except ConnectionResetError:
            logger.debug(f"Connection reset by client: {addr}")
        except Exception as exc:  # Log unexpected errors but keep server alive
            logger.exception(f"Error handling client {addr}: {exc}")
        finally:
            writer.close()
            try:
                await writer.wait_closed()
            except ConnectionError:
                pass

    def _execute_command(self, command: Command) -> Response:
        """Route a parsed command to the matching store method."""
        if command.type == CommandType.SET:
            self.store.set(command.key, command.value, ttl=command.ttl)
            return Response.stored()

        if command.type == CommandType.GET:
            value = self.store.get(command.key)
            return Response.value_response(value) if value is not None else Response.key_not_found()

        if command.type == CommandType.GETS:
            found = self.store.gets(command.key)
            if found is None:
                return Response.key_not_found()
            return Response.versioned_value(*found)

        if command.type == CommandType.CAS:
            stored = self.store.cas(command.key, command.value, command.version, ttl=command.ttl)
            return Response.stored() if stored else Response.version_conflict()

        if command.type == CommandType.DELETE:
            deleted = self.store.delete_multi(command.keys)
            return Response.deleted() if deleted else Response.key_not_found()

        if command.type == CommandType.EXISTS:
            return Response.exists_response(self.store.exists(command.key))

        if command.type == CommandType.KEYS:
            return Response.key_list(self.store.keys(command.key))

        return Response.error("invalid command")

    async def _cleanup_loop(self) -> None:
        """Periodically drop expired keys."""
        while True:
            await asyncio.sleep(self.cleanup_interval)
            removed = self.store.cleanup_expired()
            if removed:
                logger.debug(f"Active expiry removed {removed} keys")

    async def start(self) -> None:
        """
        Start the server and serve until stopped or cancelled.

        Example:
            server = CacheServer(port=7171)
            asyncio.run(server.start())
        """
        if self._running:
            return

        self._server = await asyncio.start_server(
            self.handle_client,
            self.host,
            self.port,
            limit=settings.READ_BUFFER_SIZE,
        )
        self._running = True

        if self.cleanup_interval > 0:
            self._cleanup_task = asyncio.create_task(self._cleanup_loop())

        addrs = ', '.join(str(sock.getsockname()) for sock in self._server.sockets or [])
        logger.info(f"Serving on {addrs}")

        try:
            async with self._server:
                await self._server.serve_forever()
        except asyncio.CancelledError:
            # Expected during shutdown/fixture cleanup
            logger.debug("Server start cancelled")
        finally:
            self._running = False

    async def stop(self) -> None:
        """Stop the server and the expiry task."""
        if self._cleanup_task is not None:
            self._cleanup_task.cancel()
            try:
                await self._cleanup_task
            except asyncio.CancelledError:
                pass
            self._cleanup_task = None

        if self._server is None:
            return

        self._server.close()
        try:
            await self._server.wait_closed()
        finally:
            self._server = None
            self._running = False

    def is_running(self) -> bool:
        return self._running

    def get_stats(self) -> dict:
        """Server statistics, including the store's own stats."""
        return {
            "running": self._running,
            "host": self.host,
            "port": self.port,
            "total_connections": self._connection_count,
            "total_requests": self._total_requests,
            "store_stats": self.store.get_stats(),
        }
