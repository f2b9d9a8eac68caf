#!/usr/bin/env python3
"""
cachefs Server Entry Point

Starts a CacheServer holding an in-memory store that CacheFilesystem
instances can share through RemoteStore.

Usage:
    python -m cachefs.server                    # Default settings (0.0.0.0:7171)
    python -m cachefs.server --port 8080        # Custom port
    python -m cachefs.server --host 127.0.0.1   # Custom host
    python -m cachefs.server --debug            # Enable debug logging
    python -m cachefs.server --max-keys 5000    # Custom cache size

Environment Variables:
    CACHEFS_HOST       - Server bind address
    CACHEFS_PORT       - Server port
    CACHEFS_MAX_KEYS   - Maximum cache size
    CACHEFS_DEBUG      - Enable debug mode (true/false)
    CACHEFS_LOG_LEVEL  - Log level when not in debug mode
"""

import argparse
import asyncio
import logging
import signal
import sys

from .config.settings import settings
from .network.tcp_server import CacheServer
from .store.memory import MemoryStore


def parse_args(argv=None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="cachefs: key-value cache server for CacheFilesystem",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    parser.add_argument(
        "--host",
        type=str,
        default=settings.HOST,
        help="Host address to bind to",
    )

    parser.add_argument(
        "--port",
        type=int,
        default=settings.PORT,
        help="Port number to listen on",
    )

    parser.add_argument(
        "--max-keys",
        type=int,
        default=settings.MAX_KEYS,
        help="Maximum number of keys in cache",
    )

    parser.add_argument(
        "--cleanup-interval",
        type=int,
        default=settings.CLEANUP_INTERVAL,
        help="Seconds between expired-key sweeps (0 disables)",
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        default=settings.DEBUG,
        help="Enable debug logging",
    )

    return parser.parse_args(argv)


def setup_logging(debug: bool = False) -> None:
    """Configure logging based on debug flag."""
    level = logging.DEBUG if debug else getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(sys.stdout),
        ]
    )


def main(argv=None) -> None:
    """Main entry point for the server."""
    args = parse_args(argv)

    setup_logging(debug=args.debug)
    logger = logging.getLogger(__name__)

    store = MemoryStore(max_size=args.max_keys)
    server = CacheServer(
        host=args.host,
        port=args.port,
        store=store,
        cleanup_interval=args.cleanup_interval,
    )

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)

    async def shutdown(sig: signal.Signals) -> None:
        """Handle shutdown signal."""
        logger.info(f"Received signal {sig.name}, initiating shutdown...")
        await server.stop()

    # Register signal handlers (Unix only)
    if sys.platform != 'win32':
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(
                sig,
                lambda s=sig: asyncio.create_task(shutdown(s))
            )

    logger.info("Starting cachefs server")
    logger.info(f"  Host: {args.host}")
    logger.info(f"  Port: {args.port}")
    logger.info(f"  Max keys: {args.max_keys}")
    logger.info(f"  Debug: {args.debug}")

    try:
        loop.run_until_complete(server.start())
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received")
        loop.run_until_complete(server.stop())
    finally:
        loop.run_until_complete(loop.shutdown_asyncgens())
        loop.close()
        logger.info("Server shutdown complete")


if __name__ == "__main__":
    main()
