"""
SuiteStore server - main entry point.

Usage:
    python -m suitestore.main

Configuration is entirely via environment variables.
See config.py for all available settings.

Invariants:
    - The store is connected (probe + schema setup) before the HTTP server
      accepts requests
    - A store that fails to connect terminates the process with status 1
"""

from __future__ import annotations

import asyncio
import logging
import sys

import json_log_formatter
import uvicorn

from .api import create_app
from .config import ServerConfig
from .errors import SuiteStoreError
from .store import SuiteStore, create_suite_store

logger = logging.getLogger(__name__)


def setup_logging(config: ServerConfig) -> None:
    """Configure logging based on configuration.

    Args:
        config: Server configuration
    """
    level = getattr(logging, config.observability.log_level.upper(), logging.INFO)

    if config.observability.log_format == "json":
        formatter = json_log_formatter.JSONFormatter()
    else:
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = [handler]

    # Reduce noise from libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


class Server:
    """SuiteStore server orchestrator.

    Connects the configured store, then serves the HTTP API until
    shutdown is requested.

    Example:
        >>> server = Server(ServerConfig.from_env())
        >>> await server.start()
    """

    def __init__(self, config: ServerConfig | None = None) -> None:
        self.config = config or ServerConfig.from_env()
        self.store: SuiteStore | None = None

    async def start(self) -> None:
        """Connect the store and serve HTTP until stopped.

        Raises:
            SuiteStoreError: If the store cannot be initialized
        """
        logger.info("Starting SuiteStore server")
        self.config.log_config()

        self.store = create_suite_store(self.config)
        await self.store.connect()
        logger.info(f"Store backend '{self.config.store_backend.value}' ready")

        app = create_app(self.store, self.config.http)
        # uvicorn installs its own SIGINT/SIGTERM handlers and returns from
        # serve() on either, so shutdown needs no hook here.
        http = uvicorn.Server(
            uvicorn.Config(
                app,
                host=self.config.http.host,
                port=self.config.http.port,
                log_config=None,
            )
        )
        try:
            await http.serve()
        finally:
            await self.stop()

    async def stop(self) -> None:
        """Close the store."""
        if self.store is not None and self.store.is_connected:
            await self.store.close()
            logger.info("SuiteStore server stopped")


def main() -> None:
    """Main entry point."""
    try:
        config = ServerConfig.from_env()
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)

    setup_logging(config)
    server = Server(config)

    try:
        asyncio.run(server.start())
    except SuiteStoreError as e:
        logger.error(f"Error initializing database: {e}", extra={"details": e.details})
        sys.exit(1)
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
