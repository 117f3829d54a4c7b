"""
Configuration management for the SuiteStore server.

All configuration is done via environment variables.
This module provides typed configuration classes with validation.

Invariants:
    - All settings have sensible defaults for local development
    - Exactly one store backend is selected per process
    - Secrets are never logged or exposed in error messages

How to change safely:
    - Add new settings with defaults that maintain backward compatibility
    - Add new backends to StoreBackend and create_suite_store together
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from enum import Enum

logger = logging.getLogger(__name__)


class StoreBackend(Enum):
    """Supported document store backends."""

    FILESYSTEM = "fs"
    COUCHDB = "couchdb"
    MEMORY = "memory"


@dataclass(frozen=True)
class FileStoreConfig:
    """Filesystem backend configuration.

    Attributes:
        data_dir: Root directory; one subdirectory per project
    """

    data_dir: str = "file_store"

    @classmethod
    def from_env(cls) -> FileStoreConfig:
        """Load configuration from environment variables."""
        return cls(data_dir=os.getenv("FILE_STORE_DIR", "file_store"))


@dataclass(frozen=True)
class CouchDBConfig:
    """CouchDB backend configuration.

    Attributes:
        address: Server address; scheme and trailing slash are optional
        database: Database holding the suites
        design: Design document name (without the _design/ prefix)
        username: Basic-auth username (optional)
        password: Basic-auth password (optional)
        authenticate_reads: Attach credentials to read requests as well,
            including the revision lookup before a save
        timeout_seconds: Per-request timeout
    """

    address: str = "localhost:5984"
    database: str = "test"
    design: str = "suitestore"
    username: str | None = None
    password: str | None = None
    authenticate_reads: bool = True
    timeout_seconds: float = 30.0

    @classmethod
    def from_env(cls) -> CouchDBConfig:
        """Load configuration from environment variables."""
        return cls(
            address=os.getenv("COUCHDB_ADDRESS", "localhost:5984"),
            database=os.getenv("COUCHDB_DATABASE", "test"),
            design=os.getenv("COUCHDB_DESIGN", "suitestore"),
            username=os.getenv("COUCHDB_USERNAME") or None,
            password=os.getenv("COUCHDB_PASSWORD") or None,
            authenticate_reads=os.getenv("COUCHDB_AUTH_READS", "true").lower() == "true",
            timeout_seconds=float(os.getenv("COUCHDB_TIMEOUT_SECONDS", "30")),
        )


@dataclass(frozen=True)
class HttpConfig:
    """HTTP service configuration.

    Attributes:
        host: Bind host
        port: Bind port
        static_dir: Directory served at / when it exists
    """

    host: str = "0.0.0.0"
    port: int = 3000
    static_dir: str | None = "build/web"

    @classmethod
    def from_env(cls) -> HttpConfig:
        """Load configuration from environment variables."""
        return cls(
            host=os.getenv("HTTP_HOST", "0.0.0.0"),
            port=int(os.getenv("HTTP_PORT", "3000")),
            static_dir=os.getenv("STATIC_DIR", "build/web") or None,
        )


@dataclass(frozen=True)
class ObservabilityConfig:
    """Logging configuration.

    Attributes:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_format: Log format (json, text)
    """

    log_level: str = "INFO"
    log_format: str = "text"

    @classmethod
    def from_env(cls) -> ObservabilityConfig:
        """Load configuration from environment variables."""
        return cls(
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=os.getenv("LOG_FORMAT", "text"),
        )


@dataclass
class ServerConfig:
    """Complete server configuration.

    Attributes:
        store_backend: Which document store backend to use
        file_store: Filesystem configuration (if store_backend is FILESYSTEM)
        couchdb: CouchDB configuration (if store_backend is COUCHDB)
        http: HTTP service configuration
        observability: Logging configuration
    """

    store_backend: StoreBackend = StoreBackend.FILESYSTEM
    file_store: FileStoreConfig = field(default_factory=FileStoreConfig)
    couchdb: CouchDBConfig = field(default_factory=CouchDBConfig)
    http: HttpConfig = field(default_factory=HttpConfig)
    observability: ObservabilityConfig = field(default_factory=ObservabilityConfig)

    @classmethod
    def from_env(cls) -> ServerConfig:
        """Load complete configuration from environment variables.

        Raises:
            ValueError: If required configuration is missing or invalid.
        """
        backend_str = os.getenv("STORE_BACKEND", "fs").lower()
        try:
            store_backend = StoreBackend(backend_str)
        except ValueError:
            raise ValueError(
                f"Invalid STORE_BACKEND '{backend_str}'. Must be one of: fs, couchdb, memory"
            )

        config = cls(
            store_backend=store_backend,
            file_store=FileStoreConfig.from_env(),
            couchdb=CouchDBConfig.from_env(),
            http=HttpConfig.from_env(),
            observability=ObservabilityConfig.from_env(),
        )

        config.validate()
        return config

    def validate(self) -> None:
        """Validate configuration consistency.

        Raises:
            ValueError: If configuration is invalid.
        """
        if self.store_backend == StoreBackend.COUCHDB:
            if not self.couchdb.address:
                raise ValueError("COUCHDB_ADDRESS is required when STORE_BACKEND=couchdb")
            if not self.couchdb.database:
                raise ValueError("COUCHDB_DATABASE is required when STORE_BACKEND=couchdb")
            if not self.couchdb.design:
                raise ValueError("COUCHDB_DESIGN must not be empty")
            if self.couchdb.password and not self.couchdb.username:
                raise ValueError("COUCHDB_PASSWORD is set but COUCHDB_USERNAME is not")
            if self.couchdb.timeout_seconds <= 0:
                raise ValueError("COUCHDB_TIMEOUT_SECONDS must be positive")
        elif self.store_backend == StoreBackend.FILESYSTEM:
            if not self.file_store.data_dir:
                raise ValueError("FILE_STORE_DIR is required when STORE_BACKEND=fs")

        if not 0 < self.http.port < 65536:
            raise ValueError(f"HTTP_PORT out of range: {self.http.port}")

    def log_config(self) -> None:
        """Log configuration (redacting secrets)."""
        couch = self.store_backend == StoreBackend.COUCHDB
        logger.info(
            "Server configuration loaded",
            extra={
                "store_backend": self.store_backend.value,
                "couchdb_address": self.couchdb.address if couch else None,
                "couchdb_database": self.couchdb.database if couch else None,
                "couchdb_user": self.couchdb.username if couch else None,
                "couchdb_password": "***" if couch and self.couchdb.password else None,
                "file_store_dir": self.file_store.data_dir
                if self.store_backend == StoreBackend.FILESYSTEM
                else None,
                "http_bind": f"{self.http.host}:{self.http.port}",
                "log_level": self.observability.log_level,
            },
        )
