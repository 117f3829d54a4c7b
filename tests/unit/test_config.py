"""
Unit tests for server configuration.

Tests cover:
- Loading from environment variables
- Validation of backend-specific settings
- Backend factory selection
"""

import logging

import pytest

from suitestore.config import (
    CouchDBConfig,
    FileStoreConfig,
    HttpConfig,
    ServerConfig,
    StoreBackend,
)
from suitestore.store import (
    CouchDBSuiteStore,
    FileSuiteStore,
    InMemorySuiteStore,
    SuiteStore,
    create_suite_store,
)

ENV_VARS = [
    "STORE_BACKEND",
    "FILE_STORE_DIR",
    "COUCHDB_ADDRESS",
    "COUCHDB_DATABASE",
    "COUCHDB_DESIGN",
    "COUCHDB_USERNAME",
    "COUCHDB_PASSWORD",
    "COUCHDB_AUTH_READS",
    "COUCHDB_TIMEOUT_SECONDS",
    "HTTP_HOST",
    "HTTP_PORT",
    "STATIC_DIR",
    "LOG_LEVEL",
    "LOG_FORMAT",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestServerConfig:
    """Tests for ServerConfig."""

    def test_defaults(self):
        config = ServerConfig.from_env()

        assert config.store_backend == StoreBackend.FILESYSTEM
        assert config.file_store.data_dir == "file_store"
        assert config.couchdb.address == "localhost:5984"
        assert config.couchdb.database == "test"
        assert config.couchdb.username is None
        assert config.couchdb.authenticate_reads is True
        assert config.http.port == 3000

    def test_couchdb_from_env(self, monkeypatch):
        monkeypatch.setenv("STORE_BACKEND", "CouchDB")
        monkeypatch.setenv("COUCHDB_ADDRESS", "https://couch.internal")
        monkeypatch.setenv("COUCHDB_DATABASE", "suites")
        monkeypatch.setenv("COUCHDB_USERNAME", "admin")
        monkeypatch.setenv("COUCHDB_PASSWORD", "secret")
        monkeypatch.setenv("COUCHDB_AUTH_READS", "false")
        monkeypatch.setenv("COUCHDB_TIMEOUT_SECONDS", "2.5")

        config = ServerConfig.from_env()

        assert config.store_backend == StoreBackend.COUCHDB
        assert config.couchdb == CouchDBConfig(
            address="https://couch.internal",
            database="suites",
            username="admin",
            password="secret",
            authenticate_reads=False,
            timeout_seconds=2.5,
        )

    def test_invalid_backend(self, monkeypatch):
        monkeypatch.setenv("STORE_BACKEND", "mongo")

        with pytest.raises(ValueError, match="STORE_BACKEND"):
            ServerConfig.from_env()

    def test_empty_static_dir_disables_mount(self, monkeypatch):
        monkeypatch.setenv("STATIC_DIR", "")

        assert ServerConfig.from_env().http.static_dir is None

    def test_couchdb_requires_database(self):
        config = ServerConfig(
            store_backend=StoreBackend.COUCHDB,
            couchdb=CouchDBConfig(database=""),
        )

        with pytest.raises(ValueError, match="COUCHDB_DATABASE"):
            config.validate()

    def test_password_without_username(self):
        config = ServerConfig(
            store_backend=StoreBackend.COUCHDB,
            couchdb=CouchDBConfig(password="secret"),
        )

        with pytest.raises(ValueError, match="COUCHDB_USERNAME"):
            config.validate()

    def test_non_positive_timeout(self):
        config = ServerConfig(
            store_backend=StoreBackend.COUCHDB,
            couchdb=CouchDBConfig(timeout_seconds=0),
        )

        with pytest.raises(ValueError, match="TIMEOUT"):
            config.validate()

    def test_port_out_of_range(self):
        config = ServerConfig(http=HttpConfig(port=70000))

        with pytest.raises(ValueError, match="HTTP_PORT"):
            config.validate()

    def test_log_config_redacts_password(self, caplog):
        config = ServerConfig(
            store_backend=StoreBackend.COUCHDB,
            couchdb=CouchDBConfig(username="admin", password="secret"),
        )

        with caplog.at_level(logging.INFO, logger="suitestore.config"):
            config.log_config()

        record = caplog.records[-1]
        assert record.couchdb_password == "***"
        assert "secret" not in repr(record.__dict__)


class TestCreateSuiteStore:
    """Tests for the backend factory."""

    def test_filesystem(self, tmp_path):
        config = ServerConfig(file_store=FileStoreConfig(data_dir=str(tmp_path)))

        store = create_suite_store(config)

        assert isinstance(store, FileSuiteStore)
        assert isinstance(store, SuiteStore)

    def test_couchdb(self):
        config = ServerConfig(store_backend=StoreBackend.COUCHDB)

        store = create_suite_store(config)

        assert isinstance(store, CouchDBSuiteStore)
        assert store.address == "http://localhost:5984/"
        assert not store.is_connected

    def test_memory(self):
        store = create_suite_store(ServerConfig(store_backend=StoreBackend.MEMORY))

        assert isinstance(store, InMemorySuiteStore)
