"""
Shared fixtures for SuiteStore tests.
"""

import pytest
import pytest_asyncio

from suitestore.config import CouchDBConfig
from suitestore.store.couchdb import CouchDBSuiteStore
from tests.fake_couchdb import BASE_URL, FakeCouchDB


@pytest.fixture
def couch() -> FakeCouchDB:
    """Fresh fake CouchDB server."""
    return FakeCouchDB()


@pytest.fixture
def couch_config() -> CouchDBConfig:
    """Backend config pointing at the fake server."""
    return CouchDBConfig(address=BASE_URL, database="test", design="suitestore")


@pytest_asyncio.fixture
async def couch_store(couch, couch_config):
    """Connected CouchDB store backed by the fake server."""
    store = CouchDBSuiteStore(couch_config, transport=couch.transport())
    await store.connect()
    yield store
    await store.close()
