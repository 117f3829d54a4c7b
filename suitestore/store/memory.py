"""
In-memory suite store for testing.

This module provides a dict-backed backend for:
- Unit tests of the HTTP service layer
- Local development without a CouchDB server

It mirrors the CouchDB backend's observable behavior: identifiers are
unique across projects, every write gets a new "<n>-<hash>" revision, and
documents are listed per project.

Invariants:
    - All data is lost on process exit
    - Writes are serialized, so saves never conflict

Limitations:
    - Revision conflicts (SaveError with conflict=True, HTTP 409) cannot
      occur here. Code paths that handle them are only exercised against
      the CouchDB backend (tests/integration/test_couchdb_store.py).
"""

from __future__ import annotations

import asyncio
import hashlib
import json
import logging
from typing import Any, Dict, List, Mapping

from ..errors import ConnectionError, NotFoundError
from .base import PROJECT_FIELD, SuiteDocument, prepare_content

logger = logging.getLogger(__name__)


class InMemorySuiteStore:
    """In-memory implementation of SuiteStore.

    Example:
        >>> store = InMemorySuiteStore()
        >>> await store.connect()
        >>> await store.save("alpha", "t1", {"name": "smoke"})
        >>> (await store.get_test("alpha", "t1")).revision
        '1-...'
    """

    def __init__(self) -> None:
        self._documents: Dict[str, Dict[str, Any]] = {}
        self._connected = False
        self._lock = asyncio.Lock()

    @property
    def is_connected(self) -> bool:
        return self._connected

    async def connect(self) -> None:
        self._connected = True
        logger.debug("InMemorySuiteStore connected")

    async def close(self) -> None:
        """Close and clear all data."""
        self._connected = False
        self._documents.clear()
        logger.debug("InMemorySuiteStore closed")

    def _check_connected(self) -> None:
        if not self._connected:
            raise ConnectionError("Not connected", address="memory")

    async def get_projects(self) -> List[str]:
        self._check_connected()
        projects = {doc[PROJECT_FIELD] for doc in self._documents.values()}
        return sorted(projects)

    async def get_tests(self, project: str) -> List[str]:
        self._check_connected()
        return sorted(
            test_id
            for test_id, doc in self._documents.items()
            if doc[PROJECT_FIELD] == project
        )

    async def get_test(self, project: str, test_id: str) -> SuiteDocument:
        self._check_connected()
        doc = self._documents.get(test_id)
        if doc is None:
            raise NotFoundError(
                f"Test '{test_id}' not found",
                test_id=test_id,
                project=project,
                status_code=404,
            )
        return SuiteDocument.from_stored(json.loads(json.dumps(doc)), test_id)

    async def save(self, project: str, test_id: str, suite: Mapping[str, Any]) -> None:
        self._check_connected()
        content = prepare_content(project, suite)
        encoded = json.dumps(content, sort_keys=True)

        async with self._lock:
            current = self._documents.get(test_id)
            generation = int(current["_rev"].split("-", 1)[0]) + 1 if current else 1
            digest = hashlib.md5(encoded.encode("utf-8")).hexdigest()

            stored = json.loads(encoded)
            stored["_id"] = test_id
            stored["_rev"] = f"{generation}-{digest}"
            self._documents[test_id] = stored

    # =========================================================================
    # Testing helpers
    # =========================================================================

    def document_count(self) -> int:
        """Number of stored documents."""
        return len(self._documents)
