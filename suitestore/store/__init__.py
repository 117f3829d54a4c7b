"""
Document store abstraction for SuiteStore.

This module provides a pluggable backend interface supporting:
- CouchDB (revisioned documents, design-document views)
- Filesystem (one JSON file per suite)
- In-memory (for testing)

Invariants:
    - Every stored document carries the project it was saved under
    - Overwrites never silently discard a concurrent write
    - connect() fully prepares the backend or raises

How to change safely:
    - New backends must implement the SuiteStore protocol
    - Register new backends in create_suite_store
"""

from .base import (
    SuiteDocument,
    SuiteStore,
    create_suite_store,
)
from .couchdb import CouchDBSuiteStore
from .filesystem import FileSuiteStore
from .memory import InMemorySuiteStore

__all__ = [
    # Protocol and types
    "SuiteStore",
    "SuiteDocument",
    # Factory
    "create_suite_store",
    # Implementations
    "CouchDBSuiteStore",
    "FileSuiteStore",
    "InMemorySuiteStore",
]
