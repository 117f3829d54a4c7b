"""
Base protocol and types for the suite document store.

This module defines the SuiteStore protocol that all backends must implement,
the SuiteDocument record returned by reads, and the backend factory.

Invariants:
    - Every stored document carries a "project" field injected by the store
    - Document identifiers are opaque strings supplied by the caller
    - Backends hold no mutable shared state besides their connection, so
      concurrent calls from independent requests need no locking

How to change safely:
    - Protocol changes require updating all implementations
    - New backends must be added to StoreBackend and create_suite_store
"""

from __future__ import annotations

from abc import abstractmethod
from dataclasses import dataclass, field
from typing import (
    Any,
    Dict,
    List,
    Mapping,
    Optional,
    Protocol,
    runtime_checkable,
    TYPE_CHECKING,
)
import logging

if TYPE_CHECKING:
    from ..config import ServerConfig

logger = logging.getLogger(__name__)

# Field every stored document is tagged with.
PROJECT_FIELD = "project"

# Store-managed metadata that callers cannot set.
METADATA_FIELDS = frozenset({"_id", "_rev"})


def prepare_content(project: str, suite: Mapping[str, Any]) -> Dict[str, Any]:
    """Copy a suite for storage, dropping store metadata and tagging the project."""
    content = {k: v for k, v in suite.items() if k not in METADATA_FIELDS}
    content[PROJECT_FIELD] = project
    return content


@dataclass
class SuiteDocument:
    """A stored test suite as returned by SuiteStore.get_test().

    Attributes:
        test_id: Store identifier of the document
        project: Project the document was saved under
        revision: Revision token as last read (None for backends without one)
        content: Document fields, including the injected project field

    Example:
        >>> doc = await store.get_test("alpha", "2024-01-01T00:00:00Z")
        >>> doc.content["name"]
        'smoke'
    """
    test_id: str
    project: Optional[str]
    revision: Optional[str] = None
    content: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_stored(cls, data: Mapping[str, Any], test_id: str) -> SuiteDocument:
        """Build from a raw stored mapping, splitting off metadata fields."""
        project = data.get(PROJECT_FIELD)
        rev = data.get("_rev")
        return cls(
            test_id=data.get("_id", test_id),
            project=project if isinstance(project, str) else None,
            revision=rev if isinstance(rev, str) else None,
            content={k: v for k, v in data.items() if k not in METADATA_FIELDS},
        )

    def to_dict(self) -> Dict[str, Any]:
        """Document fields as saved, plus the injected project."""
        return dict(self.content)


@runtime_checkable
class SuiteStore(Protocol):
    """Protocol for suite document store backends.

    Read contract:
        - get_projects() returns each distinct project once, in no set order
        - get_tests(project) returns identifiers of that project's documents

    Write contract:
        - save() creates the document if absent, otherwise overwrites it
        - An overwrite never silently discards a concurrent write; backends
          with revisions raise SaveError on conflict

    Example:
        >>> store = create_suite_store(config)
        >>> await store.connect()
        >>> await store.save("alpha", "2024-01-01T00:00:00Z", {"name": "smoke"})
        >>> await store.get_projects()
        ['alpha']
    """

    @abstractmethod
    async def connect(self) -> None:
        """Connect to the backend and prepare it for use.

        Must be called before any other operation.

        Raises:
            ConnectionError: If the backend is unreachable
            ProtocolError: If the backend answers with something unexpected
            IndexWriteError: If schema setup fails
        """
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release resources held by the backend."""
        ...

    @abstractmethod
    async def get_projects(self) -> List[str]:
        """List distinct project names."""
        ...

    @abstractmethod
    async def get_tests(self, project: str) -> List[str]:
        """List identifiers of all documents saved under a project.

        Raises:
            DataError: If a stored row is not a document with an identifier
        """
        ...

    @abstractmethod
    async def get_test(self, project: str, test_id: str) -> SuiteDocument:
        """Fetch one document.

        Raises:
            NotFoundError: If no document has this identifier
            ProtocolError: If the stored content cannot be decoded
        """
        ...

    @abstractmethod
    async def save(self, project: str, test_id: str, suite: Mapping[str, Any]) -> None:
        """Create or overwrite a document.

        Raises:
            SaveError: If the write is rejected, including revision conflicts
            DataError: If the existing document has no revision
        """
        ...

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        """Whether connect() has completed successfully."""
        ...


def create_suite_store(config: "ServerConfig") -> SuiteStore:
    """Factory function to create a store from configuration.

    Args:
        config: Server configuration

    Returns:
        Appropriate SuiteStore implementation (not yet connected)

    Raises:
        ValueError: If backend is not supported
    """
    from ..config import StoreBackend
    from .couchdb import CouchDBSuiteStore
    from .filesystem import FileSuiteStore
    from .memory import InMemorySuiteStore

    if config.store_backend == StoreBackend.COUCHDB:
        return CouchDBSuiteStore(config.couchdb)
    elif config.store_backend == StoreBackend.FILESYSTEM:
        return FileSuiteStore(config.file_store.data_dir)
    elif config.store_backend == StoreBackend.MEMORY:
        return InMemorySuiteStore()
    else:
        raise ValueError(f"Unsupported store backend: {config.store_backend}")
