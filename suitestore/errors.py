"""
Error types for SuiteStore.

This module defines all exception types raised by the store backends:
- SuiteStoreError: Base exception
- ConnectionError: Document store unreachable
- ProtocolError: Response not decodable or missing expected fields
- NotFoundError: Document absent
- DataError: Response shape violates a store invariant
- IndexWriteError: Design document could not be written (startup only)
- SaveError: Document write rejected (includes revision conflicts)

Invariants:
    - All errors inherit from SuiteStoreError
    - Errors carry structured context (status code, test id, database)
    - Construction-time errors (ConnectionError, ProtocolError,
      IndexWriteError) abort startup; the rest are per-call
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class SuiteStoreError(Exception):
    """Base exception for all SuiteStore errors.

    Attributes:
        message: Error message
        code: Error code for programmatic handling
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or "SUITESTORE_ERROR"
        self.details = details or {}


class ConnectionError(SuiteStoreError):
    """Failed to reach the document store.

    Raised when:
    - Server is unreachable
    - Request times out
    """

    def __init__(
        self,
        message: str,
        address: Optional[str] = None,
    ) -> None:
        super().__init__(
            message,
            code="CONNECTION_ERROR",
            details={"address": address},
        )
        self.address = address


class ProtocolError(SuiteStoreError):
    """Response could not be decoded.

    Raised when:
    - Body is not JSON or not a mapping
    - Capability probe lacks a version field
    - Version string is malformed
    """

    def __init__(
        self,
        message: str,
        address: Optional[str] = None,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(
            message,
            code="PROTOCOL_ERROR",
            details={"address": address, "status_code": status_code},
        )
        self.address = address
        self.status_code = status_code


class NotFoundError(SuiteStoreError):
    """Document not found."""

    def __init__(
        self,
        message: str,
        test_id: str,
        project: Optional[str] = None,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(
            message,
            code="NOT_FOUND",
            details={
                "test_id": test_id,
                "project": project,
                "status_code": status_code,
            },
        )
        self.test_id = test_id
        self.project = project
        self.status_code = status_code


class DataError(SuiteStoreError):
    """Response shape violates an invariant the store relies on.

    Raised when:
    - An existing document has no revision
    - A view row is not a document or lacks an identifier
    """

    def __init__(
        self,
        message: str,
        database: Optional[str] = None,
        test_id: Optional[str] = None,
    ) -> None:
        super().__init__(
            message,
            code="DATA_ERROR",
            details={"database": database, "test_id": test_id},
        )
        self.database = database
        self.test_id = test_id


class IndexWriteError(SuiteStoreError):
    """Database or design document setup failed.

    Fatal at startup: list queries cannot be served without the view.
    """

    def __init__(
        self,
        message: str,
        status_code: int,
        database: str,
        design_id: Optional[str] = None,
    ) -> None:
        super().__init__(
            message,
            code="INDEX_WRITE_ERROR",
            details={
                "status_code": status_code,
                "database": database,
                "design_id": design_id,
            },
        )
        self.status_code = status_code
        self.database = database
        self.design_id = design_id


class SaveError(SuiteStoreError):
    """Document write rejected.

    A 409 status means the document changed between reading its revision
    and writing; callers may retry the whole save.
    """

    def __init__(
        self,
        message: str,
        status_code: int,
        test_id: str,
        database: Optional[str] = None,
    ) -> None:
        super().__init__(
            message,
            code="CONFLICT" if status_code == 409 else "SAVE_ERROR",
            details={
                "status_code": status_code,
                "test_id": test_id,
                "database": database,
            },
        )
        self.status_code = status_code
        self.test_id = test_id
        self.database = database

    @property
    def conflict(self) -> bool:
        """Whether the write lost an optimistic-concurrency race."""
        return self.status_code == 409
