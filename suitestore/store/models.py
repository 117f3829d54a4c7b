"""
Wire records for the CouchDB backend.

CouchDB responses are decoded into these models instead of being read
through untyped dictionary lookups, so a malformed response fails at the
decode step with a ValidationError rather than deep inside a backend method.

Invariants:
    - Unknown fields are preserved (extra="allow") so that a design document
      written back to the server keeps views and metadata it did not create
    - Metadata fields use CouchDB's names (_id, _rev) on the wire
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

_SEMVER_RE = re.compile(
    r"^v?(?P<major>0|[1-9]\d*)\.(?P<minor>0|[1-9]\d*)\.(?P<patch>0|[1-9]\d*)"
    r"(?:-(?P<prerelease>[0-9A-Za-z.-]+))?"
    r"(?:\+(?P<build>[0-9A-Za-z.-]+))?$"
)


@dataclass(frozen=True, order=True)
class ServerVersion:
    """Semantic version reported by the server's capability probe."""

    major: int
    minor: int
    patch: int
    prerelease: Optional[str] = None
    build: Optional[str] = None

    @classmethod
    def parse(cls, value: str) -> ServerVersion:
        """Parse a semantic version string.

        Raises:
            ValueError: If value is not a valid semantic version
        """
        match = _SEMVER_RE.match(value.strip())
        if not match:
            raise ValueError(f"Invalid semantic version: {value!r}")
        return cls(
            major=int(match.group("major")),
            minor=int(match.group("minor")),
            patch=int(match.group("patch")),
            prerelease=match.group("prerelease"),
            build=match.group("build"),
        )

    def __str__(self) -> str:
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            text += f"-{self.prerelease}"
        if self.build:
            text += f"+{self.build}"
        return text


def normalize_address(address: str) -> str:
    """Prefix a default scheme and ensure exactly one trailing slash.

    Addresses that already start with "http" (http:// or https://) keep
    their scheme so a proxy or TLS endpoint can be configured.

    Example:
        >>> normalize_address("localhost:5984")
        'http://localhost:5984/'
    """
    address = address.strip()
    if not address.startswith("http"):
        address = "http://" + address
    return address.rstrip("/") + "/"


@dataclass(frozen=True)
class ServerEndpoint:
    """Negotiated connection to a CouchDB server.

    Attributes:
        address: Normalized base address (scheme://host:port/)
        version: Version reported by the capability probe
        username: Basic-auth username, if any
        password: Basic-auth password, if any
    """

    address: str
    version: ServerVersion
    username: Optional[str] = None
    password: Optional[str] = None

    def __repr__(self) -> str:
        return f"ServerEndpoint(address={self.address!r}, version='{self.version}')"


class ServerInfo(BaseModel):
    """Body of GET / on a CouchDB server."""

    model_config = ConfigDict(extra="allow")

    version: str


class ViewDefinition(BaseModel):
    """A map/reduce view inside a design document."""

    model_config = ConfigDict(extra="allow")

    map: str
    reduce: Optional[str] = None


class DesignDocument(BaseModel):
    """A design document holding the store's views."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str = Field(alias="_id")
    rev: Optional[str] = Field(default=None, alias="_rev")
    language: Optional[str] = None
    # Views the store does not own are kept verbatim, whatever their shape.
    views: Optional[Dict[str, Any]] = None

    def set_view(self, name: str, view: ViewDefinition) -> None:
        """Add or replace one view, leaving the others untouched."""
        if self.views is None:
            self.views = {}
        self.views[name] = view.model_dump(exclude_none=True)

    def to_wire(self) -> Dict[str, Any]:
        """Serialize with CouchDB field names, omitting unset metadata."""
        data = self.model_dump(by_alias=True)
        for key in ("_rev", "language", "views"):
            if data.get(key) is None:
                data.pop(key, None)
        return data


class DocumentEnvelope(BaseModel):
    """Metadata every stored suite document carries."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str = Field(alias="_id")
    rev: Optional[str] = Field(default=None, alias="_rev")
    project: Optional[str] = None


class ViewRow(BaseModel):
    """One row of a view query result."""

    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    key: Any = None
    value: Any = None


class ViewResult(BaseModel):
    """Body of a view query."""

    model_config = ConfigDict(extra="allow")

    rows: List[ViewRow]
    total_rows: Optional[int] = None
    offset: Optional[int] = None
