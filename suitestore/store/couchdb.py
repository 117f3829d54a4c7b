"""
CouchDB backend for the suite store.

Layout on the server:
    <database>/                       one database per configuration
    <database>/_design/<design>       design document with the by_project view
    <database>/<test_id>              one document per saved suite

The by_project view maps each document's project to the document itself.
Queried with reduce=false it lists documents; with reduction it yields a
single row whose value maps project name to document count.

Invariants:
    - connect() fails unless the server answers the probe with a version
    - After connect() the by_project view exists with the definition below;
      other views in the design document are left untouched
    - Overwrites always carry the revision last read, so a concurrent
      write surfaces as a SaveError (409) instead of a lost update

How to change safely:
    - Changing BY_PROJECT_VIEW rewrites the view on every server at next
      startup and triggers a full view rebuild
    - Nothing here retries; conflict handling belongs to the caller
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Mapping, Optional, Tuple
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from ..config import CouchDBConfig
from ..errors import (
    ConnectionError,
    DataError,
    IndexWriteError,
    NotFoundError,
    ProtocolError,
    SaveError,
)
from .base import SuiteDocument, prepare_content
from .models import (
    DesignDocument,
    DocumentEnvelope,
    ServerEndpoint,
    ServerInfo,
    ServerVersion,
    ViewDefinition,
    ViewResult,
    normalize_address,
)

logger = logging.getLogger(__name__)

VIEW_NAME = "by_project"

BY_PROJECT_VIEW = ViewDefinition(
    map="""function (doc) {
    if (doc.project !== undefined) {
        emit(doc.project, doc);
    }
}""",
    reduce="""function (keys, values, rereduce) {
    var counts = {};
    if (rereduce) {
        values.forEach(function (partial) {
            for (var k in partial) {
                counts[k] = (counts[k] || 0) + partial[k];
            }
        });
    } else {
        keys.forEach(function (key) {
            var k = key[0];
            counts[k] = (counts[k] || 0) + 1;
        });
    }
    return counts;
}""",
)


def _is_success(response: httpx.Response) -> bool:
    return 200 <= response.status_code < 300


class CouchDBSuiteStore:
    """Suite store backed by a CouchDB database.

    Attributes:
        config: Backend configuration
        endpoint: Negotiated server endpoint (set by connect())

    Thread safety:
        Holds only immutable configuration and one httpx.AsyncClient,
        which is safe to share between concurrent requests.

    Example:
        >>> store = CouchDBSuiteStore(CouchDBConfig(address="localhost:5984"))
        >>> await store.connect()
        >>> await store.save("alpha", "t1", {"name": "smoke"})
    """

    def __init__(
        self,
        config: CouchDBConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """Initialize the backend.

        Args:
            config: Backend configuration
            transport: Optional httpx transport (used by tests)
        """
        self.config = config
        self.address = normalize_address(config.address)
        self.endpoint: Optional[ServerEndpoint] = None
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def is_connected(self) -> bool:
        return self.endpoint is not None

    @property
    def version(self) -> Optional[ServerVersion]:
        """Server version negotiated at connect time."""
        return self.endpoint.version if self.endpoint else None

    @property
    def database_url(self) -> str:
        return self.address + quote(self.config.database, safe="")

    @property
    def design_id(self) -> str:
        return f"_design/{self.config.design}"

    @property
    def design_url(self) -> str:
        return f"{self.database_url}/_design/{quote(self.config.design, safe='')}"

    def _document_url(self, test_id: str) -> str:
        return f"{self.database_url}/{quote(test_id, safe='')}"

    def _auth(self, write: bool) -> Optional[Tuple[str, str]]:
        if not self.config.username:
            return None
        if not write and not self.config.authenticate_reads:
            return None
        return (self.config.username, self.config.password or "")

    async def _request(
        self,
        method: str,
        url: str,
        *,
        write: bool = False,
        params: Optional[Dict[str, str]] = None,
        body: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        if self._client is None:
            raise ConnectionError("Not connected", address=self.address)

        kwargs: Dict[str, Any] = {"params": params, "json": body}
        auth = self._auth(write)
        if auth:
            kwargs["auth"] = auth
        try:
            return await self._client.request(method, url, **kwargs)
        except httpx.TransportError as e:
            raise ConnectionError(
                f"{method} {url} failed: {e}",
                address=self.address,
            ) from e

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        try:
            return response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ProtocolError(
                f"Undecodable response from {response.request.url}: {e}",
                address=str(response.request.url),
                status_code=response.status_code,
            ) from e

    async def connect(self) -> None:
        """Probe the server, then make sure the database and view exist.

        Raises:
            ConnectionError: If the server is unreachable
            ProtocolError: If the probe response has no parsable version
            IndexWriteError: If the database or design document cannot be written
        """
        if self.is_connected:
            return

        self._client = httpx.AsyncClient(
            timeout=self.config.timeout_seconds,
            transport=self._transport,
        )
        try:
            version = await self._probe()
            self.endpoint = ServerEndpoint(
                address=self.address,
                version=version,
                username=self.config.username,
                password=self.config.password,
            )
            await self._ensure_database()
            await self._ensure_design_document()
        except Exception:
            self.endpoint = None
            await self._client.aclose()
            self._client = None
            raise

        logger.info(
            f"Connected to CouchDB {version} at {self.address}, "
            f"database '{self.config.database}'"
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
        self.endpoint = None
        logger.debug("CouchDBSuiteStore closed")

    async def _probe(self) -> ServerVersion:
        response = await self._request("GET", self.address)
        data = self._decode(response)
        if not isinstance(data, dict) or "version" not in data:
            raise ProtocolError(
                f"Not a CouchDB server: {self.address}",
                address=self.address,
                status_code=response.status_code,
            )
        try:
            info = ServerInfo.model_validate(data)
            return ServerVersion.parse(info.version)
        except (ValidationError, ValueError) as e:
            raise ProtocolError(
                f"Error parsing server version: {e}",
                address=self.address,
                status_code=response.status_code,
            ) from e

    async def _ensure_database(self) -> None:
        response = await self._request("PUT", self.database_url, write=True)
        if response.status_code == 412:
            logger.debug(f"Database '{self.config.database}' already exists")
        elif response.status_code >= 400:
            raise IndexWriteError(
                f"Error creating database: {response.status_code}",
                status_code=response.status_code,
                database=self.config.database,
            )
        else:
            logger.info(f"Created database '{self.config.database}'")

    async def _fetch_design_document(self) -> DesignDocument:
        response = await self._request("GET", self.design_url)
        if not _is_success(response):
            return DesignDocument(_id=self.design_id)

        data = self._decode(response)
        try:
            return DesignDocument.model_validate(data)
        except ValidationError as e:
            raise ProtocolError(
                f"Invalid design document {self.design_id}: {e}",
                address=self.design_url,
                status_code=response.status_code,
            ) from e

    async def _ensure_design_document(self) -> None:
        design = await self._fetch_design_document()
        if design.views is None:
            design.views = {}
            design.language = "javascript"
        design.set_view(VIEW_NAME, BY_PROJECT_VIEW)

        params = {"rev": design.rev} if design.rev else None
        response = await self._request(
            "PUT",
            self.design_url,
            write=True,
            params=params,
            body=design.to_wire(),
        )
        if response.status_code >= 400:
            logger.error(f"Error updating view at {self.design_url}: {response.status_code}")
            raise IndexWriteError(
                f"Error updating view: {response.status_code}",
                status_code=response.status_code,
                database=self.config.database,
                design_id=self.design_id,
            )
        logger.debug(f"Design document {self.design_id} written (previous rev {design.rev})")

    async def _query_view(self, params: Dict[str, str]) -> ViewResult:
        url = f"{self.design_url}/_view/{VIEW_NAME}"
        response = await self._request("GET", url, params=params)
        data = self._decode(response)
        if not _is_success(response):
            raise ProtocolError(
                f"View query failed: {response.status_code} {data}",
                address=url,
                status_code=response.status_code,
            )
        try:
            return ViewResult.model_validate(data)
        except ValidationError as e:
            raise DataError(
                f"Invalid view result: {e}",
                database=self.config.database,
            ) from e

    async def get_projects(self) -> List[str]:
        """List project names from the reduced by_project view.

        An empty database has no reduce row and yields an empty list.
        """
        result = await self._query_view({"reduce": "true"})
        if not result.rows:
            return []

        counts = result.rows[0].value
        if not isinstance(counts, dict):
            raise DataError(
                f"Expected project counts, got {type(counts).__name__}",
                database=self.config.database,
            )
        return list(counts.keys())

    async def get_tests(self, project: str) -> List[str]:
        """List identifiers of the project's documents.

        The view is queried with key=<project>, so only rows emitted for
        this project come back.
        """
        result = await self._query_view({
            "reduce": "false",
            "key": json.dumps(project),
        })

        tests = []
        for row in result.rows:
            try:
                envelope = DocumentEnvelope.model_validate(row.value)
            except ValidationError as e:
                raise DataError(
                    f"View row is not a document with an _id: {e}",
                    database=self.config.database,
                    test_id=row.id,
                ) from e
            tests.append(envelope.id)
        return tests

    async def get_test(self, project: str, test_id: str) -> SuiteDocument:
        """Fetch a document by identifier.

        The project is not part of the document address.
        """
        response = await self._request("GET", self._document_url(test_id))
        if not _is_success(response):
            raise NotFoundError(
                f"Test '{test_id}' not found: {response.status_code}",
                test_id=test_id,
                project=project,
                status_code=response.status_code,
            )

        data = self._decode(response)
        if not isinstance(data, dict):
            raise ProtocolError(
                f"Test '{test_id}' is not a JSON object",
                address=self._document_url(test_id),
                status_code=response.status_code,
            )
        return SuiteDocument.from_stored(data, test_id)

    async def _current_revision(self, test_id: str) -> Optional[str]:
        response = await self._request("GET", self._document_url(test_id))
        if not _is_success(response):
            return None

        data = self._decode(response)
        try:
            envelope = DocumentEnvelope.model_validate(data)
        except ValidationError as e:
            raise DataError(
                f"Existing test '{test_id}' is not a document: {e}",
                database=self.config.database,
                test_id=test_id,
            ) from e
        if not envelope.rev:
            raise DataError(
                f"Existing test '{test_id}' has no revision",
                database=self.config.database,
                test_id=test_id,
            )
        return envelope.rev

    async def save(self, project: str, test_id: str, suite: Mapping[str, Any]) -> None:
        """Create the document, or overwrite it at its current revision.

        Reading the revision and writing are two requests; a write by
        someone else in between makes CouchDB answer 409, raised here as
        a SaveError with conflict=True.
        """
        content = prepare_content(project, suite)
        rev = await self._current_revision(test_id)

        response = await self._request(
            "PUT",
            self._document_url(test_id),
            write=True,
            params={"rev": rev} if rev else None,
            body=content,
        )
        if response.status_code >= 400:
            raise SaveError(
                f"Error updating document: {response.status_code}",
                status_code=response.status_code,
                test_id=test_id,
                database=self.config.database,
            )
        logger.debug(
            f"Saved test '{test_id}' in project '{project}' "
            f"({'update of ' + rev if rev else 'create'})"
        )
