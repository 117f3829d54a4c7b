"""
Filesystem backend for the suite store.

Layout:
    <data_dir>/<project>/<test_id>.json

Project names and test ids are percent-encoded before being used as path
components, so any caller-supplied string stays inside its project directory.

Invariants:
    - One JSON file per suite
    - Writes go to a temporary file and are renamed into place
    - No revisions: the last save wins
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, List, Mapping
from urllib.parse import quote, unquote

from ..errors import NotFoundError, ProtocolError, SaveError
from .base import SuiteDocument, prepare_content

logger = logging.getLogger(__name__)

SUFFIX = ".json"


def _encode(name: str) -> str:
    # "." and ".." would escape the data directory
    encoded = quote(name, safe="")
    if encoded in (".", ".."):
        encoded = encoded.replace(".", "%2E")
    return encoded


class FileSuiteStore:
    """Suite store keeping one JSON file per suite.

    Example:
        >>> store = FileSuiteStore("file_store")
        >>> await store.connect()
        >>> await store.save("alpha", "t1", {"name": "smoke"})
    """

    def __init__(self, data_dir: str) -> None:
        self.data_dir = Path(data_dir)
        self._connected = False

    @property
    def is_connected(self) -> bool:
        return self._connected

    async def connect(self) -> None:
        """Create the data directory if needed."""
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self._connected = True
        logger.info(f"File store ready at {self.data_dir}")

    async def close(self) -> None:
        self._connected = False

    def _project_dir(self, project: str) -> Path:
        return self.data_dir / _encode(project)

    def _test_path(self, project: str, test_id: str) -> Path:
        return self._project_dir(project) / (_encode(test_id) + SUFFIX)

    async def get_projects(self) -> List[str]:
        if not self.data_dir.is_dir():
            return []
        return sorted(unquote(p.name) for p in self.data_dir.iterdir() if p.is_dir())

    async def get_tests(self, project: str) -> List[str]:
        project_dir = self._project_dir(project)
        if not project_dir.is_dir():
            return []
        return sorted(
            unquote(p.name[: -len(SUFFIX)])
            for p in project_dir.iterdir()
            if p.is_file() and p.name.endswith(SUFFIX)
        )

    async def get_test(self, project: str, test_id: str) -> SuiteDocument:
        path = self._test_path(project, test_id)
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            raise NotFoundError(
                f"Test '{test_id}' not found in project '{project}'",
                test_id=test_id,
                project=project,
            )

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ProtocolError(f"Undecodable test file {path}: {e}", address=str(path)) from e
        if not isinstance(data, dict):
            raise ProtocolError(f"Test file {path} is not a JSON object", address=str(path))

        return SuiteDocument.from_stored(data, test_id)

    async def save(self, project: str, test_id: str, suite: Mapping[str, Any]) -> None:
        content = prepare_content(project, suite)
        path = self._test_path(project, test_id)

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(content, f, indent=2, sort_keys=True)
                os.replace(tmp_name, path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except OSError as e:
            raise SaveError(
                f"Error writing {path}: {e}",
                status_code=500,
                test_id=test_id,
            ) from e

        logger.debug(f"Saved test '{test_id}' in project '{project}' to {path}")
