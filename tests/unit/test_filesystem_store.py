"""
Unit tests for the filesystem suite store.

Tests cover:
- Save/fetch round trip
- Project and test listing
- Path safety for arbitrary ids
- Error handling for missing and corrupt files
"""

import json

import pytest
import pytest_asyncio

from suitestore.errors import NotFoundError, ProtocolError
from suitestore.store.filesystem import FileSuiteStore


class TestFileSuiteStore:
    """Tests for FileSuiteStore."""

    @pytest_asyncio.fixture
    async def store(self, tmp_path):
        """Connected store in a temporary directory."""
        store = FileSuiteStore(str(tmp_path / "file_store"))
        await store.connect()
        yield store
        await store.close()

    @pytest.mark.asyncio
    async def test_connect_creates_directory(self, tmp_path):
        store = FileSuiteStore(str(tmp_path / "nested" / "store"))
        assert not store.is_connected

        await store.connect()

        assert store.is_connected
        assert (tmp_path / "nested" / "store").is_dir()

    @pytest.mark.asyncio
    async def test_empty_store(self, store):
        assert await store.get_projects() == []
        assert await store.get_tests("alpha") == []

    @pytest.mark.asyncio
    async def test_scenario_alpha_smoke(self, store):
        """Save, list, fetch."""
        test_id = "2024-01-01T00:00:00Z"
        await store.save("alpha", test_id, {"name": "smoke"})

        assert await store.get_projects() == ["alpha"]
        assert await store.get_tests("alpha") == [test_id]

        doc = await store.get_test("alpha", test_id)
        assert doc.to_dict() == {"name": "smoke", "project": "alpha"}
        assert doc.revision is None

    @pytest.mark.asyncio
    async def test_overwrite_keeps_single_file(self, store):
        await store.save("alpha", "t1", {"name": "first"})
        await store.save("alpha", "t1", {"name": "second"})

        assert await store.get_tests("alpha") == ["t1"]
        doc = await store.get_test("alpha", "t1")
        assert doc.content["name"] == "second"

    @pytest.mark.asyncio
    async def test_tests_scoped_to_project(self, store):
        await store.save("alpha", "a1", {})
        await store.save("beta", "b1", {})

        assert await store.get_projects() == ["alpha", "beta"]
        assert await store.get_tests("alpha") == ["a1"]
        assert await store.get_tests("beta") == ["b1"]

    @pytest.mark.asyncio
    async def test_ids_cannot_escape_project_dir(self, store, tmp_path):
        """Slashes and dot segments stay inside the project directory."""
        await store.save("..", "../../escape", {"name": "x"})

        assert not (tmp_path / "escape.json").exists()
        assert await store.get_projects() == [".."]
        assert await store.get_tests("..") == ["../../escape"]
        doc = await store.get_test("..", "../../escape")
        assert doc.content["name"] == "x"

    @pytest.mark.asyncio
    async def test_missing_test(self, store):
        with pytest.raises(NotFoundError) as exc_info:
            await store.get_test("alpha", "nope")

        assert exc_info.value.project == "alpha"

    @pytest.mark.asyncio
    async def test_corrupt_file(self, store):
        await store.save("alpha", "t1", {"name": "smoke"})
        path = store.data_dir / "alpha" / "t1.json"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(ProtocolError):
            await store.get_test("alpha", "t1")

    @pytest.mark.asyncio
    async def test_file_contents(self, store):
        """Stored files are plain JSON including the project."""
        await store.save("alpha", "t1", {"name": "smoke", "_rev": "1-x"})

        data = json.loads((store.data_dir / "alpha" / "t1.json").read_text(encoding="utf-8"))
        assert data == {"name": "smoke", "project": "alpha"}
