"""Tests for lineage storage backends."""

import httpx
import pytest

from ...artifact import InlineArtifact, LocatorArtifact
from ..models import Iteration, Lineage
from .filesystem import LocalArtifactStore
from .memory import InMemoryArtifactStore, InMemoryMetadataStore
from .protocol import NotFoundError, StorageError, UploadError
from .remote import HttpArtifactStore
from .sqlite import SQLiteMetadataStore, SQLiteSnapshotStore

PNG = InlineArtifact(data=b"\x89PNG-body", mime_type="image/png")

# =============================================================================
# Fixtures
# =============================================================================


def _lineage(lineage_id: str, owner_id: str | None = "user-1") -> Lineage:
    return Lineage(
        id=lineage_id,
        owner_id=owner_id,
        original_image=LocatorArtifact(url="https://cdn.example.com/o.png"),
        generated_image=LocatorArtifact(url="https://cdn.example.com/g.png"),
        prompt="add lanterns",
        iterations=[
            Iteration.create(
                "add lanterns", LocatorArtifact(url="https://cdn.example.com/g.png")
            )
        ],
    )


@pytest.fixture
def metadata_store(tmp_path):
    store = SQLiteMetadataStore(tmp_path / "designs.db")
    store.initialize()
    yield store
    store.close()


@pytest.fixture
def snapshot_store(tmp_path):
    store = SQLiteSnapshotStore(tmp_path / "drafts.db")
    store.initialize()
    yield store
    store.close()


# =============================================================================
# SQLite Tests
# =============================================================================


class TestSQLiteMetadataStore:
    """Lineage records in SQLite."""

    def test_requires_initialize(self, tmp_path):
        """Using the store before initialize() fails loudly."""
        store = SQLiteMetadataStore(tmp_path / "x.db")
        with pytest.raises(RuntimeError, match="initialize"):
            store._get_conn()

    @pytest.mark.asyncio
    async def test_put_and_get_one(self, metadata_store):
        """A stored lineage reads back equal."""
        lineage = _lineage("d1")
        await metadata_store.put("d1", lineage)
        assert await metadata_store.get_one("d1") == lineage

    @pytest.mark.asyncio
    async def test_get_one_missing(self, metadata_store):
        """Unknown ids return None."""
        assert await metadata_store.get_one("missing") is None

    @pytest.mark.asyncio
    async def test_put_replaces(self, metadata_store):
        """Writing the same id twice keeps only the latest record."""
        lineage = _lineage("d1")
        await metadata_store.put("d1", lineage)
        lineage.prompt = "changed"
        await metadata_store.put("d1", lineage)
        assert (await metadata_store.get_one("d1")).prompt == "changed"

    @pytest.mark.asyncio
    async def test_get_all_filters_by_owner(self, metadata_store):
        """Only the owner's lineages are returned."""
        await metadata_store.put("a", _lineage("a", "user-1"))
        await metadata_store.put("b", _lineage("b", "user-2"))
        await metadata_store.put("c", _lineage("c", "user-1"))
        ids = sorted(lin.id for lin in await metadata_store.get_all("user-1"))
        assert ids == ["a", "c"]

    @pytest.mark.asyncio
    async def test_delete(self, metadata_store):
        """Deleted records are gone; deleting again is a no-op."""
        await metadata_store.put("d1", _lineage("d1"))
        await metadata_store.delete("d1")
        await metadata_store.delete("d1")
        assert await metadata_store.get_one("d1") is None


class TestSQLiteSnapshotStore:
    """Draft slot in SQLite."""

    @pytest.mark.asyncio
    async def test_write_read_delete(self, snapshot_store):
        """Values are replaced whole and can be removed."""
        assert await snapshot_store.read("draft") is None
        await snapshot_store.write("draft", '{"v": 1}')
        await snapshot_store.write("draft", '{"v": 2}')
        assert await snapshot_store.read("draft") == '{"v": 2}'
        await snapshot_store.delete("draft")
        assert await snapshot_store.read("draft") is None

    @pytest.mark.asyncio
    async def test_persists_across_reopen(self, tmp_path):
        """A draft survives closing and reopening the database."""
        path = tmp_path / "drafts.db"
        store = SQLiteSnapshotStore(path)
        store.initialize()
        await store.write("draft", "payload")
        store.close()

        reopened = SQLiteSnapshotStore(path)
        reopened.initialize()
        try:
            assert await reopened.read("draft") == "payload"
        finally:
            reopened.close()


# =============================================================================
# Artifact Store Tests
# =============================================================================


class TestLocalArtifactStore:
    """Filesystem artifact store."""

    @pytest.mark.asyncio
    async def test_upload_returns_managed_file_locator(self, tmp_path):
        """Uploads write bytes and return a file:// locator."""
        store = LocalArtifactStore(tmp_path)
        locator = await store.upload("users/u1/d1/original.png", PNG)
        assert locator.url.startswith("file://")
        assert store.manages(locator)
        assert (tmp_path / "users/u1/d1/original.png").read_bytes() == PNG.data

    @pytest.mark.asyncio
    async def test_delete_missing_raises_not_found(self, tmp_path):
        """Deleting an absent artifact reports NotFoundError."""
        store = LocalArtifactStore(tmp_path)
        with pytest.raises(NotFoundError):
            await store.delete("users/u1/d1/generated.png")

    @pytest.mark.asyncio
    async def test_rejects_escaping_paths(self, tmp_path):
        """Paths may not leave the artifact root."""
        store = LocalArtifactStore(tmp_path / "root")
        with pytest.raises(StorageError):
            await store.upload("../outside.png", PNG)

    def test_foreign_locator_not_managed(self, tmp_path):
        """Locators elsewhere are not claimed."""
        store = LocalArtifactStore(tmp_path)
        assert not store.manages(LocatorArtifact(url="https://cdn.example.com/a.png"))


class TestHttpArtifactStore:
    """HTTP object store, exercised through httpx.MockTransport."""

    @staticmethod
    def _store(handler) -> HttpArtifactStore:
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return HttpArtifactStore("https://objects.example.com/vision/", client=client)

    @pytest.mark.asyncio
    async def test_upload_puts_bytes(self):
        """Upload PUTs the raw bytes with the artifact's content type."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["method"] = request.method
            seen["url"] = str(request.url)
            seen["type"] = request.headers["content-type"]
            seen["body"] = request.content
            return httpx.Response(200)

        store = self._store(handler)
        locator = await store.upload("users/u1/d1/original.png", PNG)

        assert seen == {
            "method": "PUT",
            "url": "https://objects.example.com/vision/users/u1/d1/original.png",
            "type": "image/png",
            "body": PNG.data,
        }
        assert locator.url == seen["url"]
        assert store.manages(locator)

    @pytest.mark.asyncio
    async def test_upload_failure_raises_upload_error(self):
        """Quota/server rejections surface as UploadError."""
        store = self._store(lambda request: httpx.Response(507))
        with pytest.raises(UploadError, match="507"):
            await store.upload("users/u1/d1/original.png", PNG)

    @pytest.mark.asyncio
    async def test_delete_404_is_not_found(self):
        """A 404 on delete maps to NotFoundError."""
        store = self._store(lambda request: httpx.Response(404))
        with pytest.raises(NotFoundError):
            await store.delete("users/u1/d1/original.png")

    @pytest.mark.asyncio
    async def test_delete_server_error(self):
        """Other delete failures map to StorageError."""
        store = self._store(lambda request: httpx.Response(500))
        with pytest.raises(StorageError) as excinfo:
            await store.delete("users/u1/d1/original.png")
        assert not isinstance(excinfo.value, NotFoundError)


class TestInMemoryStores:
    """In-memory test doubles."""

    @pytest.mark.asyncio
    async def test_artifact_store_records_calls(self):
        """Uploads and deletes are recorded in order."""
        store = InMemoryArtifactStore()
        locator = await store.upload("a.png", PNG)
        assert store.manages(locator)
        await store.delete("a.png")
        with pytest.raises(NotFoundError):
            await store.delete("a.png")
        assert store.uploads == ["a.png"]
        assert store.deletes == ["a.png", "a.png"]

    @pytest.mark.asyncio
    async def test_metadata_store_isolates_records(self):
        """Mutating a stored lineage object does not change the record."""
        store = InMemoryMetadataStore()
        lineage = _lineage("d1")
        await store.put("d1", lineage)
        lineage.prompt = "mutated"
        assert (await store.get_one("d1")).prompt == "add lanterns"
