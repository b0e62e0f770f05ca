"""Tests for the durable sync service."""

import pytest

from ..artifact import InlineArtifact, LocatorArtifact
from ..history import Iteration, Lineage
from ..history.storage import (
    MEMORY_URL_PREFIX,
    InMemoryArtifactStore,
    InMemoryMetadataStore,
    StorageError,
)
from .lib import SyncService, artifact_path, iteration_role

OWNER = "user-1"


@pytest.fixture
def artifacts():
    return InMemoryArtifactStore()


@pytest.fixture
def metadata():
    return InMemoryMetadataStore()


@pytest.fixture
def sync(artifacts, metadata):
    return SyncService(artifacts, metadata)


def _lineage(lineage_id: str = "d1", steps: int = 2) -> Lineage:
    iterations = [
        Iteration.create(f"step {i}", InlineArtifact(data=f"img{i}".encode()))
        for i in range(steps)
    ]
    return Lineage(
        id=lineage_id,
        original_image=InlineArtifact(data=b"root", mime_type="image/jpeg"),
        generated_image=iterations[-1].image if iterations else None,
        prompt=iterations[-1].prompt if iterations else "",
        iterations=iterations,
    )


class TestArtifactPath:
    """Deterministic storage paths."""

    def test_roles(self):
        assert artifact_path("u", "d", "original") == "users/u/d/original.png"
        assert artifact_path("u", "d", "generated") == "users/u/d/generated.png"
        assert (
            artifact_path("u", "d", iteration_role("it-9"))
            == "users/u/d/iterations/it-9.png"
        )

    def test_unknown_role(self):
        with pytest.raises(ValueError):
            artifact_path("u", "d", "thumbnail")


class TestSave:
    """Durable save."""

    @pytest.mark.asyncio
    async def test_two_iterations_all_inline(self, sync, artifacts, metadata):
        """Four uploads, one record write, no inline data in the record."""
        lineage = _lineage()
        assert await sync.save(lineage, OWNER) is True

        assert len(artifacts.uploads) == 4
        assert metadata.puts == ["d1"]
        stored = await metadata.get_one("d1")
        assert stored.owner_id == OWNER
        assert all(isinstance(ref, LocatorArtifact) for ref in stored.artifacts())
        assert "data:" not in metadata.records["d1"]

    @pytest.mark.asyncio
    async def test_rewrites_in_place(self, sync):
        """The caller's lineage points at the new locators afterwards."""
        lineage = _lineage()
        await sync.save(lineage, OWNER)
        assert lineage.owner_id == OWNER
        assert lineage.original_image == LocatorArtifact(
            url=MEMORY_URL_PREFIX + "users/user-1/d1/original.png"
        )
        assert all(it.image.is_locator for it in lineage.iterations)

    @pytest.mark.asyncio
    async def test_resave_uploads_nothing(self, sync, artifacts, metadata):
        """Artifacts that are already locators are not uploaded again."""
        lineage = _lineage()
        await sync.save(lineage, OWNER)
        artifacts.uploads.clear()

        assert await sync.save(lineage, OWNER) is True
        assert artifacts.uploads == []
        assert metadata.puts == ["d1", "d1"]

    @pytest.mark.asyncio
    async def test_upload_failure_writes_nothing(self, sync, artifacts, metadata):
        """One failed upload fails the save and leaves the lineage inline."""
        lineage = _lineage()
        artifacts.fail_uploads.add(
            artifact_path(OWNER, "d1", iteration_role(lineage.iterations[1].id))
        )

        assert await sync.save(lineage, OWNER) is False
        assert metadata.puts == []
        assert lineage.owner_id is None
        assert not any(ref.is_locator for ref in lineage.artifacts())

    @pytest.mark.asyncio
    async def test_metadata_failure(self, sync, metadata):
        """A failed record write is reported as a failed save."""
        metadata.fail_puts = True
        lineage = _lineage()
        assert await sync.save(lineage, OWNER) is False
        assert not lineage.original_image.is_locator

    @pytest.mark.asyncio
    async def test_legacy_lineage_without_iterations(self, sync, artifacts):
        lineage = _lineage(steps=0)
        assert await sync.save(lineage, OWNER) is True
        assert artifacts.uploads == ["users/user-1/d1/original.png"]


class TestLoadAll:
    """Portfolio listing."""

    @pytest.mark.asyncio
    async def test_newest_first(self, sync, metadata):
        """Results are sorted by timestamp regardless of storage order."""
        older, newer = _lineage("old"), _lineage("new")
        older.timestamp = older.timestamp.replace(year=2020)
        for lineage in (newer, older):
            await sync.save(lineage, OWNER)
        await sync.save(_lineage("other"), "user-2")

        ids = [lineage.id for lineage in await sync.load_all(OWNER)]
        assert ids == ["new", "old"]

    @pytest.mark.asyncio
    async def test_store_failure_returns_empty(self, sync, metadata, monkeypatch):
        async def broken(owner_id):
            raise StorageError("offline")

        monkeypatch.setattr(metadata, "get_all", broken)
        assert await sync.load_all(OWNER) == []


class TestDelete:
    """Lineage deletion."""

    @pytest.mark.asyncio
    async def test_deletes_artifacts_and_record(self, sync, artifacts, metadata):
        await sync.save(_lineage(), OWNER)

        remaining = await sync.delete("d1", OWNER)
        assert remaining == []
        assert len(artifacts.deletes) == 4
        assert artifacts.objects == {}
        assert "d1" not in metadata.records

    @pytest.mark.asyncio
    async def test_inline_generated_not_deleted(self, sync, artifacts, metadata):
        """An inline artifact gets no storage call, the record still goes."""
        lineage = _lineage(steps=1)
        lineage.original_image = await artifacts.upload(
            "users/user-1/d1/original.png", InlineArtifact(data=b"root")
        )
        lineage.owner_id = OWNER
        await metadata.put("d1", lineage)

        await sync.delete("d1", OWNER)
        assert artifacts.deletes == ["users/user-1/d1/original.png"]
        assert "d1" not in metadata.records

    @pytest.mark.asyncio
    async def test_foreign_locator_skipped(self, sync, artifacts, metadata):
        """Locators outside the artifact store are left alone."""
        lineage = Lineage(
            id="d2",
            owner_id=OWNER,
            original_image=LocatorArtifact(url="https://elsewhere.example/r.png"),
        )
        await metadata.put("d2", lineage)
        await sync.delete("d2", OWNER)
        assert artifacts.deletes == []
        assert "d2" not in metadata.records

    @pytest.mark.asyncio
    async def test_cleanup_failures_do_not_abort(self, sync, artifacts, metadata):
        """Missing or failing artifacts never block the record delete."""
        await sync.save(_lineage(), OWNER)
        artifacts.objects.pop("users/user-1/d1/original.png")
        artifacts.fail_deletes.add("users/user-1/d1/generated.png")

        await sync.delete("d1", OWNER)
        assert len(artifacts.deletes) == 4
        assert "d1" not in metadata.records

    @pytest.mark.asyncio
    async def test_returns_refreshed_portfolio(self, sync):
        await sync.save(_lineage("keep"), OWNER)
        await sync.save(_lineage("drop"), OWNER)
        remaining = await sync.delete("drop", OWNER)
        assert [lineage.id for lineage in remaining] == ["keep"]

    @pytest.mark.asyncio
    async def test_undecodable_record_still_deleted(self, sync, artifacts, metadata):
        """A record that no longer parses is removed without cleanup."""
        await sync.save(_lineage("keep"), OWNER)
        metadata.records["bad"] = '{"id": "bad", "ownerId": "user-1"}'

        remaining = await sync.delete("bad", OWNER)
        assert "bad" not in metadata.records
        assert [lineage.id for lineage in remaining] == ["keep"]
        assert artifacts.deletes == []

    @pytest.mark.asyncio
    async def test_record_delete_failure_returns_portfolio(
        self, sync, metadata, monkeypatch
    ):
        """A failing record delete is logged and the portfolio still returned."""
        await sync.save(_lineage(), OWNER)

        async def failing_delete(lineage_id):
            raise StorageError("disk full")

        monkeypatch.setattr(metadata, "delete", failing_delete)
        remaining = await sync.delete("d1", OWNER)
        assert [lineage.id for lineage in remaining] == ["d1"]
