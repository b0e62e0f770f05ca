"""End-to-end design workflow against SQLite and local file storage.

Exercises selection, generation, refinement, draft recovery, durable save,
reload in a fresh studio, and deletion, with only the generation backend
stubbed out.
"""

import pytest

from landscape_vision.artifact import InlineArtifact, LocatorArtifact
from landscape_vision.draft import DraftManager
from landscape_vision.generation import GenerationBackend
from landscape_vision.history import SessionState
from landscape_vision.history.storage import (
    create_artifact_store,
    create_metadata_store,
    create_snapshot_store,
)
from landscape_vision.studio import Studio
from landscape_vision.sync import SyncService

OWNER = "gardener-7"


class SequenceBackend(GenerationBackend):
    """Returns a distinct PNG per call, tagged with the instruction."""

    def __init__(self):
        self.count = 0

    @property
    def model_name(self) -> str:
        return "sequence"

    @property
    def provider(self) -> str:
        return "test"

    async def generate(self, image, instruction):
        self.count += 1
        return InlineArtifact(data=f"I{self.count}:{instruction}".encode())


@pytest.fixture
def data_dir(tmp_path):
    return tmp_path / "vision-data"


def _open_studio(data_dir) -> tuple[Studio, list]:
    metadata = create_metadata_store(data_dir)
    snapshots = create_snapshot_store(data_dir)
    studio = Studio(
        SequenceBackend(),
        SyncService(create_artifact_store(data_dir), metadata),
        DraftManager(snapshots),
        owner_id=OWNER,
        autosave_interval=3600,
        prompt_commit_delay=0.01,
    )
    return studio, [metadata, snapshots]


async def _close(studio: Studio, stores: list) -> None:
    await studio.shutdown()
    for store in stores:
        store.close()


@pytest.mark.integration
class TestDesignWorkflow:
    """Full lifecycle of one design."""

    @pytest.mark.asyncio
    async def test_refine_save_reload_delete(self, data_dir, root_image):
        """Two steps survive a restart and reopen at the right step."""
        studio, stores = _open_studio(data_dir)
        await studio.startup()
        try:
            studio.select_image(root_image)
            studio.set_prompt("add olive trees")
            assert await studio.generate()
            studio.refine()
            studio.set_prompt("add a gravel path")
            assert await studio.generate()
            assert await studio.save()
        finally:
            await _close(studio, stores)

        artifact_root = data_dir / "artifacts" / "users" / OWNER
        assert len(list(artifact_root.rglob("*.png"))) == 4

        studio, stores = _open_studio(data_dir)
        await studio.startup()
        try:
            assert studio.session.is_pristine
            [design] = studio.saved_designs
            assert all(isinstance(ref, LocatorArtifact) for ref in design.artifacts())
            first, second = design.iterations

            studio.load_design(design)
            session = studio.session
            assert session.state == SessionState.SUCCEEDED
            assert session.working_image == first.image
            assert session.last_result == second.image
            assert session.prompt == "add a gravel path"
            assert [it.id for it in session.past_iterations] == [first.id]

            studio.edit_design(design)
            session = studio.session
            assert session.state == SessionState.IDLE
            assert session.working_image == first.image
            assert session.last_result is None
            assert session.prompt == "add a gravel path"

            # Regenerating from a stored locator input works
            studio.set_prompt("add a gravel path with lanterns")
            assert await studio.generate()

            remaining = await studio.delete_design(design.id)
            assert remaining == []
        finally:
            await _close(studio, stores)

        assert list(artifact_root.rglob("*.png")) == []

    @pytest.mark.asyncio
    async def test_draft_survives_restart(self, data_dir, root_image):
        """An unsaved result is recovered on the next start."""
        studio, stores = _open_studio(data_dir)
        await studio.startup()
        try:
            studio.select_image(root_image)
            studio.set_prompt("add a koi pond")
            assert await studio.generate()
            result = studio.session.last_result
        finally:
            await _close(studio, stores)

        studio, stores = _open_studio(data_dir)
        await studio.startup()
        try:
            assert studio.session.state == SessionState.SUCCEEDED
            assert studio.session.last_result == result
            assert studio.session.prompt == "add a koi pond"
            assert studio.last_autosave is not None

            await studio.reset()
        finally:
            await _close(studio, stores)

        studio, stores = _open_studio(data_dir)
        await studio.startup()
        try:
            assert studio.session.is_pristine
        finally:
            await _close(studio, stores)
