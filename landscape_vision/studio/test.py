"""Tests for the design studio workflow."""

import asyncio

import pytest

from ..artifact import InlineArtifact
from ..draft import DRAFT_KEY, DraftManager
from ..generation import GenerationBackend, RateLimitError
from ..history import SessionState, WorkingSession
from ..history.storage import (
    InMemoryArtifactStore,
    InMemoryMetadataStore,
    InMemorySnapshotStore,
)
from ..session import InvalidTransitionError, ValidationError
from ..sync import SyncService
from .lib import SAVE_FAILED_MESSAGE, Studio, StudioError

OWNER = "user-1"
ROOT = InlineArtifact(data=b"root", mime_type="image/jpeg")


class StubBackend(GenerationBackend):
    """Returns numbered images; can be held open or told to fail."""

    def __init__(self):
        self.calls: list[tuple[bytes, str]] = []
        self.gate: asyncio.Event | None = None
        self.error: Exception | None = None

    @property
    def model_name(self) -> str:
        return "stub"

    @property
    def provider(self) -> str:
        return "test"

    async def generate(self, image, instruction):
        self.calls.append((image.data, instruction))
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        data = f"gen{len(self.calls)}".encode()
        return InlineArtifact(data=data, mime_type="image/png")


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def backend():
    return StubBackend()


@pytest.fixture
def snapshots():
    return InMemorySnapshotStore()


@pytest.fixture
def artifacts():
    return InMemoryArtifactStore()


@pytest.fixture
def metadata():
    return InMemoryMetadataStore()


@pytest.fixture
def studio(backend, artifacts, metadata, snapshots):
    return Studio(
        backend,
        SyncService(artifacts, metadata),
        DraftManager(snapshots),
        owner_id=OWNER,
        autosave_interval=3600,
        prompt_commit_delay=0.01,
    )


async def _generate(studio: Studio, prompt: str) -> None:
    studio.set_prompt(prompt)
    assert await studio.generate() is True


# =============================================================================
# Input
# =============================================================================


class TestInput:
    """Image selection."""

    def test_select_file(self, studio, tmp_path):
        path = tmp_path / "yard.png"
        path.write_bytes(b"png-bytes")
        assert studio.select_file(path) is True
        assert studio.session.original_root == InlineArtifact(
            data=b"png-bytes", mime_type="image/png"
        )

    def test_select_non_image(self, studio, tmp_path):
        """Non-image files are rejected with a message."""
        path = tmp_path / "notes.txt"
        path.write_text("hello")
        assert studio.select_file(path) is False
        assert studio.session.working_image is None
        assert "valid image" in studio.session.error_message

    def test_select_oversized(self, studio, tmp_path):
        studio.max_upload_bytes = 4
        path = tmp_path / "big.jpg"
        path.write_bytes(b"0123456789")
        assert studio.select_file(path) is False
        assert "less than" in studio.session.error_message

    def test_select_keeps_prompt(self, studio):
        studio.set_prompt("add a fire pit")
        studio.select_image(ROOT)
        assert studio.session.prompt == "add a fire pit"


# =============================================================================
# Prompt
# =============================================================================


class TestPrompt:
    """Prompt editing and undo."""

    @pytest.mark.asyncio
    async def test_debounced_commit(self, studio):
        """A typing burst becomes one undo step after the pause."""
        for text in ["a", "ad", "add"]:
            studio.update_prompt(text)
        assert studio.session.prompt == "add"
        assert not studio.prompt_history.can_undo

        await asyncio.sleep(0.05)
        assert studio.prompt_history.can_undo
        studio.undo()
        assert studio.session.prompt == ""
        studio.redo()
        assert studio.session.prompt == "add"

    def test_commit_without_loop(self, studio):
        """Outside an event loop the edit is committed at once."""
        studio.update_prompt("terrace")
        assert studio.prompt_history.can_undo


# =============================================================================
# Generation
# =============================================================================


class TestGenerate:
    """Generation through the backend."""

    @pytest.mark.asyncio
    async def test_success_saves_draft(self, studio, backend, snapshots):
        """A result is kept and snapshotted immediately."""
        studio.select_image(ROOT)
        await _generate(studio, "add roses")

        assert studio.state == SessionState.SUCCEEDED
        assert studio.session.last_result.data == b"gen1"
        assert backend.calls == [(b"root", "add roses")]
        assert DRAFT_KEY in snapshots.values
        assert studio.last_autosave is not None

    @pytest.mark.asyncio
    async def test_failure(self, studio, backend):
        """Backend errors move the session to FAILED with the message."""
        backend.error = RateLimitError("Quota exceeded", status_code=429)
        studio.select_image(ROOT)
        studio.set_prompt("add roses")

        assert await studio.generate() is False
        assert studio.state == SessionState.FAILED
        assert studio.session.error_message == "Quota exceeded"

        studio.retry()
        assert studio.state == SessionState.IDLE

    @pytest.mark.asyncio
    async def test_requires_prompt(self, studio):
        studio.select_image(ROOT)
        with pytest.raises(ValidationError):
            await studio.generate()

    @pytest.mark.asyncio
    async def test_concurrent_generate_rejected(self, studio, backend):
        """Only one generation runs at a time."""
        backend.gate = asyncio.Event()
        studio.select_image(ROOT)
        studio.set_prompt("add roses")

        first = asyncio.create_task(studio.generate())
        await asyncio.sleep(0)
        with pytest.raises(InvalidTransitionError):
            await studio.generate()

        backend.gate.set()
        assert await first is True
        assert len(backend.calls) == 1

    @pytest.mark.asyncio
    async def test_result_after_reset_discarded(self, studio, backend, snapshots):
        """A reset while generating drops the late result."""
        backend.gate = asyncio.Event()
        studio.select_image(ROOT)
        studio.set_prompt("add roses")

        pending = asyncio.create_task(studio.generate())
        await asyncio.sleep(0)
        await studio.reset()
        backend.gate.set()

        assert await pending is False
        assert studio.session == WorkingSession()
        assert DRAFT_KEY not in snapshots.values

    @pytest.mark.asyncio
    async def test_result_for_replaced_input_discarded(self, studio, backend):
        """A late result never lands on a newer generation."""
        backend.gate = asyncio.Event()
        studio.select_image(ROOT)
        studio.set_prompt("first")
        stale = asyncio.create_task(studio.generate())
        await asyncio.sleep(0)

        await studio.reset()
        studio.select_image(InlineArtifact(data=b"other-root"))
        studio.set_prompt("second")
        fresh = asyncio.create_task(studio.generate())
        await asyncio.sleep(0)

        backend.gate.set()
        assert await stale is False
        assert await fresh is True
        assert studio.session.prompt == "second"
        assert studio.session.working_image.data == b"other-root"


# =============================================================================
# Result Handling
# =============================================================================


class TestResultHandling:
    """Refine, retry and replace."""

    @pytest.mark.asyncio
    async def test_refine_chain(self, studio):
        """Each refine feeds the result back in as the next input."""
        studio.select_image(ROOT)
        await _generate(studio, "add trees")
        studio.refine()

        assert studio.session.working_image.data == b"gen1"
        assert studio.session.prompt == ""
        assert studio.prompt_history.can_undo

        await _generate(studio, "add a path")
        assert [it.prompt for it in studio.session.past_iterations] == ["add trees"]

    @pytest.mark.asyncio
    async def test_replace_result(self, studio):
        studio.select_image(ROOT)
        await _generate(studio, "add trees")
        cropped = InlineArtifact(data=b"cropped")
        studio.replace_result(cropped)
        assert studio.session.last_result == cropped


# =============================================================================
# Saved Designs
# =============================================================================


class TestSavedDesigns:
    """Save, load, edit and delete."""

    @pytest.mark.asyncio
    async def test_save(self, studio, artifacts, snapshots):
        """A saved lineage appears in the portfolio and the draft is cleared."""
        studio.select_image(ROOT)
        await _generate(studio, "add trees")
        studio.refine()
        await _generate(studio, "add a path")

        assert await studio.save() is True
        assert len(artifacts.uploads) == 4
        assert DRAFT_KEY not in snapshots.values
        assert studio.last_autosave is None
        [design] = studio.saved_designs
        assert design.prompt == "add a path"
        assert len(design.iterations) == 2

    @pytest.mark.asyncio
    async def test_save_failure(self, studio, metadata):
        """A failed save leaves the session intact with a message."""
        metadata.fail_puts = True
        studio.select_image(ROOT)
        await _generate(studio, "add trees")

        assert await studio.save() is False
        assert studio.state == SessionState.SUCCEEDED
        assert studio.session.error_message == SAVE_FAILED_MESSAGE
        assert studio.saved_designs == []

    @pytest.mark.asyncio
    async def test_save_requires_owner(self, studio):
        studio.owner_id = None
        studio.select_image(ROOT)
        await _generate(studio, "add trees")
        with pytest.raises(StudioError):
            await studio.save()

    @pytest.mark.asyncio
    async def test_load_and_edit(self, studio):
        """Saved designs reopen at the result or at the last input."""
        studio.select_image(ROOT)
        await _generate(studio, "add trees")
        studio.refine()
        await _generate(studio, "add a path")
        await studio.save()
        design = studio.find_design(studio.saved_designs[0].id)

        await studio.reset()
        studio.load_design(design)
        assert studio.state == SessionState.SUCCEEDED
        assert studio.session.prompt == "add a path"
        assert studio.session.working_image == design.iterations[0].image
        assert studio.session.last_result == design.iterations[1].image

        studio.edit_design(design)
        assert studio.state == SessionState.IDLE
        assert studio.session.last_result is None
        assert studio.session.prompt == "add a path"
        studio.undo()
        assert studio.session.prompt == "add a path"

    @pytest.mark.asyncio
    async def test_delete(self, studio, artifacts):
        studio.select_image(ROOT)
        await _generate(studio, "add trees")
        await studio.save()

        remaining = await studio.delete_design(studio.saved_designs[0].id)
        assert remaining == studio.saved_designs == []
        assert artifacts.objects == {}

    def test_find_missing_design(self, studio):
        with pytest.raises(StudioError):
            studio.find_design("nope")


# =============================================================================
# Lifecycle
# =============================================================================


class TestLifecycle:
    """Startup and shutdown."""

    @pytest.mark.asyncio
    async def test_startup_restores_draft(self, studio, snapshots, artifacts):
        """A stored draft is restored into the fresh studio."""
        stored = DraftManager(snapshots)
        await stored.save(
            WorkingSession(
                prompt="add a deck",
                working_image=ROOT,
                original_root=ROOT,
                state=SessionState.IDLE,
            )
        )

        await studio.startup()
        try:
            assert studio.session.prompt == "add a deck"
            assert studio.session.working_image == ROOT
            assert studio.prompt_history.value == "add a deck"
            assert studio.drafts.running
        finally:
            await studio.shutdown()
        assert not studio.drafts.running
        assert artifacts.closed

    @pytest.mark.asyncio
    async def test_interrupted_generation_recovered(self, studio, snapshots):
        """A draft saved mid-generation can be retried after a restart."""
        await DraftManager(snapshots).save(
            WorkingSession(
                prompt="add a deck",
                working_image=ROOT,
                original_root=ROOT,
                state=SessionState.GENERATING,
                generation_token="lost",
            )
        )

        await studio.startup()
        try:
            assert studio.state == SessionState.GENERATING
            studio.retry()
            assert studio.state == SessionState.IDLE
            assert studio.session.working_image == ROOT
            assert await studio.generate()
        finally:
            await studio.shutdown()

    @pytest.mark.asyncio
    async def test_startup_loads_designs(self, studio, metadata):
        studio.select_image(ROOT)
        await _generate(studio, "add trees")
        await studio.save()

        other = Studio(
            studio.backend,
            studio.sync,
            DraftManager(InMemorySnapshotStore()),
            owner_id=OWNER,
            autosave_interval=3600,
        )
        await other.startup()
        try:
            assert len(other.saved_designs) == 1
            assert other.session.is_pristine
        finally:
            await other.shutdown()
