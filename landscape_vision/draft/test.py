"""Tests for the draft snapshot manager."""

import asyncio

import pytest

from ..artifact import InlineArtifact, LocatorArtifact
from ..history import Iteration, SessionState, WorkingSession
from ..history.storage import InMemorySnapshotStore, SQLiteSnapshotStore
from ..session import retry, start_generation
from .lib import DRAFT_KEY, DraftManager
from .models import DraftSnapshot

ROOT = InlineArtifact(data=b"root")
RESULT = InlineArtifact(data=b"result")


@pytest.fixture
def store():
    return InMemorySnapshotStore()


@pytest.fixture
def drafts(store):
    return DraftManager(store)


@pytest.fixture
def session():
    """A session mid-way through a two-step lineage."""
    return WorkingSession(
        prompt="add a pergola",
        working_image=LocatorArtifact(url="https://cdn.example/i1.png"),
        original_root=ROOT,
        last_result=RESULT,
        past_iterations=(Iteration.create("add trees", ROOT),),
        state=SessionState.SUCCEEDED,
    )


class TestDraftSnapshot:
    """Snapshot serialization."""

    def test_payload_uses_camel_case(self, session):
        """Payload keys follow the persisted naming."""
        payload = DraftSnapshot.from_session(session).to_payload()
        for key in ["workingImage", "lastResult", "pastIterations", "originalRoot"]:
            assert f'"{key}"' in payload
        assert '"sessionState":"SUCCEEDED"' in payload

    def test_session_survives_payload(self, session):
        """A session is rebuilt field for field from its payload."""
        payload = DraftSnapshot.from_session(session).to_payload()
        restored = DraftSnapshot.from_payload(payload).to_session()
        assert restored == session


class TestAutosave:
    """Timer-driven snapshots."""

    @pytest.mark.asyncio
    async def test_empty_session_not_written(self, drafts, store):
        """An empty session never produces a snapshot."""
        assert await drafts.autosave(WorkingSession()) is False
        assert store.writes == 0
        assert DRAFT_KEY not in store.values

    @pytest.mark.asyncio
    async def test_prompt_only_written(self, drafts, store):
        """A typed prompt alone is worth saving."""
        assert await drafts.autosave(WorkingSession(prompt="meadow")) is True
        assert store.writes == 1
        assert drafts.last_saved is not None

    @pytest.mark.asyncio
    async def test_last_write_wins(self, drafts, store, session):
        """Only one snapshot slot exists."""
        await drafts.autosave(WorkingSession(prompt="first"))
        await drafts.autosave(session)
        assert len(store.values) == 1
        snapshot = await drafts.load()
        assert snapshot.prompt == "add a pergola"

    @pytest.mark.asyncio
    async def test_write_failure_swallowed(self, drafts, store, session):
        """A failing store degrades to a logged no-op."""
        store.fail = True
        assert await drafts.save(session) is False
        assert drafts.last_saved is None

    @pytest.mark.asyncio
    async def test_loop_ticks(self, drafts, store):
        """The autosave task writes on every tick."""
        drafts.start(lambda: WorkingSession(prompt="tick"), interval=0.01)
        assert drafts.running
        await asyncio.sleep(0.05)
        await drafts.stop()
        assert not drafts.running
        assert store.writes >= 1


class TestRestore:
    """Start-up recovery."""

    @pytest.mark.asyncio
    async def test_restores_verbatim(self, drafts, session):
        """Every field and the stored state come back unchanged."""
        await drafts.save(session)
        restored = await drafts.restore(WorkingSession())
        assert restored == session
        assert restored.state == SessionState.SUCCEEDED

    @pytest.mark.asyncio
    async def test_generating_draft_can_be_retried(self, drafts, session):
        """A mid-generation draft restores as GENERATING and retry recovers it."""
        generating = start_generation(retry(session))
        await drafts.save(generating)

        restored = await drafts.restore(WorkingSession())
        assert restored.state == SessionState.GENERATING
        assert restored.generation_token is None

        recovered = retry(restored)
        assert recovered.state == SessionState.IDLE
        assert recovered.past_iterations == session.past_iterations
        assert recovered.working_image == session.working_image
        assert start_generation(recovered).state == SessionState.GENERATING

    @pytest.mark.asyncio
    async def test_ignored_when_session_has_content(self, drafts, session):
        """A draft is never merged into a session with content."""
        await drafts.save(session)
        assert await drafts.restore(WorkingSession(prompt="typed")) is None

    @pytest.mark.asyncio
    async def test_missing_draft(self, drafts):
        assert await drafts.restore(WorkingSession()) is None

    @pytest.mark.asyncio
    async def test_corrupt_draft_ignored(self, drafts, store):
        """Undecodable payloads are treated as absent."""
        store.values[DRAFT_KEY] = "{not json"
        assert await drafts.restore(WorkingSession()) is None

    @pytest.mark.asyncio
    async def test_read_failure_swallowed(self, drafts, store):
        store.fail = True
        assert await drafts.restore(WorkingSession()) is None


class TestClear:
    """Draft removal."""

    @pytest.mark.asyncio
    async def test_clear(self, drafts, store, session):
        await drafts.save(session)
        await drafts.clear()
        assert DRAFT_KEY not in store.values

    @pytest.mark.asyncio
    async def test_clear_failure_swallowed(self, drafts, store):
        """Clearing never raises."""
        store.fail = True
        await drafts.clear()

    @pytest.mark.asyncio
    async def test_sqlite_store(self, tmp_path, session):
        """The manager works against the SQLite snapshot store."""
        store = SQLiteSnapshotStore(tmp_path / "drafts.db")
        store.initialize()
        try:
            drafts = DraftManager(store)
            await drafts.save(session)
            assert await drafts.restore(WorkingSession()) == session
            await drafts.clear()
            assert await drafts.load() is None
        finally:
            store.close()
