"""Tests for lineage tracking.

Tests cover:
- Data models and record serialization
- Append-only iteration history
- Promotion of a working session
- View/edit reconstruction, including legacy records
"""

from datetime import UTC, datetime

import pytest

from ..artifact import InlineArtifact, LocatorArtifact
from .lib import (
    LEGACY_ITERATION_ID,
    LineageError,
    append_iteration,
    promote,
    reconstruct_for_edit,
    reconstruct_for_view,
    resolve_iterations,
)
from .models import Iteration, Lineage, SessionState, WorkingSession

# =============================================================================
# Fixtures
# =============================================================================


def _image(label: str) -> InlineArtifact:
    return InlineArtifact(data=label.encode(), mime_type="image/png")


@pytest.fixture
def root():
    return _image("R0")


@pytest.fixture
def two_step_lineage(root):
    """Root R0 refined twice into I1 then I2."""
    session = WorkingSession(
        prompt="add a pond",
        working_image=_image("I1"),
        original_root=root,
        last_result=_image("I2"),
        past_iterations=(Iteration.create("add hedges", _image("I1")),),
        state=SessionState.SUCCEEDED,
    )
    return promote(session, owner_id="user-1")


# =============================================================================
# Model Tests
# =============================================================================


class TestModels:
    """Tests for data models."""

    def test_iteration_factory(self):
        """Iteration.create assigns an id and timestamp."""
        iteration = Iteration.create("add trees", _image("x"))
        assert iteration.id
        assert iteration.timestamp.tzinfo is not None

    def test_iteration_is_immutable(self):
        """Completed steps cannot be modified."""
        iteration = Iteration.create("add trees", _image("x"))
        with pytest.raises(Exception):
            iteration.prompt = "changed"

    def test_record_uses_camel_case(self, two_step_lineage):
        """Persisted records use the camelCase field names."""
        record = two_step_lineage.to_record()
        for key in ("ownerId", "originalImage", "generatedImage", "iterations"):
            assert f'"{key}"' in record

    def test_record_round_trip(self, two_step_lineage):
        """from_record restores an equal lineage."""
        restored = Lineage.from_record(two_step_lineage.to_record())
        assert restored == two_step_lineage

    def test_artifacts_lists_every_reference(self, two_step_lineage):
        """Root, thumbnail and every iteration image are reachable."""
        refs = two_step_lineage.artifacts()
        assert len(refs) == 2 + len(two_step_lineage.iterations)

    def test_session_pristine(self, root):
        """A session is pristine only with no image and no prompt."""
        assert WorkingSession().is_pristine
        assert not WorkingSession(prompt="x").is_pristine
        assert not WorkingSession(working_image=root, original_root=root).is_pristine


# =============================================================================
# Append Tests
# =============================================================================


class TestAppendIteration:
    """Append-only history."""

    def test_grows_by_one_in_call_order(self):
        """Each append adds exactly one entry at the end."""
        past: tuple[Iteration, ...] = ()
        steps = [Iteration.create(f"step {i}", _image(str(i))) for i in range(5)]
        for count, step in enumerate(steps, start=1):
            past = append_iteration(past, step)
            assert len(past) == count
        assert list(past) == steps

    def test_does_not_mutate_input(self):
        """The previous history value is left untouched."""
        first = (Iteration.create("a", _image("a")),)
        append_iteration(first, Iteration.create("b", _image("b")))
        assert len(first) == 1


# =============================================================================
# Promotion Tests
# =============================================================================


class TestPromote:
    """Working session to lineage."""

    def test_appends_synthetic_final_iteration(self, two_step_lineage, root):
        """The in-progress result becomes the last iteration."""
        assert len(two_step_lineage.iterations) == 2
        last = two_step_lineage.iterations[-1]
        assert last.image == _image("I2")
        assert last.prompt == "add a pond"
        assert two_step_lineage.original_image == root

    def test_denormalized_fields_mirror_last_iteration(self, two_step_lineage):
        """generated_image/prompt equal the last iteration's image/prompt."""
        last = two_step_lineage.iterations[-1]
        assert two_step_lineage.generated_image == last.image
        assert two_step_lineage.prompt == last.prompt

    def test_requires_result(self, root):
        """A session without a result cannot be promoted."""
        session = WorkingSession(working_image=root, original_root=root)
        with pytest.raises(LineageError, match="result"):
            promote(session)

    def test_requires_input(self):
        """A session without an input image cannot be promoted."""
        with pytest.raises(LineageError, match="input"):
            promote(WorkingSession(last_result=_image("r")))

    def test_root_falls_back_to_working_image(self):
        """Without a recorded root the working image is used."""
        session = WorkingSession(working_image=_image("w"), last_result=_image("r"))
        assert promote(session).original_image == _image("w")

    def test_uses_given_identity(self, root):
        """Explicit id, owner and timestamp are honoured."""
        now = datetime(2025, 1, 1, tzinfo=UTC)
        session = WorkingSession(
            prompt="p", working_image=root, original_root=root, last_result=_image("r")
        )
        lineage = promote(session, lineage_id="d1", owner_id="u1", now=now)
        assert (lineage.id, lineage.owner_id, lineage.timestamp) == ("d1", "u1", now)
        assert lineage.iterations[-1].timestamp == now


# =============================================================================
# Reconstruction Tests
# =============================================================================


class TestReconstruct:
    """Lineage to working session."""

    def test_view_round_trip(self, root):
        """promote then view restores past/result/prompt."""
        step_a = Iteration.create("a", _image("A"))
        session = WorkingSession(
            prompt="P",
            working_image=step_a.image,
            original_root=root,
            last_result=_image("R"),
            past_iterations=(step_a,),
            state=SessionState.SUCCEEDED,
        )
        restored = reconstruct_for_view(promote(session))
        assert restored.past_iterations == (step_a,)
        assert restored.last_result == _image("R")
        assert restored.prompt == "P"
        assert restored.working_image == step_a.image

    def test_view_two_step_scenario(self, two_step_lineage, root):
        """Viewing shows input I1, result I2 and I2's prompt."""
        session = reconstruct_for_view(two_step_lineage)
        i1, i2 = two_step_lineage.iterations
        assert session.working_image == i1.image
        assert session.last_result == i2.image
        assert session.prompt == i2.prompt
        assert session.past_iterations == (i1,)
        assert session.original_root == root
        assert session.state == SessionState.SUCCEEDED

    def test_edit_two_step_scenario(self, two_step_lineage):
        """Editing shows input I1 and I2's prompt with no result."""
        session = reconstruct_for_edit(two_step_lineage)
        i1, i2 = two_step_lineage.iterations
        assert session.working_image == i1.image
        assert session.prompt == i2.prompt
        assert session.last_result is None
        assert session.state == SessionState.IDLE

    def test_edit_single_step_uses_root(self, root):
        """With one iteration the edit input is the root."""
        lineage = Lineage(
            id="d1",
            original_image=root,
            generated_image=_image("G"),
            prompt="p",
            iterations=[Iteration.create("p", _image("G"))],
        )
        session = reconstruct_for_edit(lineage)
        assert session.working_image == root
        assert session.past_iterations == ()
        assert session.last_result is None

    def test_legacy_lineage_view(self, root):
        """Records without iterations read as one legacy step."""
        stamp = datetime(2024, 5, 1, tzinfo=UTC)
        lineage = Lineage(
            id="old",
            timestamp=stamp,
            original_image=root,
            generated_image=LocatorArtifact(url="https://cdn.example.com/g.png"),
            prompt="legacy prompt",
        )
        steps = resolve_iterations(lineage)
        assert [s.id for s in steps] == [LEGACY_ITERATION_ID]
        assert steps[0].timestamp == stamp

        session = reconstruct_for_view(lineage)
        assert session.past_iterations == ()
        assert session.working_image == root
        assert session.last_result == lineage.generated_image
        assert session.prompt == "legacy prompt"

    def test_degenerate_lineage_view(self, root):
        """No iterations and no thumbnail falls back to top-level fields."""
        lineage = Lineage(id="bad", original_image=root, prompt="p")
        session = reconstruct_for_view(lineage)
        assert session.working_image == root
        assert session.last_result is None
        assert session.prompt == "p"
        assert session.state == SessionState.IDLE

    def test_record_decoded_lineage(self, two_step_lineage):
        """Reconstruction works on lineages read back from storage."""
        restored = Lineage.from_record(two_step_lineage.to_record())
        session = reconstruct_for_view(restored)
        assert session.last_result == two_step_lineage.generated_image
