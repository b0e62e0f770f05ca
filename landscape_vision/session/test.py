"""Tests for the session state machine."""

from dataclasses import replace

import pytest

from ..artifact import InlineArtifact
from ..history import Iteration, SessionState, WorkingSession
from .lib import (
    InvalidTransitionError,
    SessionError,
    SessionEvent,
    StaleGenerationError,
    ValidationError,
    accepts,
    complete_generation,
    fail_generation,
    is_orphaned,
    refine,
    replace_result,
    reset,
    retry,
    select_image,
    start_generation,
)

ROOT = InlineArtifact(data=b"root")
RESULT = InlineArtifact(data=b"result")

# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def ready():
    """IDLE session with an image and a prompt."""
    return select_image(WorkingSession(prompt="add olive trees"), ROOT)


@pytest.fixture
def generating(ready):
    return start_generation(ready)


@pytest.fixture
def succeeded(generating):
    return complete_generation(generating, generating.generation_token, RESULT)


def _in_state(state: SessionState) -> WorkingSession:
    return WorkingSession(
        prompt="p",
        working_image=ROOT,
        original_root=ROOT,
        last_result=RESULT if state == SessionState.SUCCEEDED else None,
        state=state,
        generation_token="t" if state == SessionState.GENERATING else None,
    )


# =============================================================================
# Start Generation
# =============================================================================


class TestStartGeneration:
    """Entering GENERATING."""

    def test_idle_to_generating(self, ready):
        """A ready IDLE session starts generating with a token."""
        session = start_generation(ready)
        assert session.state == SessionState.GENERATING
        assert session.generation_token

    @pytest.mark.parametrize("state", list(SessionState))
    def test_only_idle_accepts_start(self, state):
        """Every state except IDLE rejects start-generation."""
        assert accepts(state, SessionEvent.START_GENERATION) == (
            state == SessionState.IDLE
        )
        if state != SessionState.IDLE:
            with pytest.raises(InvalidTransitionError):
                start_generation(_in_state(state))

    def test_second_start_rejected(self, generating):
        """A second request while GENERATING is rejected."""
        with pytest.raises(InvalidTransitionError, match="GENERATING"):
            start_generation(generating)

    def test_requires_image(self):
        """No input image means no generation."""
        with pytest.raises(ValidationError, match="image"):
            start_generation(WorkingSession(prompt="add a deck"))

    @pytest.mark.parametrize("prompt", ["", "   \n"])
    def test_requires_prompt(self, prompt):
        """Blank prompts are rejected."""
        session = select_image(WorkingSession(prompt=prompt), ROOT)
        with pytest.raises(ValidationError, match="prompt"):
            start_generation(session)

    def test_clears_previous_error(self, ready):
        """Starting a generation clears a leftover error message."""
        session = start_generation(replace(ready, error_message="old failure"))
        assert session.error_message is None


# =============================================================================
# Generation Outcome
# =============================================================================


class TestGenerationOutcome:
    """Leaving GENERATING."""

    def test_success(self, succeeded):
        """A matching result enters SUCCEEDED."""
        assert succeeded.state == SessionState.SUCCEEDED
        assert succeeded.last_result == RESULT
        assert succeeded.generation_token is None

    def test_failure(self, generating):
        """A matching failure enters FAILED with the message."""
        failed = fail_generation(generating, generating.generation_token, "quota")
        assert failed.state == SessionState.FAILED
        assert failed.error_message == "quota"

    def test_stale_result_after_reset(self, generating):
        """A result arriving after reset is rejected."""
        token = generating.generation_token
        with pytest.raises(StaleGenerationError):
            complete_generation(reset(generating), token, RESULT)

    def test_stale_result_from_older_generation(self, generating):
        """A result carrying an older token is rejected."""
        restarted = start_generation(retry(fail_generation(
            generating, generating.generation_token, "timeout"
        )))
        with pytest.raises(StaleGenerationError):
            complete_generation(restarted, generating.generation_token, RESULT)

    def test_stale_failure_rejected(self, generating):
        """Failures are token-checked too."""
        with pytest.raises(StaleGenerationError):
            fail_generation(generating, "other-token", "boom")


# =============================================================================
# Result Handling
# =============================================================================


class TestResultHandling:
    """Retry, refine and replace."""

    def test_retry_keeps_input(self, succeeded):
        """Retry discards the result and keeps the same input."""
        session = retry(succeeded)
        assert session.state == SessionState.IDLE
        assert session.last_result is None
        assert session.working_image == ROOT
        assert session.prompt == "add olive trees"

    def test_retry_from_failed(self, generating):
        """A failure can be dismissed back to IDLE."""
        failed = fail_generation(generating, generating.generation_token, "boom")
        session = retry(failed)
        assert session.state == SessionState.IDLE
        assert session.error_message is None

    def test_refine_commits_step(self, succeeded):
        """Refine appends the result and makes it the next input."""
        session = refine(succeeded)
        assert session.state == SessionState.IDLE
        assert len(session.past_iterations) == 1
        step = session.past_iterations[0]
        assert (step.prompt, step.image) == ("add olive trees", RESULT)
        assert session.working_image == RESULT
        assert session.last_result is None
        assert session.prompt == ""
        assert session.original_root == ROOT

    def test_refine_is_append_only(self):
        """Earlier steps are preserved in order."""
        earlier = Iteration.create("first", InlineArtifact(data=b"i0"))
        session = refine(
            WorkingSession(
                prompt="second",
                working_image=earlier.image,
                original_root=ROOT,
                last_result=RESULT,
                past_iterations=(earlier,),
                state=SessionState.SUCCEEDED,
            )
        )
        assert session.past_iterations[0] is earlier
        assert [s.prompt for s in session.past_iterations] == ["first", "second"]

    @pytest.mark.parametrize(
        "state", [SessionState.IDLE, SessionState.GENERATING, SessionState.FAILED]
    )
    def test_refine_requires_result(self, state):
        """Refine is only accepted in SUCCEEDED."""
        with pytest.raises(InvalidTransitionError):
            refine(_in_state(state))

    def test_replace_result(self, succeeded):
        """An edited result replaces the current one."""
        cropped = InlineArtifact(data=b"cropped")
        session = replace_result(succeeded, cropped)
        assert session.last_result == cropped
        assert session.state == SessionState.SUCCEEDED

    def test_replace_result_requires_success(self, ready):
        """There is nothing to replace before a result exists."""
        with pytest.raises(InvalidTransitionError):
            replace_result(ready, RESULT)


# =============================================================================
# Input Handling
# =============================================================================


class TestInputHandling:
    """Image selection and reset."""

    def test_select_image_starts_new_lineage(self, succeeded):
        """Selecting an image clears history and result."""
        refined = refine(succeeded)
        new_root = InlineArtifact(data=b"new-root")
        session = select_image(refined, new_root)
        assert session.original_root == session.working_image == new_root
        assert session.past_iterations == ()
        assert session.last_result is None

    def test_select_image_rejected_while_generating(self, generating):
        """The input cannot change under an in-flight generation."""
        with pytest.raises(InvalidTransitionError):
            select_image(generating, ROOT)

    @pytest.mark.parametrize("state", list(SessionState))
    def test_reset_from_any_state(self, state):
        """Reset always yields a pristine IDLE session."""
        session = reset(_in_state(state))
        assert session == WorkingSession()
        assert session.is_pristine


# =============================================================================
# Orphaned Generation
# =============================================================================


class TestOrphanedGeneration:
    """GENERATING sessions with no request in flight."""

    @pytest.fixture
    def orphaned(self, succeeded):
        refined = refine(succeeded)
        return replace(
            refined,
            prompt="add a pond",
            state=SessionState.GENERATING,
            generation_token=None,
        )

    def test_detection(self, orphaned, generating):
        assert is_orphaned(orphaned)
        assert not is_orphaned(generating)

    def test_retry_recovers_input(self, orphaned):
        """Retry returns to IDLE with the same input and history."""
        session = retry(orphaned)
        assert session.state == SessionState.IDLE
        assert session.working_image == RESULT
        assert session.past_iterations == orphaned.past_iterations
        assert session.prompt == "add a pond"

    def test_select_image_recovers(self, orphaned):
        new_root = InlineArtifact(data=b"new-root")
        session = select_image(orphaned, new_root)
        assert session.state == SessionState.IDLE
        assert session.working_image == new_root

    def test_in_flight_generation_not_recoverable(self, generating):
        """A tokened generation still rejects retry."""
        with pytest.raises(InvalidTransitionError):
            retry(generating)

    def test_start_still_rejected(self, orphaned):
        with pytest.raises(InvalidTransitionError):
            start_generation(orphaned)


class TestRefineGuard:
    def test_succeeded_without_result(self):
        """A SUCCEEDED session missing its result cannot be refined."""
        with pytest.raises(SessionError, match="no result"):
            refine(replace(_in_state(SessionState.SUCCEEDED), last_result=None))
