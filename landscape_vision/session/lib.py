"""Session state machine.

Every transition is a pure function ``(session, ...) -> session``. Events a
state does not accept raise ``InvalidTransitionError``; in particular only
IDLE accepts a start-generation event, so a session never runs two
generations at once.

Each generation is stamped with a token. A result or failure whose token no
longer matches the session (because it was reset, or moved on) raises
``StaleGenerationError`` and must be discarded by the caller.
"""

import logging
from dataclasses import replace
from enum import Enum
from uuid import uuid4

from ..artifact import ArtifactRef
from ..history import Iteration, SessionState, WorkingSession, append_iteration

logger = logging.getLogger(__name__)


class SessionEvent(str, Enum):
    """Events driving the session state machine."""

    START_GENERATION = "start_generation"
    COMPLETE_GENERATION = "complete_generation"
    FAIL_GENERATION = "fail_generation"
    RETRY = "retry"
    REFINE = "refine"
    REPLACE_RESULT = "replace_result"
    SELECT_IMAGE = "select_image"
    RESET = "reset"


ALL_STATES = frozenset(SessionState)

# Event -> states that accept it
TRANSITIONS: dict[SessionEvent, frozenset[SessionState]] = {
    SessionEvent.START_GENERATION: frozenset({SessionState.IDLE}),
    SessionEvent.COMPLETE_GENERATION: frozenset({SessionState.GENERATING}),
    SessionEvent.FAIL_GENERATION: frozenset({SessionState.GENERATING}),
    SessionEvent.RETRY: frozenset({SessionState.SUCCEEDED, SessionState.FAILED}),
    SessionEvent.REFINE: frozenset({SessionState.SUCCEEDED}),
    SessionEvent.REPLACE_RESULT: frozenset({SessionState.SUCCEEDED}),
    SessionEvent.SELECT_IMAGE: ALL_STATES - {SessionState.GENERATING},
    SessionEvent.RESET: ALL_STATES,
}

# Events that also recover a GENERATING session with no request in flight
ORPHAN_RECOVERY = frozenset({SessionEvent.RETRY, SessionEvent.SELECT_IMAGE})


class SessionError(Exception):
    """Base exception for session state machine errors."""


class ValidationError(SessionError):
    """Raised when a generation is requested without an image or prompt."""


class InvalidTransitionError(SessionError):
    """Raised when the current state does not accept an event."""

    def __init__(self, state: SessionState, event: SessionEvent):
        super().__init__(f"Cannot {event.value} while {state.value}")
        self.state = state
        self.event = event


class StaleGenerationError(SessionError):
    """Raised when a generation outcome no longer targets the session."""


def accepts(state: SessionState, event: SessionEvent) -> bool:
    """Check whether a state accepts an event."""
    return state in TRANSITIONS[event]


def is_orphaned(session: WorkingSession) -> bool:
    """Check for a GENERATING session that no request will ever complete.

    Restored drafts keep their stored state but never their generation token.
    """
    return (
        session.state == SessionState.GENERATING
        and session.generation_token is None
    )


def _require(session: WorkingSession, event: SessionEvent) -> None:
    if accepts(session.state, event):
        return
    if event in ORPHAN_RECOVERY and is_orphaned(session):
        return
    raise InvalidTransitionError(session.state, event)


def _require_current(session: WorkingSession, token: str) -> None:
    if session.state != SessionState.GENERATING or session.generation_token != token:
        raise StaleGenerationError(f"Generation {token} is no longer active")


# =============================================================================
# Generation
# =============================================================================


def start_generation(session: WorkingSession) -> WorkingSession:
    """Enter GENERATING with a fresh generation token.

    Raises:
        InvalidTransitionError: If the session is not IDLE.
        ValidationError: If there is no input image or the prompt is blank.
    """
    _require(session, SessionEvent.START_GENERATION)
    if session.working_image is None:
        raise ValidationError("An input image is required to generate")
    if not session.prompt.strip():
        raise ValidationError("A prompt is required to generate")

    return replace(
        session,
        state=SessionState.GENERATING,
        error_message=None,
        generation_token=str(uuid4()),
    )


def complete_generation(
    session: WorkingSession, token: str, result: ArtifactRef
) -> WorkingSession:
    """Record a generation result and enter SUCCEEDED.

    Raises:
        StaleGenerationError: If ``token`` is not the active generation.
    """
    _require_current(session, token)
    return replace(
        session,
        state=SessionState.SUCCEEDED,
        last_result=result,
        generation_token=None,
    )


def fail_generation(
    session: WorkingSession, token: str, message: str
) -> WorkingSession:
    """Record a generation failure and enter FAILED.

    Raises:
        StaleGenerationError: If ``token`` is not the active generation.
    """
    _require_current(session, token)
    return replace(
        session,
        state=SessionState.FAILED,
        error_message=message,
        generation_token=None,
    )


# =============================================================================
# Result handling
# =============================================================================


def retry(session: WorkingSession) -> WorkingSession:
    """Discard the result (or failure) and go back to editing the same input.

    Also recovers an orphaned GENERATING session restored from a draft.
    """
    _require(session, SessionEvent.RETRY)
    return replace(
        session, state=SessionState.IDLE, last_result=None, error_message=None
    )


def refine(session: WorkingSession) -> WorkingSession:
    """Commit the result as a completed step and use it as the next input.

    The prompt is cleared so the next step can be described.
    """
    _require(session, SessionEvent.REFINE)
    if session.last_result is None:
        raise SessionError("There is no result to refine")

    iteration = Iteration.create(prompt=session.prompt, image=session.last_result)
    return replace(
        session,
        past_iterations=append_iteration(session.past_iterations, iteration),
        working_image=session.last_result,
        last_result=None,
        prompt="",
        state=SessionState.IDLE,
        error_message=None,
    )


def replace_result(session: WorkingSession, image: ArtifactRef) -> WorkingSession:
    """Swap the result for an edited copy (e.g. cropped or rotated)."""
    _require(session, SessionEvent.REPLACE_RESULT)
    return replace(session, last_result=image)


# =============================================================================
# Input handling
# =============================================================================


def select_image(session: WorkingSession, image: ArtifactRef) -> WorkingSession:
    """Start a new lineage from a freshly selected root image.

    The prompt is kept; history and any result are cleared.
    """
    _require(session, SessionEvent.SELECT_IMAGE)
    return replace(
        session,
        working_image=image,
        original_root=image,
        last_result=None,
        past_iterations=(),
        state=SessionState.IDLE,
        error_message=None,
    )


def set_prompt(session: WorkingSession, prompt: str) -> WorkingSession:
    return replace(session, prompt=prompt)


def set_error(session: WorkingSession, message: str | None) -> WorkingSession:
    return replace(session, error_message=message)


def reset(session: WorkingSession | None = None) -> WorkingSession:
    """Return a fresh IDLE session. Accepted from any state."""
    if session is not None and session.state == SessionState.GENERATING:
        logger.info("Reset while generating; the in-flight result will be discarded")
    return WorkingSession()


__all__ = [
    "SessionEvent",
    "TRANSITIONS",
    "SessionError",
    "ValidationError",
    "InvalidTransitionError",
    "StaleGenerationError",
    "ORPHAN_RECOVERY",
    "is_orphaned",
    "accepts",
    "start_generation",
    "complete_generation",
    "fail_generation",
    "retry",
    "refine",
    "replace_result",
    "select_image",
    "set_prompt",
    "set_error",
    "reset",
]
