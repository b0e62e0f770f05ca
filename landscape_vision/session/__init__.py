"""Working session lifecycle for landscape-vision.

Example:
    >>> from landscape_vision.session import WorkingSession, select_image, start_generation
    >>> session = select_image(WorkingSession(prompt="add a stone path"), image)
    >>> session = start_generation(session)
    >>> session.state
    <SessionState.GENERATING: 'GENERATING'>
"""

from ..history.models import SessionState, WorkingSession
from .lib import (
    ORPHAN_RECOVERY,
    TRANSITIONS,
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
    set_error,
    set_prompt,
    start_generation,
)

__all__ = [
    # Models
    "SessionState",
    "WorkingSession",
    "SessionEvent",
    "TRANSITIONS",
    "ORPHAN_RECOVERY",
    # Errors
    "SessionError",
    "ValidationError",
    "InvalidTransitionError",
    "StaleGenerationError",
    # Transitions
    "accepts",
    "is_orphaned",
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
