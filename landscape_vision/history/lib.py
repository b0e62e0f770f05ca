"""Iteration lineage operations.

Pure transforms between a working session and its durable lineage:

- ``append_iteration``: record a completed step (append-only)
- ``promote``: turn a working session into a persistable Lineage
- ``reconstruct_for_view``: re-enter a lineage at the result of its last step
- ``reconstruct_for_edit``: re-enter a lineage at the input of its last step

Both reconstructions walk back one step to recover the working image, since
a step's input is the previous step's output (or the root for the first step).
"""

import logging
from dataclasses import replace
from datetime import datetime
from uuid import uuid4

from .models import Iteration, Lineage, SessionState, WorkingSession, utc_now

logger = logging.getLogger(__name__)

LEGACY_ITERATION_ID = "legacy"


class LineageError(ValueError):
    """Raised when a working session cannot be promoted."""


def append_iteration(
    past: tuple[Iteration, ...], iteration: Iteration
) -> tuple[Iteration, ...]:
    """Return ``past`` extended by one completed step."""
    return (*past, iteration)


def promote(
    session: WorkingSession,
    lineage_id: str | None = None,
    owner_id: str | None = None,
    now: datetime | None = None,
) -> Lineage:
    """Promote a working session into a persistable lineage.

    The in-progress result becomes a synthetic final iteration, so the
    lineage always has at least one step.

    Args:
        session: Session with a result to keep.
        lineage_id: Identifier to use (generated if None).
        owner_id: Owner to stamp on the lineage.
        now: Timestamp for the lineage and its final iteration.

    Returns:
        New lineage whose generated_image/prompt mirror the final iteration.

    Raises:
        LineageError: If the session has no result or no input image.
    """
    if session.last_result is None:
        raise LineageError("Cannot promote a session without a result")
    if session.working_image is None:
        raise LineageError("Cannot promote a session without an input image")

    now = now or utc_now()
    final = Iteration(
        id=str(uuid4()),
        prompt=session.prompt,
        image=session.last_result,
        timestamp=now,
    )
    iterations = list(append_iteration(session.past_iterations, final))

    return Lineage(
        id=lineage_id or str(uuid4()),
        owner_id=owner_id,
        timestamp=now,
        original_image=session.original_root or session.working_image,
        generated_image=final.image,
        prompt=final.prompt,
        iterations=iterations,
    )


def resolve_iterations(lineage: Lineage) -> list[Iteration]:
    """Get a lineage's steps, synthesizing one for pre-history records.

    Lineages saved before per-step history existed carry only the
    top-level generated_image/prompt; they read as a single step.
    """
    if lineage.iterations:
        return list(lineage.iterations)
    if lineage.generated_image is not None:
        return [
            Iteration(
                id=LEGACY_ITERATION_ID,
                prompt=lineage.prompt,
                image=lineage.generated_image,
                timestamp=lineage.timestamp,
            )
        ]
    return []


def _split_last_step(
    lineage: Lineage,
) -> tuple[tuple[Iteration, ...], Iteration] | None:
    iterations = resolve_iterations(lineage)
    if not iterations:
        return None
    return tuple(iterations[:-1]), iterations[-1]


def reconstruct_for_view(lineage: Lineage) -> WorkingSession:
    """Rebuild a working session showing the lineage's final result.

    Args:
        lineage: Persisted lineage.

    Returns:
        Session in SUCCEEDED state with the last step as ``last_result``.
    """
    split = _split_last_step(lineage)
    if split is None:
        # No steps and no thumbnail: nothing to show, reopen the input
        logger.warning(
            f"Lineage {lineage.id} has no iterations; loading top-level fields"
        )
        return WorkingSession(
            prompt=lineage.prompt,
            working_image=lineage.original_image,
            original_root=lineage.original_image,
            state=SessionState.IDLE,
        )

    rest, last = split
    return WorkingSession(
        prompt=last.prompt,
        working_image=rest[-1].image if rest else lineage.original_image,
        original_root=lineage.original_image,
        last_result=last.image,
        past_iterations=rest,
        state=SessionState.SUCCEEDED,
    )


def reconstruct_for_edit(lineage: Lineage) -> WorkingSession:
    """Rebuild a working session at the input of the lineage's last step.

    The last step's output is dropped so it can be regenerated with a
    different instruction.

    Args:
        lineage: Persisted lineage.

    Returns:
        Session in IDLE state with no ``last_result``.
    """
    viewed = reconstruct_for_view(lineage)
    return replace(viewed, last_result=None, state=SessionState.IDLE)


__all__ = [
    "LEGACY_ITERATION_ID",
    "LineageError",
    "append_iteration",
    "promote",
    "resolve_iterations",
    "reconstruct_for_view",
    "reconstruct_for_edit",
]
