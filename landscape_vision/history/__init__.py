"""Lineage tracking for landscape-vision.

This module provides the iteration lineage model: the durable record of a
root image plus an ordered chain of generation steps, and the rules for
promoting a working session into it and re-entering it later.

Example:
    >>> from landscape_vision.history import promote, reconstruct_for_view
    >>> lineage = promote(session, owner_id="user-1")
    >>> restored = reconstruct_for_view(lineage)
    >>> restored.last_result == session.last_result
    True

Features:
    - Append-only iteration history per working session
    - Promotion with a synthetic final iteration
    - View/edit reconstruction, including pre-history (legacy) records
    - Pluggable storage backends (see ``history.storage``)
"""

from .lib import (
    LEGACY_ITERATION_ID,
    LineageError,
    append_iteration,
    promote,
    reconstruct_for_edit,
    reconstruct_for_view,
    resolve_iterations,
)
from .models import Iteration, Lineage, SessionState, WorkingSession, utc_now

__all__ = [
    # Models
    "Iteration",
    "Lineage",
    "SessionState",
    "WorkingSession",
    "utc_now",
    # Lineage operations
    "LEGACY_ITERATION_ID",
    "LineageError",
    "append_iteration",
    "promote",
    "resolve_iterations",
    "reconstruct_for_view",
    "reconstruct_for_edit",
]
