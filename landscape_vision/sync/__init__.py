"""Durable sync for landscape-vision.

Uploads inline artifacts, writes lineage records and cleans both up again.

Example:
    >>> from landscape_vision.sync import SyncService
    >>> sync = SyncService(artifact_store, metadata_store)
    >>> ok = await sync.save(lineage, owner_id="user-1")
    >>> designs = await sync.load_all("user-1")

Features:
    - Deterministic per-role artifact paths, idempotent re-save
    - Parallel per-iteration uploads, all-or-nothing record write
    - Best-effort parallel artifact cleanup on delete
"""

from .lib import (
    GENERATED_ROLE,
    ORIGINAL_ROLE,
    SyncService,
    artifact_path,
    iteration_role,
)

__all__ = [
    "SyncService",
    "artifact_path",
    "iteration_role",
    "ORIGINAL_ROLE",
    "GENERATED_ROLE",
]
