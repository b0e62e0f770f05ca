"""Storage factory.

Builds the configured storage backends from environment settings.
"""

from pathlib import Path

from ...config import (
    EnvVar,
    get_artifact_dir,
    get_draft_db_path,
    get_environment,
    get_metadata_db_path,
)
from .filesystem import LocalArtifactStore
from .protocol import ArtifactStore
from .remote import HttpArtifactStore
from .sqlite import SQLiteMetadataStore, SQLiteSnapshotStore


def create_artifact_store(
    data_dir: Path | str | None = None,
    *,
    base_url: str | None = None,
    token: str | None = None,
) -> ArtifactStore:
    """Create the artifact store.

    Uses the remote HTTP store when a base URL is configured
    (VISION_ARTIFACT_URL), otherwise a local directory under the data dir.

    Args:
        data_dir: Data directory override.
        base_url: Remote store URL override.
        token: Remote store bearer token override.

    Returns:
        Configured ArtifactStore.
    """
    url = get_environment(EnvVar.VISION_ARTIFACT_URL, override=base_url)
    if url:
        return HttpArtifactStore(
            url, token=get_environment(EnvVar.VISION_ARTIFACT_TOKEN, override=token)
        )
    return LocalArtifactStore(get_artifact_dir(data_dir))


def create_metadata_store(data_dir: Path | str | None = None) -> SQLiteMetadataStore:
    """Create and initialize the lineage metadata store."""
    store = SQLiteMetadataStore(get_metadata_db_path(data_dir))
    store.initialize()
    return store


def create_snapshot_store(data_dir: Path | str | None = None) -> SQLiteSnapshotStore:
    """Create and initialize the local draft store."""
    store = SQLiteSnapshotStore(get_draft_db_path(data_dir))
    store.initialize()
    return store


__all__ = [
    "create_artifact_store",
    "create_metadata_store",
    "create_snapshot_store",
]
