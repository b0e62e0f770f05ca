"""Storage backends for lineage persistence.

This module provides the collaborator protocols the lineage engine depends
on and their implementations.

Available backends:
- SQLiteMetadataStore: Lineage records in a SQLite database
- SQLiteSnapshotStore: Local draft slot in a SQLite database
- LocalArtifactStore: Artifacts on the local filesystem (file:// locators)
- HttpArtifactStore: Artifacts in an HTTP object store
- InMemory*Store: In-memory storage for testing
"""

from .factory import (
    create_artifact_store,
    create_metadata_store,
    create_snapshot_store,
)
from .filesystem import LocalArtifactStore
from .memory import (
    MEMORY_URL_PREFIX,
    InMemoryArtifactStore,
    InMemoryMetadataStore,
    InMemorySnapshotStore,
)
from .protocol import (
    ArtifactStore,
    MetadataStore,
    NotFoundError,
    SnapshotStore,
    StorageError,
    UploadError,
)
from .remote import HttpArtifactStore
from .sqlite import SQLiteMetadataStore, SQLiteSnapshotStore

__all__ = [
    # Protocols
    "ArtifactStore",
    "MetadataStore",
    "SnapshotStore",
    # Errors
    "StorageError",
    "UploadError",
    "NotFoundError",
    # Backends
    "SQLiteMetadataStore",
    "SQLiteSnapshotStore",
    "LocalArtifactStore",
    "HttpArtifactStore",
    "InMemoryArtifactStore",
    "InMemoryMetadataStore",
    "InMemorySnapshotStore",
    "MEMORY_URL_PREFIX",
    # Factory
    "create_artifact_store",
    "create_metadata_store",
    "create_snapshot_store",
]
