"""Storage protocols for lineage persistence.

Defines the interfaces the lineage engine depends on:

- ArtifactStore: durable binary storage for image artifacts
- MetadataStore: durable lineage records
- SnapshotStore: best-effort local key/value slot for drafts

All operations are coroutines; implementations may suspend on I/O.
"""

from typing import Protocol

from ...artifact import InlineArtifact, LocatorArtifact
from ..models import Lineage


class StorageError(Exception):
    """Base exception for storage backend errors."""

    def __init__(self, message: str, path: str | None = None):
        super().__init__(message)
        self.path = path


class UploadError(StorageError):
    """Raised when an artifact upload fails."""


class NotFoundError(StorageError):
    """Raised when the target of a delete is already absent."""


class ArtifactStore(Protocol):
    """Protocol for durable artifact storage.

    Paths are deterministic (owner, lineage, role), so uploading the same
    path twice overwrites rather than duplicates.
    """

    async def upload(self, path: str, artifact: InlineArtifact) -> LocatorArtifact:
        """Store inline content at a path.

        Args:
            path: Storage path (e.g. "users/u1/d1/original.png").
            artifact: Inline content to store.

        Returns:
            Locator resolving to the stored content.

        Raises:
            UploadError: If the content could not be stored.
        """
        ...

    async def delete(self, path: str) -> None:
        """Delete the content stored at a path.

        Raises:
            NotFoundError: If nothing is stored at the path.
            StorageError: For any other failure.
        """
        ...

    def manages(self, locator: LocatorArtifact) -> bool:
        """Check whether a locator points into this store."""
        ...

    async def aclose(self) -> None:
        """Release any connections held by the store."""
        ...


class MetadataStore(Protocol):
    """Protocol for durable lineage records."""

    def initialize(self) -> None:
        """Initialize storage (create tables, directories, etc.)."""
        ...

    def close(self) -> None:
        """Close storage connections and clean up resources."""
        ...

    async def put(self, lineage_id: str, lineage: Lineage) -> None:
        """Create or replace a lineage record."""
        ...

    async def get_all(self, owner_id: str) -> list[Lineage]:
        """Get every lineage owned by a user, in unspecified order."""
        ...

    async def get_one(self, lineage_id: str) -> Lineage | None:
        """Get a lineage by ID, or None if absent."""
        ...

    async def delete(self, lineage_id: str) -> None:
        """Delete a lineage record. Deleting an absent record is a no-op."""
        ...


class SnapshotStore(Protocol):
    """Protocol for the local draft slot.

    Values are serialized snapshots; writes replace the whole value.
    """

    def initialize(self) -> None:
        ...

    def close(self) -> None:
        ...

    async def write(self, key: str, payload: str) -> None:
        """Replace the value stored under a key."""
        ...

    async def read(self, key: str) -> str | None:
        """Get the value stored under a key, or None if absent."""
        ...

    async def delete(self, key: str) -> None:
        """Remove a key. Removing an absent key is a no-op."""
        ...


__all__ = [
    "StorageError",
    "UploadError",
    "NotFoundError",
    "ArtifactStore",
    "MetadataStore",
    "SnapshotStore",
]
