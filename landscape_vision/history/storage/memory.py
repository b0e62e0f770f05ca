"""In-memory storage backends.

Used for testing and for ephemeral sessions. The artifact store records
every call and can be told to fail specific paths.
"""

import asyncio

from ...artifact import InlineArtifact, LocatorArtifact
from ..models import Lineage
from .protocol import NotFoundError, StorageError, UploadError

MEMORY_URL_PREFIX = "https://memory.invalid/"


class InMemoryArtifactStore:
    """Artifact store keeping bytes in a dict.

    Attributes:
        objects: Stored content by path.
        uploads: Paths passed to upload(), in call order.
        deletes: Paths passed to delete(), in call order.
        fail_uploads: Paths whose upload raises UploadError.
        fail_deletes: Paths whose delete raises StorageError.
        closed: Whether aclose() was called.
    """

    def __init__(self, latency: float = 0.0):
        self.objects: dict[str, InlineArtifact] = {}
        self.uploads: list[str] = []
        self.deletes: list[str] = []
        self.fail_uploads: set[str] = set()
        self.fail_deletes: set[str] = set()
        self.closed = False
        self._latency = latency

    def manages(self, locator: LocatorArtifact) -> bool:
        return locator.url.startswith(MEMORY_URL_PREFIX)

    async def upload(self, path: str, artifact: InlineArtifact) -> LocatorArtifact:
        self.uploads.append(path)
        if self._latency:
            await asyncio.sleep(self._latency)
        if path in self.fail_uploads:
            raise UploadError("Simulated upload failure", path=path)
        self.objects[path] = artifact
        return LocatorArtifact(url=MEMORY_URL_PREFIX + path)

    async def delete(self, path: str) -> None:
        self.deletes.append(path)
        if path in self.fail_deletes:
            raise StorageError("Simulated delete failure", path=path)
        if self.objects.pop(path, None) is None:
            raise NotFoundError(f"Artifact not found: {path}", path=path)

    async def aclose(self) -> None:
        self.closed = True


class InMemoryMetadataStore:
    """Lineage record store keeping serialized records in a dict.

    Records are stored serialized so reads never alias caller objects.
    """

    def __init__(self) -> None:
        self.records: dict[str, str] = {}
        self.puts: list[str] = []
        self.fail_puts = False

    def initialize(self) -> None:
        pass

    def close(self) -> None:
        pass

    async def put(self, lineage_id: str, lineage: Lineage) -> None:
        self.puts.append(lineage_id)
        if self.fail_puts:
            raise StorageError("Simulated metadata write failure")
        self.records[lineage_id] = lineage.to_record()

    async def get_all(self, owner_id: str) -> list[Lineage]:
        lineages = [Lineage.from_record(r) for r in self.records.values()]
        return [lineage for lineage in lineages if lineage.owner_id == owner_id]

    async def get_one(self, lineage_id: str) -> Lineage | None:
        record = self.records.get(lineage_id)
        return Lineage.from_record(record) if record else None

    async def delete(self, lineage_id: str) -> None:
        self.records.pop(lineage_id, None)


class InMemorySnapshotStore:
    """Key/value draft slot kept in a dict.

    Attributes:
        fail: When True every operation raises StorageError.
    """

    def __init__(self) -> None:
        self.values: dict[str, str] = {}
        self.writes = 0
        self.fail = False

    def initialize(self) -> None:
        pass

    def close(self) -> None:
        pass

    def _check(self) -> None:
        if self.fail:
            raise StorageError("Simulated snapshot store failure")

    async def write(self, key: str, payload: str) -> None:
        self._check()
        self.writes += 1
        self.values[key] = payload

    async def read(self, key: str) -> str | None:
        self._check()
        return self.values.get(key)

    async def delete(self, key: str) -> None:
        self._check()
        self.values.pop(key, None)


__all__ = [
    "MEMORY_URL_PREFIX",
    "InMemoryArtifactStore",
    "InMemoryMetadataStore",
    "InMemorySnapshotStore",
]
