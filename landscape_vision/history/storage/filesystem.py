"""Filesystem artifact store.

Stores uploaded artifacts under a root directory and hands out ``file://``
locators. Used when no remote artifact store is configured.
"""

import asyncio
import logging
from pathlib import Path

from ...artifact import InlineArtifact, LocatorArtifact
from .protocol import NotFoundError, StorageError, UploadError

logger = logging.getLogger(__name__)


class LocalArtifactStore:
    """Artifact store backed by a local directory.

    Args:
        root: Directory holding stored artifacts.
    """

    def __init__(self, root: Path | str):
        self.root = Path(root).resolve()

    def _resolve(self, path: str) -> Path:
        target = (self.root / path).resolve()
        if not target.is_relative_to(self.root):
            raise StorageError(f"Path escapes artifact root: {path}", path=path)
        return target

    def manages(self, locator: LocatorArtifact) -> bool:
        """Check whether a locator points under this store's root."""
        return locator.url.startswith(self.root.as_uri() + "/")

    async def upload(self, path: str, artifact: InlineArtifact) -> LocatorArtifact:
        """Write artifact bytes to ``root/path``."""
        target = self._resolve(path)

        def write() -> None:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(artifact.data)

        try:
            await asyncio.to_thread(write)
        except OSError as e:
            raise UploadError(f"Failed to store artifact: {e}", path=path) from e

        logger.debug(f"Stored artifact {path} ({artifact.size_bytes} bytes)")
        return LocatorArtifact(url=target.as_uri())

    async def delete(self, path: str) -> None:
        """Remove ``root/path``."""
        target = self._resolve(path)
        try:
            await asyncio.to_thread(target.unlink)
        except FileNotFoundError as e:
            raise NotFoundError(f"Artifact not found: {path}", path=path) from e
        except OSError as e:
            raise StorageError(f"Failed to delete artifact: {e}", path=path) from e

    async def aclose(self) -> None:
        pass


__all__ = ["LocalArtifactStore"]
