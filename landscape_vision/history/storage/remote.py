"""HTTP object-store artifact backend.

Talks to any bucket-style service that accepts ``PUT {base_url}/{path}``
with the raw body and ``DELETE {base_url}/{path}``, and serves stored
objects back from the same URL.
"""

import logging

import httpx

from ...artifact import InlineArtifact, LocatorArtifact
from .protocol import NotFoundError, StorageError, UploadError

logger = logging.getLogger(__name__)


class HttpArtifactStore:
    """Artifact store backed by an HTTP object store.

    Example:
        >>> store = HttpArtifactStore("https://objects.example.com/vision")
        >>> locator = await store.upload("users/u1/d1/original.png", artifact)
        >>> locator.url
        'https://objects.example.com/vision/users/u1/d1/original.png'

    Args:
        base_url: Bucket URL that paths are appended to.
        token: Optional bearer token.
        timeout: Request timeout in seconds.
        client: Pre-configured client (tests inject a MockTransport here).
    """

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        timeout: float = 60.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        self._client = client or httpx.AsyncClient(timeout=timeout, headers=headers)

    def url_for(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def manages(self, locator: LocatorArtifact) -> bool:
        """Check whether a locator points into this bucket."""
        return locator.url.startswith(self.base_url + "/")

    async def upload(self, path: str, artifact: InlineArtifact) -> LocatorArtifact:
        """PUT artifact bytes at the path."""
        url = self.url_for(path)
        try:
            response = await self._client.put(
                url,
                content=artifact.data,
                headers={"Content-Type": artifact.mime_type},
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise UploadError(
                f"Upload rejected with HTTP {e.response.status_code}", path=path
            ) from e
        except httpx.HTTPError as e:
            raise UploadError(f"Upload failed: {e}", path=path) from e

        return LocatorArtifact(url=url)

    async def delete(self, path: str) -> None:
        """DELETE the object at the path."""
        try:
            response = await self._client.delete(self.url_for(path))
        except httpx.HTTPError as e:
            raise StorageError(f"Delete failed: {e}", path=path) from e

        if response.status_code == 404:
            raise NotFoundError(f"Artifact not found: {path}", path=path)
        if response.is_error:
            raise StorageError(
                f"Delete rejected with HTTP {response.status_code}", path=path
            )

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()


__all__ = ["HttpArtifactStore"]
