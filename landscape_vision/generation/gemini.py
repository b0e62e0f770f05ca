"""Google Gemini image backend.

Calls the ``generateContent`` REST endpoint of an image-capable Gemini model
with the input image and a landscape-design instruction, and returns the
first image part of the response.
"""

import asyncio
import base64
import binascii
import logging
import mimetypes
from pathlib import Path
from typing import Any
from urllib.parse import urlparse
from urllib.request import url2pathname

import httpx

from ..artifact import ArtifactRef, InlineArtifact
from ..config import EnvVar, get_environment
from .base import (
    GenerationBackend,
    GenerationError,
    NoImageReturnedError,
    RateLimitError,
)

logger = logging.getLogger(__name__)

GEMINI_API_URL = "https://generativelanguage.googleapis.com/v1beta"
OUTPUT_MIME_TYPE = "image/png"

PROMPT_TEMPLATE = """\
You are a landscape architect preparing a design visualization.
Edit the supplied photo of the property so it shows these landscaping changes: {instruction}.

Keep the camera perspective, the lighting and every building exactly as they are.
New plants, hardscape and water features must look photorealistic and belong in the scene.
Render at high resolution with professional detail.
"""


def build_prompt(instruction: str) -> str:
    return PROMPT_TEMPLATE.format(instruction=instruction.strip())


class GeminiImageBackend(GenerationBackend):
    """Gemini image generation over the public REST API.

    Environment:
        GEMINI_API_KEY: Required unless passed explicitly.
        VISION_GENERATION_MODEL: Model name override.
        VISION_GENERATION_TIMEOUT: Request timeout override.

    Example:
        >>> backend = GeminiImageBackend()
        >>> result = await backend.generate(photo, "replace the lawn with gravel")
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        timeout: float | None = None,
        base_url: str = GEMINI_API_URL,
        client: httpx.AsyncClient | None = None,
    ):
        """Initialize Gemini backend.

        Args:
            api_key: API key. Defaults to GEMINI_API_KEY.
            model: Model name. Defaults to VISION_GENERATION_MODEL.
            timeout: Request timeout in seconds.
            base_url: API root.
            client: Pre-configured client (tests inject a MockTransport here).

        Raises:
            GenerationError: If no API key is available.
        """
        self._api_key = api_key or get_environment(EnvVar.GEMINI_API_KEY)
        if not self._api_key:
            raise GenerationError(
                "Gemini API key required. Set GEMINI_API_KEY or pass api_key."
            )
        self._model = model or get_environment(EnvVar.VISION_GENERATION_MODEL)
        self._base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(
            timeout=get_environment(EnvVar.VISION_GENERATION_TIMEOUT, override=timeout)
        )

    @property
    def model_name(self) -> str:
        return self._model

    @property
    def provider(self) -> str:
        return "gemini"

    @property
    def endpoint(self) -> str:
        return f"{self._base_url}/models/{self._model}:generateContent"

    async def _to_inline(self, image: ArtifactRef) -> InlineArtifact:
        """Fetch locator content so it can be sent inline."""
        if isinstance(image, InlineArtifact):
            return image

        url = image.url
        if url.startswith("file://"):
            path = Path(url2pathname(urlparse(url).path))
            try:
                data = await asyncio.to_thread(path.read_bytes)
            except OSError as e:
                raise GenerationError(f"Failed to read input image {path}: {e}") from e
            mime_type, _ = mimetypes.guess_type(path.name)
            return InlineArtifact(data=data, mime_type=mime_type or OUTPUT_MIME_TYPE)

        try:
            response = await self._client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise GenerationError(f"Failed to fetch input image {url}: {e}") from e

        mime_type = response.headers.get("content-type", OUTPUT_MIME_TYPE)
        return InlineArtifact(data=response.content, mime_type=mime_type.split(";")[0])

    def _build_body(self, image: InlineArtifact, instruction: str) -> dict[str, Any]:
        return {
            "contents": [
                {
                    "parts": [
                        {
                            "inlineData": {
                                "mimeType": image.mime_type,
                                "data": base64.b64encode(image.data).decode("ascii"),
                            }
                        },
                        {"text": build_prompt(instruction)},
                    ]
                }
            ]
        }

    def _extract_image(self, payload: dict[str, Any]) -> InlineArtifact:
        candidates = payload.get("candidates") or []
        parts = candidates[0].get("content", {}).get("parts") if candidates else None
        if not parts:
            raise NoImageReturnedError("No content generated")

        for part in parts:
            data = (part.get("inlineData") or {}).get("data")
            if data:
                try:
                    return InlineArtifact(
                        data=base64.b64decode(data, validate=True),
                        mime_type=OUTPUT_MIME_TYPE,
                    )
                except binascii.Error as e:
                    raise GenerationError(f"Malformed image data: {e}") from e

        raise NoImageReturnedError("No image data found in response")

    async def generate(self, image: ArtifactRef, instruction: str) -> ArtifactRef:
        """Generate a landscape visualization.

        Args:
            image: Input photo (inline, or a locator fetched first).
            instruction: Requested landscaping changes.

        Returns:
            Inline PNG artifact.

        Raises:
            RateLimitError: On HTTP 429.
            NoImageReturnedError: If the response has no image part.
            GenerationError: On any other failure.
        """
        inline = await self._to_inline(image)
        logger.info(f"[{self.name}] Generating from {inline.size_bytes} byte input")

        try:
            response = await self._client.post(
                self.endpoint,
                params={"key": self._api_key},
                json=self._build_body(inline, instruction),
            )
        except httpx.HTTPError as e:
            raise GenerationError(f"Generation request failed: {e}") from e

        if response.status_code == 429:
            raise RateLimitError(
                "Generation quota exceeded. Please try again later.",
                status_code=429,
            )
        if response.is_error:
            raise GenerationError(
                f"Generation failed with HTTP {response.status_code}: "
                f"{response.text[:200]}",
                status_code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise GenerationError(f"Invalid response body: {e}") from e

        result = self._extract_image(payload)
        logger.info(f"[{self.name}] Generated {result.size_bytes} byte image")
        return result

    async def aclose(self) -> None:
        await self._client.aclose()


__all__ = [
    "GEMINI_API_URL",
    "PROMPT_TEMPLATE",
    "GeminiImageBackend",
    "build_prompt",
]
