"""Abstract base class for image generation backends.

A backend turns an input image plus a free-text instruction into a new
image. The session engine treats every failure the same way: the session
moves to FAILED with the error's message.
"""

from abc import ABC, abstractmethod

from ..artifact import ArtifactRef


class GenerationError(Exception):
    """Base exception for image generation failures.

    Attributes:
        status_code: HTTP status of the upstream response, if any.
    """

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class RateLimitError(GenerationError):
    """Raised when the upstream quota or rate limit is exceeded."""


class NoImageReturnedError(GenerationError):
    """Raised when the upstream response carries no image."""


class GenerationBackend(ABC):
    """Abstract interface for image generation backends.

    Example:
        >>> backend = GeminiImageBackend(api_key="...")
        >>> result = await backend.generate(photo, "add a flagstone path")
        >>> result.mime_type
        'image/png'
    """

    @abstractmethod
    async def generate(self, image: ArtifactRef, instruction: str) -> ArtifactRef:
        """Generate a transformed image.

        Args:
            image: Input image, inline or a locator.
            instruction: What to change.

        Returns:
            The generated image.

        Raises:
            GenerationError: If the call fails or returns no image.
        """

    @property
    @abstractmethod
    def model_name(self) -> str:
        """Get the model identifier."""

    @property
    @abstractmethod
    def provider(self) -> str:
        """Get the provider identifier."""

    @property
    def name(self) -> str:
        """Get backend identifier for logging ('provider:model')."""
        return f"{self.provider}:{self.model_name}"

    async def aclose(self) -> None:
        """Release network resources. No-op by default."""


__all__ = [
    "GenerationBackend",
    "GenerationError",
    "RateLimitError",
    "NoImageReturnedError",
]
