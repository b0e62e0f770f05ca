"""Image generation for landscape-vision.

Backends turn an input photo and an instruction into a new image.

Example:
    >>> from landscape_vision.generation import GeminiImageBackend
    >>> backend = GeminiImageBackend()
    >>> result = await backend.generate(photo, "add a row of cypress trees")

Features:
    - Backend-agnostic GenerationBackend interface
    - Gemini REST backend over httpx
    - Typed failures (rate limit, no image returned)
"""

from .base import (
    GenerationBackend,
    GenerationError,
    NoImageReturnedError,
    RateLimitError,
)
from .gemini import GEMINI_API_URL, PROMPT_TEMPLATE, GeminiImageBackend, build_prompt

__all__ = [
    # Interface
    "GenerationBackend",
    # Errors
    "GenerationError",
    "RateLimitError",
    "NoImageReturnedError",
    # Gemini
    "GeminiImageBackend",
    "GEMINI_API_URL",
    "PROMPT_TEMPLATE",
    "build_prompt",
]
