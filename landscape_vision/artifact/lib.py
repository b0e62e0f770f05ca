"""Artifact references for generated and uploaded images.

An artifact reference identifies image content in one of two forms:

- ``InlineArtifact``: self-contained bytes plus MIME type, exchanged as a
  ``data:<mime>;base64,<payload>`` URL. Must be uploaded before it is durable.
- ``LocatorArtifact``: a resolvable URL pointing at durably stored content.

Strings received from collaborators are decoded once with ``parse_artifact``
and converted back with ``ArtifactRef.to_string()`` at the persistence edge.
"""

import base64
import binascii
import mimetypes
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Annotated, Any

from pydantic import PlainSerializer, PlainValidator

DATA_URL_PATTERN = re.compile(r"^data:([^;,]+);base64,(.*)$", re.DOTALL)
LOCATOR_SCHEMES = ("http://", "https://", "file://")
DEFAULT_MIME_TYPE = "image/png"


class ArtifactError(ValueError):
    """Raised when an artifact reference cannot be decoded."""


class ImageValidationError(ArtifactError):
    """Raised when a selected input is not an acceptable image."""


@dataclass(frozen=True)
class InlineArtifact:
    """Image content carried inline.

    Attributes:
        data: Raw image bytes.
        mime_type: MIME type of the content (e.g. "image/png").
    """

    data: bytes
    mime_type: str = DEFAULT_MIME_TYPE

    @property
    def is_locator(self) -> bool:
        return False

    @property
    def size_bytes(self) -> int:
        return len(self.data)

    def to_string(self) -> str:
        """Encode as a base64 data URL."""
        payload = base64.b64encode(self.data).decode("ascii")
        return f"data:{self.mime_type};base64,{payload}"

    def __repr__(self) -> str:
        return f"InlineArtifact(mime_type={self.mime_type!r}, size={len(self.data)})"


@dataclass(frozen=True)
class LocatorArtifact:
    """Reference to durably stored content.

    Attributes:
        url: Resolvable URL of the content.
    """

    url: str

    @property
    def is_locator(self) -> bool:
        return True

    def to_string(self) -> str:
        return self.url


ArtifactRef = InlineArtifact | LocatorArtifact


def parse_artifact(value: str) -> ArtifactRef:
    """Decode a wire-format artifact string.

    Args:
        value: A base64 data URL or an http(s)/file URL.

    Returns:
        InlineArtifact or LocatorArtifact.

    Raises:
        ArtifactError: If the string is neither form, or the payload is not base64.
    """
    if not value:
        raise ArtifactError("Empty artifact reference")

    if value.startswith(LOCATOR_SCHEMES):
        return LocatorArtifact(url=value)

    match = DATA_URL_PATTERN.match(value)
    if not match:
        raise ArtifactError(f"Unrecognized artifact reference: {value[:32]!r}")

    mime_type, payload = match.groups()
    try:
        data = base64.b64decode(payload, validate=True)
    except binascii.Error as e:
        raise ArtifactError(f"Invalid base64 payload in data URL: {e}") from e
    return InlineArtifact(data=data, mime_type=mime_type)


def coerce_artifact(value: Any) -> ArtifactRef:
    """Accept either an ArtifactRef instance or its wire string."""
    if isinstance(value, (InlineArtifact, LocatorArtifact)):
        return value
    if isinstance(value, str):
        return parse_artifact(value)
    raise ArtifactError(f"Expected artifact reference, got {type(value).__name__}")


def serialize_artifact(value: ArtifactRef) -> str:
    return value.to_string()


# Pydantic field type: stored as a string, held in memory as a tagged variant
ArtifactField = Annotated[
    ArtifactRef,
    PlainValidator(coerce_artifact),
    PlainSerializer(serialize_artifact, return_type=str),
]


def load_image_file(path: Path | str, max_bytes: int) -> InlineArtifact:
    """Read an image file into an inline artifact.

    Args:
        path: Image file to read.
        max_bytes: Maximum accepted file size.

    Returns:
        InlineArtifact with the file's bytes and guessed MIME type.

    Raises:
        ImageValidationError: If the file is not an image or exceeds max_bytes.
    """
    path = Path(path)
    mime_type, _ = mimetypes.guess_type(path.name)
    data = path.read_bytes()
    artifact = InlineArtifact(data=data, mime_type=mime_type or "")
    return validate_image(artifact, max_bytes)


def validate_image(artifact: InlineArtifact, max_bytes: int) -> InlineArtifact:
    """Check that an inline artifact is an image within the size limit."""
    if not artifact.mime_type.startswith("image/"):
        raise ImageValidationError("Please upload a valid image file (JPG, PNG).")
    if artifact.size_bytes > max_bytes:
        limit_mb = max_bytes / (1024 * 1024)
        raise ImageValidationError(f"Image size should be less than {limit_mb:g}MB.")
    return artifact


__all__ = [
    "ArtifactError",
    "ImageValidationError",
    "InlineArtifact",
    "LocatorArtifact",
    "ArtifactRef",
    "ArtifactField",
    "parse_artifact",
    "coerce_artifact",
    "serialize_artifact",
    "load_image_file",
    "validate_image",
]
