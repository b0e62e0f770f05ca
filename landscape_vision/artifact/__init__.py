"""Artifact references: inline image data or durable locators."""

from .lib import (
    ArtifactError,
    ArtifactField,
    ArtifactRef,
    ImageValidationError,
    InlineArtifact,
    LocatorArtifact,
    coerce_artifact,
    load_image_file,
    parse_artifact,
    serialize_artifact,
    validate_image,
)

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
