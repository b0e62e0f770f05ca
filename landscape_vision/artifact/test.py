"""Tests for artifact references."""

import base64

import pytest
from pydantic import BaseModel

from .lib import (
    ArtifactError,
    ArtifactField,
    ImageValidationError,
    InlineArtifact,
    LocatorArtifact,
    load_image_file,
    parse_artifact,
    validate_image,
)

PNG_BYTES = b"\x89PNG\r\n\x1a\nfake-png-body"


class TestParseArtifact:
    """Decoding wire strings into tagged artifacts."""

    def test_data_url_becomes_inline(self):
        """A base64 data URL decodes to inline bytes and MIME type."""
        encoded = base64.b64encode(PNG_BYTES).decode()
        artifact = parse_artifact(f"data:image/png;base64,{encoded}")
        assert isinstance(artifact, InlineArtifact)
        assert artifact.data == PNG_BYTES
        assert artifact.mime_type == "image/png"
        assert artifact.is_locator is False

    @pytest.mark.parametrize(
        "url",
        [
            "https://storage.example.com/users/u1/d1/original.png",
            "http://localhost:9000/bucket/x.png",
            "file:///tmp/artifacts/x.png",
        ],
    )
    def test_urls_become_locators(self, url):
        """http, https and file URLs are durable locators."""
        artifact = parse_artifact(url)
        assert artifact == LocatorArtifact(url=url)
        assert artifact.is_locator is True

    def test_inline_to_string_is_data_url(self):
        """Inline artifacts encode back to the data URL they came from."""
        artifact = InlineArtifact(data=PNG_BYTES, mime_type="image/jpeg")
        assert parse_artifact(artifact.to_string()) == artifact
        assert artifact.to_string().startswith("data:image/jpeg;base64,")

    @pytest.mark.parametrize("value", ["", "not-a-reference", "ftp://host/x.png"])
    def test_unrecognized_strings_rejected(self, value):
        """Anything that is neither a data URL nor a locator is rejected."""
        with pytest.raises(ArtifactError):
            parse_artifact(value)

    def test_bad_base64_rejected(self):
        """A data URL with a corrupt payload is rejected."""
        with pytest.raises(ArtifactError, match="base64"):
            parse_artifact("data:image/png;base64,@@@")

    def test_repr_omits_payload(self):
        """Inline repr stays short regardless of image size."""
        artifact = InlineArtifact(data=b"x" * 10_000)
        assert "size=10000" in repr(artifact)
        assert len(repr(artifact)) < 80


class TestArtifactField:
    """Pydantic integration of the tagged variant."""

    class Holder(BaseModel):
        image: ArtifactField

    def test_validates_from_string(self):
        """Model fields accept wire strings."""
        holder = self.Holder(image="https://cdn.example.com/a.png")
        assert holder.image == LocatorArtifact(url="https://cdn.example.com/a.png")

    def test_serializes_to_string(self):
        """Model dumps carry the wire string, never raw bytes."""
        inline = InlineArtifact(data=PNG_BYTES)
        dumped = self.Holder(image=inline).model_dump()
        assert dumped["image"] == inline.to_string()

    def test_json_round_trip(self):
        """JSON serialization preserves the variant."""
        holder = self.Holder(image=InlineArtifact(data=PNG_BYTES))
        restored = self.Holder.model_validate_json(holder.model_dump_json())
        assert restored.image == holder.image


class TestImageValidation:
    """Input image selection rules."""

    def test_accepts_image_within_limit(self, tmp_path):
        """A small PNG is loaded with its MIME type."""
        path = tmp_path / "yard.png"
        path.write_bytes(PNG_BYTES)
        artifact = load_image_file(path, max_bytes=1024)
        assert artifact.mime_type == "image/png"
        assert artifact.data == PNG_BYTES

    def test_rejects_non_image(self, tmp_path):
        """Non-image files are rejected."""
        path = tmp_path / "notes.txt"
        path.write_text("hello")
        with pytest.raises(ImageValidationError, match="valid image"):
            load_image_file(path, max_bytes=1024)

    def test_rejects_oversized_image(self):
        """Images over the limit are rejected."""
        artifact = InlineArtifact(data=b"x" * 2048, mime_type="image/png")
        with pytest.raises(ImageValidationError, match="less than"):
            validate_image(artifact, max_bytes=1024)
