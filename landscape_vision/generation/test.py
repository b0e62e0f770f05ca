"""Tests for image generation backends."""

import base64
import json

import httpx
import pytest

from ..artifact import InlineArtifact, LocatorArtifact
from .base import GenerationError, NoImageReturnedError, RateLimitError
from .gemini import GeminiImageBackend, build_prompt

PNG = b"\x89PNG\r\n\x1a\nfake"
INPUT = InlineArtifact(data=b"jpeg-bytes", mime_type="image/jpeg")


def _image_response(data: bytes = PNG) -> dict:
    return {
        "candidates": [
            {
                "content": {
                    "parts": [
                        {"text": "Here is your garden."},
                        {
                            "inlineData": {
                                "mimeType": "image/png",
                                "data": base64.b64encode(data).decode(),
                            }
                        },
                    ]
                }
            }
        ]
    }


def _backend(handler) -> GeminiImageBackend:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return GeminiImageBackend(api_key="test-key", model="test-model", client=client)


class TestPrompt:
    """Instruction wrapping."""

    def test_instruction_embedded(self):
        prompt = build_prompt("  add a koi pond ")
        assert "add a koi pond." in prompt
        assert "landscape architect" in prompt


class TestGeminiImageBackend:
    """REST request and response handling."""

    def test_requires_api_key(self, monkeypatch):
        """Missing key fails at construction."""
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        with pytest.raises(GenerationError, match="GEMINI_API_KEY"):
            GeminiImageBackend()

    def test_name(self):
        backend = _backend(lambda request: httpx.Response(500))
        assert backend.name == "gemini:test-model"

    @pytest.mark.asyncio
    async def test_generate(self):
        """The input is sent inline and the first image part is returned."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=_image_response())

        result = await _backend(handler).generate(INPUT, "add lavender")

        assert result == InlineArtifact(data=PNG, mime_type="image/png")
        assert "models/test-model:generateContent" in seen["url"]
        assert "key=test-key" in seen["url"]
        parts = seen["body"]["contents"][0]["parts"]
        assert parts[0]["inlineData"]["mimeType"] == "image/jpeg"
        assert base64.b64decode(parts[0]["inlineData"]["data"]) == b"jpeg-bytes"
        assert "add lavender" in parts[1]["text"]

    @pytest.mark.asyncio
    async def test_locator_input_fetched(self):
        """Locator inputs are downloaded before the call."""

        def handler(request: httpx.Request) -> httpx.Response:
            if request.method == "GET":
                return httpx.Response(
                    200, content=b"stored", headers={"content-type": "image/webp"}
                )
            body = json.loads(request.content)
            inline = body["contents"][0]["parts"][0]["inlineData"]
            assert inline["mimeType"] == "image/webp"
            assert base64.b64decode(inline["data"]) == b"stored"
            return httpx.Response(200, json=_image_response())

        locator = LocatorArtifact(url="https://cdn.example/designs/i1.png")
        result = await _backend(handler).generate(locator, "add a hedge")
        assert result.data == PNG

    @pytest.mark.asyncio
    async def test_file_locator_read(self, tmp_path):
        """file:// locators are read from disk."""
        path = tmp_path / "root.jpg"
        path.write_bytes(b"on-disk")

        def handler(request: httpx.Request) -> httpx.Response:
            inline = json.loads(request.content)["contents"][0]["parts"][0]["inlineData"]
            assert inline["mimeType"] == "image/jpeg"
            return httpx.Response(200, json=_image_response())

        backend = _backend(handler)
        await backend.generate(LocatorArtifact(url=path.as_uri()), "add a hedge")

    @pytest.mark.asyncio
    async def test_rate_limited(self):
        backend = _backend(lambda request: httpx.Response(429, json={}))
        with pytest.raises(RateLimitError) as exc_info:
            await backend.generate(INPUT, "add a pool")
        assert exc_info.value.status_code == 429

    @pytest.mark.asyncio
    async def test_http_error(self):
        backend = _backend(lambda request: httpx.Response(500, text="boom"))
        with pytest.raises(GenerationError, match="HTTP 500"):
            await backend.generate(INPUT, "add a pool")

    @pytest.mark.asyncio
    async def test_no_image_part(self):
        """A text-only answer is a failure."""
        payload = {"candidates": [{"content": {"parts": [{"text": "Sorry"}]}}]}
        backend = _backend(lambda request: httpx.Response(200, json=payload))
        with pytest.raises(NoImageReturnedError):
            await backend.generate(INPUT, "add a pool")

    @pytest.mark.asyncio
    async def test_no_candidates(self):
        backend = _backend(lambda request: httpx.Response(200, json={}))
        with pytest.raises(NoImageReturnedError, match="No content"):
            await backend.generate(INPUT, "add a pool")

    @pytest.mark.asyncio
    async def test_transport_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("unreachable", request=request)

        with pytest.raises(GenerationError, match="request failed"):
            await _backend(handler).generate(INPUT, "add a pool")
