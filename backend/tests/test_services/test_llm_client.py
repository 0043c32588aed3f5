"""Tests for the Gemini client."""

from types import SimpleNamespace

import httpx
import pytest
from google.genai import errors as genai_errors

from models.exceptions import UpstreamDegradedException
from services.llm_client import GeminiClient, InlineImage


class FakeModels:
    """Stands in for ``client.aio.models``; records every call."""

    def __init__(self, outcome):
        self.outcome = outcome
        self.calls: list[dict] = []

    async def generate_content(self, **kwargs):
        self.calls.append(kwargs)
        if isinstance(self.outcome, BaseException):
            raise self.outcome
        return self.outcome


def _client(outcome, api_key: str = "test-key") -> tuple[GeminiClient, FakeModels]:
    models = FakeModels(outcome)
    sdk = SimpleNamespace(aio=SimpleNamespace(models=models))
    return GeminiClient(api_key=api_key, model="gemini-test", client=sdk), models


class TestGeminiClient:
    async def test_sends_prompt_and_images(self):
        client, models = _client(SimpleNamespace(text=" ok "))

        text = await client.complete(
            "system", "user", images=[InlineImage(b"\x89PNG", "image/png")]
        )

        assert text == "ok"
        call = models.calls[0]
        assert call["model"] == "gemini-test"
        assert call["config"].system_instruction == "system"
        prompt, image = call["contents"]
        assert prompt == "user"
        assert image.inline_data.data == b"\x89PNG"
        assert image.inline_data.mime_type == "image/png"

    async def test_missing_api_key(self):
        client, models = _client(SimpleNamespace(text="x"), api_key="")

        with pytest.raises(UpstreamDegradedException, match="not configured"):
            await client.complete("system", "user")
        assert models.calls == []

    async def test_quota_error(self):
        error = genai_errors.ClientError(
            429,
            {"error": {"code": 429, "message": "quota", "status": "RESOURCE_EXHAUSTED"}},
        )
        client, _ = _client(error)

        with pytest.raises(UpstreamDegradedException, match="HTTP 429"):
            await client.complete("system", "user")

    async def test_timeout(self):
        client, _ = _client(httpx.ReadTimeout("slow"))

        with pytest.raises(UpstreamDegradedException, match="timeout"):
            await client.complete("system", "user")

    async def test_unexpected_error(self):
        client, _ = _client(TypeError("'NoneType' object is not iterable"))

        with pytest.raises(UpstreamDegradedException, match="not iterable"):
            await client.complete("system", "user")

    async def test_no_text(self):
        client, _ = _client(SimpleNamespace(text=None))

        with pytest.raises(UpstreamDegradedException, match="empty text"):
            await client.complete("system", "user")

    async def test_empty_text(self):
        client, _ = _client(SimpleNamespace(text="   "))

        with pytest.raises(UpstreamDegradedException, match="empty text"):
            await client.complete("system", "user")
