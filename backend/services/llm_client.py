"""
Language-model client used by the report enrichment workflow.

The workflow only depends on the ``LanguageModelClient`` protocol; the
concrete ``GeminiClient`` calls Gemini through the ``google-genai`` SDK.
Every failure is raised as ``UpstreamDegradedException`` so callers have a
single thing to catch and fall back from.
"""

from dataclasses import dataclass
from typing import Any, Protocol, Sequence

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types as genai_types
from loguru import logger

from models.config import settings
from models.exceptions import UpstreamDegradedException


@dataclass(frozen=True)
class InlineImage:
    data: bytes
    mime_type: str

    def to_part(self) -> genai_types.Part:
        return genai_types.Part.from_bytes(data=self.data, mime_type=self.mime_type)


class LanguageModelClient(Protocol):
    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        images: Sequence[InlineImage] | None = None,
    ) -> str:
        """
        Run one completion.

        Raises:
            UpstreamDegradedException: On timeout, quota, transport or
                response-shape errors
        """
        ...


class GeminiClient:
    """Gemini ``generate_content`` over the SDK's async client."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        timeout: float | None = None,
        client: Any = None,
    ):
        self.api_key = api_key if api_key is not None else settings.LLM_API_KEY
        self.model = model or settings.LLM_MODEL
        self.timeout = timeout or settings.LLM_TIMEOUT_SECONDS
        self._client = client

    def _get_client(self) -> genai.Client:
        if self._client is None:
            self._client = genai.Client(
                api_key=self.api_key,
                http_options=genai_types.HttpOptions(timeout=int(self.timeout * 1000)),
            )
        return self._client

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        images: Sequence[InlineImage] | None = None,
    ) -> str:
        if not self.api_key:
            raise UpstreamDegradedException("Language model API key not configured")

        contents: list = [user_prompt, *(image.to_part() for image in images or ())]
        config = genai_types.GenerateContentConfig(system_instruction=system_prompt)

        try:
            response = await self._get_client().aio.models.generate_content(
                model=self.model, contents=contents, config=config
            )
            text = (response.text or "").strip()
        except genai_errors.APIError as e:
            logger.warning(f"Language model HTTP error {e.code} for {self.model}")
            raise UpstreamDegradedException(f"Language model HTTP {e.code}") from e
        except httpx.TimeoutException as e:
            logger.warning(f"Language model timeout after {self.timeout}s")
            raise UpstreamDegradedException("Language model timeout") from e
        except Exception as e:
            logger.warning(f"Language model call failed: {e}")
            raise UpstreamDegradedException(f"Language model error: {e}") from e

        if not text:
            raise UpstreamDegradedException("Language model returned empty text")
        return text


def get_llm_client() -> LanguageModelClient:
    """FastAPI dependency returning the configured language-model client."""
    return GeminiClient()
