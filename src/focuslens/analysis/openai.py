"""OpenAI-compatible analysis client.

Sends screenshots straight to a chat completions endpoint with a
client-held API key. Works with OpenAI, OpenRouter, and any
OpenAI-compatible API by setting a custom base_url.
"""

from __future__ import annotations

import logging

from focuslens.analysis.base import AnalysisClient, UpstreamError, build_prompt
from focuslens.domain.models import AnalysisResult
from focuslens.utils.imaging import image_to_data_uri

logger = logging.getLogger(__name__)


def validate_api_key(api_key: str | None) -> bool:
    """Whether the key looks like an OpenAI-style secret key."""
    return bool(api_key) and api_key.strip().startswith("sk-")


class OpenAIAnalysisClient(AnalysisClient):
    """Analysis client using the chat completions vision API."""

    provider = "openai"

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o",
        base_url: str | None = None,
        max_tokens: int = 500,
        timeout: float = 60.0,
        prompt_template: str | None = None,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._base_url = base_url
        self._max_tokens = max_tokens
        self._timeout = timeout
        self._prompt_template = prompt_template
        self._client = None

    @property
    def model(self) -> str:
        return self._model

    async def _ensure_client(self) -> None:
        """Lazily initialize the OpenAI async client."""
        if self._client is not None:
            return
        from openai import AsyncOpenAI
        kwargs = {"api_key": self._api_key, "timeout": self._timeout}
        if self._base_url:
            kwargs["base_url"] = self._base_url
        self._client = AsyncOpenAI(**kwargs)
        logger.info("Initialized OpenAI client (model=%s, base_url=%s)", self._model, self._base_url)

    def build_messages(self, image: bytes, goal: str) -> list[dict]:
        """One user message carrying the prompt text and the image."""
        return [
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": build_prompt(goal, self._prompt_template)},
                    {"type": "image_url", "image_url": {"url": image_to_data_uri(image)}},
                ],
            },
        ]

    async def analyze(self, image: bytes, goal: str) -> AnalysisResult:
        """Score a screenshot with the vision model."""
        import openai

        await self._ensure_client()
        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                max_tokens=self._max_tokens,
                messages=self.build_messages(image, goal),
            )
        except openai.APIStatusError as e:
            raise UpstreamError(
                f"OpenAI API error: {e.status_code}",
                status_code=e.status_code,
                provider=self.provider,
            ) from e
        except openai.APIError as e:
            raise UpstreamError(
                f"OpenAI API call failed: {e}",
                provider=self.provider,
            ) from e

        raw_text = response.choices[0].message.content if response.choices else None
        logger.debug("Model raw response: %s", (raw_text or "")[:200])
        return self._parse_response(raw_text)

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None
