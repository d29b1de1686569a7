"""Tests for the analysis clients."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, MagicMock

import httpx
import openai
import pytest

from focuslens.analysis.base import UpstreamError, build_prompt
from focuslens.analysis.fake import FakeAnalysisClient
from focuslens.analysis.openai import OpenAIAnalysisClient, validate_api_key
from focuslens.analysis.proxy import ProxyAnalysisClient
from focuslens.utils.imaging import DATA_URI_PREFIX, data_uri_to_bytes


def _completion(content: str | None) -> MagicMock:
    response = MagicMock()
    response.choices = [MagicMock()]
    response.choices[0].message.content = content
    return response


class TestBuildPrompt:
    def test_embeds_goal_and_shape(self) -> None:
        prompt = build_prompt("Ship the release notes")
        assert '"Ship the release notes"' in prompt
        for key in ("productivityScore", "activity", "insights", "focusLevel", "goalAlignment", "recommendations"):
            assert key in prompt

    def test_custom_template(self) -> None:
        assert build_prompt("g", template="Goal={goal}") == "Goal=g"


class TestFakeAnalysisClient:
    @pytest.mark.asyncio
    async def test_cycles_through_responses(self, sample_jpeg: bytes) -> None:
        client = FakeAnalysisClient(responses=[
            '{"productivityScore": 90, "activity": "Coding"}',
            "Productivity: 20. Mostly communication.",
        ])
        first = await client.analyze(sample_jpeg, "goal")
        second = await client.analyze(sample_jpeg, "goal")
        third = await client.analyze(sample_jpeg, "goal")

        assert (first.productivity_score, first.activity) == (90, "Coding")
        assert (second.productivity_score, second.activity) == (20, "Communication")
        assert third == first
        assert client.calls == [(len(sample_jpeg), "goal")] * 3

    @pytest.mark.asyncio
    async def test_default_responses_parse(self, sample_jpeg: bytes) -> None:
        client = FakeAnalysisClient()
        results = [await client.analyze(sample_jpeg, "g") for _ in range(3)]
        assert [r.activity for r in results] == ["Coding", "Research", "Communication"]


class TestOpenAIAnalysisClient:
    def test_validate_api_key(self) -> None:
        assert validate_api_key("sk-abc123") is True
        assert validate_api_key("pk-abc123") is False
        assert validate_api_key("") is False
        assert validate_api_key(None) is False

    def test_build_messages(self, sample_jpeg: bytes) -> None:
        client = OpenAIAnalysisClient(api_key="sk-test")
        messages = client.build_messages(sample_jpeg, "Write tests")

        assert len(messages) == 1
        text_part, image_part = messages[0]["content"]
        assert "Write tests" in text_part["text"]
        url = image_part["image_url"]["url"]
        assert url.startswith(DATA_URI_PREFIX)
        assert data_uri_to_bytes(url) == sample_jpeg

    @pytest.mark.asyncio
    async def test_analyze_parses_reply(self, sample_jpeg: bytes) -> None:
        client = OpenAIAnalysisClient(api_key="sk-test", model="gpt-4o-mini", max_tokens=300)
        client._client = MagicMock()
        client._client.chat.completions.create = AsyncMock(return_value=_completion(
            'Here you go: {"productivityScore": 130, "activity": "Coding", "insights": ["IDE"]}'
        ))

        result = await client.analyze(sample_jpeg, "goal")

        assert result.productivity_score == 100
        assert result.activity == "Coding"
        kwargs = client._client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-4o-mini"
        assert kwargs["max_tokens"] == 300

    @pytest.mark.asyncio
    async def test_empty_reply_uses_defaults(self, sample_jpeg: bytes) -> None:
        client = OpenAIAnalysisClient(api_key="sk-test")
        client._client = MagicMock()
        client._client.chat.completions.create = AsyncMock(return_value=_completion(None))

        result = await client.analyze(sample_jpeg, "goal")
        assert result.productivity_score == 50
        assert result.activity == "General Work"

    @pytest.mark.asyncio
    async def test_status_error_becomes_upstream_error(self, sample_jpeg: bytes) -> None:
        request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        error = openai.APIStatusError(
            "rate limited", response=httpx.Response(429, request=request), body=None,
        )
        client = OpenAIAnalysisClient(api_key="sk-test")
        client._client = MagicMock()
        client._client.chat.completions.create = AsyncMock(side_effect=error)

        with pytest.raises(UpstreamError) as exc_info:
            await client.analyze(sample_jpeg, "goal")
        assert exc_info.value.status_code == 429
        assert exc_info.value.provider == "openai"


class TestProxyAnalysisClient:
    @pytest.mark.asyncio
    async def test_posts_data_uri_and_goal(self, sample_jpeg: bytes) -> None:
        seen: dict = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"productivityScore": 66, "activity": "Planning"})

        client = ProxyAnalysisClient(base_url="http://proxy.test", transport=httpx.MockTransport(handler))
        async with client:
            result = await client.analyze(sample_jpeg, "Plan sprint")

        assert seen["path"] == "/api/analyze"
        assert seen["body"]["goal"] == "Plan sprint"
        assert data_uri_to_bytes(seen["body"]["imageData"]) == sample_jpeg
        assert result.productivity_score == 66
        assert result.activity == "Planning"

    @pytest.mark.asyncio
    async def test_unwraps_analysis_envelope(self, sample_jpeg: bytes) -> None:
        transport = httpx.MockTransport(
            lambda request: httpx.Response(200, json={"success": True, "analysis": {"productivityScore": -4}})
        )
        client = ProxyAnalysisClient(transport=transport)
        result = await client.analyze(sample_jpeg, "g")
        await client.aclose()
        assert result.productivity_score == 0

    @pytest.mark.asyncio
    async def test_text_reply_goes_through_parser(self, sample_jpeg: bytes) -> None:
        transport = httpx.MockTransport(
            lambda request: httpx.Response(200, text="Productivity: 58 while doing research.")
        )
        client = ProxyAnalysisClient(transport=transport)
        result = await client.analyze(sample_jpeg, "g")
        await client.aclose()
        assert result.productivity_score == 58
        assert result.activity == "Research"

    @pytest.mark.asyncio
    async def test_error_status_raises(self, sample_jpeg: bytes) -> None:
        transport = httpx.MockTransport(lambda request: httpx.Response(502, json={"detail": "bad"}))
        client = ProxyAnalysisClient(transport=transport)
        with pytest.raises(UpstreamError) as exc_info:
            await client.analyze(sample_jpeg, "g")
        await client.aclose()
        assert exc_info.value.status_code == 502

    @pytest.mark.asyncio
    async def test_transport_failure_raises(self, sample_jpeg: bytes) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = ProxyAnalysisClient(transport=httpx.MockTransport(handler))
        with pytest.raises(UpstreamError) as exc_info:
            await client.analyze(sample_jpeg, "g")
        await client.aclose()
        assert exc_info.value.status_code is None
