"""Server-proxied analysis client.

Posts screenshots to the focuslens server, which holds the API key and
forwards them to the vision model. Used when the end user does not
supply a key of their own.
"""

from __future__ import annotations

import logging

import httpx

from focuslens.analysis.base import AnalysisClient, UpstreamError
from focuslens.domain.models import AnalysisResult
from focuslens.utils.imaging import image_to_data_uri

logger = logging.getLogger(__name__)


class ProxyAnalysisClient(AnalysisClient):
    """Sends screenshots to the ``/api/analyze`` route of the server."""

    provider = "proxy"

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                transport=self._transport,
            )
        return self._client

    async def analyze(self, image: bytes, goal: str) -> AnalysisResult:
        """POST the screenshot and goal, parse the returned result."""
        client = self._ensure_client()
        payload = {"imageData": image_to_data_uri(image), "goal": goal}
        try:
            resp = await client.post("/api/analyze", json=payload)
        except httpx.HTTPError as e:
            raise UpstreamError(
                f"Request to analysis proxy failed: {e}", provider=self.provider
            ) from e

        if resp.is_error:
            raise UpstreamError(
                f"Analysis proxy error: {resp.status_code}",
                status_code=resp.status_code,
                provider=self.provider,
            )

        try:
            data = resp.json()
        except ValueError:
            # Proxy answered with text rather than a JSON document
            return self._parse_response(resp.text)
        if isinstance(data, dict) and isinstance(data.get("analysis"), dict):
            data = data["analysis"]
        if not isinstance(data, dict):
            return self._parse_response(resp.text)
        return AnalysisResult.model_validate(data)

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
