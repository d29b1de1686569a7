"""FastAPI server proxying screenshot analysis.

Holds the vision API key on the server so trackers running without a
key of their own can still have screenshots scored, and collects the
end-of-session summaries trackers emit.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, ConfigDict, Field

from focuslens.analysis.base import AnalysisClient, UpstreamError
from focuslens.domain.models import SessionSummary
from focuslens.utils.imaging import data_uri_to_bytes

logger = logging.getLogger(__name__)


class AnalyzeRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    image_data: str = Field(alias="imageData", description="Screenshot as a base64 image data URI")
    goal: str = Field(default="", description="The user's stated goal")


class ServerStatus(BaseModel):
    status: str = "ok"
    analysis_configured: bool = False


def create_app(analyzer: AnalysisClient | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        analyzer: Client used for ``/api/analyze``. When None, the route
                  answers 500 because no server-side key is configured.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info(
            "Analysis server started (analysis %s)",
            "enabled" if app.state.analyzer is not None else "not configured",
        )
        yield
        if app.state.analyzer is not None:
            await app.state.analyzer.aclose()
        logger.info("Analysis server stopped")

    app = FastAPI(
        title="focuslens Server",
        description="Screenshot analysis proxy and session collector for focuslens",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.analyzer = analyzer

    @app.get("/health")
    async def health_check() -> ServerStatus:
        return ServerStatus(analysis_configured=app.state.analyzer is not None)

    @app.post("/api/analyze")
    async def analyze(request: AnalyzeRequest) -> dict[str, Any]:
        client: AnalysisClient | None = app.state.analyzer
        if client is None:
            raise HTTPException(status_code=500, detail="OpenAI API key not configured")
        try:
            image = data_uri_to_bytes(request.image_data)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e
        try:
            result = await client.analyze(image, request.goal)
        except UpstreamError as e:
            logger.error("Upstream analysis failed: %s", e)
            raise HTTPException(
                status_code=502,
                detail={"error": str(e), "upstreamStatus": e.status_code},
            ) from e
        return result.model_dump(by_alias=True)

    @app.post("/api/sessions", status_code=202)
    async def receive_session(summary: SessionSummary) -> dict[str, str]:
        logger.info(
            "Session %s: %ds, %d screenshots, goal=%r, efficiency=%d%%",
            summary.session_id, summary.duration_seconds, summary.screenshot_count,
            summary.goal, summary.progress.efficiency,
        )
        return {"status": "accepted", "session_id": summary.session_id}

    return app
