"""HTTP surface: a streaming accommodation search endpoint."""
from __future__ import annotations

import logging
from typing import Callable, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse

from lodging_search.config.settings import Settings
from lodging_search.pipeline.events import SearchRunner, iter_sse
from lodging_search.pipeline.orchestrator import SearchOrchestrator
from lodging_search.properties.models import SearchCriteria

logger = logging.getLogger(__name__)

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}

OrchestratorFactory = Callable[[Settings], SearchRunner]


def create_app(settings: Optional[Settings] = None, *, orchestrator_factory: Optional[OrchestratorFactory] = None) -> FastAPI:
    settings = settings or Settings()
    factory: OrchestratorFactory = orchestrator_factory or (lambda cfg: SearchOrchestrator(cfg))

    app = FastAPI(title="Lodging Search API", version="0.1.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.allowed_origins),
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type"],
    )

    @app.get("/health")
    async def health() -> dict[str, object]:
        return {
            "status": "healthy",
            "mode": "live" if settings.use_real_search else "demo",
            "llm": settings.llm_configured,
        }

    @app.post("/api/search-accommodations")
    async def search_accommodations(criteria: SearchCriteria) -> StreamingResponse:
        logger.info("Search request for %s", criteria.destination)
        # One orchestrator per request; nothing is shared between searches.
        runner = factory(settings)
        return StreamingResponse(
            iter_sse(runner, criteria),
            media_type="text/event-stream",
            headers=SSE_HEADERS,
        )

    return app
