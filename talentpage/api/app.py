"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from talentpage.api.routes import api_router, image_proxy, public_router
from talentpage.core.config import Settings
from talentpage.core.errors import RecordNotFoundError, ValidationError
from talentpage.pipeline.orchestrator import Orchestrator, build_services

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    orchestrator: Orchestrator | None = None,
    *,
    http_transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Build the app. Services are built from settings unless injected."""
    settings = settings or Settings()
    orchestrator = orchestrator or build_services(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        if orchestrator.pending_tasks:
            logger.info("Waiting for %d background task(s)", orchestrator.pending_tasks)
        await orchestrator.drain()

    app = FastAPI(title="Talent Page Builder", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.orchestrator = orchestrator
    app.state.http_transport = http_transport

    app.include_router(api_router)
    app.include_router(public_router)
    app.add_api_route(settings.server.image_proxy_path, image_proxy, methods=["GET"])

    @app.exception_handler(RecordNotFoundError)
    async def _not_found(request: Request, exc: RecordNotFoundError) -> JSONResponse:
        return JSONResponse({"error": "TLP not found", "id": exc.record_id}, status_code=404)

    @app.exception_handler(ValidationError)
    async def _invalid(request: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse({"error": str(exc)}, status_code=400)

    return app
