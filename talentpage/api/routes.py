"""HTTP routes: record API, public page server and image proxy."""

import logging
from typing import Any

import httpx
from fastapi import APIRouter, Body, Depends, Query, Request
from fastapi.responses import HTMLResponse, Response
from pydantic import BaseModel, Field

from talentpage.core.errors import RecordNotFoundError, ValidationError
from talentpage.core.schemas import EnrichmentStatus, JobPosting, MarketProfile
from talentpage.pipeline.orchestrator import ChatAction, ChatTurnResult, Orchestrator, ScrapingStatus

logger = logging.getLogger(__name__)

IMAGE_PROXY_TIMEOUT_S = 10.0
IMAGE_CACHE_CONTROL = "public, max-age=86400"

NOT_FOUND_PAGE = "<h1>Talent Landing Page Not Found</h1>"
GENERATING_PAGE = "<h1>Page is being generated...</h1>"

api_router = APIRouter(prefix="/api")
public_router = APIRouter()


def get_orchestrator(request: Request) -> Orchestrator:
    return request.app.state.orchestrator  # type: ignore[no-any-return]


# ---------------------------------------------------------------------------
# Request / response models
# ---------------------------------------------------------------------------


class CreateResponse(BaseModel):
    tlp_id: str
    message: str = "TLP created successfully"


class UpdateResponse(BaseModel):
    message: str = "TLP updated successfully"
    tlp: JobPosting


class ScrapeBrandRequest(BaseModel):
    website_url: str = ""


class MarketResearchRequest(BaseModel):
    role_title: str = ""
    location: str = ""
    industry: str = ""


class TriggerResponse(BaseModel):
    status: EnrichmentStatus
    message: str


class ChatRequest(BaseModel):
    """One chat exchange, already understood by the language service."""

    message: str = ""
    tlp_id: str | None = None
    reply: str = ""
    extracted_data: dict[str, Any] = Field(default_factory=dict)
    tool_actions: list[ChatAction] = Field(default_factory=list)


class PublishResponse(BaseModel):
    deployment_status: str
    deployed_url: str


class ApplicationResponse(BaseModel):
    application_count: int


# ---------------------------------------------------------------------------
# Record API
# ---------------------------------------------------------------------------


@api_router.post("/tlp/create", response_model=CreateResponse)
async def create_record(
    fields: dict[str, Any] | None = Body(default=None),
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> CreateResponse:
    record = orchestrator.create_record(fields)
    return CreateResponse(tlp_id=record.id)


@api_router.put("/tlp/{record_id}", response_model=UpdateResponse)
async def update_record(
    record_id: str,
    updates: dict[str, Any] = Body(...),
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> UpdateResponse:
    return UpdateResponse(tlp=orchestrator.update_record(record_id, updates))


@api_router.get("/tlp/{record_id}/data", response_model=JobPosting)
async def get_record_data(
    record_id: str, orchestrator: Orchestrator = Depends(get_orchestrator),
) -> JobPosting:
    return orchestrator.get_record(record_id)


@api_router.get("/tlp/{record_id}/scraping-status", response_model=ScrapingStatus)
async def scraping_status(
    record_id: str, orchestrator: Orchestrator = Depends(get_orchestrator),
) -> ScrapingStatus:
    return orchestrator.get_scraping_status(record_id)


@api_router.post("/tlp/{record_id}/scrape-brand", response_model=TriggerResponse)
async def scrape_brand(
    record_id: str,
    payload: ScrapeBrandRequest,
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> TriggerResponse:
    status = orchestrator.trigger_brand_scrape(record_id, payload.website_url)
    return TriggerResponse(status=status, message=f"Brand scraping {status}")


@api_router.post("/tlp/{record_id}/market-research", response_model=TriggerResponse)
async def market_research(
    record_id: str,
    payload: MarketResearchRequest,
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> TriggerResponse:
    status = orchestrator.trigger_market_research(
        record_id, payload.role_title, payload.location, payload.industry,
    )
    return TriggerResponse(status=status, message=f"Market research {status}")


@api_router.get("/tlp/{record_id}/market-data", response_model=MarketProfile)
async def market_data(
    record_id: str, orchestrator: Orchestrator = Depends(get_orchestrator),
) -> MarketProfile:
    return orchestrator.get_market_data(record_id)


@api_router.post("/tlp/{record_id}/export")
async def export_record(
    record_id: str, orchestrator: Orchestrator = Depends(get_orchestrator),
) -> Response:
    filename, html = orchestrator.export(record_id)
    return Response(
        content=html,
        media_type="text/html",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@api_router.post("/tlp/{record_id}/publish", response_model=PublishResponse)
async def publish_record(
    record_id: str, orchestrator: Orchestrator = Depends(get_orchestrator),
) -> PublishResponse:
    record = orchestrator.publish(record_id)
    return PublishResponse(deployment_status=record.deployment_status, deployed_url=record.deployed_url)


@api_router.post("/tlp/{record_id}/apply", response_model=ApplicationResponse)
async def record_application(
    record_id: str, orchestrator: Orchestrator = Depends(get_orchestrator),
) -> ApplicationResponse:
    return ApplicationResponse(application_count=orchestrator.record_application(record_id))


@api_router.post("/chat", response_model=ChatTurnResult)
async def chat(
    payload: ChatRequest, orchestrator: Orchestrator = Depends(get_orchestrator),
) -> ChatTurnResult:
    return orchestrator.apply_chat_turn(
        payload.tlp_id,
        payload.message,
        payload.reply,
        payload.extracted_data,
        payload.tool_actions,
    )


# ---------------------------------------------------------------------------
# Image proxy
# ---------------------------------------------------------------------------


# Mounted by create_app() at settings.server.image_proxy_path.
async def image_proxy(request: Request, url: str = Query(...)) -> Response:
    """Fetch a remote image so pages are not broken by hotlink protection."""
    if not url.startswith(("http://", "https://")):
        msg = "url must be an absolute http(s) URL"
        raise ValidationError(msg)

    user_agent = request.app.state.settings.scraper.user_agent
    try:
        async with httpx.AsyncClient(
            headers={"User-Agent": user_agent, "Accept": "image/*,*/*;q=0.8"},
            follow_redirects=True,
            transport=request.app.state.http_transport,
        ) as client:
            upstream = await client.get(url, timeout=IMAGE_PROXY_TIMEOUT_S)
    except httpx.HTTPError as e:
        logger.info("Image proxy fetch failed for %s: %s", url, e)
        return Response(status_code=502)

    content_type = upstream.headers.get("content-type", "")
    if not upstream.is_success or not content_type.startswith("image/"):
        logger.info("Image proxy refused %s (HTTP %d, %s)", url, upstream.status_code, content_type or "-")
        return Response(status_code=502)

    return Response(
        content=upstream.content,
        media_type=content_type,
        headers={"Cache-Control": IMAGE_CACHE_CONTROL},
    )


@api_router.get("/health")
async def health(orchestrator: Orchestrator = Depends(get_orchestrator)) -> dict[str, Any]:
    return {"ok": True, "pending_tasks": orchestrator.pending_tasks}


# ---------------------------------------------------------------------------
# Public pages
# ---------------------------------------------------------------------------


@public_router.get("/tlp/{record_id}", response_class=HTMLResponse)
async def public_page(
    record_id: str, orchestrator: Orchestrator = Depends(get_orchestrator),
) -> HTMLResponse:
    try:
        html = orchestrator.serve_public(record_id)
    except RecordNotFoundError:
        return HTMLResponse(NOT_FOUND_PAGE, status_code=404)
    return HTMLResponse(html or GENERATING_PAGE)
