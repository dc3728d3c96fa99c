"""Orchestrator: record lifecycle, background enrichment and page generation.

Data flow for one enrichment attempt:
  1. Status guard: refuse if the attempt kind is in_progress or completed
  2. Write in_progress (before any network I/O)
  3. Background task: scrape/research, then write the terminal status
  4. Regenerate the record's HTML from the persisted state

Background tasks are held in ``_tasks`` until they finish; a done-callback
logs anything that escaped. Tasks re-read the record and write only their
own fields, so edits made while a task runs are kept.
"""

import asyncio
import logging
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from talentpage.brand.extractor import BrandExtractor
from talentpage.brand.normalizer import normalize_color
from talentpage.brand.scraper import WebsiteScraper
from talentpage.core.cache import TTLCache
from talentpage.core.config import LLMConfig, Settings
from talentpage.core.db import RecordStore, open_store
from talentpage.core.errors import RecordNotFoundError, ValidationError
from talentpage.core.schemas import (
    GUARDED_STATUSES,
    STYLING_FIELDS,
    BrandColors,
    BrandError,
    BrandFonts,
    BrandProfile,
    ConversationMessage,
    ConversationPhase,
    EnrichmentStatus,
    JobPosting,
    MarketProfile,
    SalaryRange,
)
from talentpage.llm import get_provider
from talentpage.llm.base import LLMProvider
from talentpage.market.research import MarketResearcher
from talentpage.render.generator import (
    DEFAULT_IMAGE_PROXY_PATH,
    apply_brand_data,
    export_filename,
    render,
    render_standalone,
)

logger = logging.getLogger(__name__)

# Fields a client (API edit or chat fact) may set directly.
EDITABLE_FIELDS: frozenset[str] = frozenset({
    "role_title", "salary_range", "start_date", "location", "work_type", "industry",
    "job_description", "responsibilities", "requirements", "benefits",
    "highlight_1", "highlight_2", "highlight_3",
    "company_name", "company_description", "company_logo_url", "company_website_url",
    "hero_image_url", *STYLING_FIELDS,
})

# Record fields a completed brand scrape may fill in.
BRANDED_FIELDS: tuple[str, ...] = (
    "primary_color", "secondary_color", "font_family", "company_logo_url", "hero_image_url",
)

COLOR_FIELDS: frozenset[str] = frozenset({"primary_color", "secondary_color"})

ACTION_WEBSITE_SCRAPE = "trigger_website_scrape"
ACTION_MARKET_RESEARCH = "trigger_market_research"


# ---------------------------------------------------------------------------
# Result models
# ---------------------------------------------------------------------------


class BrandSummary(BaseModel):
    colors: BrandColors
    fonts: BrandFonts
    logo_url: str


class MarketSummary(BaseModel):
    similar_roles_count: int
    salary_range_market: SalaryRange
    data_source: str


class ScrapingStatus(BaseModel):
    """Poll result: both enrichment statuses plus data once completed."""

    brand_status: EnrichmentStatus
    market_status: EnrichmentStatus
    brand_data: BrandSummary | None = None
    market_data: MarketSummary | None = None


class ChatAction(BaseModel):
    """An action requested by the language-understanding service."""

    name: str
    args: dict[str, Any] = Field(default_factory=dict)


class ChatTurnResult(BaseModel):
    reply: str
    record_id: str
    updated_fields: dict[str, Any]
    preview_url: str
    brand_status: EnrichmentStatus
    market_status: EnrichmentStatus
    conversation_phase: ConversationPhase


def derive_conversation_phase(record: JobPosting) -> ConversationPhase:
    """Where the conversation stands, given what the record holds."""
    has_basics = bool(record.role_title and record.company_name)
    has_content = bool(record.job_description or record.responsibilities)
    has_full_content = has_content and bool(record.requirements)
    researching = (
        record.brand_data.scrape_status == "in_progress"
        or record.market_data.research_status == "in_progress"
    )

    if not has_basics:
        return "intake"
    if researching:
        return "researching"
    if not has_full_content:
        return "content_creation"
    if record.deployment_status == "published":
        return "deployment"
    return "review"


def _normalize_colors(updates: dict[str, Any]) -> dict[str, Any]:
    """Rewrite color edits as lowercase #rrggbb; an empty value clears the color."""
    normalized = dict(updates)
    for field in COLOR_FIELDS & set(updates):
        value = updates[field]
        if value is None or value == "":
            continue
        color = normalize_color(value) if isinstance(value, str) else ""
        if not color:
            msg = f"Invalid color for {field}: {value!r}"
            raise ValidationError(msg)
        normalized[field] = color
    return normalized


class Orchestrator:
    """Owns the record store and every enrichment collaborator."""

    def __init__(
        self,
        store: RecordStore,
        scraper: WebsiteScraper,
        extractor: BrandExtractor,
        researcher: MarketResearcher,
        *,
        proxy_path: str = DEFAULT_IMAGE_PROXY_PATH,
        public_base_url: str = "",
    ) -> None:
        self.store = store
        self._scraper = scraper
        self._extractor = extractor
        self._researcher = researcher
        self._proxy_path = proxy_path
        self._public_base_url = public_base_url.rstrip("/")
        self._tasks: set[asyncio.Task[None]] = set()

    # ------------------------------------------------------------------
    # Records
    # ------------------------------------------------------------------

    def create_record(self, fields: dict[str, Any] | None = None) -> JobPosting:
        record = self.store.create()
        if fields:
            record = self.update_record(record.id, fields)
        logger.info("Created record %s", record.id)
        return record

    def get_record(self, record_id: str) -> JobPosting:
        record = self.store.find_by_id(record_id)
        if record is None:
            raise RecordNotFoundError(record_id)
        return record

    def update_record(self, record_id: str, updates: dict[str, Any]) -> JobPosting:
        """Apply a partial edit, regenerate HTML and persist.

        Styling fields named in ``updates`` are marked customized, so later
        brand data never overwrites them.
        """
        unknown = sorted(set(updates) - EDITABLE_FIELDS)
        if unknown:
            msg = f"Unknown or read-only fields: {', '.join(unknown)}"
            raise ValidationError(msg)
        updates = _normalize_colors(updates)

        record = self.get_record(record_id)
        customized = set(record.customized_fields)
        customized.update(f for f in updates if f in STYLING_FIELDS)
        try:
            record = self.store.update(record_id, {**updates, "customized_fields": sorted(customized)})
        except PydanticValidationError as e:
            details = "; ".join(
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
            )
            msg = f"Invalid update: {details}"
            raise ValidationError(msg) from e
        if record is None:
            raise RecordNotFoundError(record_id)
        return self._store_html(record)

    def delete_record(self, record_id: str) -> None:
        if not self.store.delete(record_id):
            raise RecordNotFoundError(record_id)

    def regenerate_html(self, record_id: str) -> JobPosting:
        return self._store_html(self.get_record(record_id))

    def _store_html(self, record: JobPosting) -> JobPosting:
        html = render(record, proxy_path=self._proxy_path)
        updated = self.store.update(record.id, {"generated_html": html})
        if updated is None:
            raise RecordNotFoundError(record.id)
        return updated

    # ------------------------------------------------------------------
    # Enrichment triggers (call from a running event loop)
    # ------------------------------------------------------------------

    def trigger_brand_scrape(self, record_id: str, website_url: str) -> EnrichmentStatus:
        """Start a brand scrape unless one is running or already completed.

        Returns the brand status after the call.
        """
        if not website_url or not website_url.strip():
            msg = "website_url is required"
            raise ValidationError(msg)
        record = self.get_record(record_id)
        status = record.brand_data.scrape_status
        if status in GUARDED_STATUSES:
            logger.info("Brand scrape for %s not started: status is %s", record_id, status)
            return status

        self.store.update(record_id, {
            "company_website_url": website_url.strip(),
            "brand_data": BrandProfile(scrape_status="in_progress"),
        })
        self._spawn(self._run_brand_scrape(record_id, website_url.strip()), f"brand:{record_id}")
        return "in_progress"

    def trigger_market_research(
        self,
        record_id: str,
        role_title: str | None = None,
        location: str | None = None,
        industry: str | None = None,
    ) -> EnrichmentStatus:
        """Start market research unless one is running or already completed.

        Missing arguments fall back to the record's own fields.
        """
        record = self.get_record(record_id)
        role_title = role_title or record.role_title
        location = location or record.location
        industry = industry or record.industry
        if not role_title or not location:
            msg = "role_title and location are required"
            raise ValidationError(msg)

        status = record.market_data.research_status
        if status in GUARDED_STATUSES:
            logger.info("Market research for %s not started: status is %s", record_id, status)
            return status

        self.store.update(record_id, {"market_data": MarketProfile(research_status="in_progress")})
        self._spawn(
            self._run_market_research(record_id, role_title, location, industry),
            f"market:{record_id}",
        )
        return "in_progress"

    def _spawn(self, coro: Any, name: str) -> None:
        task = asyncio.get_running_loop().create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task[None]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            logger.warning("Background task %s was cancelled", task.get_name())
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Background task %s crashed", task.get_name(), exc_info=exc)

    async def drain(self) -> None:
        """Wait until every background task has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    @property
    def pending_tasks(self) -> int:
        return len(self._tasks)

    async def _run_brand_scrape(self, record_id: str, website_url: str) -> None:
        try:
            raw = await self._scraper.scrape(website_url)
            result = await self._extractor.extract(raw)
        except Exception as e:
            logger.warning("Brand scrape for %s failed", record_id, exc_info=True)
            result = BrandError(error=str(e) or type(e).__name__)

        if isinstance(result, BrandError):
            logger.info("Brand scrape for %s failed: %s", record_id, result.error)
            brand = BrandProfile(scrape_status="failed", error=result.error)
        else:
            logger.info("Brand scrape for %s completed", record_id)
            brand = result

        record = self.store.find_by_id(record_id)
        if record is None:
            logger.warning("Record %s disappeared during brand scrape", record_id)
            return
        updates: dict[str, Any] = {"brand_data": brand}
        if brand.scrape_status == "completed":
            # Copy brand styling onto the record itself; customized_fields is left untouched.
            branded = apply_brand_data(record.model_copy(update={"brand_data": brand}))
            updates.update({
                field: getattr(branded, field)
                for field in BRANDED_FIELDS
                if getattr(branded, field) != getattr(record, field)
            })
        if self.store.update(record_id, updates) is None:
            logger.warning("Record %s disappeared during brand scrape", record_id)
            return
        self.regenerate_html(record_id)

    async def _run_market_research(
        self, record_id: str, role_title: str, location: str, industry: str,
    ) -> None:
        try:
            profile = await self._researcher.research(role_title, location, industry)
        except Exception:
            logger.warning("Market research for %s failed", record_id, exc_info=True)
            profile = MarketProfile(research_status="failed", researched_at=datetime.now())

        logger.info(
            "Market research for %s %s (%s)",
            record_id, profile.research_status, profile.data_source or "-",
        )
        if self.store.update(record_id, {"market_data": profile}) is None:
            logger.warning("Record %s disappeared during market research", record_id)
            return
        self.regenerate_html(record_id)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_scraping_status(self, record_id: str) -> ScrapingStatus:
        record = self.get_record(record_id)
        brand, market = record.brand_data, record.market_data
        return ScrapingStatus(
            brand_status=brand.scrape_status,
            market_status=market.research_status,
            brand_data=BrandSummary(colors=brand.colors, fonts=brand.fonts, logo_url=brand.logo_url)
            if brand.scrape_status == "completed" else None,
            market_data=MarketSummary(
                similar_roles_count=market.similar_roles_count,
                salary_range_market=market.salary_range_market,
                data_source=market.data_source,
            )
            if market.research_status == "completed" else None,
        )

    def get_market_data(self, record_id: str) -> MarketProfile:
        return self.get_record(record_id).market_data

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------

    def preview_url(self, record_id: str) -> str:
        return f"/tlp/{record_id}"

    def export(self, record_id: str) -> tuple[str, str]:
        """Return (filename, standalone HTML)."""
        record = self.get_record(record_id)
        return export_filename(record), render_standalone(record, proxy_path=self._proxy_path)

    def publish(self, record_id: str) -> JobPosting:
        record = self.get_record(record_id)
        html = render(record, proxy_path=self._proxy_path)
        updated = self.store.update(record_id, {
            "generated_html": html,
            "deployment_status": "published",
            "deployed_url": f"{self._public_base_url}{self.preview_url(record_id)}",
            "deployed_at": datetime.now(),
        })
        if updated is None:
            raise RecordNotFoundError(record_id)
        logger.info("Published %s at %s", record_id, updated.deployed_url)
        return updated

    def serve_public(self, record_id: str) -> str:
        """Return the stored HTML and count the view."""
        record = self.get_record(record_id)
        if self.store.increment(record_id, "view_count") is None:
            raise RecordNotFoundError(record_id)
        return record.generated_html

    def record_application(self, record_id: str) -> int:
        count = self.store.increment(record_id, "application_count")
        if count is None:
            raise RecordNotFoundError(record_id)
        return count

    # ------------------------------------------------------------------
    # Chat
    # ------------------------------------------------------------------

    def apply_chat_turn(
        self,
        record_id: str | None,
        message: str,
        reply: str,
        facts: dict[str, Any] | None = None,
        actions: list[ChatAction] | None = None,
    ) -> ChatTurnResult:
        """Apply one chat exchange whose understanding was done elsewhere.

        ``facts`` are field values extracted from the user's message and
        ``actions`` the enrichment requests; unknown facts and actions are
        ignored.
        """
        if not message or not message.strip():
            msg = "message is required"
            raise ValidationError(msg)

        record = self.get_record(record_id) if record_id else self.store.create()
        history = [
            *record.conversation_history,
            ConversationMessage(role="user", content=message),
            ConversationMessage(role="assistant", content=reply),
        ]
        self.store.update(record.id, {"conversation_history": history})

        applied = {k: v for k, v in (facts or {}).items() if k in EDITABLE_FIELDS}
        ignored = sorted(set(facts or {}) - set(applied))
        if ignored:
            logger.debug("Ignoring chat facts: %s", ", ".join(ignored))
        if applied:
            try:
                self.update_record(record.id, applied)
            except ValidationError as e:
                logger.warning("Chat facts rejected for %s: %s", record.id, e)
                applied = {}

        brand_status: EnrichmentStatus = self.get_record(record.id).brand_data.scrape_status
        market_status: EnrichmentStatus = self.get_record(record.id).market_data.research_status
        for action in actions or []:
            if action.name == ACTION_WEBSITE_SCRAPE:
                url = str(action.args.get("website_url") or "")
                if url:
                    brand_status = self.trigger_brand_scrape(record.id, url)
            elif action.name == ACTION_MARKET_RESEARCH:
                try:
                    market_status = self.trigger_market_research(
                        record.id,
                        action.args.get("role_title"),
                        action.args.get("location"),
                        action.args.get("industry"),
                    )
                except ValidationError as e:
                    logger.info("Market research action skipped: %s", e)
            else:
                logger.debug("Ignoring unsupported chat action '%s'", action.name)

        phase = self.update_conversation_phase(record.id)
        self.regenerate_html(record.id)
        return ChatTurnResult(
            reply=reply,
            record_id=record.id,
            updated_fields=applied,
            preview_url=self.preview_url(record.id),
            brand_status=brand_status,
            market_status=market_status,
            conversation_phase=phase,
        )

    def update_conversation_phase(self, record_id: str) -> ConversationPhase:
        record = self.get_record(record_id)
        phase = derive_conversation_phase(record)
        if phase != record.conversation_phase:
            self.store.update(record_id, {"conversation_phase": phase})
        return phase


def load_provider(config: LLMConfig) -> LLMProvider | None:
    """The configured provider, or None when it cannot be loaded."""
    try:
        return get_provider(config.provider)
    except (ValueError, ImportError) as e:
        logger.warning("LLM provider unavailable (%s): voice and estimates disabled", e)
        return None


def build_services(settings: Settings) -> Orchestrator:
    """Construct the store, caches and collaborators once at process start."""
    store = open_store(settings.database)
    brand_cache = TTLCache(settings.cache.brand_ttl_seconds, name="brand")
    market_cache = TTLCache(settings.cache.market_ttl_seconds, name="market")
    provider = load_provider(settings.llm)

    return Orchestrator(
        store,
        WebsiteScraper(settings.scraper, brand_cache),
        BrandExtractor(provider, settings.llm.model),
        MarketResearcher(
            settings.market, market_cache, provider, settings.llm.model,
            user_agent=settings.scraper.user_agent,
        ),
        proxy_path=settings.server.image_proxy_path,
        public_base_url=settings.server.public_base_url,
    )
