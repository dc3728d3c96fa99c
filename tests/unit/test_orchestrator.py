"""Tests for the Orchestrator: record edits, enrichment guards and chat turns."""

import asyncio
from datetime import datetime

import pytest

from talentpage.brand.extractor import BrandExtractor
from talentpage.core.config import DatabaseConfig, LLMConfig, Settings
from talentpage.core.db import MemoryRecordStore
from talentpage.core.errors import RecordNotFoundError, ValidationError
from talentpage.core.schemas import (
    DEFAULT_PRIMARY_COLOR,
    ColorSignal,
    HeroImage,
    JobPosting,
    LogoCandidate,
    MarketProfile,
    RawScrape,
    SalaryRange,
    ScrapeError,
)
from talentpage.pipeline.orchestrator import (
    ACTION_MARKET_RESEARCH,
    ACTION_WEBSITE_SCRAPE,
    ChatAction,
    Orchestrator,
    build_services,
    derive_conversation_phase,
    load_provider,
)


class FakeScraper:
    def __init__(self, result: RawScrape | ScrapeError | Exception, gate: asyncio.Event | None = None) -> None:
        self.result = result
        self.gate = gate
        self.calls: list[str] = []

    async def scrape(self, url: str) -> RawScrape | ScrapeError:
        self.calls.append(url)
        if self.gate is not None:
            await self.gate.wait()
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


class FakeResearcher:
    def __init__(self, result: MarketProfile | Exception) -> None:
        self.result = result
        self.calls: list[tuple[str, str, str]] = []

    async def research(self, role_title: str, location: str = "", industry: str = "") -> MarketProfile:
        self.calls.append((role_title, location, industry))
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


BRANDED_SCRAPE = RawScrape(
    domain="acme.example",
    colors=[ColorSignal(value="#0a66c2", source="theme-color", priority=10)],
)

SEEK_PROFILE = MarketProfile(
    research_status="completed",
    researched_at=datetime(2026, 1, 1),
    similar_roles_count=1284,
    salary_range_market=SalaryRange(low="$70k", median="$85k", high="$95k"),
    data_source="seek.com.au",
)


def _orchestrator(
    scraper: FakeScraper | None = None,
    researcher: FakeResearcher | None = None,
) -> Orchestrator:
    return Orchestrator(
        MemoryRecordStore(),
        scraper or FakeScraper(BRANDED_SCRAPE),  # type: ignore[arg-type]
        BrandExtractor(),
        researcher or FakeResearcher(SEEK_PROFILE),  # type: ignore[arg-type]
        public_base_url="https://jobs.example/",
    )


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------
class TestRecords:
    def test_create_with_fields_renders_html(self) -> None:
        orch = _orchestrator()
        record = orch.create_record({"role_title": "Warehouse Supervisor", "company_name": "Acme Co"})
        assert record.role_title == "Warehouse Supervisor"
        assert "<h1>Warehouse Supervisor</h1>" in record.generated_html

    def test_create_empty(self) -> None:
        record = _orchestrator().create_record()
        assert record.id.startswith("tlp_")

    def test_get_missing(self) -> None:
        with pytest.raises(RecordNotFoundError, match="tlp_missing") as exc_info:
            _orchestrator().get_record("tlp_missing")
        assert exc_info.value.record_id == "tlp_missing"

    def test_update_regenerates_html(self) -> None:
        orch = _orchestrator()
        record = orch.create_record()
        updated = orch.update_record(record.id, {"location": "Sydney", "benefits": ["Parking"]})
        assert updated.location == "Sydney"
        assert "<li>Parking</li>" in updated.generated_html

    def test_update_unknown_field_rejected(self) -> None:
        orch = _orchestrator()
        record = orch.create_record()
        with pytest.raises(ValidationError, match="Unknown or read-only fields: generated_html, view_count"):
            orch.update_record(record.id, {"view_count": 99, "generated_html": "x"})

    def test_update_invalid_value_rejected(self) -> None:
        orch = _orchestrator()
        record = orch.create_record()
        with pytest.raises(ValidationError, match="Invalid update: work_type"):
            orch.update_record(record.id, {"work_type": "sometimes"})

    def test_update_missing_record(self) -> None:
        with pytest.raises(RecordNotFoundError):
            _orchestrator().update_record("tlp_missing", {"role_title": "x"})

    def test_styling_edit_marks_customized(self) -> None:
        orch = _orchestrator()
        record = orch.create_record()
        updated = orch.update_record(record.id, {"primary_color": "#123456", "role_title": "Chef"})
        assert updated.customized_fields == ["primary_color"]

    def test_color_edits_normalized(self) -> None:
        orch = _orchestrator()
        record = orch.create_record()
        updated = orch.update_record(record.id, {"primary_color": "#ABC", "secondary_color": "rgb(10, 102, 194)"})
        assert updated.primary_color == "#aabbcc"
        assert updated.secondary_color == "#0a66c2"
        assert "box-shadow: 0 10px 20px #aabbcc4D;" in updated.generated_html

    @pytest.mark.parametrize("value", ["red", "#abcd12345", "url(x)"])
    def test_invalid_color_rejected(self, value: str) -> None:
        orch = _orchestrator()
        record = orch.create_record()
        with pytest.raises(ValidationError, match="Invalid color for primary_color"):
            orch.update_record(record.id, {"primary_color": value})
        assert orch.get_record(record.id).primary_color == DEFAULT_PRIMARY_COLOR

    def test_delete(self) -> None:
        orch = _orchestrator()
        record = orch.create_record()
        orch.delete_record(record.id)
        with pytest.raises(RecordNotFoundError):
            orch.get_record(record.id)
        with pytest.raises(RecordNotFoundError):
            orch.delete_record(record.id)


# ---------------------------------------------------------------------------
# Brand scrape
# ---------------------------------------------------------------------------
class TestBrandScrape:
    async def test_scrape_completes_and_rebrands_page(self) -> None:
        orch = _orchestrator()
        record = orch.create_record({"role_title": "Warehouse Supervisor", "company_name": "Acme Co"})

        status = orch.trigger_brand_scrape(record.id, "acme.example")
        assert status == "in_progress"
        assert orch.get_record(record.id).brand_data.scrape_status == "in_progress"
        assert orch.get_record(record.id).company_website_url == "acme.example"

        await orch.drain()

        stored = orch.get_record(record.id)
        assert stored.brand_data.scrape_status == "completed"
        assert stored.brand_data.colors.primary == "#0a66c2"
        assert "--primary-color: #0a66c2;" in stored.generated_html
        assert stored.primary_color == "#0a66c2"
        assert stored.customized_fields == []
        assert orch.pending_tasks == 0

    async def test_customized_color_survives_scrape(self) -> None:
        orch = _orchestrator()
        record = orch.create_record()
        orch.update_record(record.id, {"primary_color": "#123456"})

        orch.trigger_brand_scrape(record.id, "acme.example")
        await orch.drain()

        stored = orch.get_record(record.id)
        assert stored.brand_data.colors.primary == "#0a66c2"
        assert stored.primary_color == "#123456"
        assert stored.customized_fields == ["primary_color"]
        assert "--primary-color: #123456;" in stored.generated_html

    async def test_brand_logo_and_hero_fill_only_empty_fields(self) -> None:
        scrape = RawScrape(
            domain="acme.example",
            logos=[LogoCandidate(url="https://acme.example/logo.png", source="img", priority=5)],
            hero_images=[HeroImage(url="https://acme.example/team.jpg", relevance=3)],
        )
        orch = _orchestrator(FakeScraper(scrape))
        record = orch.create_record({"company_logo_url": "https://cdn.example/own-logo.png"})

        orch.trigger_brand_scrape(record.id, "acme.example")
        await orch.drain()

        stored = orch.get_record(record.id)
        assert stored.company_logo_url == "https://cdn.example/own-logo.png"
        assert stored.hero_image_url == "https://acme.example/team.jpg"
        assert stored.primary_color == DEFAULT_PRIMARY_COLOR
        assert stored.customized_fields == []

    async def test_failed_scrape_leaves_styling_fields(self) -> None:
        orch = _orchestrator(FakeScraper(ScrapeError(error="HTTP 500", domain="acme.example")))
        record = orch.create_record()

        orch.trigger_brand_scrape(record.id, "acme.example")
        await orch.drain()

        stored = orch.get_record(record.id)
        assert stored.primary_color == DEFAULT_PRIMARY_COLOR
        assert stored.hero_image_url == ""

    async def test_concurrent_triggers_start_one_task(self) -> None:
        gate = asyncio.Event()
        scraper = FakeScraper(BRANDED_SCRAPE, gate)
        orch = _orchestrator(scraper)
        record = orch.create_record()

        statuses = [orch.trigger_brand_scrape(record.id, "acme.example") for _ in range(3)]
        await asyncio.sleep(0)
        gate.set()
        await orch.drain()

        assert statuses == ["in_progress", "in_progress", "in_progress"]
        assert scraper.calls == ["acme.example"]

    async def test_completed_scrape_not_repeated(self) -> None:
        scraper = FakeScraper(BRANDED_SCRAPE)
        orch = _orchestrator(scraper)
        record = orch.create_record()
        orch.trigger_brand_scrape(record.id, "acme.example")
        await orch.drain()

        assert orch.trigger_brand_scrape(record.id, "other.example") == "completed"
        assert orch.pending_tasks == 0
        assert len(scraper.calls) == 1
        assert orch.get_record(record.id).company_website_url == "acme.example"

    async def test_failed_scrape_keeps_defaults_and_allows_retry(self) -> None:
        scraper = FakeScraper(ScrapeError(error="HTTP 404", domain="acme.example"))
        orch = _orchestrator(scraper)
        record = orch.create_record({"role_title": "Warehouse Supervisor", "company_name": "Acme Co"})

        orch.trigger_brand_scrape(record.id, "https://acme.example")
        await orch.drain()

        stored = orch.get_record(record.id)
        assert stored.brand_data.scrape_status == "failed"
        assert stored.brand_data.error == "HTTP 404"
        assert f"--primary-color: {DEFAULT_PRIMARY_COLOR};" in stored.generated_html

        scraper.result = BRANDED_SCRAPE
        assert orch.trigger_brand_scrape(record.id, "https://acme.example") == "in_progress"
        await orch.drain()
        assert orch.get_record(record.id).brand_data.scrape_status == "completed"

    async def test_unexpected_exception_marks_failed(self) -> None:
        orch = _orchestrator(FakeScraper(RuntimeError("boom")))
        record = orch.create_record()

        orch.trigger_brand_scrape(record.id, "acme.example")
        await orch.drain()

        brand = orch.get_record(record.id).brand_data
        assert brand.scrape_status == "failed"
        assert brand.error == "boom"

    async def test_edits_during_scrape_are_kept(self) -> None:
        gate = asyncio.Event()
        orch = _orchestrator(FakeScraper(BRANDED_SCRAPE, gate))
        record = orch.create_record()

        orch.trigger_brand_scrape(record.id, "acme.example")
        await asyncio.sleep(0)
        orch.update_record(record.id, {"role_title": "Night Supervisor"})
        gate.set()
        await orch.drain()

        stored = orch.get_record(record.id)
        assert stored.role_title == "Night Supervisor"
        assert stored.brand_data.scrape_status == "completed"

    async def test_record_deleted_during_scrape(self) -> None:
        gate = asyncio.Event()
        orch = _orchestrator(FakeScraper(BRANDED_SCRAPE, gate))
        record = orch.create_record()

        orch.trigger_brand_scrape(record.id, "acme.example")
        await asyncio.sleep(0)
        orch.delete_record(record.id)
        gate.set()
        await orch.drain()

        assert orch.store.find_by_id(record.id) is None

    async def test_url_required(self) -> None:
        orch = _orchestrator()
        record = orch.create_record()
        with pytest.raises(ValidationError, match="website_url is required"):
            orch.trigger_brand_scrape(record.id, "  ")

    async def test_missing_record(self) -> None:
        with pytest.raises(RecordNotFoundError):
            _orchestrator().trigger_brand_scrape("tlp_missing", "acme.example")


# ---------------------------------------------------------------------------
# Market research
# ---------------------------------------------------------------------------
class TestMarketResearch:
    async def test_uses_record_fields(self) -> None:
        researcher = FakeResearcher(SEEK_PROFILE)
        orch = _orchestrator(researcher=researcher)
        record = orch.create_record({"role_title": "Warehouse Supervisor", "location": "Sydney", "industry": "Logistics"})

        assert orch.trigger_market_research(record.id) == "in_progress"
        assert orch.get_market_data(record.id).research_status == "in_progress"
        await orch.drain()

        assert researcher.calls == [("Warehouse Supervisor", "Sydney", "Logistics")]
        market = orch.get_market_data(record.id)
        assert market.research_status == "completed"
        assert market.salary_range_market.median == "$85k"

    async def test_arguments_override_record(self) -> None:
        researcher = FakeResearcher(SEEK_PROFILE)
        orch = _orchestrator(researcher=researcher)
        record = orch.create_record({"role_title": "Chef", "location": "Perth"})

        orch.trigger_market_research(record.id, "Sous Chef", "Fremantle")
        await orch.drain()

        assert researcher.calls == [("Sous Chef", "Fremantle", "")]

    async def test_role_and_location_required(self) -> None:
        orch = _orchestrator()
        record = orch.create_record({"role_title": "Chef"})
        with pytest.raises(ValidationError, match="role_title and location are required"):
            orch.trigger_market_research(record.id)
        assert orch.get_market_data(record.id).research_status == "pending"

    async def test_completed_not_repeated(self) -> None:
        researcher = FakeResearcher(SEEK_PROFILE)
        orch = _orchestrator(researcher=researcher)
        record = orch.create_record({"role_title": "Chef", "location": "Perth"})
        orch.trigger_market_research(record.id)
        await orch.drain()

        assert orch.trigger_market_research(record.id) == "completed"
        assert len(researcher.calls) == 1

    async def test_unavailable_is_failed(self) -> None:
        unavailable = MarketProfile(research_status="failed", data_source="unavailable")
        orch = _orchestrator(researcher=FakeResearcher(unavailable))
        record = orch.create_record({"role_title": "Chef", "location": "Perth"})

        orch.trigger_market_research(record.id)
        await orch.drain()

        market = orch.get_market_data(record.id)
        assert market.research_status == "failed"
        assert market.data_source == "unavailable"

    async def test_exception_is_failed(self) -> None:
        orch = _orchestrator(researcher=FakeResearcher(RuntimeError("boom")))
        record = orch.create_record({"role_title": "Chef", "location": "Perth"})

        orch.trigger_market_research(record.id)
        await orch.drain()

        assert orch.get_market_data(record.id).research_status == "failed"

    async def test_independent_of_brand_status(self) -> None:
        orch = _orchestrator(FakeScraper(ScrapeError(error="HTTP 404")))
        record = orch.create_record({"role_title": "Chef", "location": "Perth"})

        orch.trigger_brand_scrape(record.id, "acme.example")
        orch.trigger_market_research(record.id)
        await orch.drain()

        status = orch.get_scraping_status(record.id)
        assert status.brand_status == "failed"
        assert status.market_status == "completed"


# ---------------------------------------------------------------------------
# Queries and output
# ---------------------------------------------------------------------------
class TestStatusAndOutput:
    async def test_scraping_status_summaries(self) -> None:
        orch = _orchestrator()
        record = orch.create_record({"role_title": "Chef", "location": "Perth"})

        pending = orch.get_scraping_status(record.id)
        assert pending.brand_status == "pending"
        assert pending.brand_data is None
        assert pending.market_data is None

        orch.trigger_brand_scrape(record.id, "acme.example")
        orch.trigger_market_research(record.id)
        await orch.drain()

        done = orch.get_scraping_status(record.id)
        assert done.brand_data is not None
        assert done.brand_data.colors.primary == "#0a66c2"
        assert done.market_data is not None
        assert done.market_data.similar_roles_count == 1284

    def test_export(self) -> None:
        orch = _orchestrator()
        record = orch.create_record({"role_title": "Warehouse Supervisor", "company_name": "Acme Co"})
        filename, html = orch.export(record.id)
        assert filename == "warehouse_supervisor_acme_co.html"
        assert "Publish this page" not in html
        assert 'property="og:title"' in html

    def test_publish_and_serve(self) -> None:
        orch = _orchestrator()
        record = orch.create_record({"role_title": "Chef"})

        published = orch.publish(record.id)

        assert published.deployment_status == "published"
        assert published.deployed_url == f"https://jobs.example/tlp/{record.id}"
        assert published.deployed_at is not None
        assert orch.serve_public(record.id) == published.generated_html
        orch.serve_public(record.id)
        assert orch.get_record(record.id).view_count == 2

    def test_record_application(self) -> None:
        orch = _orchestrator()
        record = orch.create_record()
        assert orch.record_application(record.id) == 1
        assert orch.record_application(record.id) == 2

    def test_preview_url(self) -> None:
        assert _orchestrator().preview_url("tlp_abc") == "/tlp/tlp_abc"


# ---------------------------------------------------------------------------
# Chat
# ---------------------------------------------------------------------------
class TestChatTurn:
    async def test_first_turn_creates_record(self) -> None:
        orch = _orchestrator()

        result = orch.apply_chat_turn(
            None,
            "We need a warehouse supervisor at Acme Co",
            "Great! Where is the role based?",
            facts={"role_title": "Warehouse Supervisor", "company_name": "Acme Co", "mood": "keen"},
        )

        assert result.updated_fields == {"role_title": "Warehouse Supervisor", "company_name": "Acme Co"}
        assert result.preview_url == f"/tlp/{result.record_id}"
        assert result.conversation_phase == "content_creation"
        stored = orch.get_record(result.record_id)
        assert [m.role for m in stored.conversation_history] == ["user", "assistant"]
        assert stored.conversation_phase == "content_creation"
        assert "<h1>Warehouse Supervisor</h1>" in stored.generated_html

    async def test_actions_trigger_enrichment(self) -> None:
        orch = _orchestrator()
        record = orch.create_record({"role_title": "Chef", "company_name": "Acme Co", "location": "Perth"})

        result = orch.apply_chat_turn(
            record.id,
            "Our site is acme.example",
            "Thanks, I'll take a look.",
            actions=[
                ChatAction(name=ACTION_WEBSITE_SCRAPE, args={"website_url": "acme.example"}),
                ChatAction(name=ACTION_MARKET_RESEARCH),
                ChatAction(name="send_email"),
            ],
        )

        assert result.brand_status == "in_progress"
        assert result.market_status == "in_progress"
        assert result.conversation_phase == "researching"
        await orch.drain()
        assert orch.get_record(record.id).brand_data.scrape_status == "completed"

    async def test_market_action_without_location_is_skipped(self) -> None:
        orch = _orchestrator()
        record = orch.create_record({"role_title": "Chef"})
        result = orch.apply_chat_turn(
            record.id, "research it", "ok", actions=[ChatAction(name=ACTION_MARKET_RESEARCH)],
        )
        assert result.market_status == "pending"

    def test_invalid_fact_rejected(self) -> None:
        orch = _orchestrator()
        result = orch.apply_chat_turn(None, "hybrid-ish", "noted", facts={"work_type": "sometimes"})
        assert result.updated_fields == {}
        assert orch.get_record(result.record_id).work_type == ""

    def test_history_accumulates(self) -> None:
        orch = _orchestrator()
        first = orch.apply_chat_turn(None, "hello", "hi")
        orch.apply_chat_turn(first.record_id, "role is chef", "got it")
        history = orch.get_record(first.record_id).conversation_history
        assert [m.content for m in history] == ["hello", "hi", "role is chef", "got it"]

    def test_empty_message(self) -> None:
        with pytest.raises(ValidationError, match="message is required"):
            _orchestrator().apply_chat_turn(None, "  ", "")

    def test_unknown_record(self) -> None:
        with pytest.raises(RecordNotFoundError):
            _orchestrator().apply_chat_turn("tlp_missing", "hello", "hi")


class TestConversationPhase:
    def test_intake(self) -> None:
        assert derive_conversation_phase(JobPosting(role_title="Chef")) == "intake"

    def test_researching(self) -> None:
        record = JobPosting(role_title="Chef", company_name="Acme Co")
        record.market_data.research_status = "in_progress"
        assert derive_conversation_phase(record) == "researching"

    def test_content_creation(self) -> None:
        record = JobPosting(role_title="Chef", company_name="Acme Co", job_description="Cook.")
        assert derive_conversation_phase(record) == "content_creation"

    def test_review(self) -> None:
        record = JobPosting(
            role_title="Chef", company_name="Acme Co", responsibilities=["Cook"], requirements=["Knives"],
        )
        assert derive_conversation_phase(record) == "review"

    def test_deployment(self) -> None:
        record = JobPosting(
            role_title="Chef", company_name="Acme Co", job_description="Cook.",
            requirements=["Knives"], deployment_status="published",
        )
        assert derive_conversation_phase(record) == "deployment"


class TestWiring:
    def test_load_provider_unknown_is_none(self) -> None:
        assert load_provider(LLMConfig(provider="nope")) is None

    def test_load_provider_known(self) -> None:
        provider = load_provider(LLMConfig(provider="ollama"))
        assert provider is not None
        assert provider.provider_id == "ollama"

    def test_build_services_memory_store(self) -> None:
        settings = Settings(database=DatabaseConfig(enabled=False))
        orch = build_services(settings)
        assert isinstance(orch.store, MemoryRecordStore)
        assert orch.pending_tasks == 0
