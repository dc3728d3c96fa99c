"""Core data models: the job posting record and its embedded enrichment profiles."""

from datetime import datetime
from typing import Literal
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

EnrichmentStatus = Literal["pending", "in_progress", "completed", "failed"]
WorkType = Literal["remote", "hybrid", "onsite", ""]
TemplateStyle = Literal["default", "modern", "minimal"]
DeploymentStatus = Literal["draft", "published"]
ConversationPhase = Literal[
    "intake", "researching", "content_creation", "review", "deployment", "complete",
]
MessageRole = Literal["user", "assistant", "system"]

DEFAULT_PRIMARY_COLOR = "#667eea"
DEFAULT_SECONDARY_COLOR = "#764ba2"
DEFAULT_FONT_FAMILY = "Arial, sans-serif"

STYLING_FIELDS: tuple[str, ...] = (
    "primary_color", "secondary_color", "font_family", "template_style",
)

# Statuses that refuse a new enrichment attempt.
GUARDED_STATUSES: frozenset[str] = frozenset({"in_progress", "completed"})


def new_record_id() -> str:
    return f"tlp_{uuid4().hex}"


# ---------------------------------------------------------------------------
# Raw scraper signals (frozen, produced once per scrape and cached)
# ---------------------------------------------------------------------------


class ColorSignal(BaseModel):
    """A raw CSS color token and where it was found."""

    model_config = ConfigDict(frozen=True)

    value: str
    source: str
    priority: float = 5.0


class FontSignal(BaseModel):
    """A font stylesheet URL, a font name, or a raw font-family declaration."""

    model_config = ConfigDict(frozen=True)

    value: str
    source: str
    type: Literal["url", "name", "declaration"]


class LogoCandidate(BaseModel):
    model_config = ConfigDict(frozen=True)

    url: str
    source: str
    priority: float


class HeroImage(BaseModel):
    model_config = ConfigDict(frozen=True)

    url: str
    alt: str = ""
    source: str = "homepage"
    relevance: int = 0


class PageMeta(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str = ""
    description: str = ""
    og_description: str = ""
    og_title: str = ""
    keywords: str = ""


class RawScrape(BaseModel):
    """Everything the website scraper pulled from a company site."""

    model_config = ConfigDict(frozen=True)

    domain: str
    colors: list[ColorSignal] = Field(default_factory=list)
    fonts: list[FontSignal] = Field(default_factory=list)
    logos: list[LogoCandidate] = Field(default_factory=list)
    meta: PageMeta = Field(default_factory=PageMeta)
    brand_text: list[str] = Field(default_factory=list)
    hero_images: list[HeroImage] = Field(default_factory=list)
    career_page_content: str = ""
    about_page_content: str = ""
    scraped_at: datetime = Field(default_factory=datetime.now)


class ScrapeError(BaseModel):
    """Structured scrape failure. A first-class result, not an exception."""

    model_config = ConfigDict(frozen=True)

    error: str
    domain: str = ""


# ---------------------------------------------------------------------------
# Brand profile
# ---------------------------------------------------------------------------


class BrandColors(BaseModel):
    primary: str = ""
    secondary: str = ""
    accent: str = ""
    background: str = ""
    text: str = ""


class BrandFonts(BaseModel):
    heading: str = ""
    body: str = ""
    google_fonts_url: str = ""


class ScrapedImage(BaseModel):
    url: str
    alt: str = ""
    source: str = ""


class BrandVoice(BaseModel):
    """Tone classification of the company's own copy."""

    keywords: list[str] = Field(default_factory=list)
    tone_category: str = ""
    writing_style: str = ""
    sample_hook: str = ""
    avoid: str = ""


class BrandProfile(BaseModel):
    """Brand data embedded on a record. Its status lifecycle is independent."""

    scrape_status: EnrichmentStatus = "pending"
    scraped_at: datetime | None = None
    colors: BrandColors = Field(default_factory=BrandColors)
    fonts: BrandFonts = Field(default_factory=BrandFonts)
    logo_url: str = ""
    hero_image_url: str = ""
    brand_voice_keywords: list[str] = Field(default_factory=list)
    tone_category: str = ""
    writing_style: str = ""
    sample_hook: str = ""
    brand_avoid: str = ""
    raw_meta_description: str = ""
    career_page_content: str = ""
    about_page_content: str = ""
    scraped_images: list[ScrapedImage] = Field(default_factory=list)
    error: str = ""


class BrandError(BaseModel):
    """Returned by the brand extractor when the scrape itself failed."""

    model_config = ConfigDict(frozen=True)

    error: str


# ---------------------------------------------------------------------------
# Market profile
# ---------------------------------------------------------------------------


class SalaryRange(BaseModel):
    low: str = ""
    median: str = ""
    high: str = ""

    def is_empty(self) -> bool:
        return not (self.low or self.median or self.high)


class MarketProfile(BaseModel):
    """Market research embedded on a record. Its status lifecycle is independent."""

    research_status: EnrichmentStatus = "pending"
    researched_at: datetime | None = None
    similar_roles_count: int = 0
    salary_range_market: SalaryRange = Field(default_factory=SalaryRange)
    common_benefits: list[str] = Field(default_factory=list)
    common_requirements: list[str] = Field(default_factory=list)
    competitor_highlights: list[str] = Field(default_factory=list)
    search_query_used: str = ""
    data_source: str = ""


class JobListing(BaseModel):
    """A single job-board search result card."""

    model_config = ConfigDict(frozen=True)

    title: str = ""
    company: str = ""
    salary: str = ""
    location: str = ""
    tags: list[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# The record
# ---------------------------------------------------------------------------


class ConversationMessage(BaseModel):
    role: MessageRole
    content: str
    timestamp: datetime = Field(default_factory=datetime.now)


class JobPosting(BaseModel):
    """The central job posting record.

    Mutable: the orchestrator updates it incrementally as facts arrive and
    enrichment completes. Rendering always works on a copy.
    """

    id: str = Field(default_factory=new_record_id)

    # Job details
    role_title: str = ""
    salary_range: str = ""
    start_date: str = ""
    location: str = ""
    work_type: WorkType = ""
    industry: str = ""
    job_description: str = ""
    responsibilities: list[str] = Field(default_factory=list)
    requirements: list[str] = Field(default_factory=list)
    benefits: list[str] = Field(default_factory=list)
    highlight_1: str = ""
    highlight_2: str = ""
    highlight_3: str = ""

    # Company info
    company_name: str = ""
    company_description: str = ""
    company_logo_url: str = ""
    company_website_url: str = ""
    hero_image_url: str = ""

    # Enrichment
    brand_data: BrandProfile = Field(default_factory=BrandProfile)
    market_data: MarketProfile = Field(default_factory=MarketProfile)

    # Styling
    primary_color: str = DEFAULT_PRIMARY_COLOR
    secondary_color: str = DEFAULT_SECONDARY_COLOR
    font_family: str = DEFAULT_FONT_FAMILY
    template_style: TemplateStyle = "default"
    customized_fields: list[str] = Field(default_factory=list)

    # Output
    generated_html: str = ""
    deployment_status: DeploymentStatus = "draft"
    deployed_url: str = ""
    deployed_at: datetime | None = None
    view_count: int = 0
    application_count: int = 0

    conversation_history: list[ConversationMessage] = Field(default_factory=list)
    conversation_phase: ConversationPhase = "intake"

    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    def is_customized(self, field: str) -> bool:
        return field in self.customized_fields

    def mark_customized(self, field: str) -> None:
        """Record that the user set a styling field explicitly."""
        if field not in STYLING_FIELDS:
            msg = f"'{field}' is not a styling field"
            raise ValueError(msg)
        if field not in self.customized_fields:
            self.customized_fields = sorted([*self.customized_fields, field])

    def touch(self) -> None:
        self.updated_at = datetime.now()
