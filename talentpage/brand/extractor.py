"""Brand profile builder: raw scrape signals in, BrandProfile out.

Colors, fonts, logo and hero image come from the pure normalizer. The
company's tone of voice is classified by the text-understanding provider;
any provider or parsing failure leaves the voice fields empty.
"""

import asyncio
import logging
from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from talentpage.brand.normalizer import (
    extract_brand_colors,
    extract_brand_fonts,
    select_best_hero_image,
    select_best_logo,
)
from talentpage.core.schemas import (
    BrandError,
    BrandProfile,
    BrandVoice,
    RawScrape,
    ScrapedImage,
    ScrapeError,
)
from talentpage.llm.base import LLMProvider, parse_json_response

logger = logging.getLogger(__name__)

MIN_VOICE_TEXT_CHARS = 20
MAX_VOICE_TEXT_CHARS = 2000

TONE_CATEGORIES: tuple[str, ...] = (
    "innovative_bold", "professional_trusted", "friendly_community", "mission_driven",
)

_VOICE_SYSTEM_PROMPT = (
    "You are a brand strategist analysing a company's own website copy.\n\n"
    "Return ONLY a JSON object (no markdown, no explanation) with these fields:\n"
    "- keywords (list[str]): 3-5 words that capture the brand voice\n"
    "- tone_category (string): one of "
    '"innovative_bold", "professional_trusted", "friendly_community", "mission_driven"\n'
    "- writing_style (string): one sentence describing how the company writes\n"
    "- sample_hook (string): an opening line for a job ad in this voice\n"
    "- avoid (string): language that would feel off-brand"
)


class _VoiceReply(BaseModel):
    """Shape check for the provider's voice classification."""

    keywords: list[str] = Field(default_factory=list)
    tone_category: str = ""
    writing_style: str = ""
    sample_hook: str = ""
    avoid: str = ""

    @field_validator("tone_category")
    @classmethod
    def known_tone(cls, v: str) -> str:
        v = v.strip().lower()
        return v if v in TONE_CATEGORIES else ""


def collect_voice_text(raw: RawScrape) -> str:
    """Join the copy worth classifying, truncated to MAX_VOICE_TEXT_CHARS."""
    parts = [raw.meta.description, raw.meta.og_description, *raw.brand_text]
    text = " ".join(p for p in parts if p).strip()
    return text[:MAX_VOICE_TEXT_CHARS]


class BrandExtractor:
    """Turns a RawScrape into a BrandProfile."""

    def __init__(self, provider: LLMProvider | None = None, model: str | None = None) -> None:
        self._provider = provider
        self._model = model

    async def extract(self, raw: RawScrape | ScrapeError) -> BrandProfile | BrandError:
        if isinstance(raw, ScrapeError):
            return BrandError(error=raw.error)

        colors = extract_brand_colors(raw.colors)
        fonts = extract_brand_fonts(raw.fonts)
        voice = await self.classify_voice(collect_voice_text(raw))

        profile = BrandProfile(
            scrape_status="completed",
            scraped_at=datetime.now(),
            colors=colors,
            fonts=fonts,
            logo_url=select_best_logo(raw.logos),
            hero_image_url=select_best_hero_image(raw.hero_images),
            brand_voice_keywords=voice.keywords,
            tone_category=voice.tone_category,
            writing_style=voice.writing_style,
            sample_hook=voice.sample_hook,
            brand_avoid=voice.avoid,
            raw_meta_description=raw.meta.description,
            career_page_content=raw.career_page_content,
            about_page_content=raw.about_page_content,
            scraped_images=[
                ScrapedImage(url=img.url, alt=img.alt, source=img.source)
                for img in raw.hero_images
            ],
        )
        logger.info(
            "Brand profile for %s: primary=%s heading=%s tone=%s",
            raw.domain, colors.primary or "-", fonts.heading or "-", voice.tone_category or "-",
        )
        return profile

    async def classify_voice(self, text: str) -> BrandVoice:
        """Classify brand voice. Returns an empty BrandVoice on any failure."""
        if self._provider is None or len(text) < MIN_VOICE_TEXT_CHARS:
            return BrandVoice()

        try:
            raw = await asyncio.to_thread(
                self._provider.complete, text, self._model,
                system=_VOICE_SYSTEM_PROMPT, temperature=0.3, max_tokens=300,
            )
            reply = _VoiceReply.model_validate(parse_json_response(raw))
        except Exception:
            logger.warning("Brand voice classification failed, leaving voice empty", exc_info=True)
            return BrandVoice()

        return BrandVoice(
            keywords=reply.keywords,
            tone_category=reply.tone_category,
            writing_style=reply.writing_style,
            sample_hook=reply.sample_hook,
            avoid=reply.avoid,
        )
