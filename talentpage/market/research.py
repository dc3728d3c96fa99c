"""Market research: live SEEK scrape with an LLM estimation fallback.

research() always returns a MarketProfile. data_source tells callers which
path produced it:
  - "seek.com.au": listings scraped from the job board
  - "ai_estimation": the board failed or gave no signal; the provider estimated
  - "unavailable": both paths failed; every field is empty
"""

import asyncio
import logging
from datetime import datetime

import httpx
from bs4 import BeautifulSoup
from pydantic import BaseModel, Field, field_validator

from talentpage.core.cache import TTLCache
from talentpage.core.config import DEFAULT_USER_AGENT, MarketConfig
from talentpage.core.schemas import MarketProfile, SalaryRange
from talentpage.llm.base import LLMProvider, parse_json_response
from talentpage.market import parser

logger = logging.getLogger(__name__)

SOURCE_SEEK = "seek.com.au"
SOURCE_ESTIMATE = "ai_estimation"
SOURCE_UNAVAILABLE = "unavailable"

_ESTIMATE_SYSTEM_PROMPT = (
    "You are a recruitment market expert specialising in the Australian job market. "
    "Provide realistic, current market estimates. "
    "Return ONLY valid JSON with no explanation or markdown."
)

_ESTIMATE_PROMPT = """Estimate the current Australian job market for: "{role}" in "{location}" \
in the "{industry}" industry.

Return this exact JSON structure:
{{
  "similar_roles_count": <estimated number of similar active listings>,
  "salary_range_market": {{"low": "<e.g. $80k>", "median": "<e.g. $100k>", "high": "<e.g. $130k>"}},
  "common_benefits": ["<benefit>", "..."],
  "common_requirements": ["<requirement>", "..."],
  "competitor_highlights": ["<insight about competition for this role>", "<market trend>"]
}}"""


class _EstimateReply(BaseModel):
    """Shape check for the provider's market estimate."""

    similar_roles_count: int = 0
    salary_range_market: SalaryRange = Field(default_factory=SalaryRange)
    common_benefits: list[str] = Field(default_factory=list)
    common_requirements: list[str] = Field(default_factory=list)
    competitor_highlights: list[str] = Field(default_factory=list)

    @field_validator("similar_roles_count", mode="before")
    @classmethod
    def count_or_zero(cls, v: object) -> object:
        return 0 if v is None else v


def cache_key(role_title: str, location: str, industry: str) -> str:
    return f"{role_title}|{location}|{industry}".lower()


class MarketResearcher:
    """Researches salary and demand for a role, cached per role/location/industry."""

    def __init__(
        self,
        config: MarketConfig,
        cache: TTLCache,
        provider: LLMProvider | None = None,
        model: str | None = None,
        *,
        user_agent: str = DEFAULT_USER_AGENT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config
        self._cache = cache
        self._provider = provider
        self._model = model
        self._user_agent = user_agent
        self._transport = transport

    async def research(self, role_title: str, location: str = "", industry: str = "") -> MarketProfile:
        key = cache_key(role_title, location, industry)
        cached = self._cache.get(key)
        if cached is not None:
            logger.info("Market cache hit for %s", key)
            return cached

        logger.info("Researching market: %s in %s (%s)", role_title, location or "-", industry or "-")
        profile = await self.scrape_seek(role_title, location)
        if profile is None:
            logger.info("SEEK gave no usable data, falling back to estimation")
            profile = await self.estimate(role_title, location, industry)

        # Total failures are not cached so a later attempt can retry.
        if profile.data_source != SOURCE_UNAVAILABLE:
            self._cache.set(key, profile)
        logger.info("Market research for '%s' done via %s", role_title, profile.data_source)
        return profile

    async def scrape_seek(self, role_title: str, location: str) -> MarketProfile | None:
        """Scrape SEEK search results. None on any failure or when there is no signal."""
        url = parser.build_search_url(role_title, location)
        logger.debug("SEEK URL: %s", url)
        headers = {
            "User-Agent": self._user_agent,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "en-AU,en;q=0.9",
        }
        try:
            async with httpx.AsyncClient(
                headers=headers, follow_redirects=True, transport=self._transport,
            ) as client:
                response = await client.get(url, timeout=self._config.timeout_s)
                response.raise_for_status()
        except httpx.HTTPError as e:
            logger.info("SEEK request failed: %s", e)
            return None

        try:
            soup = BeautifulSoup(response.text, "html.parser")
            listings = parser.extract_listings(soup, self._config.max_listings)
            salary = parser.aggregate_salaries(listings)
            total = parser.extract_result_count(soup)
        except Exception:
            logger.warning("SEEK page could not be parsed", exc_info=True)
            return None

        if not listings or salary.is_empty():
            logger.info("SEEK returned %d listings with no salary signal", len(listings))
            return None

        return MarketProfile(
            research_status="completed",
            researched_at=datetime.now(),
            similar_roles_count=total,
            salary_range_market=salary,
            common_benefits=parser.common_items(listings),
            common_requirements=parser.common_items(listings),
            competitor_highlights=parser.competitor_highlights(listings),
            search_query_used=url,
            data_source=SOURCE_SEEK,
        )

    async def estimate(self, role_title: str, location: str, industry: str) -> MarketProfile:
        """Ask the provider for a market estimate. Never raises."""
        if self._provider is None:
            logger.warning("No LLM provider configured, market data unavailable")
            return unavailable_profile(role_title, location)

        prompt = _ESTIMATE_PROMPT.format(
            role=role_title, location=location or "Australia", industry=industry or "general",
        )
        try:
            raw = await asyncio.to_thread(
                self._provider.complete, prompt, self._model,
                system=_ESTIMATE_SYSTEM_PROMPT, temperature=0.4, max_tokens=500,
            )
            reply = _EstimateReply.model_validate(parse_json_response(raw))
            if reply.salary_range_market.is_empty():
                msg = "Estimate has no salary range"
                raise ValueError(msg)
        except Exception:
            logger.warning("Market estimation failed", exc_info=True)
            return unavailable_profile(role_title, location)

        return MarketProfile(
            research_status="completed",
            researched_at=datetime.now(),
            similar_roles_count=max(reply.similar_roles_count, 0),
            salary_range_market=reply.salary_range_market,
            common_benefits=reply.common_benefits,
            common_requirements=reply.common_requirements,
            competitor_highlights=reply.competitor_highlights,
            search_query_used=f"AI estimate: {role_title} in {location}",
            data_source=SOURCE_ESTIMATE,
        )


def unavailable_profile(role_title: str, location: str) -> MarketProfile:
    return MarketProfile(
        research_status="failed",
        researched_at=datetime.now(),
        search_query_used=f"Failed: {role_title} in {location}",
        data_source=SOURCE_UNAVAILABLE,
    )
