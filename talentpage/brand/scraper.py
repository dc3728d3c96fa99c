"""Company website scraper: homepage, stylesheets and career/about pages.

Flow for one scrape:
  1. Normalize the URL, check the brand cache (keyed by origin)
  2. robots.txt gate (unreachable or malformed means allowed)
  3. Homepage fetch: failure here fails the whole scrape
  4. External stylesheets and career/about sub-pages fetched concurrently,
     each failure tolerated on its own
  5. Signals merged into a RawScrape and cached

scrape() never raises: every failure comes back as a ScrapeError.
"""

import asyncio
import logging
from urllib.parse import urlparse, urlunparse
from urllib.robotparser import RobotFileParser

import httpx

from talentpage.brand import page_parser
from talentpage.brand.selectors import ABOUT_PATHS, CAREER_PATHS
from talentpage.core.cache import TTLCache
from talentpage.core.config import ScraperConfig
from talentpage.core.schemas import HeroImage, RawScrape, ScrapeError

logger = logging.getLogger(__name__)

BLOCKED_BY_ROBOTS = "blocked_by_robots"


def normalize_website_url(url: str) -> str:
    """Prepend https:// when the URL carries no scheme, and lowercase scheme and host."""
    url = url.strip()
    if not url.lower().startswith(("http://", "https://")):
        url = f"https://{url}"
    parsed = urlparse(url)
    return urlunparse(parsed._replace(scheme=parsed.scheme.lower(), netloc=parsed.netloc.lower()))


def origin_of(url: str) -> str:
    parsed = urlparse(url)
    return f"{parsed.scheme.lower()}://{parsed.netloc.lower()}"


class _SubPage:
    """Text and hero images harvested from a career or about page."""

    def __init__(self, content: str = "", images: list[HeroImage] | None = None) -> None:
        self.content = content
        self.images = images or []


class WebsiteScraper:
    """Fetches a company website and collects raw brand signals."""

    def __init__(
        self,
        config: ScraperConfig,
        cache: TTLCache,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config
        self._cache = cache
        self._transport = transport

    async def scrape(self, website_url: str) -> RawScrape | ScrapeError:
        """Scrape a company website. Cached per origin."""
        url = normalize_website_url(website_url)
        parsed = urlparse(url)
        domain = parsed.netloc
        if not domain:
            return ScrapeError(error=f"Invalid URL: {website_url!r}", domain="")
        origin = origin_of(url)

        cached = self._cache.get(origin)
        if cached is not None:
            logger.info("Brand cache hit for %s", origin)
            return cached

        try:
            result = await self._scrape(url, origin, domain)
        except Exception as e:
            logger.warning("Scrape of %s failed unexpectedly", origin, exc_info=True)
            return ScrapeError(error=str(e) or type(e).__name__, domain=domain)

        if isinstance(result, RawScrape):
            self._cache.set(origin, result)
        return result

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            headers={
                "User-Agent": self._config.user_agent,
                "Accept": "text/html,application/xhtml+xml,*/*;q=0.8",
            },
            follow_redirects=True,
            transport=self._transport,
        )

    async def _scrape(self, url: str, origin: str, domain: str) -> RawScrape | ScrapeError:
        async with self._client() as client:
            if not await self._is_allowed(client, origin):
                logger.info("robots.txt disallows scraping %s", origin)
                return ScrapeError(error=BLOCKED_BY_ROBOTS, domain=domain)

            try:
                response = await client.get(url, timeout=self._config.homepage_timeout_s)
                response.raise_for_status()
            except httpx.HTTPStatusError as e:
                logger.info("Homepage %s returned HTTP %d", url, e.response.status_code)
                return ScrapeError(error=f"HTTP {e.response.status_code}", domain=domain)
            except httpx.HTTPError as e:
                logger.info("Homepage %s unreachable: %s", url, e)
                return ScrapeError(error=str(e) or type(e).__name__, domain=domain)

            soup = page_parser.parse_html(response.text)
            colors = page_parser.extract_colors(soup)
            fonts = page_parser.extract_fonts(soup)
            hero_images = page_parser.extract_hero_images(soup, origin, "homepage")

            css_urls = page_parser.stylesheet_links(soup, origin)[: self._config.max_external_css]
            css_texts, career, about = await asyncio.gather(
                asyncio.gather(*(self._fetch_css(client, u) for u in css_urls)),
                self._fetch_sub_page(client, origin, CAREER_PATHS, "careers"),
                self._fetch_sub_page(client, origin, ABOUT_PATHS, "about"),
            )

        for css_url, css in zip(css_urls, css_texts, strict=True):
            if css:
                colors.extend(page_parser.extract_colors_from_css(css, "external-css"))
                fonts.extend(page_parser.extract_fonts_from_css(css, "external-css"))
            else:
                logger.debug("No CSS from %s", css_url)

        hero_images = page_parser.dedupe_and_sort_images(
            [*hero_images, *career.images, *about.images],
            limit=self._config.max_hero_images,
        )

        raw = RawScrape(
            domain=domain,
            colors=colors,
            fonts=fonts,
            logos=page_parser.extract_logos(soup, origin),
            meta=page_parser.extract_meta(soup),
            brand_text=page_parser.extract_brand_text(soup),
            hero_images=hero_images,
            career_page_content=career.content,
            about_page_content=about.content,
        )
        logger.info(
            "Scraped %s: %d colors, %d fonts, %d logos, %d hero images",
            domain, len(raw.colors), len(raw.fonts), len(raw.logos), len(raw.hero_images),
        )
        return raw

    async def _is_allowed(self, client: httpx.AsyncClient, origin: str) -> bool:
        try:
            response = await client.get(
                f"{origin}/robots.txt", timeout=self._config.robots_timeout_s,
            )
        except httpx.HTTPError as e:
            logger.debug("robots.txt for %s unreachable (%s), assuming allowed", origin, e)
            return True
        if not response.is_success:
            return True

        parser = RobotFileParser()
        parser.parse(response.text.splitlines())
        return parser.can_fetch(self._config.user_agent, f"{origin}/")

    async def _fetch_css(self, client: httpx.AsyncClient, url: str) -> str:
        try:
            response = await client.get(url, timeout=self._config.css_timeout_s)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.debug("Stylesheet %s skipped: %s", url, e)
            return ""
        return response.text

    async def _fetch_sub_page(
        self,
        client: httpx.AsyncClient,
        origin: str,
        paths: tuple[str, ...],
        source: str,
    ) -> _SubPage:
        """Try each path in order; the first HTTP 200 wins."""
        for path in paths:
            url = f"{origin}{path}"
            try:
                response = await client.get(url, timeout=self._config.subpage_timeout_s)
            except httpx.HTTPError as e:
                logger.debug("Sub-page %s unreachable: %s", url, e)
                continue
            if response.status_code != 200:
                continue

            soup = page_parser.parse_html(response.text)
            if source == "careers":
                content = page_parser.extract_career_content(soup)
            else:
                content = page_parser.extract_about_content(soup)
            images = page_parser.extract_hero_images(soup, origin, source)
            logger.info("Found %s page at %s (%d chars)", source, url, len(content))
            return _SubPage(content, images)

        logger.debug("No %s page found for %s", source, origin)
        return _SubPage()
