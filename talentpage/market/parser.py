"""SEEK search-results parsing and salary aggregation.

Pure functions, no network. Unexpected markup never raises: missing
elements read as empty strings and zero matches mean no signal.
"""

import logging
import math
import re
from collections import Counter

from bs4 import BeautifulSoup, Tag

from talentpage.core.schemas import JobListing, SalaryRange
from talentpage.market.selectors import (
    CARD_COUNT_SELECTOR,
    CITY_SLUGS,
    COMPANY_SELECTOR,
    DEFAULT_LOCATION_SLUG,
    JOB_CARD_SELECTORS,
    LOCATION_SELECTOR,
    NATIONWIDE_KEYWORDS,
    RESULT_COUNT_SELECTORS,
    SALARY_SELECTOR,
    SEEK_BASE_URL,
    STATE_SLUGS,
    TAG_SELECTOR,
    TITLE_SELECTOR,
)

logger = logging.getLogger(__name__)

MIN_ANNUAL_SALARY = 30_000
MAX_ANNUAL_SALARY = 500_000
MAX_TAG_CHARS = 50

_SALARY_TOKEN_RE = re.compile(r"\$?(\d[\d,]*)(k?)", re.IGNORECASE)
_JOB_COUNT_RE = re.compile(r"([\d,]+)\s*jobs?", re.IGNORECASE)


# ---------------------------------------------------------------------------
# URL building
# ---------------------------------------------------------------------------


def format_role_slug(role_title: str) -> str:
    slug = re.sub(r"\s+", "-", role_title.lower().strip())
    return re.sub(r"[^a-z0-9-]", "", slug)


def format_seek_location(location: str | None) -> str:
    """Map a free-text location to SEEK's location slug."""
    if not location or not location.strip():
        return DEFAULT_LOCATION_SLUG
    loc = location.lower().strip()

    for city, slug in CITY_SLUGS:
        if city in loc:
            return slug

    for names, slug in STATE_SLUGS:
        if any(re.search(rf"\b{re.escape(name)}\b", loc) for name in names):
            return slug

    if any(keyword in loc for keyword in NATIONWIDE_KEYWORDS):
        return DEFAULT_LOCATION_SLUG

    slug = re.sub(r"[^a-z0-9-]", "", re.sub(r"[,\s]+", "-", loc))
    return slug or DEFAULT_LOCATION_SLUG


def build_search_url(role_title: str, location: str | None) -> str:
    """Build a SEEK search URL, e.g. /warehouse-supervisor-jobs/in-All-Sydney-NSW."""
    return f"{SEEK_BASE_URL}/{format_role_slug(role_title)}-jobs/in-{format_seek_location(location)}"


# ---------------------------------------------------------------------------
# Page extraction
# ---------------------------------------------------------------------------


def _first_text(card: Tag, selector: str) -> str:
    el = card.select_one(selector)
    return el.get_text(" ", strip=True) if el is not None else ""


def extract_result_count(soup: BeautifulSoup) -> int:
    """Total job count from the page header, else the number of visible cards."""
    count_text = ""
    for selector in RESULT_COUNT_SELECTORS:
        count_text = " ".join(el.get_text(" ", strip=True) for el in soup.select(selector)).strip()
        if count_text:
            break

    m = _JOB_COUNT_RE.search(count_text)
    if m:
        digits = m.group(1).replace(",", "")
        if digits:
            return int(digits)
    return len(soup.select(CARD_COUNT_SELECTOR))


def extract_listings(soup: BeautifulSoup, max_listings: int = 20) -> list[JobListing]:
    """Extract job cards using the first card selector that matches anything."""
    cards: list[Tag] = []
    for selector in JOB_CARD_SELECTORS:
        cards = soup.select(selector)
        if cards:
            logger.debug("Job cards matched by %s (%d)", selector, len(cards))
            break

    listings: list[JobListing] = []
    for card in cards[:max_listings]:
        title = _first_text(card, TITLE_SELECTOR)
        company = _first_text(card, COMPANY_SELECTOR)
        if not (title or company):
            continue
        tags = [
            text for el in card.select(TAG_SELECTOR)
            if (text := el.get_text(" ", strip=True)) and len(text) < MAX_TAG_CHARS
        ]
        listings.append(JobListing(
            title=title,
            company=company,
            salary=_first_text(card, SALARY_SELECTOR),
            location=_first_text(card, LOCATION_SELECTOR),
            tags=tags,
        ))
    return listings


# ---------------------------------------------------------------------------
# Salary aggregation
# ---------------------------------------------------------------------------


def parse_salary_values(text: str) -> list[int]:
    """Annual salary values in a listing's salary text.

    "$80,000 - $100,000" gives [80000, 100000]; "$120k" gives [120000];
    a bare "90 - 110" is read as thousands. Implausible values are dropped.
    """
    values: list[int] = []
    for m in _SALARY_TOKEN_RE.finditer(text):
        digits = m.group(1).replace(",", "")
        if not digits:
            continue
        value = int(digits)
        if m.group(2):
            value *= 1000
        if MIN_ANNUAL_SALARY <= value <= MAX_ANNUAL_SALARY:
            values.append(value)
        elif MIN_ANNUAL_SALARY // 1000 <= value <= MAX_ANNUAL_SALARY // 1000:
            values.append(value * 1000)
    return values


def salary_bounds(listings: list[JobListing]) -> tuple[int, int, int] | None:
    """(low, median, high) over every salary value in the listings, or None.

    The median is the upper middle element for even-length samples.
    """
    values = sorted(v for listing in listings if listing.salary for v in parse_salary_values(listing.salary))
    if not values:
        return None
    return values[0], values[len(values) // 2], values[-1]


def format_salary(amount: int) -> str:
    if not amount:
        return ""
    if amount >= 1000:
        return f"${math.floor(amount / 1000 + 0.5)}k"
    return f"${amount:,}"


def aggregate_salaries(listings: list[JobListing]) -> SalaryRange:
    bounds = salary_bounds(listings)
    if bounds is None:
        return SalaryRange()
    low, median, high = bounds
    return SalaryRange(low=format_salary(low), median=format_salary(median), high=format_salary(high))


# ---------------------------------------------------------------------------
# Summaries
# ---------------------------------------------------------------------------


def common_items(listings: list[JobListing], limit: int = 8) -> list[str]:
    """Most frequent card tags, ties in first-seen order."""
    counts: Counter[str] = Counter(tag for listing in listings for tag in listing.tags)
    return [item for item, _ in counts.most_common(limit)]


def competitor_highlights(listings: list[JobListing], limit: int = 5) -> list[str]:
    highlights: list[str] = []
    for listing in listings[:limit]:
        line = f"{listing.company}: {listing.title}"
        if listing.salary:
            line += f" ({listing.salary})"
        highlights.append(line)
    return highlights
