"""HTML/CSS parsing for company websites: raw brand signals out of a page.

Every function here is pure (soup or CSS text in, signals out) and never
raises on odd markup: missing attributes read as "" and unmatched selectors
yield nothing.
"""

import logging
import re
from urllib.parse import parse_qs, urlparse

from bs4 import BeautifulSoup, Tag

from talentpage.brand.normalizer import GOOGLE_FONTS_HOST
from talentpage.brand.selectors import (
    ABOUT_FALLBACK_SELECTORS,
    ABOUT_HEADING_KEYWORDS,
    ABOUT_SECTION_SELECTORS,
    APPLE_TOUCH_ICON_SELECTORS,
    CAREER_HEADING_KEYWORDS,
    CAREER_SECTION_SELECTORS,
    COLOR_DATA_ATTRS,
    FAVICON_SELECTORS,
    HEADER_IMG_SELECTORS,
    HEADER_SVG_SELECTORS,
    HEADING_TAGS,
    HERO_BACKGROUND_SELECTORS,
    HIGH_RELEVANCE_KEYWORDS,
    HOME_LINK_IMG_SELECTORS,
    INLINE_STYLE_SELECTORS,
    LAZY_SRC_ATTRS,
    MEDIUM_RELEVANCE_KEYWORDS,
    PREFERRED_IMAGE_EXTENSIONS,
    SKIPPED_IMAGE_EXTENSIONS,
)
from talentpage.core.schemas import ColorSignal, FontSignal, HeroImage, LogoCandidate, PageMeta

logger = logging.getLogger(__name__)

_HEX_COLOR_RE = re.compile(r"#[0-9a-fA-F]{3,8}\b")
_RGB_COLOR_RE = re.compile(
    r"rgba?\(\s*\d{1,3}\s*,\s*\d{1,3}\s*,\s*\d{1,3}(?:\s*,\s*[\d.]+)?\s*\)",
)
_HSL_COLOR_RE = re.compile(
    r"hsla?\(\s*\d{1,3}\s*,\s*\d{1,3}%?\s*,\s*\d{1,3}%?(?:\s*,\s*[\d.]+)?\s*\)",
)
_BRAND_VAR_RE = re.compile(r"--(?:primary|brand|main|accent|secondary)[\w-]*\s*:\s*([^;}]+)")
_FONT_FAMILY_RE = re.compile(r"font-family\s*:\s*([^;}]+)")
_GOOGLE_FONTS_IMPORT_RE = re.compile(
    r"@import\s+url\(['\"]?(https?://fonts\.googleapis\.com[^'\")\s]+)['\"]?\)",
)
_BACKGROUND_IMAGE_RE = re.compile(r"background-image:\s*url\(['\"]?([^'\")\s]+)['\"]?\)")
_LEADING_INT_RE = re.compile(r"^\s*(\d+)")


def parse_html(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "html.parser")


def resolve_url(url: str | None, origin: str) -> str:
    """Resolve a possibly-relative URL against the site origin."""
    if not url:
        return ""
    url = url.strip()
    if url.startswith(("http://", "https://", "data:")):
        return url
    if url.startswith("//"):
        return f"https:{url}"
    if url.startswith("/"):
        return f"{origin}{url}"
    return f"{origin}/{url}"


def _attr(el: Tag | None, name: str) -> str:
    """Attribute value as a string ('' if missing; multi-valued attrs joined)."""
    if el is None:
        return ""
    value = el.get(name)
    if value is None:
        return ""
    if isinstance(value, list):
        return " ".join(value)
    return str(value)


def _text(el: Tag) -> str:
    return el.get_text(" ", strip=True)


def _leading_int(value: str) -> int:
    m = _LEADING_INT_RE.match(value)
    return int(m.group(1)) if m else 0


# ---------------------------------------------------------------------------
# Colors
# ---------------------------------------------------------------------------


def extract_colors_from_css(css: str, source: str) -> list[ColorSignal]:
    """Pull hex/rgb/hsl tokens and brand custom properties out of CSS text."""
    colors = [ColorSignal(value=m.group(0), source=source, priority=5) for m in _HEX_COLOR_RE.finditer(css)]
    colors += [ColorSignal(value=m.group(0), source=source, priority=5) for m in _RGB_COLOR_RE.finditer(css)]
    colors += [ColorSignal(value=m.group(0), source=source, priority=3) for m in _HSL_COLOR_RE.finditer(css)]
    for m in _BRAND_VAR_RE.finditer(css):
        value = m.group(1).strip()
        if value.startswith(("#", "rgb", "hsl")):
            colors.append(ColorSignal(value=value, source=f"{source}-var", priority=9))
    return colors


def extract_colors(soup: BeautifulSoup) -> list[ColorSignal]:
    """Collect color signals from theme-color, <style> blocks, inline styles and data-attributes."""
    colors: list[ColorSignal] = []

    theme = soup.find("meta", attrs={"name": "theme-color"})
    theme_color = _attr(theme, "content")
    if theme_color:
        colors.append(ColorSignal(value=theme_color, source="theme-color", priority=10))

    for style in soup.find_all("style"):
        colors.extend(extract_colors_from_css(style.get_text(), "style-tag"))

    for selector in INLINE_STYLE_SELECTORS:
        for el in soup.select(selector):
            inline = _attr(el, "style")
            if inline:
                colors.extend(extract_colors_from_css(inline, f"inline-{selector}"))

    attr_selector = ", ".join(f"[{name}]" for name in COLOR_DATA_ATTRS)
    for el in soup.select(attr_selector):
        value = next((_attr(el, name) for name in COLOR_DATA_ATTRS if _attr(el, name)), "")
        if value:
            colors.append(ColorSignal(value=value, source="data-attr", priority=8))

    return colors


# ---------------------------------------------------------------------------
# Fonts
# ---------------------------------------------------------------------------


def extract_fonts_from_css(css: str, source: str) -> list[FontSignal]:
    return [
        FontSignal(value=m.group(1).strip().replace("'", "").replace('"', ""), source=source, type="declaration")
        for m in _FONT_FAMILY_RE.finditer(css)
    ]


def google_font_names(href: str) -> list[str]:
    """Family names requested by a Google Fonts stylesheet URL."""
    names: list[str] = []
    for family in parse_qs(urlparse(href).query).get("family", []):
        for part in family.split("|"):
            name = part.split(":")[0].strip()
            if name:
                names.append(name)
    return names


def extract_fonts(soup: BeautifulSoup) -> list[FontSignal]:
    """Collect Google Fonts links/imports and font-family declarations."""
    fonts: list[FontSignal] = []

    for link in soup.select(f'link[href*="{GOOGLE_FONTS_HOST}"]'):
        href = _attr(link, "href")
        if not href:
            continue
        fonts.append(FontSignal(value=href, source="google-fonts-link", type="url"))
        fonts.extend(
            FontSignal(value=name, source="google-fonts-link", type="name")
            for name in google_font_names(href)
        )

    css_blocks = [style.get_text() for style in soup.find_all("style")]
    for css in css_blocks:
        fonts.extend(
            FontSignal(value=m.group(1), source="google-fonts-import", type="url")
            for m in _GOOGLE_FONTS_IMPORT_RE.finditer(css)
        )
    fonts.extend(extract_fonts_from_css("\n".join(css_blocks), "css-declaration"))
    return fonts


def stylesheet_links(soup: BeautifulSoup, origin: str) -> list[str]:
    """Absolute URLs of linked stylesheets, excluding Google Fonts."""
    links: list[str] = []
    for link in soup.select('link[rel="stylesheet"]'):
        href = _attr(link, "href")
        if href and GOOGLE_FONTS_HOST not in href:
            links.append(resolve_url(href, origin))
    return links


# ---------------------------------------------------------------------------
# Logos
# ---------------------------------------------------------------------------


def _looks_like_logo(*values: str) -> bool:
    return any("logo" in v.lower() for v in values)


def extract_logos(soup: BeautifulSoup, origin: str) -> list[LogoCandidate]:
    """Return logo candidates sorted by source priority, descending."""
    logos: list[LogoCandidate] = []
    seen: set[str] = set()

    def add(url: str, source: str, priority: float, *, dedupe: bool = False) -> None:
        if not url or (dedupe and url in seen):
            return
        seen.add(url)
        logos.append(LogoCandidate(url=url, source=source, priority=priority))

    # og:image is often a promo banner rather than the mark itself
    og_image = soup.find("meta", attrs={"property": "og:image"})
    add(resolve_url(_attr(og_image, "content"), origin), "og:image", 4)

    for link in soup.select(APPLE_TOUCH_ICON_SELECTORS):
        add(resolve_url(_attr(link, "href"), origin), "apple-touch-icon", 7)

    for link in soup.select(FAVICON_SELECTORS):
        size = _leading_int(_attr(link, "sizes").split("x")[0])
        add(resolve_url(_attr(link, "href"), origin), "favicon", 3 + min(size / 100, 3))

    for img in soup.select(HEADER_IMG_SELECTORS):
        src = _attr(img, "src")
        if src and _looks_like_logo(_attr(img, "alt"), _attr(img, "class"), _attr(img, "id"), src):
            add(resolve_url(src, origin), "header-img", 10)

    for svg in soup.select(HEADER_SVG_SELECTORS):
        parent = svg.parent
        parent_href = _attr(parent, "href")
        is_logo = _looks_like_logo(_attr(svg, "class"), _attr(svg, "id"), _attr(parent, "class"))
        if is_logo or parent_href in ("/", origin):
            image = svg.find("image")
            if image is not None:
                svg_src = _attr(image, "href") or _attr(image, "xlink:href")
                add(resolve_url(svg_src, origin), "header-svg", 10)

    for img in soup.select(HOME_LINK_IMG_SELECTORS):
        add(resolve_url(_attr(img, "src"), origin), "header-home-link", 9, dedupe=True)

    for img in soup.find_all("img"):
        src = _attr(img, "src")
        if src and _looks_like_logo(_attr(img, "alt"), _attr(img, "class"), src):
            add(resolve_url(src, origin), "page-img", 6, dedupe=True)

    return sorted(logos, key=lambda logo: logo.priority, reverse=True)


# ---------------------------------------------------------------------------
# Meta data and brand text
# ---------------------------------------------------------------------------


def extract_meta(soup: BeautifulSoup) -> PageMeta:
    def meta_content(**attrs: str) -> str:
        return _attr(soup.find("meta", attrs=attrs), "content").strip()

    title = soup.find("title")
    return PageMeta(
        title=title.get_text(strip=True) if title else "",
        description=meta_content(name="description"),
        og_description=meta_content(property="og:description"),
        og_title=meta_content(property="og:title"),
        keywords=meta_content(name="keywords"),
    )


def extract_brand_text(soup: BeautifulSoup) -> list[str]:
    """Headline copy and about/mission blurbs, at most 10 snippets."""
    texts = [_text(h) for h in soup.find_all("h1")[:3]]
    texts += [_text(h) for h in soup.find_all("h2")[:5]]

    for el in soup.find_all(["section", "div"]):
        marker = f"{_attr(el, 'id')} {_attr(el, 'class')}".lower()
        if "about" in marker or "mission" in marker:
            para = el.find("p")
            content = _text(para) if para else ""
            if content and len(content) < 500:
                texts.append(content)

    return [t for t in texts if t][:10]


# ---------------------------------------------------------------------------
# Hero images
# ---------------------------------------------------------------------------


def _image_extension(url: str) -> str:
    path = url.split("?")[0]
    return path.rsplit(".", 1)[-1].lower() if "." in path else ""


def score_image(
    *, alt: str, cls: str, parent_cls: str, grandparent_cls: str,
    width: int, height: int, ext: str, source: str,
) -> int:
    """Relevance of an <img> as a hero/team photo."""
    haystack = f"{alt} {cls} {parent_cls} {grandparent_cls}"
    relevance = 3 * sum(1 for kw in HIGH_RELEVANCE_KEYWORDS if kw in haystack)
    relevance += 2 * sum(1 for kw in MEDIUM_RELEVANCE_KEYWORDS if kw in haystack)

    containers = f"{parent_cls} {grandparent_cls}"
    if "hero" in containers or "banner" in containers:
        relevance += 4
    if width > 600 or height > 400:
        relevance += 2
    if width > 1000 or height > 600:
        relevance += 2
    if ext in PREFERRED_IMAGE_EXTENSIONS:
        relevance += 1
    if source == "careers":
        relevance += 2
    elif source == "about":
        relevance += 1
    return relevance


def extract_hero_images(soup: BeautifulSoup, origin: str, source: str) -> list[HeroImage]:
    """Score every plausible photo on the page; logos, icons and thumbnails are skipped.

    Homepage images need some relevance to qualify; career/about page images
    are always kept.
    """
    images: list[HeroImage] = []

    for img in soup.find_all("img"):
        src = next((_attr(img, a) for a in LAZY_SRC_ATTRS if _attr(img, a)), "")
        url = resolve_url(src, origin)
        if not url or url.startswith("data:"):
            continue

        alt = _attr(img, "alt").lower()
        cls = _attr(img, "class").lower()
        src_lower = src.lower()
        ext = _image_extension(url)
        if ext in SKIPPED_IMAGE_EXTENSIONS:
            continue
        if "logo" in alt or "logo" in cls or "logo" in src_lower:
            continue
        if "icon" in alt or "icon" in cls or "icon" in src_lower:
            continue

        width = _leading_int(_attr(img, "width"))
        height = _leading_int(_attr(img, "height"))
        if 0 < width < 200 or 0 < height < 200:
            continue

        parent = img.parent if isinstance(img.parent, Tag) else None
        grandparent = parent.parent if parent is not None and isinstance(parent.parent, Tag) else None
        relevance = score_image(
            alt=alt,
            cls=cls,
            parent_cls=_attr(parent, "class").lower(),
            grandparent_cls=_attr(grandparent, "class").lower(),
            width=width,
            height=height,
            ext=ext,
            source=source,
        )
        if relevance > 0 or source != "homepage":
            images.append(HeroImage(url=url, alt=_attr(img, "alt"), source=source, relevance=relevance))

    for el in soup.select(HERO_BACKGROUND_SELECTORS):
        m = _BACKGROUND_IMAGE_RE.search(_attr(el, "style"))
        if m:
            bg_url = resolve_url(m.group(1), origin)
            if bg_url:
                images.append(HeroImage(url=bg_url, alt="Background image", source=source, relevance=5))

    return images


def dedupe_and_sort_images(images: list[HeroImage], limit: int = 10) -> list[HeroImage]:
    """Sort by relevance (stable), keep the first occurrence of each URL, cap at limit."""
    seen: set[str] = set()
    unique: list[HeroImage] = []
    for img in sorted(images, key=lambda i: i.relevance, reverse=True):
        if img.url not in seen:
            seen.add(img.url)
            unique.append(img)
    return unique[:limit]


# ---------------------------------------------------------------------------
# Career / about page content
# ---------------------------------------------------------------------------


def _collect(texts: dict[str, None], elements: list[Tag], min_len: int, max_len: int) -> None:
    for el in elements:
        text = _text(el)
        if min_len < len(text) < max_len:
            texts[text] = None


def _keyword_headings(soup: BeautifulSoup, keywords: tuple[str, ...]) -> list[Tag]:
    return [
        h for h in soup.find_all(list(HEADING_TAGS))
        if any(kw in _text(h).lower() for kw in keywords)
    ]


def extract_career_content(soup: BeautifulSoup) -> str:
    """Benefits, perks, culture and why-join copy from a careers page (max 20 snippets)."""
    texts: dict[str, None] = {}

    for selector in CAREER_SECTION_SELECTORS:
        for section in soup.select(selector):
            for heading in section.find_all(list(HEADING_TAGS)):
                text = _text(heading)
                if text and len(text) < 200:
                    texts[text] = None
            _collect(texts, section.find_all("p"), 20, 500)
            _collect(texts, section.find_all("li"), 5, 200)

    for heading in _keyword_headings(soup, CAREER_HEADING_KEYWORDS):
        parent = heading.parent
        if isinstance(parent, Tag):
            _collect(texts, parent.find_all("p"), 20, 500)
            _collect(texts, parent.find_all("li"), 5, 200)

    if len(texts) < 5:
        _collect(texts, soup.find_all("p"), 30, 500)

    return "\n\n".join(list(texts)[:20])


def extract_about_content(soup: BeautifulSoup) -> str:
    """Mission, values and history copy from an about page (max 15 snippets)."""
    texts: dict[str, None] = {}

    for heading in _keyword_headings(soup, ABOUT_HEADING_KEYWORDS):
        parent = heading.parent
        if isinstance(parent, Tag):
            _collect(texts, parent.find_all("p"), 20, 600)

    for selector in ABOUT_SECTION_SELECTORS:
        for section in soup.select(selector):
            _collect(texts, section.find_all("p"), 20, 600)

    if len(texts) < 3:
        _collect(texts, soup.select(ABOUT_FALLBACK_SELECTORS), 30, 600)
    if len(texts) < 3:
        _collect(texts, soup.find_all("p"), 30, 600)

    return "\n\n".join(list(texts)[:15])
