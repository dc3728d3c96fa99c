"""Landing page generation: brand merge, template context, style injection.

render() is a pure function of the record. Brand data is merged into a
copy, never into the record the caller holds, so rendering twice gives
byte-identical output.
"""

import html
import logging
import re
from functools import lru_cache
from pathlib import Path
from urllib.parse import quote

from talentpage.core.schemas import (
    DEFAULT_FONT_FAMILY,
    DEFAULT_PRIMARY_COLOR,
    DEFAULT_SECONDARY_COLOR,
    JobPosting,
)
from talentpage.render.template import ContextValue, render_template

logger = logging.getLogger(__name__)

TEMPLATE_PATH = Path(__file__).parent / "templates" / "base.html"
DEFAULT_IMAGE_PROXY_PATH = "/api/image-proxy"

WORK_TYPE_LABELS: dict[str, str] = {
    "remote": "Remote",
    "hybrid": "Hybrid",
    "onsite": "On-site",
}

# Scalar fields substituted HTML-escaped.
_TEXT_FIELDS: tuple[str, ...] = (
    "company_name", "salary_range", "location", "start_date",
    "company_description", "job_description",
    "highlight_1", "highlight_2", "highlight_3",
)
_LIST_FIELDS: tuple[str, ...] = ("responsibilities", "requirements", "benefits")

_BRAND_STYLE_RE = re.compile(r'<style id="brand-styles">.*?</style>\s*', re.DOTALL)
_DEPLOY_BANNER_RE = re.compile(r'<div class="deploy-banner">.*?</div>\s*', re.DOTALL | re.IGNORECASE)
_FILENAME_UNSAFE_RE = re.compile(r"[^a-z0-9]", re.IGNORECASE)
_CSS_UNSAFE_RE = re.compile(r"[<>{};]")
_HEX6_RE = re.compile(r"^#[0-9a-fA-F]{6}$")


@lru_cache(maxsize=1)
def load_template() -> str:
    return TEMPLATE_PATH.read_text(encoding="utf-8")


def escape(text: str | None) -> str:
    return html.escape(text or "", quote=True)


def proxy_image_url(url: str | None, proxy_path: str = DEFAULT_IMAGE_PROXY_PATH) -> str:
    """Route absolute http(s) image URLs through the image proxy.

    Relative paths and data: URIs are returned unchanged.
    """
    if not url:
        return ""
    if url.startswith(("http://", "https://")):
        return f"{proxy_path}?url={quote(url, safe='')}"
    return url


def brand_font_stack(heading: str, body: str) -> str:
    if body and body != heading:
        return f"'{heading}', '{body}', sans-serif"
    return f"'{heading}', sans-serif"


def apply_brand_data(record: JobPosting) -> JobPosting:
    """Return a copy of the record with completed brand data merged in.

    Styling fields take brand values only when the user has not customized
    them. Logo and hero URLs are filled only when still empty.
    """
    merged = record.model_copy(deep=True)
    brand = record.brand_data
    if brand.scrape_status != "completed":
        return merged

    if brand.colors.primary and not record.is_customized("primary_color"):
        merged.primary_color = brand.colors.primary
    if brand.colors.secondary and not record.is_customized("secondary_color"):
        merged.secondary_color = brand.colors.secondary
    if brand.fonts.heading and not record.is_customized("font_family"):
        merged.font_family = brand_font_stack(brand.fonts.heading, brand.fonts.body)
    if brand.logo_url and not record.company_logo_url:
        merged.company_logo_url = brand.logo_url
    if brand.hero_image_url and not record.hero_image_url:
        merged.hero_image_url = brand.hero_image_url
    return merged


def build_context(record: JobPosting, proxy_path: str = DEFAULT_IMAGE_PROXY_PATH) -> dict[str, ContextValue]:
    """Resolve every template field to an HTML-safe value.

    Expects a record that already went through apply_brand_data().
    """
    context: dict[str, ContextValue] = {field: escape(getattr(record, field)) for field in _TEXT_FIELDS}
    context["role_title"] = escape(record.role_title or "Position Opening")
    context["work_type"] = WORK_TYPE_LABELS.get(record.work_type, "")
    context["company_website_url"] = escape(record.company_website_url)
    context["company_logo_url"] = escape(proxy_image_url(record.company_logo_url, proxy_path))
    context["hero_image_url"] = escape(proxy_image_url(record.hero_image_url, proxy_path))

    for field in _LIST_FIELDS:
        items: list[str] = getattr(record, field)
        context[field] = [f"<li>{escape(item)}</li>" for item in items if item.strip()]

    google_fonts_url = record.brand_data.fonts.google_fonts_url
    context["brand_font_import"] = (
        f'<link href="{escape(google_fonts_url)}" rel="stylesheet">' if google_fonts_url else ""
    )
    return context


def css_value(value: str) -> str:
    """Drop characters that could end the declaration or the <style> element."""
    return _CSS_UNSAFE_RE.sub("", value)


def build_style_block(record: JobPosting) -> str:
    primary = css_value(record.primary_color or DEFAULT_PRIMARY_COLOR)
    secondary = css_value(record.secondary_color or DEFAULT_SECONDARY_COLOR)
    font_family = css_value(record.font_family or DEFAULT_FONT_FAMILY)
    # 30% alpha suffix only makes sense on #rrggbb.
    shadow = f"{primary}4D" if _HEX6_RE.match(primary) else "rgba(0, 0, 0, 0.3)"
    return f"""<style id="brand-styles">
      :root {{
        --primary-color: {primary};
        --secondary-color: {secondary};
        --font-family: {font_family};
      }}
      body {{ font-family: var(--font-family); }}
      .hero-content, .btn-apply {{
        background: linear-gradient(135deg, var(--primary-color) 0%, var(--secondary-color) 100%);
      }}
      .accent, li:before {{ color: var(--primary-color); }}
      h2 {{ color: var(--primary-color); border-bottom-color: var(--primary-color); }}
      .btn-apply:hover {{ box-shadow: 0 10px 20px {shadow}; }}
    </style>
"""


def inject_styles(page: str, record: JobPosting) -> str:
    """Insert the brand style block before </head>, replacing any earlier one."""
    page = _BRAND_STYLE_RE.sub("", page)
    return page.replace("</head>", f"{build_style_block(record)}</head>", 1)


def render(
    record: JobPosting,
    *,
    template: str | None = None,
    proxy_path: str = DEFAULT_IMAGE_PROXY_PATH,
) -> str:
    """Render the landing page for a record."""
    merged = apply_brand_data(record)
    page = render_template(template or load_template(), build_context(merged, proxy_path))
    return inject_styles(page, merged)


def build_meta_tags(record: JobPosting) -> str:
    """Open Graph and Twitter card tags for a shared/exported page."""
    title = f"{record.role_title or 'Job Opening'} at {record.company_name or 'Our Company'}"
    if record.job_description:
        description = record.job_description[:160]
    else:
        description = (
            f"Apply for {record.role_title or 'this position'} "
            f"at {record.company_name or 'our company'}"
        )

    tags = [
        f'<meta property="og:title" content="{escape(title)}">',
        f'<meta property="og:description" content="{escape(description)}">',
        '<meta property="og:type" content="website">',
    ]
    if record.company_logo_url:
        tags.append(f'<meta property="og:image" content="{escape(record.company_logo_url)}">')
    tags += [
        '<meta name="twitter:card" content="summary">',
        f'<meta name="twitter:title" content="{escape(title)}">',
        f'<meta name="twitter:description" content="{escape(description)}">',
    ]
    return "\n  ".join(tags)


def render_standalone(
    record: JobPosting,
    *,
    template: str | None = None,
    proxy_path: str = DEFAULT_IMAGE_PROXY_PATH,
) -> str:
    """Render for export: no deploy banner, social meta tags in <head>."""
    page = render(record, template=template, proxy_path=proxy_path)
    page = _DEPLOY_BANNER_RE.sub("", page, count=1)
    meta = build_meta_tags(apply_brand_data(record))
    return page.replace("</head>", f"  {meta}\n</head>", 1)


def export_filename(record: JobPosting) -> str:
    """e.g. "Warehouse Supervisor" at "Acme Co" gives warehouse_supervisor_acme_co.html."""
    stem = f"{record.role_title or 'job'}_{record.company_name or 'posting'}"
    return f"{_FILENAME_UNSAFE_RE.sub('_', stem).lower()}.html"
