"""Pure functions that turn raw CSS color/font signals into a brand palette.

Color pipeline:
  1. normalize_color: any hex/rgb/rgba/hsl/hsla token → "#rrggbb" or ""
  2. is_neutral: drop near-white, near-black and grey
  3. cluster_colors: merge tokens closer than CLUSTER_DISTANCE in RGB space
  4. rank clusters by total_priority + 2 * count

Explicit brand declarations (CSS custom properties, then theme-color meta)
outrank cluster consensus for the primary slot.
"""

import math
import re
from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass

from talentpage.core.schemas import (
    BrandColors,
    BrandFonts,
    ColorSignal,
    FontSignal,
    HeroImage,
    LogoCandidate,
)

CLUSTER_DISTANCE = 40.0

_HEX_RE = re.compile(r"^#([0-9a-f]{3}|[0-9a-f]{4}|[0-9a-f]{6}|[0-9a-f]{8})$")
_RGB_RE = re.compile(
    r"^rgba?\(\s*(\d{1,3})\s*[,\s]\s*(\d{1,3})\s*[,\s]\s*(\d{1,3})\s*(?:[,/]\s*[\d.]+%?\s*)?\)$",
)
_HSL_RE = re.compile(
    r"^hsla?\(\s*(\d{1,3}(?:\.\d+)?)(?:deg)?\s*[,\s]\s*(\d{1,3}(?:\.\d+)?)%?\s*[,\s]\s*"
    r"(\d{1,3}(?:\.\d+)?)%?\s*(?:[,/]\s*[\d.]+%?\s*)?\)$",
)

SYSTEM_FONTS: frozenset[str] = frozenset({
    "arial", "helvetica", "verdana", "georgia", "times new roman", "times",
    "courier new", "courier", "tahoma", "trebuchet ms", "impact",
    "sans-serif", "serif", "monospace", "cursive", "fantasy",
    "system-ui", "-apple-system", "blinkmacsystemfont", "segoe ui",
    "roboto", "oxygen", "ubuntu", "cantarell", "fira sans",
    "droid sans", "helvetica neue", "inherit", "initial", "unset",
})

GOOGLE_FONTS_HOST = "fonts.googleapis.com"


# ---------------------------------------------------------------------------
# Colors
# ---------------------------------------------------------------------------


def normalize_color(value: str | None) -> str:
    """Convert a CSS color token to lowercase 6-digit hex, or "" if unparseable."""
    if not value or not isinstance(value, str):
        return ""
    token = value.strip().lower()

    if token.startswith("#"):
        m = _HEX_RE.match(token)
        if m is None:
            return ""
        digits = m.group(1)
        if len(digits) in (3, 4):
            digits = "".join(ch * 2 for ch in digits[:3])
        return f"#{digits[:6]}"

    m = _RGB_RE.match(token)
    if m is not None:
        channels = [min(int(c), 255) for c in m.groups()]
        return _to_hex(*channels)

    m = _HSL_RE.match(token)
    if m is not None:
        h = (float(m.group(1)) % 360) / 360
        s = min(float(m.group(2)), 100.0) / 100
        lightness = min(float(m.group(3)), 100.0) / 100
        return hsl_to_hex(h, s, lightness)

    return ""


def hsl_to_hex(h: float, s: float, lightness: float) -> str:
    """Convert HSL (each component in 0..1) to hex."""
    if s == 0:
        r = g = b = lightness
    else:
        q = lightness * (1 + s) if lightness < 0.5 else lightness + s - lightness * s
        p = 2 * lightness - q
        r = _hue_to_rgb(p, q, h + 1 / 3)
        g = _hue_to_rgb(p, q, h)
        b = _hue_to_rgb(p, q, h - 1 / 3)
    return _to_hex(*(round(c * 255) for c in (r, g, b)))


def _hue_to_rgb(p: float, q: float, t: float) -> float:
    if t < 0:
        t += 1
    if t > 1:
        t -= 1
    if t < 1 / 6:
        return p + (q - p) * 6 * t
    if t < 1 / 2:
        return q
    if t < 2 / 3:
        return p + (q - p) * (2 / 3 - t) * 6
    return p


def _to_hex(r: int, g: int, b: int) -> str:
    return f"#{r:02x}{g:02x}{b:02x}"


def hex_to_rgb(hex_color: str) -> tuple[int, int, int]:
    return (
        int(hex_color[1:3], 16),
        int(hex_color[3:5], 16),
        int(hex_color[5:7], 16),
    )


def is_neutral(hex_color: str) -> bool:
    """True for near-white, near-black and desaturated mid-range grey."""
    r, g, b = hex_to_rgb(hex_color)
    if r > 230 and g > 230 and b > 230:
        return True
    if r < 25 and g < 25 and b < 25:
        return True
    spread = max(r, g, b) - min(r, g, b)
    return spread < 20 and 50 < r < 210


def color_distance(a: str, b: str) -> float:
    return math.dist(hex_to_rgb(a), hex_to_rgb(b))


@dataclass
class ColorCluster:
    """Colors within CLUSTER_DISTANCE of the first member (the representative)."""

    representative: str
    count: int = 1
    total_priority: float = 0.0

    @property
    def score(self) -> float:
        return self.total_priority + 2 * self.count


def cluster_colors(colors: Iterable[tuple[str, float]]) -> list[ColorCluster]:
    """Group (hex, priority) pairs and return clusters ranked by score, descending."""
    clusters: list[ColorCluster] = []
    for hex_color, priority in colors:
        for cluster in clusters:
            if color_distance(hex_color, cluster.representative) < CLUSTER_DISTANCE:
                cluster.count += 1
                cluster.total_priority += priority
                break
        else:
            clusters.append(ColorCluster(hex_color, total_priority=priority))
    # sorted() is stable, so equal scores keep first-seen order.
    return sorted(clusters, key=lambda c: c.score, reverse=True)


def extract_brand_colors(signals: list[ColorSignal]) -> BrandColors:
    """Pick primary/secondary/accent from raw color signals."""
    if not signals:
        return BrandColors()

    candidates: list[tuple[str, float]] = []
    for signal in signals:
        hex_color = normalize_color(signal.value)
        if hex_color and not is_neutral(hex_color):
            candidates.append((hex_color, signal.priority))
    clusters = cluster_colors(candidates)

    var_hex = _first_normalized(s for s in signals if s.source.endswith("-var"))
    theme_hex = _first_normalized(s for s in signals if s.source == "theme-color")

    primary = var_hex or theme_hex or (clusters[0].representative if clusters else "")
    secondary = clusters[1].representative if len(clusters) > 1 else ""
    accent = clusters[2].representative if len(clusters) > 2 else ""
    return BrandColors(primary=primary, secondary=secondary, accent=accent)


def _first_normalized(signals: Iterable[ColorSignal]) -> str:
    for signal in signals:
        hex_color = normalize_color(signal.value)
        if hex_color:
            return hex_color
    return ""


# ---------------------------------------------------------------------------
# Fonts
# ---------------------------------------------------------------------------


def first_font_family(declaration: str) -> str:
    """Return the first family of a font-family stack, unquoted."""
    return declaration.split(",")[0].strip().strip("'\"").strip()


def extract_brand_fonts(signals: list[FontSignal]) -> BrandFonts:
    """Return the two most frequent non-system fonts and any Google Fonts URL."""
    if not signals:
        return BrandFonts()

    google_fonts_url = next(
        (s.value for s in signals if s.type == "url" and GOOGLE_FONTS_HOST in s.value),
        "",
    )

    counts: Counter[str] = Counter()
    for signal in signals:
        if signal.type == "url":
            continue
        family = first_font_family(signal.value)
        if family and family.lower() not in SYSTEM_FONTS:
            counts[family] += 1

    ranked = [name for name, _ in counts.most_common()]
    heading = ranked[0] if ranked else ""
    body = ranked[1] if len(ranked) > 1 else heading
    return BrandFonts(heading=heading, body=body, google_fonts_url=google_fonts_url)


# ---------------------------------------------------------------------------
# Logos and hero images
# ---------------------------------------------------------------------------


def select_best_logo(logos: list[LogoCandidate]) -> str:
    """Return the URL of the highest-priority logo candidate."""
    if not logos:
        return ""
    best = max(logos, key=lambda logo: logo.priority)
    return best.url


def select_best_hero_image(images: list[HeroImage]) -> str:
    """Return the most relevant hero image, or the first one if none scored."""
    if not images:
        return ""
    scored = [img for img in images if img.relevance > 0]
    if scored:
        return max(scored, key=lambda img: img.relevance).url
    return images[0].url
