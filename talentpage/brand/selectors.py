"""Company website selector and keyword constants.

Each constant is a tuple so callers iterate in priority order.
"""

# --- Sub-page discovery (first 200 response wins per category) ---
CAREER_PATHS: tuple[str, ...] = (
    "/careers", "/careers/", "/career", "/join-us", "/join-our-team",
    "/work-with-us", "/jobs", "/opportunities",
)
ABOUT_PATHS: tuple[str, ...] = (
    "/about", "/about-us", "/our-story", "/who-we-are", "/about/", "/about-us/",
)

# --- Color signals ---
INLINE_STYLE_SELECTORS: tuple[str, ...] = (
    "body", "header", "nav", ".header", ".navbar", "#header", "footer",
    "a", "button", ".btn", "h1", "h2",
)
COLOR_DATA_ATTRS: tuple[str, ...] = ("data-color", "data-primary-color", "data-brand-color")

# --- Logo candidates ---
HEADER_IMG_SELECTORS = "header img, nav img, .header img, .navbar img, #header img"
HEADER_SVG_SELECTORS = "header svg, nav svg, .header svg, .navbar svg, #header svg"
HOME_LINK_IMG_SELECTORS = 'header a[href="/"] img, nav a[href="/"] img, .header a[href="/"] img'
APPLE_TOUCH_ICON_SELECTORS = 'link[rel="apple-touch-icon"], link[rel="apple-touch-icon-precomposed"]'
FAVICON_SELECTORS = 'link[rel="icon"][type="image/png"], link[rel="shortcut icon"]'

# --- Hero images ---
HIGH_RELEVANCE_KEYWORDS: tuple[str, ...] = (
    "team", "people", "culture", "workplace", "office", "career",
    "staff", "employee", "work", "life", "join", "together", "group", "colleague",
)
MEDIUM_RELEVANCE_KEYWORDS: tuple[str, ...] = (
    "hero", "banner", "header", "about", "company", "community",
    "diversity", "meeting", "collaboration",
)
HERO_BACKGROUND_SELECTORS = (
    '[class*="hero"], [class*="banner"], [class*="header-image"], [class*="cover"]'
)
LAZY_SRC_ATTRS: tuple[str, ...] = ("src", "data-src", "data-lazy-src")
SKIPPED_IMAGE_EXTENSIONS: frozenset[str] = frozenset({"svg", "ico", "gif"})
PREFERRED_IMAGE_EXTENSIONS: frozenset[str] = frozenset({"jpg", "jpeg", "png", "webp"})

# --- Career page content ---
CAREER_SECTION_SELECTORS: tuple[str, ...] = (
    ".benefits", ".perks", ".culture", ".values", ".why-join", ".why-work",
    "#benefits", "#perks", "#culture", "#values", "#why-join", "#why-work",
    '[class*="benefit"]', '[class*="perk"]', '[class*="culture"]', '[class*="value"]',
    '[class*="why-join"]', '[class*="why-work"]', '[class*="career"]',
)
CAREER_HEADING_KEYWORDS: tuple[str, ...] = (
    "benefit", "perk", "culture", "why join", "why work", "what we offer",
    "our values", "life at", "work with us", "grow", "career", "team",
    "diversity", "inclusion",
)

# --- About page content ---
ABOUT_SECTION_SELECTORS: tuple[str, ...] = (
    ".about", ".mission", ".values", ".story", ".history",
    "#about", "#mission", "#values", "#story", "#history",
    '[class*="about"]', '[class*="mission"]', '[class*="story"]',
)
ABOUT_HEADING_KEYWORDS: tuple[str, ...] = (
    "mission", "vision", "values", "story", "history", "about",
    "founded", "purpose", "who we are", "what we do", "our team", "leadership",
)
ABOUT_FALLBACK_SELECTORS = "main p, article p, .content p, section p"

HEADING_TAGS: tuple[str, ...] = ("h1", "h2", "h3", "h4")
