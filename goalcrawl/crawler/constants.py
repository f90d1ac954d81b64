"""Default values and fixed heuristic tables shared across crawler modules."""

from __future__ import annotations


DEFAULT_MAX_PAGES = 20
DEFAULT_MAX_DEPTH = 3
DEFAULT_BATCH_SIZE = 5
DEFAULT_INCLUDE_IMAGES = False
DEFAULT_EXECUTE_JAVASCRIPT = False
DEFAULT_PREVENT_DUPLICATE_URLS = False

DEFAULT_TIMEOUT_SECONDS = 20.0
DEFAULT_RETRIES = 1
DEFAULT_RETRY_BACKOFF_SECONDS = 1.0
DEFAULT_JS_SETTLE_SECONDS = 1.0
DEFAULT_AUTH_TIMEOUT_SECONDS = 300.0

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
)
DEFAULT_HTTP_HEADERS: dict[str, str] = {
    "Accept": "text/html,application/xhtml+xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.8",
}
DEFAULT_AUTH_PORTAL_BASE = "https://example.com"

SEED_EXPECTED_VALUE = 1.0

JSON_INDENT = 2
SUPPORTED_CONFIG_SUFFIXES = (".json", ".yaml", ".yml")

# Progress / stopping policy.
COMPLETION_LOG_BASE = 1.5
GOAL_SATISFIED_THRESHOLD = 0.85
DIMINISHING_UNIQUENESS_THRESHOLD = 0.2
DIMINISHING_MIN_VISITED = 10

# URL path heuristics.
LOW_VALUE_PATH_PATTERNS = (
    "/login",
    "/signup",
    "/contact",
    "/about",
    "/terms",
    "/privacy",
    "/cart",
    "/checkout",
)
HIGH_VALUE_PATH_PATTERNS = (
    "/docs",
    "/documentation",
    "/guide",
    "/tutorial",
    "/product",
    "/api",
    "/specification",
    "/details",
)
NON_CONTENT_PATH_PATTERNS = (
    "/login",
    "/logout",
    "/signup",
    "/register",
    "/cart",
    "/checkout",
    "/account",
    "/profile",
    "/search",
    "/sitemap",
    "/privacy",
    "/terms",
)
NON_CONTENT_EXTENSIONS = (
    ".pdf",
    ".doc",
    ".docx",
    ".xls",
    ".xlsx",
    ".ppt",
    ".pptx",
    ".zip",
    ".rar",
    ".tar",
    ".gz",
    ".jpg",
    ".jpeg",
    ".png",
    ".gif",
    ".svg",
    ".mp3",
    ".mp4",
    ".avi",
    ".mov",
)
LINK_ACTION_WORDS = ("learn", "guide", "tutorial", "how", "example", "documentation")

HIGH_AUTHORITY_DOMAINS = ("github.com", "stackoverflow.com", "wikipedia.org")
HIGH_DOMAIN_AUTHORITY = 0.9
DEFAULT_DOMAIN_AUTHORITY = 0.5

# Content isolation.
STRIPPED_TAGS = ("header", "nav", "footer", "aside", "script", "style", "iframe", "noscript")
BOILERPLATE_ATTR_PATTERN = r"banner|ad-|cookie"
CONTENT_SELECTORS = (
    "main",
    "article",
    "div#content",
    "div.content",
    ".main-content",
    "#main-content",
    ".post-content",
    ".entry-content",
    '[role="main"]',
    ".page-content",
    ".site-content",
    "section.content",
    ".article-body",
    "#article-body",
)
DENSITY_MIN_TEXT_CHARS = 150
DENSITY_CONTENT_TAGS = ("p", "h1", "h2", "h3", "h4", "h5", "h6", "li")
DEFAULT_CONTENT_TYPE = "text/html"
UNTITLED_PAGE = "Untitled Page"

LINK_CONTEXT_CHARS = 50
