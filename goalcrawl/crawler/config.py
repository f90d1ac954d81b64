"""Typed crawl options with JSON/YAML load/save helpers."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Mapping

import yaml  # type: ignore

from .constants import (
    DEFAULT_AUTH_PORTAL_BASE,
    DEFAULT_AUTH_TIMEOUT_SECONDS,
    DEFAULT_BATCH_SIZE,
    DEFAULT_EXECUTE_JAVASCRIPT,
    DEFAULT_HTTP_HEADERS,
    DEFAULT_INCLUDE_IMAGES,
    DEFAULT_JS_SETTLE_SECONDS,
    DEFAULT_MAX_DEPTH,
    DEFAULT_MAX_PAGES,
    DEFAULT_PREVENT_DUPLICATE_URLS,
    DEFAULT_RETRIES,
    DEFAULT_RETRY_BACKOFF_SECONDS,
    DEFAULT_TIMEOUT_SECONDS,
    DEFAULT_USER_AGENT,
    JSON_INDENT,
    SUPPORTED_CONFIG_SUFFIXES,
)
from .errors import ConfigurationError
from .types import AuthRequest, JSONDict, PageRecord
from .url import normalize_url

if TYPE_CHECKING:
    from .events import ScraperStreamEvent


AuthHandler = Callable[[AuthRequest], bool]
PageCallback = Callable[[PageRecord], None]
EventCallback = Callable[["ScraperStreamEvent"], None]

_CAMEL_RE = re.compile(r"(?<!^)(?=[A-Z])")
# camelCase spellings that don't map mechanically.
_KEY_ALIASES = {
    "execute_java_script": "execute_javascript",
}


def _snake_key(key: str) -> str:
    snake = _CAMEL_RE.sub("_", str(key)).lower()
    return _KEY_ALIASES.get(snake, snake)


def normalize_keys(payload: Mapping[str, Any]) -> dict[str, Any]:
    """Convert camelCase option keys to snake_case."""

    return {_snake_key(key): value for key, value in payload.items()}


def _as_float(value: Any, key: str) -> float:
    if isinstance(value, bool):
        raise ConfigurationError(f"Invalid float for '{key}': {value!r}")
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid float for '{key}': {value!r}") from exc


def _as_int(value: Any, key: str) -> int:
    if isinstance(value, bool):
        raise ConfigurationError(f"Invalid int for '{key}': {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid int for '{key}': {value!r}") from exc


def _as_bool(value: Any, key: str) -> bool:
    if isinstance(value, bool):
        return value
    raise ConfigurationError(f"Invalid bool for '{key}': {value!r}")


def _as_str_list(value: Any, key: str) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, (list, tuple)):
        return [str(item) for item in value if str(item)]
    raise ConfigurationError(f"Invalid list for '{key}': {value!r}")


@dataclass(slots=True)
class CrawlFilters:
    """Substring filters applied when accepting discovered links."""

    must_include_patterns: list[str] = field(default_factory=list)
    exclude_patterns: list[str] = field(default_factory=list)

    def allows(self, url: str, context: str = "") -> bool:
        """Return True if a link passes both include and exclude filters."""

        if any(pattern in url for pattern in self.exclude_patterns):
            return False
        if not self.must_include_patterns:
            return True
        return any(
            pattern in url or pattern in context
            for pattern in self.must_include_patterns
        )

    def to_json(self) -> JSONDict:
        return {
            "must_include_patterns": list(self.must_include_patterns),
            "exclude_patterns": list(self.exclude_patterns),
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any] | None) -> "CrawlFilters":
        if payload is None:
            return cls()
        if isinstance(payload, CrawlFilters):
            return payload
        if not isinstance(payload, Mapping):
            raise ConfigurationError(f"Invalid filters value: {payload!r}")
        data = normalize_keys(payload)
        return cls(
            must_include_patterns=_as_str_list(
                data.get("must_include_patterns"),
                "must_include_patterns",
            ),
            exclude_patterns=_as_str_list(data.get("exclude_patterns"), "exclude_patterns"),
        )


@dataclass(slots=True)
class ScraperOptions:
    """Options for one goal-directed crawl.

    `base_url` and `scraping_goal` are required; everything else has a default.
    Callbacks are runtime-only and never serialized.
    """

    base_url: str
    scraping_goal: str

    max_pages: int = DEFAULT_MAX_PAGES
    max_depth: int = DEFAULT_MAX_DEPTH
    include_images: bool = DEFAULT_INCLUDE_IMAGES
    execute_javascript: bool = DEFAULT_EXECUTE_JAVASCRIPT
    prevent_duplicate_urls: bool = DEFAULT_PREVENT_DUPLICATE_URLS
    filters: CrawlFilters = field(default_factory=CrawlFilters)
    batch_size: int = DEFAULT_BATCH_SIZE

    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    retries: int = DEFAULT_RETRIES
    retry_backoff_seconds: float = DEFAULT_RETRY_BACKOFF_SECONDS
    js_settle_seconds: float = DEFAULT_JS_SETTLE_SECONDS
    auth_timeout_seconds: float = DEFAULT_AUTH_TIMEOUT_SECONDS

    user_agent: str = DEFAULT_USER_AGENT
    default_headers: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_HTTP_HEADERS))
    auth_portal_base: str = DEFAULT_AUTH_PORTAL_BASE

    on_auth_required: AuthHandler | None = field(default=None, repr=False, compare=False)
    on_page_processed: PageCallback | None = field(default=None, repr=False, compare=False)
    on_event: EventCallback | None = field(default=None, repr=False, compare=False)

    def __post_init__(self) -> None:
        if not self.base_url or not str(self.base_url).strip():
            raise ConfigurationError("ScraperOptions requires a base_url")
        if not self.scraping_goal or not str(self.scraping_goal).strip():
            raise ConfigurationError("ScraperOptions requires a scraping_goal")

        normalized = normalize_url(str(self.base_url))
        if normalized is None:
            raise ConfigurationError(f"base_url is not an absolute http(s) URL: {self.base_url!r}")
        self.base_url = normalized
        self.scraping_goal = str(self.scraping_goal).strip()

        if self.max_pages <= 0:
            raise ConfigurationError("max_pages must be > 0")
        if self.max_depth < 0:
            raise ConfigurationError("max_depth must be >= 0")
        if self.batch_size <= 0:
            raise ConfigurationError("batch_size must be > 0")
        if self.timeout_seconds <= 0:
            raise ConfigurationError("timeout_seconds must be > 0")
        if self.retries < 0:
            raise ConfigurationError("retries must be >= 0")
        if self.retry_backoff_seconds < 0:
            raise ConfigurationError("retry_backoff_seconds must be >= 0")
        if self.js_settle_seconds < 0:
            raise ConfigurationError("js_settle_seconds must be >= 0")
        if self.auth_timeout_seconds <= 0:
            raise ConfigurationError("auth_timeout_seconds must be > 0")

        if not isinstance(self.filters, CrawlFilters):
            self.filters = CrawlFilters.from_dict(self.filters)

    def headers(self) -> dict[str, str]:
        """Return request headers with the configured user agent."""

        merged = dict(self.default_headers)
        merged.setdefault("User-Agent", self.user_agent)
        return merged

    def to_dict(self) -> JSONDict:
        """Serialize options for manifests and reproducibility."""

        return {
            "base_url": self.base_url,
            "scraping_goal": self.scraping_goal,
            "max_pages": self.max_pages,
            "max_depth": self.max_depth,
            "include_images": self.include_images,
            "execute_javascript": self.execute_javascript,
            "prevent_duplicate_urls": self.prevent_duplicate_urls,
            "filters": self.filters.to_json(),
            "batch_size": self.batch_size,
            "timeout_seconds": self.timeout_seconds,
            "retries": self.retries,
            "retry_backoff_seconds": self.retry_backoff_seconds,
            "js_settle_seconds": self.js_settle_seconds,
            "auth_timeout_seconds": self.auth_timeout_seconds,
            "user_agent": self.user_agent,
            "default_headers": dict(self.default_headers),
            "auth_portal_base": self.auth_portal_base,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any], **callbacks: Any) -> "ScraperOptions":
        """Build options from a parsed dictionary.

        Keys may be snake_case or camelCase (`baseUrl`, `scrapingGoal`, ...).
        Callbacks are passed as keyword arguments.
        """

        data = normalize_keys(payload)
        for key in ("base_url", "scraping_goal"):
            if not data.get(key):
                raise ConfigurationError(f"Config missing required key: '{key}'")

        return cls(
            base_url=str(data["base_url"]),
            scraping_goal=str(data["scraping_goal"]),
            max_pages=_as_int(data.get("max_pages", DEFAULT_MAX_PAGES), "max_pages"),
            max_depth=_as_int(data.get("max_depth", DEFAULT_MAX_DEPTH), "max_depth"),
            include_images=_as_bool(
                data.get("include_images", DEFAULT_INCLUDE_IMAGES),
                "include_images",
            ),
            execute_javascript=_as_bool(
                data.get("execute_javascript", DEFAULT_EXECUTE_JAVASCRIPT),
                "execute_javascript",
            ),
            prevent_duplicate_urls=_as_bool(
                data.get("prevent_duplicate_urls", DEFAULT_PREVENT_DUPLICATE_URLS),
                "prevent_duplicate_urls",
            ),
            filters=CrawlFilters.from_dict(data.get("filters")),
            batch_size=_as_int(data.get("batch_size", DEFAULT_BATCH_SIZE), "batch_size"),
            timeout_seconds=_as_float(
                data.get("timeout_seconds", DEFAULT_TIMEOUT_SECONDS),
                "timeout_seconds",
            ),
            retries=_as_int(data.get("retries", DEFAULT_RETRIES), "retries"),
            retry_backoff_seconds=_as_float(
                data.get("retry_backoff_seconds", DEFAULT_RETRY_BACKOFF_SECONDS),
                "retry_backoff_seconds",
            ),
            js_settle_seconds=_as_float(
                data.get("js_settle_seconds", DEFAULT_JS_SETTLE_SECONDS),
                "js_settle_seconds",
            ),
            auth_timeout_seconds=_as_float(
                data.get("auth_timeout_seconds", DEFAULT_AUTH_TIMEOUT_SECONDS),
                "auth_timeout_seconds",
            ),
            user_agent=str(data.get("user_agent", DEFAULT_USER_AGENT)),
            default_headers={
                str(k): str(v)
                for k, v in dict(data.get("default_headers", DEFAULT_HTTP_HEADERS)).items()
            },
            auth_portal_base=str(data.get("auth_portal_base", DEFAULT_AUTH_PORTAL_BASE)),
            **callbacks,
        )


def _load_yaml(path: Path) -> dict[str, Any]:
    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"YAML config at {path} must be a mapping at top level")
    return data


def _check_suffix(path: Path) -> str:
    suffix = path.suffix.lower()
    if suffix not in SUPPORTED_CONFIG_SUFFIXES:
        raise ConfigurationError(
            f"Unsupported config suffix '{suffix}'. Supported: {SUPPORTED_CONFIG_SUFFIXES}"
        )
    return suffix


def load_config_payload(path: str | Path) -> dict[str, Any]:
    """Read a JSON/YAML config file into a plain mapping."""

    config_path = Path(path)
    suffix = _check_suffix(config_path)

    if suffix == ".json":
        try:
            payload = json.loads(config_path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise ConfigurationError(f"Invalid JSON config at {config_path}: {exc}") from exc
    else:
        try:
            payload = _load_yaml(config_path)
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Invalid YAML config at {config_path}: {exc}") from exc

    if not isinstance(payload, dict):
        raise ConfigurationError(f"Config at {config_path} must be a mapping")
    return payload


def load_config(path: str | Path) -> ScraperOptions:
    """Load ScraperOptions from JSON/YAML path."""

    return ScraperOptions.from_dict(load_config_payload(path))


def save_config(config: ScraperOptions, path: str | Path) -> None:
    """Save ScraperOptions as JSON or YAML based on file extension."""

    out_path = Path(path)
    suffix = _check_suffix(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    payload = config.to_dict()

    if suffix == ".json":
        out_path.write_text(
            json.dumps(payload, indent=JSON_INDENT, sort_keys=True) + "\n",
            encoding="utf-8",
        )
        return

    out_path.write_text(yaml.safe_dump(payload, sort_keys=False), encoding="utf-8")


__all__ = [
    "AuthHandler",
    "CrawlFilters",
    "EventCallback",
    "PageCallback",
    "ScraperOptions",
    "load_config",
    "normalize_keys",
    "load_config_payload",
    "save_config",
]
