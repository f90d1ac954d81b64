"""Core type definitions for the goal-directed crawler.

This module is intentionally dependency-light so other crawler modules can import
shared records without introducing cycles.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Protocol, Sequence


class CrawlStage(str, Enum):
    """Unit stage names for error reporting."""

    FRONTIER = "frontier"
    FETCH = "fetch"
    AUTH = "auth"
    EXTRACT = "extract"
    DISCOVER = "discover"
    UNIT = "unit"


class FetchBackend(str, Enum):
    """Backend used to fetch page content."""

    REQUESTS = "requests"
    SELENIUM = "selenium"


class AuthType(str, Enum):
    """Kinds of login walls the auth detector can recognise."""

    BASIC = "basic"
    FORM = "form"
    OAUTH = "oauth"
    UNKNOWN = "unknown"


class EnqueueStatus(str, Enum):
    """Outcome of offering a discovered link to the frontier."""

    ENQUEUED = "enqueued"
    SKIPPED_VISITED = "skipped_visited"
    SKIPPED_DEPTH = "skipped_depth"
    SKIPPED_FILTERED = "skipped_filtered"
    SKIPPED_QUEUED = "skipped_queued"


class StopReason(str, Enum):
    """Why a crawl finished."""

    PAGE_LIMIT = "page_limit"
    GOAL_SATISFIED = "goal_satisfied"
    DIMINISHING_RETURNS = "diminishing_returns"
    NO_MORE_CANDIDATES = "no_more_candidates"
    CANCELLED = "cancelled"
    FAILED = "failed"


JSONPrimitive = str | int | float | bool | None
JSONValue = JSONPrimitive | list["JSONValue"] | dict[str, "JSONValue"]
JSONDict = dict[str, JSONValue]


def utc_now_iso() -> str:
    """Return an RFC3339-like UTC timestamp string for records and JSONL."""

    return datetime.now(timezone.utc).isoformat(timespec="seconds")


@dataclass(frozen=True, slots=True)
class FrontierItem:
    """A crawl candidate waiting in the frontier."""

    url: str
    depth: int
    expected_value: float
    referrer: str | None = None
    discovered_at: str = field(default_factory=utc_now_iso)

    def to_json(self) -> JSONDict:
        return {
            "url": self.url,
            "depth": self.depth,
            "expected_value": self.expected_value,
            "referrer": self.referrer,
            "discovered_at": self.discovered_at,
        }


@dataclass(frozen=True, slots=True)
class FetchOptions:
    """Per-request options passed to a page fetcher."""

    execute_javascript: bool = False
    timeout_seconds: float | None = None
    headers: dict[str, str] = field(default_factory=dict)
    cookies: str | None = None


@dataclass(slots=True)
class FetchResult:
    """Result of attempting to download one URL."""

    requested_url: str
    final_url: str | None
    status_code: int | None
    html: str | None
    headers: dict[str, str] = field(default_factory=dict)
    content_type: str | None = None
    backend: FetchBackend = FetchBackend.REQUESTS
    fetched_at: str = field(default_factory=utc_now_iso)
    elapsed_ms: int | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return (
            self.error is None
            and self.status_code is not None
            and 200 <= self.status_code < 300
            and self.html is not None
        )

    @property
    def content_length(self) -> int:
        return 0 if self.html is None else len(self.html)

    @property
    def target_url(self) -> str:
        return self.final_url or self.requested_url


class PageFetcher(Protocol):
    """Anything that can turn a URL into a `FetchResult`."""

    def fetch(self, url: str, options: FetchOptions | None = None) -> FetchResult:
        ...


@dataclass(frozen=True, slots=True)
class UrlAnalysis:
    """Structural value estimate for one URL."""

    url: str
    relevance_score: float
    expected_value: float
    domain_authority: float
    was_visited: bool
    allowed_by_robots: bool = True

    def to_json(self) -> JSONDict:
        return {
            "url": self.url,
            "relevance_score": self.relevance_score,
            "expected_value": self.expected_value,
            "domain_authority": self.domain_authority,
            "was_visited": self.was_visited,
            "allowed_by_robots": self.allowed_by_robots,
        }


@dataclass(frozen=True, slots=True)
class PageMetrics:
    """Quality metrics computed for one extracted page."""

    information_density: float = 0.0
    relevance: float = 0.0
    uniqueness: float = 0.0

    def to_json(self) -> JSONDict:
        return {
            "information_density": self.information_density,
            "relevance": self.relevance,
            "uniqueness": self.uniqueness,
        }


@dataclass(frozen=True, slots=True)
class LinkCandidate:
    """One outbound link found on a page, with its predicted value."""

    url: str
    text: str
    context: str
    predicted_value: float = 0.0
    visited: bool = False

    def to_json(self) -> JSONDict:
        return {
            "url": self.url,
            "text": self.text,
            "context": self.context,
            "predicted_value": self.predicted_value,
            "visited": self.visited,
        }


@dataclass(frozen=True, slots=True)
class PageRecord:
    """One extracted page. Links are attached once, after discovery."""

    url: str
    title: str
    content: str
    content_type: str
    extraction_time: str
    metrics: PageMetrics
    depth: int = 0
    links: list[LinkCandidate] = field(default_factory=list)
    entities: list[dict[str, JSONValue]] = field(default_factory=list)
    images: list[str] = field(default_factory=list)

    def with_links(self, links: Sequence[LinkCandidate]) -> "PageRecord":
        return replace(self, links=list(links))

    def to_json(self) -> JSONDict:
        return {
            "url": self.url,
            "title": self.title,
            "content": self.content,
            "content_type": self.content_type,
            "extraction_time": self.extraction_time,
            "metrics": self.metrics.to_json(),
            "depth": self.depth,
            "links": [link.to_json() for link in self.links],
            "entities": list(self.entities),
            "images": list(self.images),
        }


@dataclass(frozen=True, slots=True)
class ValueMetrics:
    """Crawl-level aggregate recomputed after every extracted page."""

    information_density: float = 0.0
    relevance: float = 0.0
    uniqueness: float = 0.0
    completeness: float = 0.0

    @property
    def coverage_score(self) -> float:
        return self.relevance * self.information_density

    def to_json(self) -> JSONDict:
        return {
            "information_density": self.information_density,
            "relevance": self.relevance,
            "uniqueness": self.uniqueness,
            "completeness": self.completeness,
        }


@dataclass(frozen=True, slots=True)
class AuthDetection:
    """Outcome of checking a fetched page for a login wall."""

    requires_auth: bool
    auth_type: AuthType = AuthType.UNKNOWN
    login_url: str | None = None
    form_fields: list[str] | None = None


@dataclass(frozen=True, slots=True)
class AuthRequest:
    """Structured request handed to a human-in-the-loop auth handler."""

    url: str
    auth_type: AuthType
    instructions: str
    callback_url: str
    session_token: str
    auth_portal_url: str
    form_fields: list[str] | None = None

    def to_json(self) -> JSONDict:
        return {
            "url": self.url,
            "auth_type": self.auth_type.value,
            "form_fields": None if self.form_fields is None else list(self.form_fields),
            "instructions": self.instructions,
            "callback_url": self.callback_url,
            "session_token": self.session_token,
            "auth_portal_url": self.auth_portal_url,
        }


@dataclass(frozen=True, slots=True)
class CrawlSummary:
    """Aggregate numbers reported alongside the crawled pages."""

    pages_scraped: int = 0
    total_content_size: int = 0
    execution_time: float = 0.0
    goal_completion: float = 0.0
    coverage_score: float = 0.0

    def to_json(self) -> JSONDict:
        return {
            "pages_scraped": self.pages_scraped,
            "total_content_size": self.total_content_size,
            "execution_time": self.execution_time,
            "goal_completion": self.goal_completion,
            "coverage_score": self.coverage_score,
        }


@dataclass(frozen=True, slots=True)
class CrawlOutput:
    """Final crawl result, produced once when the crawl terminates."""

    pages: list[PageRecord]
    summary: CrawlSummary
    stop_reason: StopReason | None = None

    @classmethod
    def empty(cls, stop_reason: StopReason | None = StopReason.FAILED) -> "CrawlOutput":
        return cls(pages=[], summary=CrawlSummary(), stop_reason=stop_reason)

    def to_json(self) -> JSONDict:
        return {
            "pages": [page.to_json() for page in self.pages],
            "summary": self.summary.to_json(),
            "stop_reason": None if self.stop_reason is None else self.stop_reason.value,
        }


@dataclass(frozen=True, slots=True)
class ErrorRecord:
    """One recoverable failure recorded during a crawl."""

    stage: CrawlStage
    url: str
    message: str
    error_type: str | None = None
    status_code: int | None = None
    created_at: str = field(default_factory=utc_now_iso)
    metadata: dict[str, JSONValue] = field(default_factory=dict)

    @classmethod
    def from_exception(
        cls,
        *,
        stage: CrawlStage,
        url: str,
        exc: Exception,
        **kwargs: Any,
    ) -> "ErrorRecord":
        return cls(
            stage=stage,
            url=url,
            message=str(exc),
            error_type=exc.__class__.__name__,
            **kwargs,
        )

    def to_json(self) -> JSONDict:
        return {
            "stage": self.stage.value,
            "url": self.url,
            "message": self.message,
            "error_type": self.error_type,
            "status_code": self.status_code,
            "created_at": self.created_at,
            "metadata": self.metadata,
        }


__all__ = [
    "AuthDetection",
    "AuthRequest",
    "AuthType",
    "CrawlOutput",
    "CrawlStage",
    "CrawlSummary",
    "EnqueueStatus",
    "ErrorRecord",
    "FetchBackend",
    "FetchOptions",
    "FetchResult",
    "FrontierItem",
    "JSONDict",
    "JSONPrimitive",
    "JSONValue",
    "LinkCandidate",
    "PageFetcher",
    "PageMetrics",
    "PageRecord",
    "StopReason",
    "UrlAnalysis",
    "ValueMetrics",
    "utc_now_iso",
]
