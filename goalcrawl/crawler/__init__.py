"""Crawler package: options, shared types, and crawl components."""

from __future__ import annotations

from .auth import AuthDetector
from .config import CrawlFilters, ScraperOptions, load_config, save_config
from .errors import ConfigurationError, CrawlerError, ExtractionError, FetchError
from .events import ScraperStreamEvent
from .fetcher import Fetcher
from .frontier import PriorityFrontier
from .orchestrator import CrawlOrchestrator, UnitState
from .parsers import ContentExtractor, ContentExtractorConfig, LinkPrioritizer, clean_html
from .progress import ProgressEvaluator, StopDecision
from .state import CrawlState
from .stats import StatsCollector
from .storage import Storage
from .types import (
    AuthRequest,
    AuthType,
    CrawlOutput,
    CrawlStage,
    CrawlSummary,
    ErrorRecord,
    FetchBackend,
    FetchOptions,
    FetchResult,
    FrontierItem,
    LinkCandidate,
    PageFetcher,
    PageMetrics,
    PageRecord,
    StopReason,
    UrlAnalysis,
    ValueMetrics,
    utc_now_iso,
)
from .url import normalize_url, resolve_url
from .url_analyzer import UrlAnalyzer


def scrape(options: ScraperOptions, *, fetcher: PageFetcher | None = None) -> CrawlOutput:
    """Run one crawl to completion and return its output."""

    return CrawlOrchestrator(options, fetcher=fetcher).run()


__all__ = [
    "AuthDetector",
    "AuthRequest",
    "AuthType",
    "ConfigurationError",
    "ContentExtractor",
    "ContentExtractorConfig",
    "CrawlFilters",
    "CrawlOrchestrator",
    "CrawlOutput",
    "CrawlStage",
    "CrawlState",
    "CrawlSummary",
    "CrawlerError",
    "ErrorRecord",
    "ExtractionError",
    "FetchBackend",
    "FetchError",
    "FetchOptions",
    "FetchResult",
    "Fetcher",
    "FrontierItem",
    "LinkCandidate",
    "LinkPrioritizer",
    "PageFetcher",
    "PageMetrics",
    "PageRecord",
    "PriorityFrontier",
    "ProgressEvaluator",
    "ScraperOptions",
    "ScraperStreamEvent",
    "StatsCollector",
    "StopDecision",
    "StopReason",
    "Storage",
    "UnitState",
    "UrlAnalysis",
    "UrlAnalyzer",
    "ValueMetrics",
    "clean_html",
    "load_config",
    "normalize_url",
    "resolve_url",
    "save_config",
    "scrape",
    "utc_now_iso",
]
