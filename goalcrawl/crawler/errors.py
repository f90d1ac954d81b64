"""Exception types raised by crawler components."""

from __future__ import annotations


class CrawlerError(Exception):
    """Base class for crawler failures."""


class ConfigurationError(CrawlerError, ValueError):
    """Crawl options are missing or invalid; raised before a crawl starts."""


class FetchError(CrawlerError):
    """A page could not be downloaded (network, timeout, or HTTP failure)."""

    def __init__(self, url: str, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class ExtractionError(CrawlerError):
    """Fetched HTML could not be turned into page content."""

    def __init__(self, url: str, message: str) -> None:
        super().__init__(message)
        self.url = url


__all__ = [
    "ConfigurationError",
    "CrawlerError",
    "ExtractionError",
    "FetchError",
]
