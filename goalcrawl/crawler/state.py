"""Mutable per-crawl state owned by the orchestrator."""

from __future__ import annotations

from typing import AbstractSet

from .types import AuthRequest, ErrorRecord, PageRecord, ValueMetrics


class CrawlState:
    """Visited set, extracted pages, content signatures and running metrics.

    Only the orchestrator mutates a `CrawlState`; other components read it
    through the view methods.
    """

    def __init__(self, goal: str, *, max_pages: int) -> None:
        self.goal = goal
        self.max_pages = max_pages

        self._visited: set[str] = set()
        self._queued: set[str] = set()
        self._pages: dict[str, PageRecord] = {}
        self._signatures: dict[str, frozenset[str]] = {}
        self._errors: list[ErrorRecord] = []
        self._auth_requests: list[AuthRequest] = []
        self.metrics = ValueMetrics()

    # Visited set

    def mark_visited(self, url: str) -> bool:
        """Add `url` to the visited set; returns False if it was already there."""

        if url in self._visited:
            return False
        self._visited.add(url)
        self._queued.discard(url)
        return True

    def is_visited(self, url: str) -> bool:
        return url in self._visited

    @property
    def visited(self) -> AbstractSet[str]:
        return frozenset(self._visited)

    @property
    def visited_count(self) -> int:
        return len(self._visited)

    # Frontier bookkeeping

    def mark_queued(self, url: str) -> None:
        self._queued.add(url)

    def is_queued(self, url: str) -> bool:
        return url in self._queued

    # Pages

    def add_page(self, page: PageRecord, signature: frozenset[str]) -> None:
        self._pages[page.url] = page
        self._signatures[page.url] = signature

    def replace_page(self, page: PageRecord) -> None:
        """Swap in a page record for an already stored URL (link attachment)."""

        if page.url not in self._pages:
            raise KeyError(page.url)
        self._pages[page.url] = page

    @property
    def pages(self) -> list[PageRecord]:
        return list(self._pages.values())

    @property
    def page_count(self) -> int:
        return len(self._pages)

    def prior_signatures(self) -> list[frozenset[str]]:
        return list(self._signatures.values())

    def total_content_size(self) -> int:
        return sum(len(page.content) for page in self._pages.values())

    # Errors and auth

    def record_error(self, error: ErrorRecord) -> None:
        self._errors.append(error)

    @property
    def errors(self) -> list[ErrorRecord]:
        return list(self._errors)

    def record_auth_request(self, request: AuthRequest) -> None:
        self._auth_requests.append(request)

    @property
    def auth_requests(self) -> list[AuthRequest]:
        return list(self._auth_requests)


__all__ = ["CrawlState"]
