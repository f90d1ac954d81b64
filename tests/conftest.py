"""Shared fixtures: HTML builders and a scripted in-memory fetcher."""

from __future__ import annotations

from typing import Sequence

import pytest

from goalcrawl.crawler import FetchOptions, FetchResult, ScraperOptions
from goalcrawl.crawler.url import normalize_url


def page_html(
    title: str,
    paragraphs: Sequence[str],
    links: Sequence[tuple[str, str]] = (),
) -> str:
    """Build a small page: links live in <nav>, text lives in <main>."""

    anchors = "\n".join(f'<a href="{href}">{text}</a>' for href, text in links)
    body = "\n".join(f"<p>{paragraph}</p>" for paragraph in paragraphs)
    return (
        "<html><head>"
        f"<title>{title}</title>"
        "</head><body>"
        f"<nav>{anchors}</nav>"
        f"<main><h1>{title}</h1>{body}</main>"
        "<footer>Copyright footer text</footer>"
        "</body></html>"
    )


LOGIN_FORM_HTML = (
    "<html><head><title>Members area</title></head><body>"
    '<form action="/session" method="post">'
    '<input type="hidden" name="csrf_token" value="abc">'
    '<input type="text" name="username">'
    '<input type="password" name="password">'
    '<input type="submit" value="Go">'
    "</form></body></html>"
)


def ok_result(url: str, html: str, *, status_code: int = 200) -> FetchResult:
    return FetchResult(
        requested_url=url,
        final_url=url,
        status_code=status_code,
        html=html,
        headers={"Content-Type": "text/html"},
        content_type="text/html",
    )


def error_result(url: str, message: str = "ConnectionError: refused") -> FetchResult:
    return FetchResult(
        requested_url=url,
        final_url=None,
        status_code=None,
        html=None,
        error=message,
    )


class FakeFetcher:
    """Serve scripted responses per URL and record every fetch call.

    A URL maps to one `FetchResult` or a list of them; lists are consumed in
    order and the last entry repeats. Unknown URLs return 404.
    """

    def __init__(self, responses: dict[str, FetchResult | list[FetchResult]] | None = None) -> None:
        self.responses: dict[str, list[FetchResult]] = {}
        self.calls: list[str] = []
        self.options: list[FetchOptions | None] = []
        for url, response in (responses or {}).items():
            self.add(url, response)

    def add(self, url: str, response: FetchResult | list[FetchResult]) -> None:
        key = normalize_url(url) or url
        self.responses[key] = list(response) if isinstance(response, list) else [response]

    def add_page(self, url: str, html: str, *, status_code: int = 200) -> None:
        key = normalize_url(url) or url
        self.add(key, ok_result(key, html, status_code=status_code))

    def fetch(self, url: str, options: FetchOptions | None = None) -> FetchResult:
        self.calls.append(url)
        self.options.append(options)
        queue = self.responses.get(url)
        if not queue:
            return ok_result(url, "<html><body>Not found</body></html>", status_code=404)
        if len(queue) > 1:
            return queue.pop(0)
        return queue[0]

    def call_count(self, url: str) -> int:
        key = normalize_url(url) or url
        return self.calls.count(key)


@pytest.fixture
def fake_fetcher() -> FakeFetcher:
    return FakeFetcher()


@pytest.fixture
def make_options():
    def _make(**overrides) -> ScraperOptions:
        payload = {
            "base_url": "https://docs.example.com/",
            "scraping_goal": "python tutorial guide",
            "max_pages": 10,
            "max_depth": 3,
            "batch_size": 5,
            "retries": 0,
            "retry_backoff_seconds": 0.0,
            "js_settle_seconds": 0.0,
        }
        payload.update(overrides)
        return ScraperOptions(**payload)

    return _make
