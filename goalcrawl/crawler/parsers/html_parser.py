"""Main-content isolation and page quality metrics for fetched HTML."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
import re
from typing import Iterable, Sequence

from bs4 import BeautifulSoup, Tag

from ..constants import (
    BOILERPLATE_ATTR_PATTERN,
    CONTENT_SELECTORS,
    DEFAULT_CONTENT_TYPE,
    DENSITY_CONTENT_TAGS,
    DENSITY_MIN_TEXT_CHARS,
    STRIPPED_TAGS,
    UNTITLED_PAGE,
)
from ..errors import ExtractionError
from ..text import (
    extract_keywords,
    information_density,
    jaccard_similarity,
    keyword_fraction,
    word_signature,
)
from ..types import PageMetrics
from ..url import resolve_url


LOGGER = logging.getLogger(__name__)

_TAG_RE = re.compile(r"<[^>]*>")
_WHITESPACE_RE = re.compile(r"\s+")
_ENTITY_REPLACEMENTS = (
    ("&nbsp;", " "),
    ("&amp;", "&"),
    ("&lt;", "<"),
    ("&gt;", ">"),
    ("&quot;", '"'),
    ("&#39;", "'"),
)
_CHROME_ANCESTORS = frozenset({"nav", "footer", "header", "aside"})
_PROTECTED_TAGS = frozenset({"html", "body"})


def _clean_once(html: str) -> str:
    text = _TAG_RE.sub(" ", html)
    for entity, replacement in _ENTITY_REPLACEMENTS:
        text = text.replace(entity, replacement)
    return _WHITESPACE_RE.sub(" ", text).strip()


def clean_html(html: str | None) -> str:
    """Strip tags, decode common entities and collapse whitespace.

    Decoding can expose new markup (`&lt;b&gt;`), so the pass is repeated until
    the text stops changing; `clean_html(clean_html(x)) == clean_html(x)`.
    """

    text = html or ""
    while True:
        cleaned = _clean_once(text)
        if cleaned == text:
            return cleaned
        text = cleaned


@dataclass(slots=True)
class ContentExtractorConfig:
    """Config for HTML content isolation."""

    include_images: bool = False
    content_type: str = DEFAULT_CONTENT_TYPE
    stripped_tags: Sequence[str] = STRIPPED_TAGS
    boilerplate_attr_pattern: str = BOILERPLATE_ATTR_PATTERN
    content_selectors: Sequence[str] = CONTENT_SELECTORS
    density_min_text_chars: int = DENSITY_MIN_TEXT_CHARS
    density_content_tags: Sequence[str] = DENSITY_CONTENT_TAGS


@dataclass(frozen=True, slots=True)
class ExtractionResult:
    """Isolated page content plus its quality metrics."""

    title: str
    content: str
    content_type: str
    metrics: PageMetrics
    signature: frozenset[str] = frozenset()
    images: list[str] = field(default_factory=list)
    strategy: str = "body"


class ContentExtractor:
    """Isolate the main content of a page and score it against the goal.

    Isolation order, first match wins: strip page chrome, content-container
    selectors, text-density analysis, `<body>`, raw HTML.
    """

    def __init__(self, config: ContentExtractorConfig | None = None) -> None:
        self.config = config or ContentExtractorConfig()
        self._boilerplate_re = re.compile(self.config.boilerplate_attr_pattern, re.IGNORECASE)

    def extract(
        self,
        html: str | bytes,
        url: str,
        goal: str,
        prior_signatures: Iterable[frozenset[str]] = (),
    ) -> ExtractionResult:
        html_text = self._coerce_html_text(html)
        if not html_text.strip():
            raise ExtractionError(url, "Empty HTML document")

        try:
            soup = BeautifulSoup(html_text, "lxml")
        except Exception as exc:
            raise ExtractionError(url, f"HTML parse failed: {exc.__class__.__name__}: {exc}") from exc

        title = self._extract_title(soup)
        self._strip_chrome(soup)

        element, strategy = self._select_content(soup)
        content_html = element.decode_contents() if element is not None else html_text
        content = clean_html(content_html)
        if not content:
            raise ExtractionError(url, "No extractable text from HTML")

        signature = word_signature(content)
        metrics = PageMetrics(
            information_density=information_density(content),
            relevance=keyword_fraction(content, extract_keywords(goal)),
            uniqueness=self._uniqueness(signature, prior_signatures),
        )

        images: list[str] = []
        if self.config.include_images and element is not None:
            images = self._extract_images(element, url)

        LOGGER.debug(
            "Extracted url=%s strategy=%s chars=%s density=%.3f relevance=%.3f uniqueness=%.3f",
            url,
            strategy,
            len(content),
            metrics.information_density,
            metrics.relevance,
            metrics.uniqueness,
        )
        return ExtractionResult(
            title=title,
            content=content,
            content_type=self.config.content_type,
            metrics=metrics,
            signature=signature,
            images=images,
            strategy=strategy,
        )

    def _strip_chrome(self, soup: BeautifulSoup) -> None:
        for tag in soup.find_all(list(self.config.stripped_tags)):
            if not tag.decomposed:
                tag.decompose()

        for tag in soup.find_all(True):
            if tag.decomposed or tag.name in _PROTECTED_TAGS:
                continue
            if self._is_boilerplate(tag):
                tag.decompose()

    def _is_boilerplate(self, tag: Tag) -> bool:
        element_id = tag.get("id") or ""
        classes = tag.get("class") or []
        if isinstance(classes, str):
            classes = [classes]
        haystack = " ".join([str(element_id), *classes])
        return bool(haystack.strip()) and self._boilerplate_re.search(haystack) is not None

    def _select_content(self, soup: BeautifulSoup) -> tuple[Tag | None, str]:
        for selector in self.config.content_selectors:
            element = soup.select_one(selector)
            if element is not None and clean_html(element.decode_contents()):
                return element, f"selector:{selector}"

        element = self._find_by_text_density(soup)
        if element is not None:
            return element, "text_density"

        if soup.body is not None:
            return soup.body, "body"
        return None, "raw"

    def _find_by_text_density(self, soup: BeautifulSoup) -> Tag | None:
        best: Tag | None = None
        best_score = float("-inf")
        content_tags = list(self.config.density_content_tags)

        for container in soup.find_all(["div", "section"]):
            if any(parent.name in _CHROME_ANCESTORS for parent in container.parents):
                continue
            text = container.get_text()
            if len(text) <= self.config.density_min_text_chars:
                continue
            content_count = len(container.find_all(content_tags))
            if content_count == 0:
                continue

            inner_html = container.decode_contents()
            ratio = len(text) / (len(inner_html) or 1)
            score = ratio * 0.7 + content_count * 0.01
            if score > best_score:
                best, best_score = container, score

        return best

    @staticmethod
    def _uniqueness(signature: frozenset[str], prior_signatures: Iterable[frozenset[str]]) -> float:
        similarities = [jaccard_similarity(signature, prior) for prior in prior_signatures]
        if not similarities:
            return 1.0
        return 1.0 - sum(similarities) / len(similarities)

    @staticmethod
    def _extract_images(element: Tag, base_url: str) -> list[str]:
        images: list[str] = []
        seen: set[str] = set()
        for img in element.find_all("img"):
            resolved = resolve_url(base_url, img.get("src"))
            if resolved and resolved not in seen:
                seen.add(resolved)
                images.append(resolved)
        return images

    @staticmethod
    def _coerce_html_text(html: str | bytes | None) -> str:
        if html is None:
            return ""
        if isinstance(html, bytes):
            return html.decode("utf-8", errors="replace")
        return html

    @staticmethod
    def _extract_title(soup: BeautifulSoup) -> str:
        if soup.title:
            title = soup.title.get_text(" ", strip=True)
            if title:
                return title
        return UNTITLED_PAGE


__all__ = [
    "ContentExtractor",
    "ContentExtractorConfig",
    "ExtractionResult",
    "clean_html",
]
