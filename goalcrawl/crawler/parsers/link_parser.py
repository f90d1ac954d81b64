"""Outbound link discovery, filtering and value prediction."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
import logging
import re
from typing import AbstractSet, Sequence

from ..constants import (
    HIGH_VALUE_PATH_PATTERNS,
    LINK_ACTION_WORDS,
    LINK_CONTEXT_CHARS,
    NON_CONTENT_EXTENSIONS,
    NON_CONTENT_PATH_PATTERNS,
)
from ..text import extract_keywords, keyword_fraction
from ..types import LinkCandidate
from ..url import hostname_of, path_of, path_segments, resolve_url
from .html_parser import clean_html


LOGGER = logging.getLogger(__name__)

ANCHOR_RE = re.compile(
    r"<a\s+(?:[^>]*?\s+)?href=[\"']([^\"']*)[\"'][^>]*>(.*?)</a>",
    re.IGNORECASE | re.DOTALL,
)
_DIGIT_RE = re.compile(r"\d")

BASE_SCORE = 0.5
TEXT_WEIGHT = 0.3
CONTEXT_WEIGHT = 0.3
STRUCTURE_WEIGHT = 0.2
HEURISTIC_WEIGHT = 0.2
NEUTRAL_RELEVANCE = 0.5


@dataclass(frozen=True, slots=True)
class RawLink:
    """One anchor found on a page before filtering and scoring."""

    url: str
    text: str
    context: str


class LinkPrioritizer:
    """Extract same-host content links from a page and predict their value."""

    def __init__(
        self,
        *,
        context_chars: int = LINK_CONTEXT_CHARS,
        non_content_extensions: Sequence[str] = NON_CONTENT_EXTENSIONS,
        non_content_patterns: Sequence[str] = NON_CONTENT_PATH_PATTERNS,
        high_value_patterns: Sequence[str] = HIGH_VALUE_PATH_PATTERNS,
        action_words: Sequence[str] = LINK_ACTION_WORDS,
    ) -> None:
        self.context_chars = context_chars
        self.non_content_extensions = tuple(ext.lower() for ext in non_content_extensions)
        self.non_content_patterns = tuple(non_content_patterns)
        self.high_value_patterns = tuple(high_value_patterns)
        self.action_words = tuple(action_words)

    def identify(
        self,
        html: str,
        current_url: str,
        goal: str,
        visited: AbstractSet[str],
        *,
        report_visited: bool = False,
        allowed_host: str | None = None,
    ) -> list[LinkCandidate]:
        """Return filtered link candidates sorted by predicted value (descending).

        Visited links are dropped unless `report_visited` is set, in which case
        they are kept with `visited=True` so callers can report them. Links are
        kept on `allowed_host` when given, else on the host of `current_url`.
        """

        if not html:
            return []

        keywords = extract_keywords(goal)
        base_host = allowed_host or hostname_of(current_url)
        dropped: Counter[str] = Counter()
        candidates: list[LinkCandidate] = []

        for raw in self.extract_links(html, current_url):
            was_visited = raw.url in visited
            if was_visited and not report_visited:
                dropped["visited"] += 1
                continue
            reason = self.filter_reason(raw.url, base_host)
            if reason is not None:
                dropped[reason] += 1
                continue

            candidates.append(
                LinkCandidate(
                    url=raw.url,
                    text=raw.text,
                    context=raw.context,
                    predicted_value=self.score(raw, keywords),
                    visited=was_visited,
                )
            )

        candidates.sort(key=lambda link: link.predicted_value, reverse=True)
        LOGGER.debug(
            "Links on %s: kept=%s dropped=%s",
            current_url,
            len(candidates),
            dict(dropped),
        )
        return candidates

    def extract_links(self, html: str, current_url: str) -> list[RawLink]:
        """Regex-scan anchors, resolve hrefs and capture surrounding text."""

        links: list[RawLink] = []
        seen: set[str] = set()
        for match in ANCHOR_RE.finditer(html):
            resolved = resolve_url(current_url, match.group(1))
            if not resolved or resolved in seen:
                continue
            seen.add(resolved)

            start = max(0, match.start() - self.context_chars)
            end = min(len(html), match.end() + self.context_chars)
            links.append(
                RawLink(
                    url=resolved,
                    text=clean_html(match.group(2)),
                    context=clean_html(html[start:end]),
                )
            )
        return links

    def filter_reason(self, url: str, base_host: str) -> str | None:
        """Return why a link is excluded, or None when it should be kept."""

        if hostname_of(url) != base_host:
            return "external_host"
        path = path_of(url)
        if path.lower().endswith(self.non_content_extensions):
            return "non_content_extension"
        if any(pattern in path for pattern in self.non_content_patterns):
            return "non_content_path"
        return None

    def score(self, link: RawLink, keywords: Sequence[str]) -> float:
        value = (
            BASE_SCORE
            + TEXT_WEIGHT * self.text_relevance(link.text, keywords)
            + CONTEXT_WEIGHT * self.text_relevance(link.context, keywords)
            + STRUCTURE_WEIGHT * self.url_structure_score(link.url)
            + HEURISTIC_WEIGHT * self.heuristic_score(link.text)
        )
        return max(0.0, min(1.0, value))

    @staticmethod
    def text_relevance(text: str, keywords: Sequence[str]) -> float:
        if not text:
            return 0.0
        if not keywords:
            return NEUTRAL_RELEVANCE
        return keyword_fraction(text, keywords)

    def url_structure_score(self, url: str) -> float:
        path = path_of(url)
        depth_score = min(len(path_segments(path)) / 5, 1.0) * 0.5
        if any(pattern in path for pattern in self.high_value_patterns):
            return depth_score + 0.5
        return depth_score

    def heuristic_score(self, text: str) -> float:
        score = 0.0
        if len(text) > 20:
            score += 0.1
        lowered = text.lower()
        if any(word in lowered for word in self.action_words):
            score += 0.2
        if _DIGIT_RE.search(text):
            score += 0.1
        # Heading-like or very short text.
        if text == text.upper() or len(text) < 4:
            score -= 0.1
        return score


__all__ = [
    "ANCHOR_RE",
    "LinkPrioritizer",
    "RawLink",
]
