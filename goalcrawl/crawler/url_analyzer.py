"""Structural value estimate for a URL relative to the scraping goal."""

from __future__ import annotations

import logging
from typing import AbstractSet, Sequence

from .constants import (
    DEFAULT_DOMAIN_AUTHORITY,
    HIGH_AUTHORITY_DOMAINS,
    HIGH_DOMAIN_AUTHORITY,
    HIGH_VALUE_PATH_PATTERNS,
    LOW_VALUE_PATH_PATTERNS,
)
from .text import extract_keywords, keyword_fraction
from .types import UrlAnalysis
from .url import hostname_of, path_of, path_segments


LOGGER = logging.getLogger(__name__)

KEYWORD_WEIGHT = 0.7
DEPTH_WEIGHT = 0.3
DEPTH_SATURATION_SEGMENTS = 5
VISITED_PENALTY = 0.1
LOW_VALUE_PENALTY = 0.5
HIGH_VALUE_BOOST = 1.5


class UrlAnalyzer:
    """Scores a URL from its path and the scraping goal.

    The analyzer is stateless; the visited set is passed in read-only.
    """

    def __init__(
        self,
        *,
        low_value_patterns: Sequence[str] = LOW_VALUE_PATH_PATTERNS,
        high_value_patterns: Sequence[str] = HIGH_VALUE_PATH_PATTERNS,
        high_authority_domains: Sequence[str] = HIGH_AUTHORITY_DOMAINS,
    ) -> None:
        self.low_value_patterns = tuple(low_value_patterns)
        self.high_value_patterns = tuple(high_value_patterns)
        self.high_authority_domains = tuple(high_authority_domains)

    def analyze(self, url: str, goal: str, visited: AbstractSet[str]) -> UrlAnalysis:
        was_visited = url in visited
        relevance = self.relevance_score(url, goal)
        expected = self.expected_value(url, relevance, was_visited=was_visited)
        analysis = UrlAnalysis(
            url=url,
            relevance_score=relevance,
            expected_value=expected,
            domain_authority=self.domain_authority(url),
            was_visited=was_visited,
            allowed_by_robots=self.allowed_by_robots(url),
        )
        LOGGER.debug(
            "Analyzed url=%s relevance=%.3f expected=%.3f visited=%s",
            url,
            relevance,
            expected,
            was_visited,
        )
        return analysis

    def relevance_score(self, url: str, goal: str) -> float:
        path = path_of(url).lower()
        keyword_score = keyword_fraction(path, extract_keywords(goal))
        depth_score = min(len(path_segments(path)) / DEPTH_SATURATION_SEGMENTS, 1.0)
        return KEYWORD_WEIGHT * keyword_score + DEPTH_WEIGHT * depth_score

    def expected_value(self, url: str, relevance: float, *, was_visited: bool) -> float:
        # Visited URLs keep a small non-zero value so they can still be ranked.
        if was_visited:
            return relevance * VISITED_PENALTY

        path = path_of(url)
        value = relevance
        if any(pattern in path for pattern in self.low_value_patterns):
            value *= LOW_VALUE_PENALTY
        if any(pattern in path for pattern in self.high_value_patterns):
            value = min(value * HIGH_VALUE_BOOST, 1.0)
        return value

    def domain_authority(self, url: str) -> float:
        host = hostname_of(url)
        if any(domain in host for domain in self.high_authority_domains):
            return HIGH_DOMAIN_AUTHORITY
        return DEFAULT_DOMAIN_AUTHORITY

    def allowed_by_robots(self, url: str) -> bool:
        # robots.txt is not consulted.
        return True


__all__ = ["UrlAnalyzer"]
