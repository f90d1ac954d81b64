"""Crawl-level value metrics and the stopping policy."""

from __future__ import annotations

from dataclasses import dataclass
import logging
import math
from typing import Sequence

from .constants import (
    COMPLETION_LOG_BASE,
    DIMINISHING_MIN_VISITED,
    DIMINISHING_UNIQUENESS_THRESHOLD,
    GOAL_SATISFIED_THRESHOLD,
)
from .types import PageRecord, StopReason, ValueMetrics


LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class StopDecision:
    """Whether the crawl should stop, and why."""

    stop: bool
    reason: StopReason | None = None


CONTINUE = StopDecision(stop=False)


class ProgressEvaluator:
    """Aggregate page metrics and decide when the crawl is done.

    Completeness follows a logarithmic curve over pages extracted, scaled by
    the mean of relevance and information density.
    """

    def __init__(
        self,
        *,
        log_base: float = COMPLETION_LOG_BASE,
        goal_satisfied_threshold: float = GOAL_SATISFIED_THRESHOLD,
        diminishing_uniqueness_threshold: float = DIMINISHING_UNIQUENESS_THRESHOLD,
        diminishing_min_visited: int = DIMINISHING_MIN_VISITED,
    ) -> None:
        self.log_base = log_base
        self.goal_satisfied_threshold = goal_satisfied_threshold
        self.diminishing_uniqueness_threshold = diminishing_uniqueness_threshold
        self.diminishing_min_visited = diminishing_min_visited

    def evaluate(self, pages: Sequence[PageRecord], max_pages: int) -> ValueMetrics:
        if not pages:
            return ValueMetrics()

        count = len(pages)
        density = sum(page.metrics.information_density for page in pages) / count
        relevance = sum(page.metrics.relevance for page in pages) / count
        uniqueness = sum(page.metrics.uniqueness for page in pages) / count

        return ValueMetrics(
            information_density=density,
            relevance=relevance,
            uniqueness=uniqueness,
            completeness=self.completeness(count, max_pages, relevance, density),
        )

    def completeness(
        self,
        pages_extracted: int,
        max_pages: int,
        relevance: float,
        information_density: float,
    ) -> float:
        denominator = math.log(max_pages + 1, self.log_base)
        if denominator <= 0:
            return 0.0
        base_completion = math.log(pages_extracted + 1, self.log_base) / denominator
        value = base_completion * ((relevance + information_density) / 2)
        return max(0.0, min(1.0, value))

    def decide(
        self,
        metrics: ValueMetrics,
        *,
        pages_extracted: int,
        visited_count: int,
        frontier_size: int,
        max_pages: int,
    ) -> StopDecision:
        """Apply the stop rules in priority order."""

        if pages_extracted >= max_pages:
            decision = StopDecision(True, StopReason.PAGE_LIMIT)
        elif metrics.completeness > self.goal_satisfied_threshold:
            decision = StopDecision(True, StopReason.GOAL_SATISFIED)
        elif (
            metrics.uniqueness < self.diminishing_uniqueness_threshold
            and visited_count > self.diminishing_min_visited
        ):
            decision = StopDecision(True, StopReason.DIMINISHING_RETURNS)
        elif frontier_size == 0:
            decision = StopDecision(True, StopReason.NO_MORE_CANDIDATES)
        else:
            return CONTINUE

        LOGGER.debug(
            "Stop decision reason=%s pages=%s visited=%s frontier=%s",
            decision.reason.value if decision.reason else None,
            pages_extracted,
            visited_count,
            frontier_size,
        )
        return decision


__all__ = [
    "CONTINUE",
    "ProgressEvaluator",
    "StopDecision",
]
