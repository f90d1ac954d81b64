import math

import pytest

from goalcrawl.crawler import PageMetrics, PageRecord, ProgressEvaluator, StopReason, ValueMetrics


def make_page(url: str, *, density: float, relevance: float, uniqueness: float) -> PageRecord:
    return PageRecord(
        url=url,
        title="t",
        content="content",
        content_type="text/html",
        extraction_time="2026-01-01T00:00:00+00:00",
        metrics=PageMetrics(information_density=density, relevance=relevance, uniqueness=uniqueness),
    )


def test_evaluate_with_no_pages_is_zero():
    assert ProgressEvaluator().evaluate([], 20) == ValueMetrics()


def test_evaluate_averages_page_metrics():
    pages = [
        make_page("https://e.com/a", density=0.6, relevance=1.0, uniqueness=1.0),
        make_page("https://e.com/b", density=0.8, relevance=0.5, uniqueness=0.2),
    ]
    metrics = ProgressEvaluator().evaluate(pages, 20)

    assert metrics.information_density == pytest.approx(0.7)
    assert metrics.relevance == pytest.approx(0.75)
    assert metrics.uniqueness == pytest.approx(0.6)
    expected = (math.log(3, 1.5) / math.log(21, 1.5)) * ((0.75 + 0.7) / 2)
    assert metrics.completeness == pytest.approx(expected)
    assert metrics.coverage_score == pytest.approx(0.75 * 0.7)


def test_completeness_is_clamped():
    evaluator = ProgressEvaluator()
    assert evaluator.completeness(50, 10, 1.0, 1.0) == 1.0
    assert evaluator.completeness(0, 10, 1.0, 1.0) == 0.0
    assert evaluator.completeness(10, 10, 1.0, 1.0) == pytest.approx(1.0)


def decide(metrics: ValueMetrics, **overrides):
    kwargs = {"pages_extracted": 1, "visited_count": 1, "frontier_size": 3, "max_pages": 5}
    kwargs.update(overrides)
    return ProgressEvaluator().decide(metrics, **kwargs)


def test_page_limit_has_top_priority():
    metrics = ValueMetrics(completeness=0.99, uniqueness=0.0)
    decision = decide(metrics, pages_extracted=5, visited_count=20, frontier_size=0)

    assert decision.stop is True
    assert decision.reason == StopReason.PAGE_LIMIT


def test_goal_satisfied_before_diminishing_returns():
    metrics = ValueMetrics(completeness=0.9, uniqueness=0.0)
    assert decide(metrics, visited_count=20).reason == StopReason.GOAL_SATISFIED
    assert decide(ValueMetrics(completeness=0.85, uniqueness=1.0)).stop is False


def test_diminishing_returns_needs_enough_visits():
    metrics = ValueMetrics(completeness=0.1, uniqueness=0.1)
    assert decide(metrics, visited_count=11).reason == StopReason.DIMINISHING_RETURNS
    assert decide(metrics, visited_count=10).stop is False


def test_empty_frontier_stops_last():
    metrics = ValueMetrics(completeness=0.1, uniqueness=0.9)
    assert decide(metrics, frontier_size=0).reason == StopReason.NO_MORE_CANDIDATES
    decision = decide(metrics)
    assert decision.stop is False
    assert decision.reason is None
