import pytest

from goalcrawl.crawler import UrlAnalyzer
from goalcrawl.crawler.url import hostname_of, normalize_url, path_segments, resolve_url


GOAL = "python tutorial guide"


def test_normalize_url_canonicalizes():
    """Scheme/host case, default port, trailing slash, tracking params and fragments."""
    url = "HTTPS://Docs.Example.com:443/a/b/?utm_source=news&b=2&a=1#intro"
    assert normalize_url(url) == "https://docs.example.com/a/b?a=1&b=2"


@pytest.mark.parametrize("url", [None, "", "   ", "/relative/path", "ftp://example.com/file"])
def test_normalize_url_rejects_unusable(url):
    assert normalize_url(url) is None


def test_resolve_url_handles_relative_and_skips_pseudo_links():
    base = "https://example.com/docs/start"
    assert resolve_url(base, "../api") == "https://example.com/api"
    assert resolve_url(base, "guide#part") == "https://example.com/docs/guide"
    for href in [None, "", "#top", "javascript:void(0)", "mailto:a@b.c", "tel:123", "data:x"]:
        assert resolve_url(base, href) is None


def test_path_helpers():
    assert hostname_of("https://Sub.Example.com/x") == "sub.example.com"
    assert path_segments("https://example.com/a//b/c") == ["a", "b", "c"]
    assert path_segments("/") == []


def test_relevance_blends_keywords_and_depth():
    """0.7 * keyword fraction in path + 0.3 * min(segments / 5, 1)."""
    analyzer = UrlAnalyzer()
    score = analyzer.relevance_score("https://docs.example.com/docs/python/tutorial", GOAL)
    assert score == pytest.approx(0.7 * (2 / 3) + 0.3 * 0.6)


def test_high_value_path_is_boosted_and_capped():
    analyzer = UrlAnalyzer()
    url = "https://docs.example.com/docs/python/tutorial"
    analysis = analyzer.analyze(url, GOAL, frozenset())

    assert analysis.relevance_score == pytest.approx(0.7 * (2 / 3) + 0.18)
    assert analysis.expected_value == pytest.approx(min(analysis.relevance_score * 1.5, 1.0))
    assert analysis.was_visited is False
    assert analysis.allowed_by_robots is True


def test_low_value_path_is_penalized():
    analyzer = UrlAnalyzer()
    analysis = analyzer.analyze("https://docs.example.com/about/python", GOAL, frozenset())

    assert analysis.relevance_score == pytest.approx(0.7 / 3 + 0.3 * 0.4)
    assert analysis.expected_value == pytest.approx(analysis.relevance_score * 0.5)


def test_visited_url_keeps_small_nonzero_value():
    analyzer = UrlAnalyzer()
    url = "https://docs.example.com/docs/python/tutorial"
    analysis = analyzer.analyze(url, GOAL, {url})

    assert analysis.was_visited is True
    assert analysis.expected_value == pytest.approx(analysis.relevance_score * 0.1)
    assert analysis.expected_value > 0


def test_goal_without_keywords_scores_only_depth():
    analyzer = UrlAnalyzer()
    assert analyzer.relevance_score("https://example.com/", "the and of") == 0.0
    assert analyzer.relevance_score("https://example.com/a/b", "the and of") == pytest.approx(0.12)


def test_domain_authority_lookup():
    analyzer = UrlAnalyzer()
    assert analyzer.domain_authority("https://github.com/org/repo") == 0.9
    assert analyzer.domain_authority("https://en.wikipedia.org/wiki/Python") == 0.9
    assert analyzer.domain_authority("https://docs.example.com/") == 0.5
