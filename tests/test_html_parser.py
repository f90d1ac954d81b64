import pytest

from goalcrawl.crawler import ContentExtractor, ContentExtractorConfig, ExtractionError, clean_html
from goalcrawl.crawler.text import (
    extract_keywords,
    information_density,
    jaccard_similarity,
    word_signature,
)


URL = "https://docs.example.com/guide"
GOAL = "python tutorial"

LONG_TEXT = (
    "Python tutorial material explains variables, functions, classes and modules "
    "with runnable examples for every concept discussed in this chapter."
)


@pytest.mark.parametrize(
    "raw",
    [
        "<p>Hello <b>world</b></p>",
        "&lt;b&gt;bold&lt;/b&gt; text",
        "a &amp;lt;tag&amp;gt; here",
        "  spaced\n\n out\t&nbsp; text  ",
        "",
        "<div><span>nested</span>   <em>tags</em></div>",
    ],
)
def test_clean_html_is_idempotent(raw):
    once = clean_html(raw)
    assert clean_html(once) == once


def test_clean_html_strips_tags_and_decodes_entities():
    assert clean_html("<p>Fish &amp; chips&nbsp;<b>today</b></p>") == "Fish & chips today"
    assert clean_html(None) == ""


def test_keywords_and_text_metrics():
    assert extract_keywords("Extract product info, about the PRODUCT!") == ["extract", "product", "info"]
    assert information_density("the cat and a dog") == pytest.approx(2 / 5)
    assert information_density("") == 0.0
    assert word_signature("Some words here and there") == frozenset({"some", "words", "here", "there"})
    assert jaccard_similarity(frozenset(), frozenset()) == 0.0
    assert jaccard_similarity(frozenset({"a", "b"}), frozenset({"b", "c"})) == pytest.approx(1 / 3)


def test_selector_cascade_prefers_main_and_strips_chrome():
    html = (
        "<html><head><title>Python Guide</title></head><body>"
        "<header>Site header</header><nav>Menu links</nav>"
        f"<main><h1>Intro</h1><p>{LONG_TEXT}</p></main>"
        "<div class='cookie-notice'>Accept cookies</div>"
        "<footer>Footer text</footer><script>var x = 1;</script>"
        "</body></html>"
    )
    result = ContentExtractor().extract(html, URL, GOAL)

    assert result.title == "Python Guide"
    assert result.strategy == "selector:main"
    assert "Python tutorial material" in result.content
    assert "Site header" not in result.content
    assert "Menu links" not in result.content
    assert "Footer text" not in result.content
    assert result.content_type == "text/html"


def test_text_density_used_when_no_selector_matches():
    html = (
        "<html><head><title>Density</title></head><body>"
        "<div id='sidebar-box'><span>short</span></div>"
        f"<div id='story'><h2>Chapter</h2><p>{LONG_TEXT}</p><p>{LONG_TEXT}</p></div>"
        "</body></html>"
    )
    result = ContentExtractor().extract(html, URL, GOAL)

    assert result.strategy == "text_density"
    assert result.content.startswith("Chapter")
    assert "short" not in result.content


def test_body_fallback_and_untitled_page():
    html = "<html><body><span>Just a little text</span></body></html>"
    result = ContentExtractor().extract(html, URL, GOAL)

    assert result.title == "Untitled Page"
    assert result.strategy == "body"
    assert result.content == "Just a little text"


def test_metrics_relevance_and_first_page_uniqueness():
    html = f"<html><body><main><p>{LONG_TEXT}</p></main></body></html>"
    result = ContentExtractor().extract(html, URL, GOAL)

    assert result.metrics.relevance == 1.0
    assert result.metrics.uniqueness == 1.0
    assert 0.0 < result.metrics.information_density <= 1.0
    assert result.signature == word_signature(result.content)


def test_identical_page_has_zero_uniqueness():
    html = f"<html><body><main><p>{LONG_TEXT}</p></main></body></html>"
    extractor = ContentExtractor()
    first = extractor.extract(html, URL, GOAL)
    second = extractor.extract(html, URL + "/copy", GOAL, [first.signature])

    assert second.metrics.uniqueness == pytest.approx(0.0)


def test_uniqueness_averages_prior_similarity():
    extractor = ContentExtractor()
    html = "<html><body><main><p>alpha bravo charlie delta</p></main></body></html>"
    same = frozenset({"alpha", "bravo", "charlie", "delta"})
    disjoint = frozenset({"zulu", "yankee"})
    result = extractor.extract(html, URL, GOAL, [same, disjoint])

    assert result.metrics.uniqueness == pytest.approx(0.5)


def test_images_collected_when_enabled():
    html = (
        "<html><body><main><p>Diagram below</p>"
        "<img src='/img/diagram.png'><img src='/img/diagram.png'>"
        "<img src='https://cdn.example.com/photo.jpg'></main></body></html>"
    )
    with_images = ContentExtractor(ContentExtractorConfig(include_images=True)).extract(html, URL, GOAL)
    without_images = ContentExtractor().extract(html, URL, GOAL)

    assert with_images.images == [
        "https://docs.example.com/img/diagram.png",
        "https://cdn.example.com/photo.jpg",
    ]
    assert without_images.images == []


@pytest.mark.parametrize(
    "html",
    [
        "",
        "   ",
        "<html><body><script>var only = 'code';</script></body></html>",
    ],
)
def test_empty_content_raises_extraction_error(html):
    with pytest.raises(ExtractionError):
        ContentExtractor().extract(html, URL, GOAL)
