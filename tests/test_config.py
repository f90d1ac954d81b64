import json

import pytest
import yaml

from goalcrawl.crawler import ConfigurationError, CrawlFilters, ScraperOptions, load_config, save_config


def test_defaults_and_url_normalization():
    options = ScraperOptions(base_url="https://Example.com/Docs/", scraping_goal="  find docs ")

    assert options.base_url == "https://example.com/Docs"
    assert options.scraping_goal == "find docs"
    assert options.max_pages == 20
    assert options.max_depth == 3
    assert options.batch_size == 5
    assert options.prevent_duplicate_urls is False
    assert options.filters == CrawlFilters()


@pytest.mark.parametrize(
    "overrides",
    [
        {"base_url": ""},
        {"scraping_goal": "   "},
        {"base_url": "not a url"},
        {"max_pages": 0},
        {"max_depth": -1},
        {"batch_size": 0},
        {"timeout_seconds": 0},
        {"auth_timeout_seconds": 0},
    ],
)
def test_invalid_options_raise_configuration_error(overrides):
    payload = {"base_url": "https://example.com", "scraping_goal": "goal"}
    payload.update(overrides)
    with pytest.raises(ConfigurationError):
        ScraperOptions(**payload)


def test_configuration_error_is_a_value_error():
    with pytest.raises(ValueError):
        ScraperOptions(base_url="", scraping_goal="goal")


def test_from_dict_accepts_camel_case_keys():
    options = ScraperOptions.from_dict(
        {
            "baseUrl": "https://example.com",
            "scrapingGoal": "extract product info",
            "maxPages": 3,
            "maxDepth": 1,
            "executeJavaScript": True,
            "preventDuplicateUrls": True,
            "filters": {"mustIncludePatterns": ["/products"], "excludePatterns": "/blog"},
        }
    )

    assert options.max_pages == 3
    assert options.max_depth == 1
    assert options.execute_javascript is True
    assert options.prevent_duplicate_urls is True
    assert options.filters.must_include_patterns == ["/products"]
    assert options.filters.exclude_patterns == ["/blog"]


def test_from_dict_rejects_bad_types():
    with pytest.raises(ConfigurationError):
        ScraperOptions.from_dict({"base_url": "https://example.com", "scraping_goal": "g", "max_pages": "many"})
    with pytest.raises(ConfigurationError):
        ScraperOptions.from_dict({"base_url": "https://example.com", "scraping_goal": "g", "include_images": "yes"})
    with pytest.raises(ConfigurationError):
        ScraperOptions.from_dict({"scraping_goal": "g"})


def test_from_dict_passes_callbacks_through():
    seen = []
    options = ScraperOptions.from_dict(
        {"base_url": "https://example.com", "scraping_goal": "g"},
        on_page_processed=seen.append,
    )

    assert options.on_page_processed is not None
    assert "on_page_processed" not in options.to_dict()


def test_filters_allow():
    filters = CrawlFilters(must_include_patterns=["/products"], exclude_patterns=["/archive"])

    assert filters.allows("https://e.com/products/1")
    assert filters.allows("https://e.com/x", "see our /products range")
    assert not filters.allows("https://e.com/blog/1")
    assert not filters.allows("https://e.com/products/archive/1")
    assert CrawlFilters().allows("https://e.com/anything")


@pytest.mark.parametrize("suffix", [".json", ".yaml"])
def test_save_and_load_round_trip(tmp_path, suffix):
    options = ScraperOptions(
        base_url="https://example.com",
        scraping_goal="find docs",
        max_pages=7,
        filters=CrawlFilters(exclude_patterns=["/blog"]),
    )
    path = tmp_path / f"crawl{suffix}"
    save_config(options, path)

    assert load_config(path) == options


def test_load_yaml_written_by_hand(tmp_path):
    path = tmp_path / "crawl.yml"
    path.write_text(
        yaml.safe_dump({"baseUrl": "https://example.com", "scrapingGoal": "docs", "batchSize": 2}),
        encoding="utf-8",
    )

    assert load_config(path).batch_size == 2


def test_load_rejects_bad_files(tmp_path):
    bad_json = tmp_path / "crawl.json"
    bad_json.write_text("{not json", encoding="utf-8")
    with pytest.raises(ConfigurationError):
        load_config(bad_json)

    not_mapping = tmp_path / "list.json"
    not_mapping.write_text(json.dumps([1, 2]), encoding="utf-8")
    with pytest.raises(ConfigurationError):
        load_config(not_mapping)

    with pytest.raises(ConfigurationError):
        load_config(tmp_path / "crawl.toml")
