import json
import logging

import pytest

from goalcrawl.crawl import build_config, main, parse_args


@pytest.fixture
def restore_root_logging():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


def test_flags_build_options():
    args = parse_args(
        [
            "--url",
            "https://example.com/shop",
            "--goal",
            "extract product info",
            "--max_pages",
            "4",
            "--prevent_duplicate_urls",
            "--must_include",
            "/products",
            "--exclude",
            "/blog",
            "--exclude",
            "/archive",
        ]
    )
    options = build_config(args)

    assert options.base_url == "https://example.com/shop"
    assert options.max_pages == 4
    assert options.prevent_duplicate_urls is True
    assert options.filters.must_include_patterns == ["/products"]
    assert options.filters.exclude_patterns == ["/blog", "/archive"]


def test_flags_override_config_file(tmp_path):
    config_path = tmp_path / "crawl.json"
    config_path.write_text(
        json.dumps(
            {
                "baseUrl": "https://example.com",
                "scrapingGoal": "docs",
                "maxPages": 9,
                "filters": {"excludePatterns": ["/blog"]},
            }
        ),
        encoding="utf-8",
    )
    args = parse_args(["--config", str(config_path), "--max_pages", "2", "--must_include", "/docs"])
    options = build_config(args)

    assert options.scraping_goal == "docs"
    assert options.max_pages == 2
    assert options.filters.exclude_patterns == ["/blog"]
    assert options.filters.must_include_patterns == ["/docs"]


def test_missing_goal_is_rejected():
    with pytest.raises(ValueError):
        build_config(parse_args(["--url", "https://example.com"]))


def test_main_returns_2_on_bad_config(tmp_path, restore_root_logging):
    assert main(["--output_dir", str(tmp_path), "--url", "https://example.com"]) == 2
    assert (tmp_path / "logs" / "crawl.log").exists()
