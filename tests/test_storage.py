import json

from goalcrawl.crawler import (
    CrawlOutput,
    CrawlStage,
    CrawlSummary,
    ErrorRecord,
    PageMetrics,
    PageRecord,
    StatsCollector,
    StopReason,
    Storage,
)


def make_page(url: str) -> PageRecord:
    return PageRecord(
        url=url,
        title="Title",
        content="Some content",
        content_type="text/html",
        extraction_time="2026-01-01T00:00:00+00:00",
        metrics=PageMetrics(information_density=0.5, relevance=0.5, uniqueness=1.0),
    )


def read_jsonl(path):
    return [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]


def test_layout_created(tmp_path):
    storage = Storage(tmp_path / "out")

    assert storage.output_dir.is_dir()
    assert storage.logs_dir.is_dir()
    assert storage.paths["pages"].endswith("pages.jsonl")


def test_save_output_writes_pages_and_summary(tmp_path):
    storage = Storage(tmp_path)
    output = CrawlOutput(
        pages=[make_page("https://e.com/a"), make_page("https://e.com/b")],
        summary=CrawlSummary(pages_scraped=2, total_content_size=24, execution_time=1.5),
        stop_reason=StopReason.PAGE_LIMIT,
    )
    storage.save_output(output)

    pages = read_jsonl(storage.pages_path)
    assert [page["url"] for page in pages] == ["https://e.com/a", "https://e.com/b"]
    assert pages[0]["metrics"]["uniqueness"] == 1.0
    assert pages[0]["entities"] == []

    summary = json.loads(storage.summary_path.read_text(encoding="utf-8"))
    assert summary["pages_scraped"] == 2
    assert summary["stop_reason"] == "page_limit"


def test_errors_config_and_stats(tmp_path, make_options):
    storage = Storage(tmp_path)
    storage.save_error(
        ErrorRecord.from_exception(stage=CrawlStage.EXTRACT, url="https://e.com/a", exc=ValueError("bad"))
    )
    storage.save_crawl_config(make_options())
    stats = StatsCollector()
    stats.record_links(3)
    storage.save_crawl_stats(stats)

    [error] = read_jsonl(storage.errors_path)
    assert error["stage"] == "extract"
    assert error["message"] == "bad"

    config = json.loads(storage.crawl_config_path.read_text(encoding="utf-8"))
    assert config["base_url"] == "https://docs.example.com/"

    saved_stats = json.loads(storage.crawl_stats_path.read_text(encoding="utf-8"))
    assert saved_stats["links_discovered"] == 3
    assert list(tmp_path.glob("*.tmp")) == []
