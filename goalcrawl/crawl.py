"""CLI entrypoint for goal-directed crawls."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
import sys
from typing import Any

from tqdm import tqdm

if __package__ in {None, ""}:
    repo_root = Path(__file__).resolve().parents[1]
    if str(repo_root) not in sys.path:
        sys.path.insert(0, str(repo_root))

from goalcrawl.crawler import CrawlOrchestrator, ScraperOptions, Storage
from goalcrawl.crawler.config import load_config_payload, normalize_keys
from goalcrawl.crawler.events import PageEvent


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Crawl a site from a seed URL, prioritizing pages relevant to a goal.",
    )

    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to JSON/YAML crawl config.",
    )
    parser.add_argument(
        "--output_dir",
        type=Path,
        default=Path("crawled_output"),
        help="Output directory for pages, errors, summary and logs.",
    )

    parser.add_argument("--url", type=str, default=None, help="Seed URL. Overrides config.")
    parser.add_argument("--goal", type=str, default=None, help="Scraping goal. Overrides config.")

    parser.add_argument("--max_pages", type=int, default=None)
    parser.add_argument("--max_depth", type=int, default=None)
    parser.add_argument("--batch_size", type=int, default=None)
    parser.add_argument("--timeout_seconds", type=float, default=None)

    parser.add_argument(
        "--execute_javascript",
        action="store_true",
        help="Render every page in a headless browser.",
    )
    parser.add_argument(
        "--include_images",
        action="store_true",
        help="Collect image URLs from extracted content.",
    )
    parser.add_argument(
        "--prevent_duplicate_urls",
        action="store_true",
        help="Do not queue a URL that is already waiting in the frontier.",
    )
    parser.add_argument(
        "--must_include",
        action="append",
        default=[],
        help="Only follow links whose URL or context contains this text (repeatable).",
    )
    parser.add_argument(
        "--exclude",
        action="append",
        default=[],
        help="Never follow links whose URL contains this text (repeatable).",
    )

    parser.add_argument(
        "--print_events",
        action="store_true",
        help="Print every lifecycle event as one JSON line.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging.",
    )

    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> ScraperOptions:
    payload: dict[str, Any] = {}
    if args.config is not None:
        payload = normalize_keys(load_config_payload(args.config))

    if args.url is not None:
        payload["base_url"] = args.url
    if args.goal is not None:
        payload["scraping_goal"] = args.goal

    if not payload.get("base_url"):
        raise ValueError("No seed URL provided. Use --config or --url.")
    if not payload.get("scraping_goal"):
        raise ValueError("No scraping goal provided. Use --config or --goal.")

    if args.max_pages is not None:
        payload["max_pages"] = args.max_pages
    if args.max_depth is not None:
        payload["max_depth"] = args.max_depth
    if args.batch_size is not None:
        payload["batch_size"] = args.batch_size
    if args.timeout_seconds is not None:
        payload["timeout_seconds"] = args.timeout_seconds

    if args.execute_javascript:
        payload["execute_javascript"] = True
    if args.include_images:
        payload["include_images"] = True
    if args.prevent_duplicate_urls:
        payload["prevent_duplicate_urls"] = True

    if args.must_include or args.exclude:
        filters = normalize_keys(dict(payload.get("filters") or {}))
        if args.must_include:
            filters["must_include_patterns"] = list(args.must_include)
        if args.exclude:
            filters["exclude_patterns"] = list(args.exclude)
        payload["filters"] = filters

    return ScraperOptions.from_dict(payload)


def setup_logging(output_dir: Path, verbose: bool) -> None:
    log_level = logging.DEBUG if verbose else logging.INFO

    log_dir = output_dir / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = log_dir / "crawl.log"

    formatter = logging.Formatter(
        "%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(log_level)

    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setLevel(log_level)
    stream_handler.setFormatter(formatter)
    root.addHandler(stream_handler)

    file_handler = logging.FileHandler(log_path, encoding="utf-8")
    file_handler.setLevel(log_level)
    file_handler.setFormatter(formatter)
    root.addHandler(file_handler)

    # Driver and connection-pool chatter drowns out crawl progress.
    logging.getLogger("selenium").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def run_crawl(
    config: ScraperOptions,
    storage: Storage,
    *,
    print_events: bool,
) -> dict[str, Any]:
    orchestrator = CrawlOrchestrator(config)
    storage.save_crawl_config(config)

    progress = tqdm(total=config.max_pages, desc="Crawling", unit="page")
    try:
        for event in orchestrator.stream():
            if isinstance(event, PageEvent):
                progress.update(1)
            if print_events:
                tqdm.write(json.dumps(event.to_json(), ensure_ascii=False, sort_keys=True))
    except KeyboardInterrupt:
        orchestrator.cancel()
        raise
    finally:
        progress.close()
        storage.save_crawl_stats(orchestrator.stats)
        orchestrator.close()

    output = orchestrator.output
    storage.save_output(output)
    for record in orchestrator.state.errors:
        storage.save_error(record)
    for request in orchestrator.state.auth_requests:
        storage.save_auth_request(request)

    return {
        "paths": storage.paths,
        "summary": output.summary.to_json(),
        "stop_reason": None if output.stop_reason is None else output.stop_reason.value,
        "errors": len(orchestrator.state.errors),
        "auth_requests": len(orchestrator.state.auth_requests),
    }


def print_summary(result: dict[str, Any]) -> None:
    paths = result.get("paths", {})
    summary = result.get("summary", {})

    print("\n=== Crawl Complete ===")
    print(f"stop_reason: {result.get('stop_reason')}")
    print(f"output_dir: {paths.get('output_dir')}")
    print(f"pages: {paths.get('pages')}")
    print(f"errors: {paths.get('errors')}")
    print(f"summary: {paths.get('summary')}")
    print(f"stats: {paths.get('crawl_stats')}")

    print("\n--- Summary ---")
    for key in [
        "pages_scraped",
        "total_content_size",
        "execution_time",
        "goal_completion",
        "coverage_score",
    ]:
        if key in summary:
            print(f"{key}: {summary[key]}")
    print(f"errors: {result.get('errors')}")
    print(f"auth_requests: {result.get('auth_requests')}")


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    setup_logging(args.output_dir, verbose=args.verbose)

    try:
        config = build_config(args)
    except Exception as exc:
        logging.error("Failed to build config: %s", exc)
        return 2

    logging.info(
        "Starting crawl: url=%s, goal=%r, output_dir=%s, max_pages=%d, max_depth=%d",
        config.base_url,
        config.scraping_goal,
        args.output_dir,
        config.max_pages,
        config.max_depth,
    )

    try:
        storage = Storage(args.output_dir)
        result = run_crawl(config, storage, print_events=args.print_events)
    except KeyboardInterrupt:
        logging.error("Interrupted by user")
        return 130
    except Exception:
        logging.exception("Crawl execution failed")
        return 1

    print_summary(result)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
