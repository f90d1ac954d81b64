"""Filesystem-backed storage for crawl results and manifests.

Storage owns the on-disk layout. Other modules should use this API instead of
building paths manually.
"""

from __future__ import annotations

import json
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Iterable, Mapping

from .config import ScraperOptions
from .constants import JSON_INDENT
from .stats import StatsCollector
from .types import AuthRequest, CrawlOutput, ErrorRecord, JSONDict, PageRecord


class Storage:
    """Persist crawl outputs under a single `output_dir` root."""

    def __init__(self, output_dir: str | Path) -> None:
        self.output_dir = Path(output_dir)
        self.logs_dir = self.output_dir / "logs"

        self.pages_path = self.output_dir / "pages.jsonl"
        self.errors_path = self.output_dir / "errors.jsonl"
        self.auth_requests_path = self.output_dir / "auth_requests.jsonl"
        self.summary_path = self.output_dir / "summary.json"
        self.crawl_config_path = self.output_dir / "crawl_config.json"
        self.crawl_stats_path = self.output_dir / "crawl_stats.json"

        self._jsonl_lock = threading.Lock()
        self._ensure_layout()

    @property
    def paths(self) -> JSONDict:
        """Return important output paths for logging/CLI status messages."""

        return {
            "output_dir": str(self.output_dir),
            "pages": str(self.pages_path),
            "errors": str(self.errors_path),
            "auth_requests": str(self.auth_requests_path),
            "summary": str(self.summary_path),
            "crawl_config": str(self.crawl_config_path),
            "crawl_stats": str(self.crawl_stats_path),
            "log_dir": str(self.logs_dir),
        }

    def _ensure_layout(self) -> None:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.logs_dir.mkdir(parents=True, exist_ok=True)

    def save_page(self, page: PageRecord) -> None:
        """Append one page record to `pages.jsonl`."""

        self._append_jsonl(self.pages_path, page.to_json())

    def save_pages(self, pages: Iterable[PageRecord]) -> int:
        count = 0
        for page in pages:
            self.save_page(page)
            count += 1
        return count

    def save_error(self, record: ErrorRecord) -> None:
        """Append error record to `errors.jsonl`."""

        self._append_jsonl(self.errors_path, record.to_json())

    def save_auth_request(self, request: AuthRequest) -> None:
        self._append_jsonl(self.auth_requests_path, request.to_json())

    def save_output(self, output: CrawlOutput) -> None:
        """Write pages and the run summary for a finished crawl."""

        self.save_pages(output.pages)
        self._atomic_write_json(
            self.summary_path,
            {
                **output.summary.to_json(),
                "stop_reason": None if output.stop_reason is None else output.stop_reason.value,
            },
        )

    def save_crawl_config(self, config: ScraperOptions | Mapping[str, Any]) -> None:
        """Write crawl options manifest atomically as JSON."""

        payload: Mapping[str, Any]
        if isinstance(config, ScraperOptions):
            payload = config.to_dict()
        else:
            payload = config
        self._atomic_write_json(self.crawl_config_path, dict(payload))

    def save_crawl_stats(self, stats: StatsCollector | Mapping[str, Any]) -> None:
        """Write crawl stats manifest atomically as JSON."""

        payload: Mapping[str, Any]
        if isinstance(stats, StatsCollector):
            payload = stats.to_json()
        else:
            payload = stats
        self._atomic_write_json(self.crawl_stats_path, dict(payload))

    def _append_jsonl(self, path: Path, payload: Mapping[str, Any]) -> None:
        line = json.dumps(payload, ensure_ascii=False, sort_keys=True)
        with self._jsonl_lock:
            with path.open("a", encoding="utf-8") as handle:
                handle.write(line + "\n")

    @staticmethod
    def _atomic_write_json(path: Path, payload: Mapping[str, Any]) -> None:
        content = json.dumps(payload, ensure_ascii=False, indent=JSON_INDENT, sort_keys=True) + "\n"
        tmp_fd, tmp_path = tempfile.mkstemp(
            dir=str(path.parent),
            prefix=path.name + ".",
            suffix=".tmp",
        )
        try:
            with os.fdopen(tmp_fd, "w", encoding="utf-8") as handle:
                handle.write(content)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_path, path)
        except Exception:
            try:
                os.unlink(tmp_path)
            except FileNotFoundError:
                pass
            raise


__all__ = ["Storage"]
