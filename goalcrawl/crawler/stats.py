"""Thread-safe crawl statistics aggregation."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timezone
import threading
from typing import Any, Mapping

from .types import EnqueueStatus, FetchResult, JSONDict, utc_now_iso


@dataclass(slots=True)
class CrawlStats:
    """Simple mutable counters used for crawl summary reporting."""

    frontier_enqueued: int = 0
    frontier_skipped_visited: int = 0
    frontier_skipped_depth: int = 0
    frontier_skipped_filtered: int = 0
    frontier_skipped_queued: int = 0

    fetched_ok: int = 0
    fetched_error: int = 0
    extracted_ok: int = 0
    extracted_error: int = 0
    auth_requests: int = 0
    links_discovered: int = 0
    batches: int = 0

    started_at: str = field(default_factory=utc_now_iso)
    finished_at: str | None = None

    def finish(self) -> None:
        self.finished_at = utc_now_iso()

    def to_json(self) -> JSONDict:
        return {
            "frontier_enqueued": self.frontier_enqueued,
            "frontier_skipped_visited": self.frontier_skipped_visited,
            "frontier_skipped_depth": self.frontier_skipped_depth,
            "frontier_skipped_filtered": self.frontier_skipped_filtered,
            "frontier_skipped_queued": self.frontier_skipped_queued,
            "fetched_ok": self.fetched_ok,
            "fetched_error": self.fetched_error,
            "extracted_ok": self.extracted_ok,
            "extracted_error": self.extracted_error,
            "auth_requests": self.auth_requests,
            "links_discovered": self.links_discovered,
            "batches": self.batches,
            "started_at": self.started_at,
            "finished_at": self.finished_at,
        }


_ENQUEUE_FIELDS = {
    EnqueueStatus.ENQUEUED: "frontier_enqueued",
    EnqueueStatus.SKIPPED_VISITED: "frontier_skipped_visited",
    EnqueueStatus.SKIPPED_DEPTH: "frontier_skipped_depth",
    EnqueueStatus.SKIPPED_FILTERED: "frontier_skipped_filtered",
    EnqueueStatus.SKIPPED_QUEUED: "frontier_skipped_queued",
}


class StatsCollector:
    """Collect and summarize crawler runtime statistics.

    The collector is thread-safe so a caller may read it while a crawl runs.
    """

    def __init__(self, base: CrawlStats | None = None) -> None:
        self._lock = threading.Lock()
        self._core = base or CrawlStats()

        self._frontier_snapshot: dict[str, int] = {}

        self._fetch_backend_counts: dict[str, dict[str, int]] = defaultdict(
            lambda: {"ok": 0, "error": 0}
        )
        self._fetch_status_code_counts: dict[str, int] = defaultdict(int)
        self._fetch_error_type_counts: dict[str, int] = defaultdict(int)
        self._fetch_elapsed_ms_total = 0
        self._fetch_elapsed_samples = 0
        self._fetch_chars_total = 0

        self._extract_error_type_counts: dict[str, int] = defaultdict(int)
        self._extract_chars_total = 0

        self._custom_counters: dict[str, int] = defaultdict(int)

    def record_enqueue(self, status: EnqueueStatus) -> None:
        """Record one frontier admission outcome."""

        with self._lock:
            name = _ENQUEUE_FIELDS[status]
            setattr(self._core, name, getattr(self._core, name) + 1)

    def record_frontier_snapshot(self, snapshot: Mapping[str, int]) -> None:
        """Attach latest frontier snapshot for diagnostics."""

        with self._lock:
            self._frontier_snapshot = dict(snapshot)

    def record_fetch(self, result: FetchResult) -> None:
        """Record one fetch result."""

        with self._lock:
            state = "ok" if result.ok else "error"
            self._fetch_backend_counts[result.backend.value][state] += 1

            if result.ok:
                self._core.fetched_ok += 1
            else:
                self._core.fetched_error += 1

            if result.status_code is not None:
                self._fetch_status_code_counts[str(result.status_code)] += 1

            if result.error:
                err_type = result.error.split(":", maxsplit=1)[0].strip() or "Unknown"
                self._fetch_error_type_counts[err_type] += 1

            if result.elapsed_ms is not None:
                self._fetch_elapsed_ms_total += int(result.elapsed_ms)
                self._fetch_elapsed_samples += 1

            self._fetch_chars_total += result.content_length

    def record_extraction(self, *, ok: bool, chars: int = 0, error_type: str | None = None) -> None:
        """Record one content extraction outcome."""

        with self._lock:
            if ok:
                self._core.extracted_ok += 1
                self._extract_chars_total += chars
            else:
                self._core.extracted_error += 1
                self._extract_error_type_counts[error_type or "Unknown"] += 1

    def record_auth_request(self) -> None:
        with self._lock:
            self._core.auth_requests += 1

    def record_links(self, count: int) -> None:
        if count <= 0:
            return
        with self._lock:
            self._core.links_discovered += count

    def record_batch(self) -> None:
        with self._lock:
            self._core.batches += 1

    def increment(self, name: str, value: int = 1) -> None:
        """Increment a custom counter for ad-hoc instrumentation."""

        if not name or value == 0:
            return
        with self._lock:
            self._custom_counters[name] += value

    def finish(self) -> None:
        """Mark crawl as finished."""

        with self._lock:
            self._core.finish()

    def to_json(self) -> dict[str, Any]:
        """Return a JSON-serializable summary payload."""

        with self._lock:
            core = self._core.to_json()

            start = _parse_iso_utc(self._core.started_at)
            end = (
                _parse_iso_utc(self._core.finished_at)
                if self._core.finished_at
                else datetime.now(timezone.utc)
            )
            duration_seconds = max(0.0, (end - start).total_seconds())

            fetch_elapsed_avg = (
                self._fetch_elapsed_ms_total / self._fetch_elapsed_samples
                if self._fetch_elapsed_samples > 0
                else 0.0
            )
            fetched_total = self._core.fetched_ok + self._core.fetched_error

            return {
                **core,
                "duration_seconds": duration_seconds,
                "throughput": {
                    "fetched_per_second": (
                        fetched_total / duration_seconds if duration_seconds > 0 else 0.0
                    ),
                    "extracted_per_second": (
                        self._core.extracted_ok / duration_seconds if duration_seconds > 0 else 0.0
                    ),
                },
                "frontier": {
                    "snapshot": dict(self._frontier_snapshot),
                },
                "fetch": {
                    "by_backend": {
                        key: dict(bucket) for key, bucket in self._fetch_backend_counts.items()
                    },
                    "status_code_counts": dict(self._fetch_status_code_counts),
                    "error_type_counts": dict(self._fetch_error_type_counts),
                    "elapsed_ms_total": self._fetch_elapsed_ms_total,
                    "elapsed_ms_samples": self._fetch_elapsed_samples,
                    "elapsed_ms_avg": fetch_elapsed_avg,
                    "chars_total": self._fetch_chars_total,
                },
                "extract": {
                    "error_type_counts": dict(self._extract_error_type_counts),
                    "content_chars_total": self._extract_chars_total,
                },
                "custom_counters": dict(self._custom_counters),
            }


def _parse_iso_utc(value: str | None) -> datetime:
    if not value:
        return datetime.now(timezone.utc)
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return datetime.now(timezone.utc)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


__all__ = ["CrawlStats", "StatsCollector"]
