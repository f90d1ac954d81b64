"""Batch-bounded, goal-directed crawl orchestration.

One URL at a time is driven through an explicit state machine:

    SELECT_NEXT -> FETCH -> DETECT_AUTH -> (AUTH_HANDLE | EXTRACT)
        -> DISCOVER_LINKS -> UPDATE_FRONTIER -> EVALUATE -> (SELECT_NEXT | DONE)

Units run in batches; each batch ends with a `workflow-status` event so an
outer driver can pace or persist work between batches.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from dataclasses import dataclass, field
from enum import Enum
import logging
import threading
import time
from typing import Callable, Generator, Iterable, Iterator

from .auth import AuthDetector
from .config import ScraperOptions
from .constants import SEED_EXPECTED_VALUE
from .errors import CrawlerError, ExtractionError, FetchError
from .events import (
    AnalyzeUrlEvent,
    AuthEvent,
    BatchStats,
    DecideNextActionEvent,
    DiscoverLinksEvent,
    EndEvent,
    ErrorEvent,
    EvaluateProgressEvent,
    ExtractContentEvent,
    FetchCompleteEvent,
    FetchStartEvent,
    PageEvent,
    ScraperStreamEvent,
    StartEvent,
    WorkflowStatusEvent,
)
from .fetcher import Fetcher
from .frontier import PriorityFrontier
from .parsers import ContentExtractor, ContentExtractorConfig, LinkPrioritizer
from .progress import CONTINUE, ProgressEvaluator, StopDecision
from .state import CrawlState
from .stats import StatsCollector
from .types import (
    AuthDetection,
    CrawlOutput,
    CrawlStage,
    CrawlSummary,
    EnqueueStatus,
    ErrorRecord,
    FetchOptions,
    FetchResult,
    FrontierItem,
    LinkCandidate,
    PageFetcher,
    PageRecord,
    StopReason,
    utc_now_iso,
)
from .url import hostname_of, normalize_url
from .url_analyzer import UrlAnalyzer


LOGGER = logging.getLogger(__name__)


class UnitState(str, Enum):
    """States one URL passes through while it is processed."""

    SELECT_NEXT = "select_next"
    FETCH = "fetch"
    DETECT_AUTH = "detect_auth"
    AUTH_HANDLE = "auth_handle"
    EXTRACT = "extract"
    DISCOVER_LINKS = "discover_links"
    UPDATE_FRONTIER = "update_frontier"
    EVALUATE = "evaluate"
    DONE = "done"


MAX_AUTH_ATTEMPTS = 1


@dataclass(slots=True)
class _Unit:
    """Working data for the URL currently being processed."""

    item: FrontierItem
    state: UnitState = UnitState.FETCH
    fetch_attempts: int = 0
    auth_attempts: int = 0
    fetch_result: FetchResult | None = None
    detection: AuthDetection | None = None
    page: PageRecord | None = None
    links: list[LinkCandidate] = field(default_factory=list)

    @property
    def url(self) -> str:
        return self.item.url

    @property
    def html(self) -> str:
        if self.fetch_result is None or self.fetch_result.html is None:
            return ""
        return self.fetch_result.html

    @property
    def base_url(self) -> str:
        if self.fetch_result is None:
            return self.item.url
        return normalize_url(self.fetch_result.target_url) or self.item.url


UnitHandler = Callable[[_Unit], Iterable[ScraperStreamEvent]]


class CrawlOrchestrator:
    """Owns the frontier and crawl state and drives units to completion.

    Use `run()` for a blocking crawl, `stream()` to pull events one at a time,
    or `process_batch()` from an outer driver loop. `cancel()` takes effect at
    the next unit boundary. A fetcher the orchestrator built itself is closed
    when `stream()` ends or is abandoned, or on `close()`.
    """

    def __init__(
        self,
        options: ScraperOptions,
        *,
        fetcher: PageFetcher | None = None,
        url_analyzer: UrlAnalyzer | None = None,
        extractor: ContentExtractor | None = None,
        link_prioritizer: LinkPrioritizer | None = None,
        auth_detector: AuthDetector | None = None,
        evaluator: ProgressEvaluator | None = None,
        stats: StatsCollector | None = None,
    ) -> None:
        self.options = options

        self.fetcher = fetcher or Fetcher(options)
        self.url_analyzer = url_analyzer or UrlAnalyzer()
        self.extractor = extractor or ContentExtractor(
            ContentExtractorConfig(include_images=options.include_images)
        )
        self.link_prioritizer = link_prioritizer or LinkPrioritizer()
        self.auth_detector = auth_detector or AuthDetector(auth_portal_base=options.auth_portal_base)
        self.evaluator = evaluator or ProgressEvaluator()
        self.stats = stats or StatsCollector()

        self._owns_fetcher = fetcher is None

        self.state = CrawlState(options.scraping_goal, max_pages=options.max_pages)
        self.frontier: PriorityFrontier[FrontierItem] = PriorityFrontier()

        self._cancel_event = threading.Event()
        self._started = False
        self._stopped = False
        self._ended = False
        self._stop_reason: StopReason | None = None
        self._started_at: float | None = None
        self._total_processed = 0
        self._output: CrawlOutput | None = None
        self._closed = False

        self._handlers: dict[UnitState, UnitHandler] = {
            UnitState.FETCH: self._handle_fetch,
            UnitState.DETECT_AUTH: self._handle_detect_auth,
            UnitState.AUTH_HANDLE: self._handle_auth,
            UnitState.EXTRACT: self._handle_extract,
            UnitState.DISCOVER_LINKS: self._handle_discover_links,
            UnitState.UPDATE_FRONTIER: self._handle_update_frontier,
            UnitState.EVALUATE: self._handle_evaluate,
        }

    # Public API

    def run(self) -> CrawlOutput:
        """Crawl to completion and return the final output."""

        for _ in self.stream():
            pass
        return self.output

    def stream(self) -> Iterator[ScraperStreamEvent]:
        """Yield lifecycle events; the crawl advances only as events are pulled."""

        return self._forward(self._crawl_events())

    def process_batch(self, batch_size: int | None = None) -> Iterator[ScraperStreamEvent]:
        """Run at most `batch_size` units, then yield one batch summary event.

        The first call also emits `start`; the call that decides to stop also
        emits `end`. Check `finished` to know when to stop calling.
        """

        size = batch_size or self.options.batch_size
        return self._forward(self._batch_events(size))

    def cancel(self) -> None:
        """Ask the crawl to stop before the next unit starts."""

        LOGGER.info("Cancellation requested")
        self._cancel_event.set()

    def close(self) -> None:
        """Release the fetcher this orchestrator created. Safe to call more than once."""

        if self._closed:
            return
        self._closed = True
        if not self._owns_fetcher:
            return
        close = getattr(self.fetcher, "close", None)
        if callable(close):
            close()

    def __enter__(self) -> "CrawlOrchestrator":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    @property
    def finished(self) -> bool:
        return self._ended

    @property
    def stop_reason(self) -> StopReason | None:
        return self._stop_reason

    @property
    def output(self) -> CrawlOutput:
        if self._output is None:
            return CrawlOutput.empty(stop_reason=self._stop_reason)
        return self._output

    # Event plumbing

    def _forward(self, events: Generator[ScraperStreamEvent, None, None]) -> Iterator[ScraperStreamEvent]:
        try:
            for event in events:
                self._notify_event(event)
                yield event
        finally:
            events.close()

    def _notify_event(self, event: ScraperStreamEvent) -> None:
        callback = self.options.on_event
        if callback is None:
            return
        try:
            callback(event)
        except Exception:
            LOGGER.exception("on_event callback failed for %s event url=%s", event.kind, event.url)

    def _crawl_events(self) -> Iterator[ScraperStreamEvent]:
        try:
            while not self._ended:
                yield from self._batch_events(self.options.batch_size)
        except Exception as exc:
            LOGGER.exception("Crawl failed outside of a unit")
            self._stop_reason = StopReason.FAILED
            self._stopped = True
            self._ended = True
            self.state.record_error(
                ErrorRecord.from_exception(stage=CrawlStage.UNIT, url=self.options.base_url, exc=exc)
            )
            self.stats.finish()
            self._output = self._partial_output()
            yield ErrorEvent(
                url=self.options.base_url,
                error=str(exc),
                stage=None,
                error_type=exc.__class__.__name__,
            )
            yield EndEvent(url=self.options.base_url, output=self._output)
        finally:
            self.close()

    def _batch_events(self, batch_size: int) -> Iterator[ScraperStreamEvent]:
        if self._ended:
            return
        if not self._started:
            yield from self._start()

        batch_started = time.perf_counter()
        processed = 0

        while processed < batch_size and not self._stopped:
            item, decision = self._select_next()
            if item is None:
                yield from self._stop(decision)
                break

            try:
                yield from self._run_unit(item)
            except Exception as exc:
                LOGGER.exception("Unit failed url=%s", item.url)
                yield from self._record_unit_error(CrawlStage.UNIT, item.url, exc)

            processed += 1
            self._total_processed += 1

        self.stats.record_batch()
        self.stats.record_frontier_snapshot(self.frontier.snapshot())
        batch_duration_ms = int((time.perf_counter() - batch_started) * 1000)
        page_count = self.state.page_count
        queue_size = len(self.frontier)
        yield WorkflowStatusEvent(
            url=self.options.base_url,
            step="batch-complete",
            progress=min(1.0, page_count / self.options.max_pages),
            message=(
                f"Completed batch of {processed} URLs in {batch_duration_ms}ms. "
                f"Queue: {queue_size}, Extracted: {page_count}"
            ),
            batch_stats=BatchStats(
                processed_in_batch=processed,
                total_processed=self._total_processed,
                queue_remaining=queue_size,
                extracted_total=page_count,
                batch_duration_ms=batch_duration_ms,
                is_complete=self._stopped,
            ),
        )

        if self._stopped:
            yield from self._finish()

    def _start(self) -> Iterator[ScraperStreamEvent]:
        self._started = True
        self._started_at = time.perf_counter()

        seed = FrontierItem(
            url=self.options.base_url,
            depth=0,
            expected_value=SEED_EXPECTED_VALUE,
        )
        self.frontier.push(seed, seed.expected_value)
        self.state.mark_queued(seed.url)
        self.stats.record_enqueue(EnqueueStatus.ENQUEUED)

        LOGGER.info(
            "Crawl started url=%s goal=%r max_pages=%s max_depth=%s batch_size=%s",
            self.options.base_url,
            self.options.scraping_goal,
            self.options.max_pages,
            self.options.max_depth,
            self.options.batch_size,
        )
        yield StartEvent(url=self.options.base_url, goal=self.options.scraping_goal)

    def _stop(self, decision: StopDecision) -> Iterator[ScraperStreamEvent]:
        self._stopped = True
        self._stop_reason = decision.reason
        reason = decision.reason.value if decision.reason else ""
        LOGGER.info(
            "Crawl stopping reason=%s pages=%s visited=%s queue=%s",
            reason,
            self.state.page_count,
            self.state.visited_count,
            len(self.frontier),
        )
        yield DecideNextActionEvent(url=self.options.base_url, decision="stop", reason=reason)

    def _finish(self) -> Iterator[ScraperStreamEvent]:
        self._ended = True
        self.stats.finish()
        self._output = self._build_output()
        self.close()
        LOGGER.info(
            "Crawl finished pages=%s errors=%s elapsed=%.2fs",
            self._output.summary.pages_scraped,
            len(self.state.errors),
            self._output.summary.execution_time,
        )
        yield EndEvent(url=self.options.base_url, output=self._output)

    def _elapsed(self) -> float:
        if self._started_at is None:
            return 0.0
        return time.perf_counter() - self._started_at

    def _partial_output(self) -> CrawlOutput:
        if self.state.page_count == 0:
            return CrawlOutput.empty(stop_reason=StopReason.FAILED)
        try:
            return self._build_output()
        except Exception:
            LOGGER.exception("Scoring failed; returning %s pages unscored", self.state.page_count)
            summary = CrawlSummary(
                pages_scraped=self.state.page_count,
                total_content_size=self.state.total_content_size(),
                execution_time=self._elapsed(),
            )
            return CrawlOutput(pages=self.state.pages, summary=summary, stop_reason=self._stop_reason)

    def _build_output(self) -> CrawlOutput:
        metrics = self.evaluator.evaluate(self.state.pages, self.options.max_pages)
        self.state.metrics = metrics
        elapsed = self._elapsed()
        summary = CrawlSummary(
            pages_scraped=self.state.page_count,
            total_content_size=self.state.total_content_size(),
            execution_time=elapsed,
            goal_completion=metrics.completeness,
            coverage_score=metrics.coverage_score,
        )
        return CrawlOutput(pages=self.state.pages, summary=summary, stop_reason=self._stop_reason)

    # SELECT_NEXT

    def _select_next(self) -> tuple[FrontierItem | None, StopDecision]:
        if self._cancel_event.is_set():
            return None, StopDecision(True, StopReason.CANCELLED)

        decision = self.evaluator.decide(
            self.state.metrics,
            pages_extracted=self.state.page_count,
            visited_count=self.state.visited_count,
            frontier_size=len(self.frontier),
            max_pages=self.options.max_pages,
        )
        if decision.stop:
            return None, decision

        while True:
            item = self.frontier.pop()
            if item is None:
                return None, StopDecision(True, StopReason.NO_MORE_CANDIDATES)
            if self.state.is_visited(item.url):
                self.stats.increment("frontier_popped_visited")
                continue
            return item, CONTINUE

    # Unit execution

    def _run_unit(self, item: FrontierItem) -> Iterator[ScraperStreamEvent]:
        analysis = self.url_analyzer.analyze(item.url, self.options.scraping_goal, self.state.visited)
        yield AnalyzeUrlEvent(
            url=item.url,
            depth=item.depth,
            expected_value=analysis.expected_value,
            relevance_score=analysis.relevance_score,
        )

        unit = _Unit(item=item)
        while unit.state != UnitState.DONE:
            handler = self._handlers.get(unit.state)
            if handler is None:
                raise CrawlerError(f"No handler for unit state {unit.state.value}")
            yield from handler(unit)

    def _handle_fetch(self, unit: _Unit) -> Iterator[ScraperStreamEvent]:
        # Visited from the moment the first fetch begins.
        self.state.mark_visited(unit.url)
        unit.fetch_attempts += 1

        yield FetchStartEvent(
            url=unit.url,
            use_javascript=self.options.execute_javascript,
            attempt=unit.fetch_attempts,
        )
        result = self.fetcher.fetch(
            unit.url,
            FetchOptions(
                execute_javascript=self.options.execute_javascript,
                timeout_seconds=self.options.timeout_seconds,
            ),
        )
        self.stats.record_fetch(result)
        unit.fetch_result = result

        yield FetchCompleteEvent(
            url=unit.url,
            status_code=result.status_code,
            content_length=result.content_length,
            backend=result.backend.value,
        )

        if result.error is not None or result.status_code is None:
            exc = FetchError(
                unit.url,
                result.error or "Unknown fetch failure",
                status_code=result.status_code,
            )
            yield from self._record_unit_error(CrawlStage.FETCH, unit.url, exc)
            unit.state = UnitState.DONE
            return

        final_url = normalize_url(result.target_url)
        if final_url and final_url != unit.url:
            self.state.mark_visited(final_url)

        unit.state = UnitState.DETECT_AUTH

    def _handle_detect_auth(self, unit: _Unit) -> Iterator[ScraperStreamEvent]:
        result = unit.fetch_result
        assert result is not None

        detection = self.auth_detector.detect(
            result.html,
            result.target_url,
            result.status_code,
            result.headers,
        )
        if detection.requires_auth:
            unit.detection = detection
            if unit.auth_attempts < MAX_AUTH_ATTEMPTS:
                unit.state = UnitState.AUTH_HANDLE
                return
            exc = FetchError(
                unit.url,
                "Authentication still required after handling",
                status_code=result.status_code,
            )
            yield from self._record_unit_error(CrawlStage.AUTH, unit.url, exc)
            unit.state = UnitState.DONE
            return

        if not result.ok:
            exc = FetchError(
                unit.url,
                f"HTTP status {result.status_code}",
                status_code=result.status_code,
            )
            yield from self._record_unit_error(CrawlStage.FETCH, unit.url, exc)
            unit.state = UnitState.DONE
            return

        unit.state = UnitState.EXTRACT

    def _handle_auth(self, unit: _Unit) -> Iterator[ScraperStreamEvent]:
        assert unit.detection is not None
        unit.auth_attempts += 1

        request = self.auth_detector.create_auth_request(unit.url, unit.detection)
        self.state.record_auth_request(request)
        self.stats.record_auth_request()
        yield AuthEvent(url=unit.url, request=request)

        if self._call_auth_handler(request):
            LOGGER.info("Auth handled, retrying fetch url=%s", unit.url)
            unit.state = UnitState.FETCH
            return

        LOGGER.info("Auth not handled, skipping url=%s", unit.url)
        unit.state = UnitState.DONE

    def _call_auth_handler(self, request) -> bool:
        handler = self.options.on_auth_required
        if handler is None:
            return False

        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="auth-handler")
        try:
            future = executor.submit(handler, request)
            return bool(future.result(timeout=self.options.auth_timeout_seconds))
        except FutureTimeoutError:
            LOGGER.warning(
                "Auth handler timed out after %.1fs url=%s",
                self.options.auth_timeout_seconds,
                request.url,
            )
            return False
        except Exception:
            LOGGER.exception("Auth handler failed url=%s", request.url)
            return False
        finally:
            executor.shutdown(wait=False)

    def _handle_extract(self, unit: _Unit) -> Iterator[ScraperStreamEvent]:
        yield ExtractContentEvent(url=unit.url, content_type=self.extractor.config.content_type)

        try:
            extracted = self.extractor.extract(
                unit.html,
                unit.base_url,
                self.options.scraping_goal,
                self.state.prior_signatures(),
            )
        except ExtractionError as exc:
            self.stats.record_extraction(ok=False, error_type=exc.__class__.__name__)
            yield from self._record_unit_error(CrawlStage.EXTRACT, unit.url, exc)
            unit.state = UnitState.DONE
            return

        self.stats.record_extraction(ok=True, chars=len(extracted.content))
        page = PageRecord(
            url=unit.url,
            title=extracted.title,
            content=extracted.content,
            content_type=extracted.content_type,
            extraction_time=utc_now_iso(),
            metrics=extracted.metrics,
            depth=unit.item.depth,
            images=list(extracted.images),
        )
        self.state.add_page(page, extracted.signature)
        unit.page = page
        self._notify_page(page)

        yield PageEvent(url=unit.url, page=page)
        unit.state = UnitState.DISCOVER_LINKS

    def _notify_page(self, page: PageRecord) -> None:
        callback = self.options.on_page_processed
        if callback is None:
            return
        try:
            callback(page)
        except Exception:
            LOGGER.exception("on_page_processed callback failed url=%s", page.url)

    def _handle_discover_links(self, unit: _Unit) -> Iterable[ScraperStreamEvent]:
        assert unit.page is not None

        seed_host = hostname_of(self.options.base_url)
        page_host = hostname_of(unit.base_url)
        if page_host != seed_host:
            LOGGER.warning(
                "Redirected off-site url=%s final_host=%s; keeping links on %s only",
                unit.url,
                page_host,
                seed_host,
            )

        links = self.link_prioritizer.identify(
            unit.html,
            unit.base_url,
            self.options.scraping_goal,
            self.state.visited,
            report_visited=True,
            allowed_host=seed_host,
        )
        page = unit.page.with_links(links)
        self.state.replace_page(page)
        unit.page = page
        unit.links = links
        self.stats.record_links(len(links))

        unit.state = UnitState.UPDATE_FRONTIER
        return ()

    def _handle_update_frontier(self, unit: _Unit) -> Iterator[ScraperStreamEvent]:
        next_depth = unit.item.depth + 1
        enqueued = 0

        for link in unit.links:
            status = self._admit(link, next_depth)
            self.stats.record_enqueue(status)
            if status != EnqueueStatus.ENQUEUED:
                continue

            self.frontier.push(
                FrontierItem(
                    url=link.url,
                    depth=next_depth,
                    expected_value=link.predicted_value,
                    referrer=unit.url,
                ),
                link.predicted_value,
            )
            self.state.mark_queued(link.url)
            enqueued += 1

        LOGGER.debug(
            "Frontier updated from url=%s links=%s enqueued=%s queue=%s",
            unit.url,
            len(unit.links),
            enqueued,
            len(self.frontier),
        )
        yield DiscoverLinksEvent(url=unit.url, link_count=len(unit.links), enqueued_count=enqueued)
        unit.state = UnitState.EVALUATE

    def _admit(self, link: LinkCandidate, depth: int) -> EnqueueStatus:
        if link.visited or self.state.is_visited(link.url):
            return EnqueueStatus.SKIPPED_VISITED
        if depth > self.options.max_depth:
            return EnqueueStatus.SKIPPED_DEPTH
        if not self.options.filters.allows(link.url, link.context):
            return EnqueueStatus.SKIPPED_FILTERED
        if self.options.prevent_duplicate_urls and self.state.is_queued(link.url):
            return EnqueueStatus.SKIPPED_QUEUED
        return EnqueueStatus.ENQUEUED

    def _handle_evaluate(self, unit: _Unit) -> Iterator[ScraperStreamEvent]:
        metrics = self.evaluator.evaluate(self.state.pages, self.options.max_pages)
        self.state.metrics = metrics

        yield EvaluateProgressEvent(
            url=unit.url,
            pages_scraped=self.state.page_count,
            queue_size=len(self.frontier),
            goal_completion=metrics.completeness,
            metrics=metrics,
        )
        unit.state = UnitState.DONE

    def _record_unit_error(
        self,
        stage: CrawlStage,
        url: str,
        exc: Exception,
    ) -> Iterator[ScraperStreamEvent]:
        status_code = getattr(exc, "status_code", None)
        record = ErrorRecord.from_exception(stage=stage, url=url, exc=exc, status_code=status_code)
        self.state.record_error(record)
        LOGGER.warning(
            "Unit error stage=%s url=%s type=%s message=%s",
            stage.value,
            url,
            record.error_type,
            record.message,
        )
        yield ErrorEvent(
            url=url,
            error=record.message,
            stage=stage.value,
            error_type=record.error_type,
        )


__all__ = [
    "CrawlOrchestrator",
    "UnitState",
]
