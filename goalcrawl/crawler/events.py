"""Lifecycle events yielded by the crawl orchestrator.

Each event kind is its own frozen record with a `kind` tag and the subject
`url`; `to_json()` renders `{"type": kind, "url": ..., ...}`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar, Union

from .types import AuthRequest, CrawlOutput, JSONDict, PageRecord, ValueMetrics


@dataclass(frozen=True, slots=True)
class StreamEvent:
    """Common base: every event names the URL it concerns."""

    kind: ClassVar[str] = ""

    url: str

    def to_json(self) -> JSONDict:
        payload: JSONDict = {"type": self.kind, "url": self.url}
        payload.update(self._payload())
        return payload

    def _payload(self) -> JSONDict:
        return {}


@dataclass(frozen=True, slots=True)
class StartEvent(StreamEvent):
    kind: ClassVar[str] = "start"

    goal: str = ""

    def _payload(self) -> JSONDict:
        return {"goal": self.goal}


@dataclass(frozen=True, slots=True)
class AnalyzeUrlEvent(StreamEvent):
    kind: ClassVar[str] = "analyze-url"

    depth: int = 0
    expected_value: float = 0.0
    relevance_score: float = 0.0

    def _payload(self) -> JSONDict:
        return {
            "depth": self.depth,
            "expected_value": self.expected_value,
            "relevance_score": self.relevance_score,
        }


@dataclass(frozen=True, slots=True)
class FetchStartEvent(StreamEvent):
    kind: ClassVar[str] = "fetch-start"

    use_javascript: bool = False
    attempt: int = 1

    def _payload(self) -> JSONDict:
        return {"use_javascript": self.use_javascript, "attempt": self.attempt}


@dataclass(frozen=True, slots=True)
class FetchCompleteEvent(StreamEvent):
    kind: ClassVar[str] = "fetch-complete"

    status_code: int | None = None
    content_length: int = 0
    backend: str | None = None

    def _payload(self) -> JSONDict:
        return {
            "status_code": self.status_code,
            "content_length": self.content_length,
            "backend": self.backend,
        }


@dataclass(frozen=True, slots=True)
class ExtractContentEvent(StreamEvent):
    kind: ClassVar[str] = "extract-content"

    content_type: str = ""

    def _payload(self) -> JSONDict:
        return {"content_type": self.content_type}


@dataclass(frozen=True, slots=True)
class PageEvent(StreamEvent):
    kind: ClassVar[str] = "page"

    page: PageRecord | None = None

    def _payload(self) -> JSONDict:
        return {"data": None if self.page is None else self.page.to_json()}


@dataclass(frozen=True, slots=True)
class DiscoverLinksEvent(StreamEvent):
    kind: ClassVar[str] = "discover-links"

    link_count: int = 0
    enqueued_count: int = 0

    def _payload(self) -> JSONDict:
        return {"link_count": self.link_count, "enqueued_count": self.enqueued_count}


@dataclass(frozen=True, slots=True)
class EvaluateProgressEvent(StreamEvent):
    kind: ClassVar[str] = "evaluate-progress"

    pages_scraped: int = 0
    queue_size: int = 0
    goal_completion: float = 0.0
    metrics: ValueMetrics | None = None

    def _payload(self) -> JSONDict:
        return {
            "pages_scraped": self.pages_scraped,
            "queue_size": self.queue_size,
            "goal_completion": self.goal_completion,
            "metrics": None if self.metrics is None else self.metrics.to_json(),
        }


@dataclass(frozen=True, slots=True)
class DecideNextActionEvent(StreamEvent):
    kind: ClassVar[str] = "decide-next-action"

    decision: str = "continue"
    reason: str = ""

    def _payload(self) -> JSONDict:
        return {"decision": self.decision, "reason": self.reason}


@dataclass(frozen=True, slots=True)
class BatchStats:
    """Counters attached to a batch-complete status event."""

    processed_in_batch: int
    total_processed: int
    queue_remaining: int
    extracted_total: int
    batch_duration_ms: int
    is_complete: bool

    def to_json(self) -> JSONDict:
        return {
            "processed_in_batch": self.processed_in_batch,
            "total_processed": self.total_processed,
            "queue_remaining": self.queue_remaining,
            "extracted_total": self.extracted_total,
            "batch_duration_ms": self.batch_duration_ms,
            "is_complete": self.is_complete,
        }


@dataclass(frozen=True, slots=True)
class WorkflowStatusEvent(StreamEvent):
    kind: ClassVar[str] = "workflow-status"

    step: str = ""
    progress: float = 0.0
    message: str = ""
    batch_stats: BatchStats | None = None

    def _payload(self) -> JSONDict:
        return {
            "step": self.step,
            "progress": self.progress,
            "message": self.message,
            "batch_stats": None if self.batch_stats is None else self.batch_stats.to_json(),
        }


@dataclass(frozen=True, slots=True)
class AuthEvent(StreamEvent):
    kind: ClassVar[str] = "auth"

    request: AuthRequest | None = None

    def _payload(self) -> JSONDict:
        return {"request": None if self.request is None else self.request.to_json()}


@dataclass(frozen=True, slots=True)
class ErrorEvent(StreamEvent):
    kind: ClassVar[str] = "error"

    error: str = ""
    stage: str | None = None
    error_type: str | None = None

    def _payload(self) -> JSONDict:
        return {"error": self.error, "stage": self.stage, "error_type": self.error_type}


@dataclass(frozen=True, slots=True)
class EndEvent(StreamEvent):
    kind: ClassVar[str] = "end"

    output: CrawlOutput | None = None

    def _payload(self) -> JSONDict:
        return {"output": None if self.output is None else self.output.to_json()}


ScraperStreamEvent = Union[
    StartEvent,
    AnalyzeUrlEvent,
    FetchStartEvent,
    FetchCompleteEvent,
    ExtractContentEvent,
    PageEvent,
    DiscoverLinksEvent,
    EvaluateProgressEvent,
    DecideNextActionEvent,
    WorkflowStatusEvent,
    AuthEvent,
    ErrorEvent,
    EndEvent,
]


__all__ = [
    "AnalyzeUrlEvent",
    "AuthEvent",
    "BatchStats",
    "DecideNextActionEvent",
    "DiscoverLinksEvent",
    "EndEvent",
    "ErrorEvent",
    "EvaluateProgressEvent",
    "ExtractContentEvent",
    "FetchCompleteEvent",
    "FetchStartEvent",
    "PageEvent",
    "ScraperStreamEvent",
    "StartEvent",
    "StreamEvent",
    "WorkflowStatusEvent",
]
