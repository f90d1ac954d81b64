from goalcrawl.crawler import CrawlOutput, StopReason
from goalcrawl.crawler.events import (
    BatchStats,
    DiscoverLinksEvent,
    EndEvent,
    ErrorEvent,
    StartEvent,
    WorkflowStatusEvent,
)


def test_event_json_carries_type_and_url():
    event = StartEvent(url="https://e.com/", goal="find docs")

    assert event.kind == "start"
    assert event.to_json() == {"type": "start", "url": "https://e.com/", "goal": "find docs"}


def test_kinds_are_distinct_per_class():
    assert DiscoverLinksEvent.kind == "discover-links"
    assert ErrorEvent(url="u", error="boom", stage="fetch").to_json()["type"] == "error"


def test_nested_payloads_serialize():
    status = WorkflowStatusEvent(
        url="https://e.com/",
        step="batch-complete",
        progress=0.5,
        message="done",
        batch_stats=BatchStats(
            processed_in_batch=2,
            total_processed=4,
            queue_remaining=1,
            extracted_total=3,
            batch_duration_ms=10,
            is_complete=False,
        ),
    )
    end = EndEvent(url="https://e.com/", output=CrawlOutput.empty(StopReason.CANCELLED))

    assert status.to_json()["batch_stats"]["total_processed"] == 4
    assert end.to_json()["output"]["stop_reason"] == "cancelled"
    assert end.to_json()["output"]["pages"] == []
