"""Thread-safe priority frontier ordered by expected information value."""

from __future__ import annotations

import heapq
import itertools
import threading
from typing import Generic, TypeVar


T = TypeVar("T")


class PriorityFrontier(Generic[T]):
    """Max-priority queue with FIFO ordering among equal priorities.

    - `pop` always returns the highest-priority remaining item.
    - Items pushed with the same priority pop in push order.
    - No duplicate suppression; callers decide what to push.
    """

    def __init__(self) -> None:
        # Entries are (-priority, insertion_index, item); the index breaks ties
        # and keeps items themselves out of comparisons.
        self._heap: list[tuple[float, int, T]] = []
        self._counter = itertools.count()
        self._lock = threading.Lock()

        self._pushed_count = 0
        self._popped_count = 0

    def push(self, item: T, priority: float) -> None:
        """Add one item with the given priority (higher pops first)."""

        with self._lock:
            heapq.heappush(self._heap, (-float(priority), next(self._counter), item))
            self._pushed_count += 1

    def pop(self) -> T | None:
        """Remove and return the highest-priority item, or None when empty."""

        with self._lock:
            if not self._heap:
                return None
            _, _, item = heapq.heappop(self._heap)
            self._popped_count += 1
            return item

    def peek(self) -> T | None:
        """Return the next item without removing it."""

        with self._lock:
            if not self._heap:
                return None
            return self._heap[0][2]

    def is_empty(self) -> bool:
        with self._lock:
            return not self._heap

    def size(self) -> int:
        with self._lock:
            return len(self._heap)

    def __len__(self) -> int:
        return self.size()

    def items(self) -> list[T]:
        """Return a snapshot of queued items in pop order."""

        with self._lock:
            ordered = sorted(self._heap)
        return [item for _, _, item in ordered]

    def snapshot(self) -> dict[str, int]:
        """Return frontier counters for logs/stats reporting."""

        with self._lock:
            return {
                "queue_size": len(self._heap),
                "pushed": self._pushed_count,
                "popped": self._popped_count,
            }


__all__ = ["PriorityFrontier"]
