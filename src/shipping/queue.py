"""Bounded ingestion queue between logging call-sites and the dispatch worker."""

from __future__ import annotations

import queue
import threading

from cloudwatch.models import LogRecord


class IngestionQueue:
    """Thread-safe FIFO buffer that never blocks producers.

    When full, the newest record is discarded: `enqueue` returns False and the
    queued records are left untouched.
    """

    def __init__(self, capacity: int) -> None:
        """Create a queue holding at most `capacity` records."""
        if capacity <= 0:
            raise ValueError(f"capacity must be > 0. Got: {capacity}")
        self.capacity = capacity
        self._queue: queue.Queue[LogRecord] = queue.Queue(maxsize=capacity)
        self._dropped_lock = threading.Lock()
        self._dropped = 0

    def enqueue(self, record: LogRecord) -> bool:
        """Add a record if there is room; return whether it was accepted."""
        try:
            self._queue.put_nowait(record)
        except queue.Full:
            self.record_drop()
            return False
        return True

    def drain_up_to(self, n: int) -> list[LogRecord]:
        """Remove and return up to `n` records in FIFO order (possibly none)."""
        drained: list[LogRecord] = []
        while len(drained) < n:
            try:
                drained.append(self._queue.get_nowait())
            except queue.Empty:
                break
        return drained

    def record_drop(self) -> None:
        """Count a record that never made it into the queue."""
        with self._dropped_lock:
            self._dropped += 1

    @property
    def dropped(self) -> int:
        """Records rejected so far."""
        with self._dropped_lock:
            return self._dropped

    def __len__(self) -> int:
        return self._queue.qsize()

    def empty(self) -> bool:
        return self._queue.empty()
