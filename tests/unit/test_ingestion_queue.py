from __future__ import annotations

import threading

import pytest

from cloudwatch.models import LogRecord
from shipping.queue import IngestionQueue


def _records(n: int, *, tag: str = "m") -> list[LogRecord]:
    return [LogRecord(timestamp=1_700_000_000_000 + i, message=f"{tag}{i}") for i in range(n)]


def test_drain_returns_records_in_enqueue_order_without_loss_or_duplicates() -> None:
    q = IngestionQueue(capacity=50)
    records = _records(50)

    assert all(q.enqueue(r) for r in records)

    drained = q.drain_up_to(20) + q.drain_up_to(20) + q.drain_up_to(20)
    assert drained == records
    assert q.drain_up_to(20) == []
    assert len(q) == 0


def test_overflow_discards_the_newest_record() -> None:
    q = IngestionQueue(capacity=3)
    records = _records(4)

    accepted = [q.enqueue(r) for r in records]

    assert accepted == [True, True, True, False]
    assert len(q) == 3
    assert q.dropped == 1
    assert q.drain_up_to(10) == records[:3]


def test_drain_up_to_is_bounded_and_non_blocking() -> None:
    q = IngestionQueue(capacity=10)
    for r in _records(5):
        q.enqueue(r)

    assert [r.message for r in q.drain_up_to(2)] == ["m0", "m1"]
    assert len(q) == 3
    assert IngestionQueue(capacity=1).drain_up_to(5) == []


def test_capacity_must_be_positive() -> None:
    with pytest.raises(ValueError):
        IngestionQueue(capacity=0)


def test_concurrent_producers_keep_per_thread_order() -> None:
    q = IngestionQueue(capacity=4000)
    per_thread = 500

    def produce(tag: str) -> None:
        for r in _records(per_thread, tag=tag):
            q.enqueue(r)

    threads = [threading.Thread(target=produce, args=(tag,)) for tag in ("a", "b", "c", "d")]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    drained = q.drain_up_to(4000)
    assert len(drained) == 4 * per_thread
    for tag in ("a", "b", "c", "d"):
        mine = [r.message for r in drained if r.message.startswith(tag)]
        assert mine == [f"{tag}{i}" for i in range(per_thread)]
