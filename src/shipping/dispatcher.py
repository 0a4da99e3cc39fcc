"""Background dispatch loop draining the ingestion queue into batches."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from datetime import datetime

from cloudwatch.models import StreamIdentity, utc_now

from .queue import IngestionQueue
from .sender import BatchSender
from .tokens import SequenceTokenStore

logger = logging.getLogger(__name__)


class DispatchLoop:
    """Single worker thread that polls the queue on a fixed interval.

    Each cycle drains up to `batch_size` records and sends them, then sleeps
    `poll_interval_s` whether or not there was work. Because this is the only
    thread appending to the stream, the token store needs no locking.

    A failed batch is logged and discarded (at-most-once delivery).
    """

    def __init__(
        self,
        *,
        queue: IngestionQueue,
        sender: BatchSender,
        identity: StreamIdentity,
        tokens: SequenceTokenStore,
        batch_size: int,
        poll_interval_s: float,
        sleep: Callable[[float], object] | None = None,
    ) -> None:
        """Create a stopped dispatch loop; call `start()` to run it."""
        self._queue = queue
        self._sender = sender
        self._identity = identity
        self._tokens = tokens
        self._batch_size = batch_size
        self._poll_interval_s = poll_interval_s

        self._stop_requested = threading.Event()
        self._sleep = sleep if sleep is not None else self._stop_requested.wait
        self._thread: threading.Thread | None = None

        # Degradation tracking: failed batches and time window.
        self._failed_batches = 0
        self._first_failure_at: datetime | None = None
        self._last_failure_at: datetime | None = None

    @property
    def running(self) -> bool:
        """True while the worker thread is alive and no stop has been requested."""
        return self._thread is not None and self._thread.is_alive() and not self._stop_requested.is_set()

    def start(self) -> None:
        """Start the worker thread (no-op if already started)."""
        if self._thread is not None:
            return
        self._thread = threading.Thread(target=self._run, name="cloudwatch-dispatch", daemon=True)
        self._thread.start()

    def request_stop(self) -> None:
        """Ask the worker to exit after its current cycle."""
        self._stop_requested.set()

    def join(self, timeout: float | None = None) -> None:
        """Wait for the worker to finish its in-flight cycle."""
        if self._thread is not None:
            self._thread.join(timeout)

    def run_once(self) -> int:
        """Drain and send one batch; return the number of records taken."""
        batch = self._queue.drain_up_to(self._batch_size)
        if not batch:
            return 0
        try:
            self._sender.send(batch, self._identity, self._tokens)
        except Exception:  # noqa: BLE001 - a failed batch must not stop the worker
            self._note_failure()
            logger.error("Error while sending %d records to %s; batch dropped.", len(batch), self._identity, exc_info=True)
        return len(batch)

    def flush(self) -> int:
        """Send everything left in the queue, batch by batch; return records taken."""
        total = 0
        while True:
            taken = self.run_once()
            if taken == 0:
                return total
            total += taken

    def _run(self) -> None:
        while not self._stop_requested.is_set():
            if not self._queue.empty():
                self.run_once()
            self._sleep(self._poll_interval_s)

    def _note_failure(self) -> None:
        now = utc_now()
        self._failed_batches += 1
        self._first_failure_at = self._first_failure_at or now
        self._last_failure_at = now

    def degraded_status(self) -> dict[str, object]:
        """Return a minimal degraded-status snapshot."""
        return {
            "failed_batches": self._failed_batches,
            "first_failure_at": self._first_failure_at,
            "last_failure_at": self._last_failure_at,
        }
