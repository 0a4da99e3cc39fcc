"""CloudWatch Logs sink lifecycle: provision, dispatch, flush, release."""

from __future__ import annotations

import asyncio
import logging
import threading
import weakref
from collections.abc import Callable
from typing import Any

from cloudwatch.client import acquire_client, register_shutdown_hook, release_client
from cloudwatch.models import Clock, LogRecord, StreamIdentity, build_stream_name, utc_now
from cloudwatch.provisioning import StreamProvisioner

from .config import SinkConfig
from .dispatcher import DispatchLoop
from .queue import IngestionQueue
from .sender import BatchSender
from .tokens import SequenceTokenStore

logger = logging.getLogger(__name__)

_live_sinks: weakref.WeakSet[CloudWatchSink] = weakref.WeakSet()
_live_sinks_lock = threading.Lock()


def stop_live_sinks() -> None:
    """Stop (and flush) every started sink that has not been stopped yet."""
    with _live_sinks_lock:
        sinks = list(_live_sinks)
    for sink in sinks:
        try:
            sink.stop()
        except Exception:  # noqa: BLE001 - shutdown must complete
            logger.exception("Failed to stop CloudWatch sink for %s", sink.identity)


# Shared clients are closed only after live sinks have flushed through them.
register_shutdown_hook(stop_live_sinks)


class CloudWatchSink:
    """Buffers log records and ships them to a fresh stream in batches.

    Lifecycle:
    - `start()` provisions the group/stream, seeds the token store, starts the
      dispatch worker and opens the readiness gate. Provisioning errors propagate.
    - `append()` is non-blocking; records are dropped when the queue is full or
      the sink is not ready.
    - `stop()` stops the worker, flushes what is left and releases the client.

    When no client is given, a shared per-region client is acquired on start and
    released on stop. A caller-supplied client is left open.
    """

    def __init__(
        self,
        config: SinkConfig,
        *,
        client: Any | None = None,
        clock: Clock = utc_now,
        sleep: Callable[[float], object] | None = None,
    ) -> None:
        """Create an unstarted sink for `config`."""
        self.config = config
        self.identity = StreamIdentity(
            group_name=config.group_name,
            stream_name=build_stream_name(prefix=config.stream_prefix, clock=clock),
        )
        self._client = client
        self._owns_client = client is None
        self._sleep = sleep

        self._queue = IngestionQueue(config.queue_length)
        self._tokens = SequenceTokenStore()
        self._loop: DispatchLoop | None = None

        self._ready = threading.Event()
        # Held for gate check + enqueue, and for closing the gate.
        self._gate_lock = threading.Lock()
        self._lifecycle_lock = threading.Lock()
        self._stopped = False

    @classmethod
    def from_config(cls, config: SinkConfig, **kwargs: Any) -> CloudWatchSink:
        """Create and start a sink."""
        sink = cls(config, **kwargs)
        sink.start()
        return sink

    @property
    def ready(self) -> bool:
        """True between a successful `start()` and `stop()`."""
        return self._ready.is_set()

    @property
    def tokens(self) -> SequenceTokenStore:
        """The stream's sequence-token store."""
        return self._tokens

    def start(self) -> None:
        """Provision the destination and start dispatching (idempotent)."""
        with self._lifecycle_lock:
            if self._loop is not None:
                return
            if self._stopped:
                raise RuntimeError("CloudWatchSink cannot be restarted after stop()")

            if self._client is None:
                self._client = acquire_client(self.config.region)
            try:
                token = StreamProvisioner(self._client).ensure(self.identity)
            except Exception:
                logger.error("AWS CloudWatch sink initialization failed for %s", self.identity)
                self._release_client()
                raise

            self._tokens.set(token)
            self._loop = DispatchLoop(
                queue=self._queue,
                sender=BatchSender(self._client),
                identity=self.identity,
                tokens=self._tokens,
                batch_size=self.config.messages_batch_size,
                poll_interval_s=self.config.poll_interval_s,
                sleep=self._sleep,
            )
            self._loop.start()
            self._ready.set()
            with _live_sinks_lock:
                _live_sinks.add(self)
        logger.info("CloudWatch sink started for %s (region %s)", self.identity, self.config.region)

    def append(self, record: LogRecord) -> bool:
        """Enqueue a record without blocking; return whether it was accepted."""
        with self._gate_lock:
            if self._ready.is_set():
                return self._queue.enqueue(record)
            self._queue.record_drop()
        logger.warning("Cannot append as CloudWatch sink is not ready; record dropped.")
        return False

    def stop(self) -> None:
        """Stop the worker, flush remaining records, release the client.

        Safe to call multiple times. Delivery during the flush is best-effort.
        """
        with self._lifecycle_lock:
            if self._stopped:
                return
            self._stopped = True
            # Waits for in-flight appends, so the flush below sees their records.
            with self._gate_lock:
                self._ready.clear()
            with _live_sinks_lock:
                _live_sinks.discard(self)

            loop = self._loop
            if loop is not None:
                loop.request_stop()
                # Join before flushing so only one thread ever appends to the stream.
                loop.join()
                flushed = loop.flush()
                logger.debug("Flushed %d records on stop", flushed)
            self._release_client()
        logger.info("CloudWatch sink stopped for %s", self.identity)

    async def aclose(self) -> None:
        """Stop the sink from async code without blocking the event loop."""
        await asyncio.to_thread(self.stop)

    def _release_client(self) -> None:
        if self._owns_client and self._client is not None:
            release_client(self._client)
            self._client = None

    def degraded_status(self) -> dict[str, Any]:
        """Return a minimal degraded-status snapshot."""
        status: dict[str, Any] = {"dropped_records": self._queue.dropped, "queued_records": len(self._queue)}
        if self._loop is not None:
            status.update(self._loop.degraded_status())
        else:
            status.update({"failed_batches": 0, "first_failure_at": None, "last_failure_at": None})
        return status

    def __enter__(self) -> CloudWatchSink:
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()
