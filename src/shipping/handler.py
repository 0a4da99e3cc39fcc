"""`logging.Handler` that forwards formatted records to a CloudWatch sink."""

from __future__ import annotations

import logging
from typing import Any

from cloudwatch import client as _client_module
from cloudwatch import provisioning as _provisioning_module
from cloudwatch.models import LogRecord

from . import config as _config_module
from . import dispatcher as _dispatcher_module
from . import sender as _sender_module
from . import sink as _sink_module
from .config import SinkConfig
from .sink import CloudWatchSink

logger = logging.getLogger(__name__)

DEFAULT_FORMAT = "%(asctime)s %(levelname)s %(name)s - %(message)s"

# Records from these loggers are never shipped: the shipper's own status output
# and the SDK/HTTP stack would otherwise feed back into the queue.
OWN_LOGGERS = frozenset(
    module.__name__
    for module in (
        _client_module,
        _provisioning_module,
        _config_module,
        _dispatcher_module,
        _sender_module,
        _sink_module,
    )
) | {__name__}
SDK_LOGGERS = ("boto3", "botocore", "urllib3", "s3transfer")


def _is_excluded(name: str) -> bool:
    if name in OWN_LOGGERS:
        return True
    return any(name == prefix or name.startswith(prefix + ".") for prefix in SDK_LOGGERS)


class CloudWatchHandler(logging.Handler):
    """Ships each log record as one CloudWatch Logs event.

    `emit()` only formats and enqueues; network I/O happens on the sink's
    dispatch thread. With `ignore_errors=False`, errors raised while formatting
    or appending propagate to the logging call-site; otherwise they are logged
    and swallowed. A full queue is never an error.
    """

    def __init__(
        self,
        sink: CloudWatchSink,
        *,
        ignore_errors: bool = False,
        level: int = logging.NOTSET,
        close_sink: bool = True,
    ) -> None:
        super().__init__(level)
        self.sink = sink
        self.ignore_errors = ignore_errors
        self._close_sink = close_sink
        self.setFormatter(logging.Formatter(DEFAULT_FORMAT))

    @classmethod
    def from_config(cls, config: SinkConfig, *, level: int = logging.NOTSET, **sink_kwargs: Any) -> CloudWatchHandler:
        """Build and start a sink for `config` and wrap it in a handler."""
        try:
            sink = CloudWatchSink.from_config(config, **sink_kwargs)
        except Exception:
            logger.error("AWS CloudWatch client initializing error", exc_info=True)
            raise
        return cls(sink, ignore_errors=config.ignore_errors, level=level)

    def filter(self, record: logging.LogRecord) -> bool:
        """Drop the shipper's own and the SDK's records, then apply attached filters."""
        if _is_excluded(record.name):
            return False
        return bool(super().filter(record))

    def emit(self, record: logging.LogRecord) -> None:
        """Format `record` and enqueue it on the sink (never blocks on the network)."""
        try:
            entry = LogRecord(timestamp=int(record.created * 1000), message=self.format(record))
            self.sink.append(entry)
        except Exception:
            if not self.ignore_errors:
                raise
            logger.error("Failed to append log record to CloudWatch sink", exc_info=True)

    def flush(self) -> None:
        """No-op: records are flushed by the dispatch loop and on close."""

    def close(self) -> None:
        """Stop the sink (flushing queued records) unless it is shared."""
        try:
            if self._close_sink:
                self.sink.stop()
        finally:
            super().close()
