"""Log shipping core.

This package decouples logging call-sites from network I/O:
- A bounded ingestion queue accepts records without ever blocking the caller.
- A single dispatch worker drains it on a fixed interval and sends batches.
- The batch sender keeps the stream's sequence token consistent.
"""

from .dispatcher import DispatchLoop
from .handler import CloudWatchHandler
from .queue import IngestionQueue
from .sender import BatchSender
from .sink import CloudWatchSink
from .tokens import SequenceTokenStore

__all__ = [
    "BatchSender",
    "CloudWatchHandler",
    "CloudWatchSink",
    "DispatchLoop",
    "IngestionQueue",
    "SequenceTokenStore",
]
