"""CloudWatch Logs data models.

Records are designed to be:
- Immutable once enqueued (the dispatch worker is the only consumer).
- Cheap to convert into the `InputLogEvent` shape PutLogEvents expects.
"""

from __future__ import annotations

import time
import uuid
from collections.abc import Callable, Sequence
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Return the current UTC time as a timezone-aware datetime."""
    return datetime.now(tz=timezone.utc)


def now_millis() -> int:
    """Milliseconds since the epoch."""
    return int(time.time() * 1000)


class LogRecord(BaseModel):
    """One timestamped, already-formatted message."""

    model_config = ConfigDict(frozen=True)

    timestamp: int = Field(default_factory=now_millis, ge=0, description="Milliseconds since epoch")
    message: str

    def to_input_event(self) -> dict[str, Any]:
        """Convert to the PutLogEvents `InputLogEvent` wire shape."""
        return {"timestamp": self.timestamp, "message": self.message}


class StreamIdentity(BaseModel):
    """Where records are appended: one log stream inside one log group."""

    model_config = ConfigDict(frozen=True)

    group_name: str
    stream_name: str

    def __str__(self) -> str:
        return f"{self.group_name}:{self.stream_name}"


def build_stream_name(*, prefix: str = "", clock: Clock = utc_now) -> str:
    """Build a fresh `<prefix><yyyy/MM/dd>/<random-id>` stream name.

    A random id means every process start writes to a new stream.
    """
    date = clock().strftime("%Y/%m/%d")
    return f"{prefix}{date}/{uuid.uuid4().hex}"


def to_input_events(batch: Sequence[LogRecord]) -> list[dict[str, Any]]:
    """Convert a batch preserving order."""
    return [record.to_input_event() for record in batch]
