"""CloudWatch Logs service boundary.

This package wraps the parts of the remote service the shipper needs:
- Record and stream identity models plus the PutLogEvents wire shape.
- Process-wide shared boto3 clients and error classification.
- Idempotent provisioning of the destination group/stream.
"""

from .client import (
    CloudWatchError,
    acquire_client,
    expected_sequence_token,
    is_sequence_token_conflict,
    release_client,
    shutdown_clients,
)
from .models import LogRecord, StreamIdentity, build_stream_name
from .provisioning import StreamProvisioner

__all__ = [
    "CloudWatchError",
    "LogRecord",
    "StreamIdentity",
    "StreamProvisioner",
    "acquire_client",
    "build_stream_name",
    "expected_sequence_token",
    "is_sequence_token_conflict",
    "release_client",
    "shutdown_clients",
]
