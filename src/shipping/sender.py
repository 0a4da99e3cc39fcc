"""Batch sender implementing the PutLogEvents sequence-token protocol."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from botocore.exceptions import ClientError

from cloudwatch.client import (
    DATA_ALREADY_ACCEPTED,
    error_code,
    expected_sequence_token,
    is_sequence_token_conflict,
)
from cloudwatch.models import LogRecord, StreamIdentity, to_input_events

from .tokens import SequenceTokenStore

logger = logging.getLogger(__name__)


class BatchSender:
    """Appends one batch at a time to a log stream.

    Algorithm:
    - Send with the token currently held in the store (omitted when None).
    - On success, store the returned `nextSequenceToken`.
    - On a token conflict, resend exactly once with the token the service
      expects; a failure of that retry propagates.
    - Any other error propagates untouched; retry policy belongs to the caller.
    """

    def __init__(self, client: Any) -> None:
        """Create a sender around a boto3 `logs` client."""
        self._client = client

    def send(self, batch: Sequence[LogRecord], identity: StreamIdentity, tokens: SequenceTokenStore) -> None:
        """Append `batch` in order, keeping `tokens` current."""
        if not batch:
            return

        events = to_input_events(batch)
        try:
            response = self._put(events, identity, tokens.get())
        except ClientError as exc:
            if is_sequence_token_conflict(exc):
                expected = expected_sequence_token(exc)
                logger.warning(
                    "Sequence token conflict on %s (held %r, expected %r); retrying once.",
                    identity,
                    tokens.get(),
                    expected,
                )
                response = self._put(events, identity, expected)
            elif error_code(exc) == DATA_ALREADY_ACCEPTED:
                # The batch is already stored; just catch up with the stream.
                logger.warning("Batch of %d records already accepted by %s.", len(events), identity)
                expected = expected_sequence_token(exc)
                if expected is not None:
                    tokens.set(expected)
                return
            else:
                raise

        tokens.set(response.get("nextSequenceToken"))
        _warn_rejected(response, identity)
        logger.debug("Sent %d records to %s", len(events), identity)

    def _put(self, events: list[dict[str, Any]], identity: StreamIdentity, token: str | None) -> dict[str, Any]:
        request: dict[str, Any] = {
            "logGroupName": identity.group_name,
            "logStreamName": identity.stream_name,
            "logEvents": events,
        }
        if token is not None:
            request["sequenceToken"] = token
        return self._client.put_log_events(**request)


def _warn_rejected(response: dict[str, Any], identity: StreamIdentity) -> None:
    """Log events the service accepted the call for but refused to store."""
    rejected = response.get("rejectedLogEventsInfo")
    if rejected:
        logger.warning("CloudWatch Logs rejected part of a batch for %s: %s", identity, rejected)
