"""Idempotent provisioning of the destination log group and log stream."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError

from .client import RESOURCE_ALREADY_EXISTS, error_code, wrap_error
from .models import StreamIdentity

logger = logging.getLogger(__name__)


def _same_name(a: str, b: str) -> bool:
    return a.casefold() == b.casefold()


class StreamProvisioner:
    """Ensures a log group and log stream exist before anything is appended.

    Existence is checked against the service's prefix listings with an exact
    (case-insensitive) name match. Errors are never retried or swallowed:
    sending to a destination that doesn't exist is meaningless, so they
    propagate as `CloudWatchError` to whoever is building the sink.
    """

    def __init__(self, client: Any) -> None:
        """Create a provisioner around a boto3 `logs` client."""
        self._client = client

    def ensure(self, identity: StreamIdentity) -> str | None:
        """Ensure group then stream; return the stream's upload token, if any."""
        self.ensure_group(identity.group_name)
        return self.ensure_stream(identity.group_name, identity.stream_name)

    def ensure_group(self, group_name: str) -> None:
        """Create the log group unless a group with that exact name already exists."""
        try:
            if self._find_group(group_name) is not None:
                logger.debug("Log group %s already exists.", group_name)
                return
            logger.debug("Creating log group %s", group_name)
            self._create(self._client.create_log_group, logGroupName=group_name)
        except (ClientError, BotoCoreError) as exc:
            logger.error("Failed to provision log group %s", group_name, exc_info=True)
            raise wrap_error("log group provisioning", exc) from exc

    def ensure_stream(self, group_name: str, stream_name: str) -> str | None:
        """Create the stream if absent; otherwise return its current upload token.

        A freshly created stream has no token, so the first append goes without one.
        """
        try:
            existing = self._find_stream(group_name, stream_name)
            if existing is not None:
                logger.debug("Log stream %s already exists in %s.", stream_name, group_name)
                return existing.get("uploadSequenceToken")

            logger.debug("Creating log stream %s in log group %s", stream_name, group_name)
            created = self._create(self._client.create_log_stream, logGroupName=group_name, logStreamName=stream_name)
            if created:
                return None

            # Another process created it first; continue from its token.
            existing = self._find_stream(group_name, stream_name)
            return existing.get("uploadSequenceToken") if existing is not None else None
        except (ClientError, BotoCoreError) as exc:
            logger.error("Failed to provision log stream %s in %s", stream_name, group_name, exc_info=True)
            raise wrap_error("log stream provisioning", exc) from exc

    def _find_group(self, group_name: str) -> dict[str, Any] | None:
        for group in self._paginate("describe_log_groups", "logGroups", logGroupNamePrefix=group_name):
            if _same_name(group.get("logGroupName", ""), group_name):
                return group
        return None

    def _find_stream(self, group_name: str, stream_name: str) -> dict[str, Any] | None:
        pages = self._paginate(
            "describe_log_streams",
            "logStreams",
            logGroupName=group_name,
            logStreamNamePrefix=stream_name,
        )
        for stream in pages:
            if _same_name(stream.get("logStreamName", ""), stream_name):
                return stream
        return None

    def _paginate(self, operation: str, key: str, **params: Any) -> Iterator[dict[str, Any]]:
        """Yield listed items page by page, following `nextToken`."""
        call = getattr(self._client, operation)
        next_token: str | None = None
        while True:
            request = dict(params)
            if next_token:
                request["nextToken"] = next_token
            response = call(**request)
            yield from response.get(key, [])
            next_token = response.get("nextToken")
            if not next_token:
                return

    @staticmethod
    def _create(create: Any, **params: Any) -> bool:
        """Call a create operation; return False if the resource already existed."""
        try:
            create(**params)
        except ClientError as exc:
            if error_code(exc) != RESOURCE_ALREADY_EXISTS:
                raise
            return False
        return True
