"""Shared CloudWatch Logs client handles and error classification.

Clients are process-wide resources:

- `acquire_client(region)` hands out one boto3 `logs` client per region and
  counts its users.
- `release_client(client)` closes the client's connection pool when its last
  user goes away.
- `shutdown_clients()` is the one-time process teardown (also run at exit). It
  first runs registered hooks (live sinks flush there), then closes clients.
  It is safe to call from any number of sinks, concurrently or repeatedly.
"""

from __future__ import annotations

import atexit
import logging
import re
import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

logger = logging.getLogger(__name__)

SEQUENCE_TOKEN_CONFLICT = "InvalidSequenceTokenException"
DATA_ALREADY_ACCEPTED = "DataAlreadyAcceptedException"
RESOURCE_ALREADY_EXISTS = "ResourceAlreadyExistsException"

_EXPECTED_TOKEN_RE = re.compile(r"expected sequenceToken is:?\s*(\S+)", re.IGNORECASE)


class CloudWatchError(RuntimeError):
    """Error returned by (or while talking to) the CloudWatch Logs API."""

    def __init__(self, message: str, *, code: str | None = None) -> None:
        """Create an error carrying the service error code (if any)."""
        self.code = code
        super().__init__(message if code is None else f"{message} [{code}]")


def error_code(exc: BaseException) -> str | None:
    """Return the service error code of a botocore `ClientError`, else None."""
    if isinstance(exc, ClientError):
        return exc.response.get("Error", {}).get("Code")
    if isinstance(exc, CloudWatchError):
        return exc.code
    return None


def is_sequence_token_conflict(exc: BaseException) -> bool:
    """Return True if the append was rejected because of a stale token."""
    return error_code(exc) == SEQUENCE_TOKEN_CONFLICT


def expected_sequence_token(exc: ClientError) -> str | None:
    """Extract the token the service expects from a conflict response.

    Prefers the modeled `expectedSequenceToken` field; otherwise parses the
    error message. The literal "null" means the stream has no token yet.
    """
    token = exc.response.get("expectedSequenceToken")
    if token is None:
        message = exc.response.get("Error", {}).get("Message", "") or ""
        match = _EXPECTED_TOKEN_RE.search(message)
        token = match.group(1) if match else None
    if token is None or token == "null":
        return None
    return token


def wrap_error(action: str, exc: BaseException) -> CloudWatchError:
    """Translate a botocore error into a `CloudWatchError` (use with `raise ... from`)."""
    return CloudWatchError(f"CloudWatch Logs {action} failed: {exc}", code=error_code(exc))


@dataclass
class _Entry:
    client: Any
    users: int


class _ClientRegistry:
    """Lock-guarded region -> client cache with reference counts."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: dict[str, _Entry] = {}

    def acquire(self, region: str) -> Any:
        with self._lock:
            entry = self._entries.get(region)
            if entry is None:
                entry = _Entry(client=_create_client(region), users=0)
                self._entries[region] = entry
            entry.users += 1
            return entry.client

    def release(self, client: Any) -> None:
        with self._lock:
            for region, entry in self._entries.items():
                if entry.client is client:
                    entry.users -= 1
                    if entry.users > 0:
                        return
                    del self._entries[region]
                    break
            else:
                return
        _close_quietly(client)

    def shutdown(self) -> None:
        with self._lock:
            entries = list(self._entries.values())
            self._entries.clear()
        for entry in entries:
            _close_quietly(entry.client)

    def users(self, region: str) -> int:
        with self._lock:
            entry = self._entries.get(region)
            return entry.users if entry is not None else 0


def _create_client(region: str) -> Any:
    """Create a CloudWatch Logs client (credentials resolved by boto3)."""
    # The SDK's own retry mode handles throttling; the token protocol is ours.
    return boto3.client("logs", region_name=region, config=BotoConfig(retries={"mode": "standard"}))


def _close_quietly(client: Any) -> None:
    """Close a client's HTTP connection pool; teardown errors are logged and ignored."""
    close = getattr(client, "close", None)
    if close is None:
        return
    try:
        close()
    except (BotoCoreError, OSError, RuntimeError):
        logger.exception("Failed to close CloudWatch Logs client")


_registry = _ClientRegistry()
_shutdown_hooks: list[Callable[[], None]] = []
_shutdown_hooks_lock = threading.Lock()


def acquire_client(region: str) -> Any:
    """Return the shared client for `region`, creating it on first use."""
    return _registry.acquire(region)


def release_client(client: Any) -> None:
    """Drop one use of a shared client; unknown or already-released clients are ignored."""
    _registry.release(client)


def client_users(region: str) -> int:
    """Number of outstanding `acquire_client` calls for `region`."""
    return _registry.users(region)


def register_shutdown_hook(hook: Callable[[], None]) -> None:
    """Run `hook` at the start of `shutdown_clients()`, while clients are still open."""
    with _shutdown_hooks_lock:
        if hook not in _shutdown_hooks:
            _shutdown_hooks.append(hook)


def shutdown_clients() -> None:
    """Run shutdown hooks, then close every shared client. Idempotent and thread-safe."""
    with _shutdown_hooks_lock:
        hooks = list(_shutdown_hooks)
    for hook in hooks:
        try:
            hook()
        except Exception:  # noqa: BLE001 - teardown must complete
            logger.exception("CloudWatch Logs shutdown hook failed")
    _registry.shutdown()


atexit.register(shutdown_clients)
