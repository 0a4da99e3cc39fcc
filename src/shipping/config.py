"""Configuration loading and validation.

This module is responsible for:

- Loading `.env` into the process environment (without overriding existing vars).
- Converting environment variables into a strongly-typed `SinkConfig`.
- Validating required fields and providing actionable error messages.
"""

import logging
import os
from functools import lru_cache
from typing import TypeVar

import boto3
import dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)

_T = TypeVar("_T", int, float)

DEFAULT_REGION = "us-east-1"
DEFAULT_QUEUE_LENGTH = 1024
DEFAULT_MESSAGES_BATCH_SIZE = 128
DEFAULT_POLL_INTERVAL_MS = 20

# PutLogEvents accepts at most this many events per call.
MAX_MESSAGES_BATCH_SIZE = 10_000


def _get_required_env(name: str) -> str:
    """Read a required env var or raise a helpful error."""
    value = os.getenv(name, "").strip()
    if not value:
        raise ValueError(f"{name} is required. Please set it in your .env file.")
    if value.startswith("your_") and value.endswith("_here"):
        raise ValueError(f"{name} is required. Please replace the placeholder value in your .env file.")
    return value


def _get_env_bool(name: str, default: bool) -> bool:
    """Read a boolean env var with a default."""
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    normalized = raw.strip().lower()
    if normalized in {"true", "1", "yes", "y", "on"}:
        return True
    if normalized in {"false", "0", "no", "n", "off"}:
        return False
    raise ValueError(f"{name} must be a boolean (true/false). Got: {raw!r}")


def _get_env_number(name: str, default: _T, cast: type[_T]) -> _T:
    """Read an int/float env var with a default."""
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return cast(raw)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{name} must be a {cast.__name__}. Got: {raw!r}") from exc


@lru_cache(maxsize=1)
def known_regions() -> frozenset[str]:
    """Regions botocore's bundled endpoint data lists for CloudWatch Logs."""
    session = boto3.session.Session()
    regions: set[str] = set()
    for partition in session.get_available_partitions():
        regions.update(session.get_available_regions("logs", partition_name=partition))
    return frozenset(regions)


class SinkConfig(BaseModel):
    """Configuration for shipping log records to a CloudWatch Logs group."""

    model_config = ConfigDict(frozen=True)

    group_name: str = Field(..., description="Destination log group name")
    region: str = Field(default=DEFAULT_REGION, description="AWS region of the log group")
    queue_length: int = Field(default=DEFAULT_QUEUE_LENGTH, gt=0, description="Ingestion queue capacity")
    messages_batch_size: int = Field(
        default=DEFAULT_MESSAGES_BATCH_SIZE,
        gt=0,
        le=MAX_MESSAGES_BATCH_SIZE,
        description="Max records per append call",
    )
    poll_interval_ms: int = Field(default=DEFAULT_POLL_INTERVAL_MS, gt=0, description="Dispatch loop sleep")
    ignore_errors: bool = Field(default=False, description="Swallow errors on the logging call path")
    stream_prefix: str = Field(default="", description="Optional prefix for generated stream names")

    @property
    def poll_interval_s(self) -> float:
        """Dispatch loop sleep in seconds."""
        return self.poll_interval_ms / 1000.0

    @field_validator("group_name")
    def validate_group_name(cls, v: str) -> str:
        """Validate group name is set (not empty/placeholder)."""
        v = v.strip()
        if not v or v == "your_log_group_here":
            raise ValueError("CLOUDWATCH_LOG_GROUP is required. Please set it in your .env file.")
        return v

    @field_validator("region", mode="before")
    def validate_region(cls, v: object) -> str:
        """Fall back to the default region for unknown names (never fatal)."""
        name = str(v).strip().lower() if v is not None else ""
        if name in known_regions():
            return name
        logger.warning("Invalid region name given: %r. Switching to default region %s.", v, DEFAULT_REGION)
        return DEFAULT_REGION


def load_config() -> SinkConfig:
    """Load sink configuration from environment variables.

    Notes:
    - Calls `dotenv.load_dotenv()` so local `.env` values are visible to the process.
    - Raises `ValueError` with actionable messages when required configuration is
      missing or still contains placeholder values.
    """
    dotenv.load_dotenv()

    region = os.getenv("CLOUDWATCH_REGION") or os.getenv("AWS_REGION") or DEFAULT_REGION
    return SinkConfig(
        group_name=_get_required_env("CLOUDWATCH_LOG_GROUP"),
        region=region,
        queue_length=_get_env_number("CLOUDWATCH_QUEUE_LENGTH", DEFAULT_QUEUE_LENGTH, int),
        messages_batch_size=_get_env_number("CLOUDWATCH_MESSAGES_BATCH_SIZE", DEFAULT_MESSAGES_BATCH_SIZE, int),
        poll_interval_ms=_get_env_number("CLOUDWATCH_POLL_INTERVAL_MS", DEFAULT_POLL_INTERVAL_MS, int),
        ignore_errors=_get_env_bool("CLOUDWATCH_IGNORE_ERRORS", False),
        stream_prefix=os.getenv("CLOUDWATCH_STREAM_PREFIX", "").strip(),
    )
