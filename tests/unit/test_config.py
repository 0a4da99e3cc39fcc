import logging

import pytest

from shipping.config import DEFAULT_REGION, SinkConfig, load_config


def test_sink_config_defaults():
    cfg = SinkConfig(group_name="app-logs")

    assert cfg.region == "us-east-1"
    assert cfg.queue_length == 1024
    assert cfg.messages_batch_size == 128
    assert cfg.poll_interval_ms == 20
    assert cfg.poll_interval_s == 0.02
    assert cfg.ignore_errors is False
    assert cfg.stream_prefix == ""


def test_sink_config_keeps_known_region():
    assert SinkConfig(group_name="g", region="eu-west-1").region == "eu-west-1"


def test_invalid_region_falls_back_to_default(caplog: pytest.LogCaptureFixture):
    with caplog.at_level(logging.WARNING, logger="shipping.config"):
        cfg = SinkConfig(group_name="g", region="not-a-region")

    assert cfg.region == DEFAULT_REGION
    assert "not-a-region" in caplog.text


@pytest.mark.parametrize("group_name", ["", "   ", "your_log_group_here"])
def test_sink_config_group_name_required(group_name: str):
    with pytest.raises(ValueError):
        SinkConfig(group_name=group_name)


@pytest.mark.parametrize(
    "overrides",
    [{"queue_length": 0}, {"messages_batch_size": 0}, {"messages_batch_size": 10_001}, {"poll_interval_ms": 0}],
)
def test_sink_config_rejects_out_of_range_numbers(overrides: dict):
    with pytest.raises(ValueError):
        SinkConfig(group_name="g", **overrides)


def test_sink_config_is_immutable():
    cfg = SinkConfig(group_name="g")
    with pytest.raises(Exception):
        cfg.queue_length = 5  # type: ignore[misc]


def test_load_config_reads_required_and_defaults(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("CLOUDWATCH_LOG_GROUP", "app-logs")
    for name in [
        "CLOUDWATCH_REGION",
        "AWS_REGION",
        "CLOUDWATCH_QUEUE_LENGTH",
        "CLOUDWATCH_MESSAGES_BATCH_SIZE",
        "CLOUDWATCH_POLL_INTERVAL_MS",
        "CLOUDWATCH_IGNORE_ERRORS",
        "CLOUDWATCH_STREAM_PREFIX",
    ]:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr("shipping.config.dotenv.load_dotenv", lambda *a, **k: False)

    cfg = load_config()
    assert cfg.group_name == "app-logs"
    assert cfg.region == "us-east-1"
    assert cfg.queue_length == 1024
    assert cfg.messages_batch_size == 128
    assert cfg.poll_interval_ms == 20
    assert cfg.ignore_errors is False


def test_load_config_parses_optional_fields(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr("shipping.config.dotenv.load_dotenv", lambda *a, **k: False)
    monkeypatch.setenv("CLOUDWATCH_LOG_GROUP", "app-logs")
    monkeypatch.setenv("CLOUDWATCH_REGION", "ap-southeast-2")
    monkeypatch.setenv("CLOUDWATCH_QUEUE_LENGTH", "16")
    monkeypatch.setenv("CLOUDWATCH_MESSAGES_BATCH_SIZE", "4")
    monkeypatch.setenv("CLOUDWATCH_POLL_INTERVAL_MS", "250")
    monkeypatch.setenv("CLOUDWATCH_IGNORE_ERRORS", "yes")
    monkeypatch.setenv("CLOUDWATCH_STREAM_PREFIX", "worker-")

    cfg = load_config()
    assert cfg.region == "ap-southeast-2"
    assert cfg.queue_length == 16
    assert cfg.messages_batch_size == 4
    assert cfg.poll_interval_ms == 250
    assert cfg.ignore_errors is True
    assert cfg.stream_prefix == "worker-"


def test_load_config_uses_aws_region_when_unset(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr("shipping.config.dotenv.load_dotenv", lambda *a, **k: False)
    monkeypatch.setenv("CLOUDWATCH_LOG_GROUP", "app-logs")
    monkeypatch.delenv("CLOUDWATCH_REGION", raising=False)
    monkeypatch.setenv("AWS_REGION", "eu-central-1")

    assert load_config().region == "eu-central-1"


def test_load_config_requires_group(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr("shipping.config.dotenv.load_dotenv", lambda *a, **k: False)
    monkeypatch.delenv("CLOUDWATCH_LOG_GROUP", raising=False)

    with pytest.raises(ValueError, match="CLOUDWATCH_LOG_GROUP"):
        load_config()


@pytest.mark.parametrize(
    ("name", "value"),
    [("CLOUDWATCH_QUEUE_LENGTH", "lots"), ("CLOUDWATCH_IGNORE_ERRORS", "maybe")],
)
def test_load_config_rejects_malformed_values(monkeypatch: pytest.MonkeyPatch, name: str, value: str):
    monkeypatch.setattr("shipping.config.dotenv.load_dotenv", lambda *a, **k: False)
    monkeypatch.setenv("CLOUDWATCH_LOG_GROUP", "app-logs")
    monkeypatch.setenv(name, value)

    with pytest.raises(ValueError, match=name):
        load_config()
