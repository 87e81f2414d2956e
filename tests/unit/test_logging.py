"""Unit tests for logging configuration."""

import json
import logging

import pytest
import structlog

from mail_relay.logging import (
    REDACTED,
    add_log_level,
    build_processors,
    redact_secrets,
    setup_logging,
)


@pytest.mark.unit
def test_setup_logging_info():
    """Test logging setup with INFO level."""
    setup_logging(log_level="INFO", log_format="console")


@pytest.mark.unit
def test_setup_logging_debug():
    """Test logging setup with DEBUG level."""
    setup_logging(log_level="DEBUG", log_format="json")


@pytest.mark.unit
def test_setup_logging_quiets_smtp_client():
    """Test the SMTP client library logs only warnings and above."""
    setup_logging(log_level="DEBUG")

    assert logging.getLogger("aiosmtplib").level == logging.WARNING


@pytest.mark.unit
def test_add_log_level_normalizes_warn():
    """Test warn is reported as WARNING."""
    assert add_log_level(None, "warn", {})["level"] == "WARNING"
    assert add_log_level(None, "info", {})["level"] == "INFO"


@pytest.mark.unit
def test_redact_secrets():
    """Test credential fields are replaced and other fields kept."""
    event = redact_secrets(
        None,
        "info",
        {"event": "x", "email_password": "pw", "api_key": "k", "to_addr": "b@x.com"},
    )

    assert event["email_password"] == REDACTED
    assert event["api_key"] == REDACTED
    assert event["to_addr"] == "b@x.com"


@pytest.mark.unit
def test_json_output_is_redacted():
    """Test rendered JSON never contains a logged secret."""
    stdlib_logger = logging.getLogger("mail_relay.tests")
    event = {"event": "Sending email", "password": "s3cret"}
    for processor in build_processors("json"):
        event = processor(stdlib_logger, "info", event)

    rendered = json.loads(event)
    assert rendered["password"] == REDACTED
    assert rendered["level"] == "INFO"
    assert "s3cret" not in json.dumps(rendered)


@pytest.mark.unit
def test_console_renderer_selected():
    """Test non-json formats end with the console renderer."""
    assert isinstance(build_processors("console")[-1], structlog.dev.ConsoleRenderer)
