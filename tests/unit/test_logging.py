"""Unit tests for structured logging."""
# ruff: noqa: ARG002  # Fixtures used for setup side effects

import json
import logging
from unittest.mock import MagicMock, patch

import pytest
import structlog
from structlog.testing import capture_logs

from vantage.config.settings import Settings
from vantage.core.context import create_context, request_context
from vantage.core.logging import (
    LogContext,
    add_environment_info,
    add_request_context,
    drop_color_message_key,
    get_logger,
    log_exception,
    log_external_call,
    log_request_end,
    setup_logging,
)


@pytest.fixture
def restore_root_logger():
    """Restore root logger handlers and level changed by setup_logging."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers = handlers
    root.setLevel(level)


@pytest.fixture
def configured(restore_root_logger, test_settings: Settings):
    """Patch settings seen by the logging module."""
    with patch("vantage.core.logging.get_settings", return_value=test_settings):
        yield test_settings


class TestAddRequestContext:
    """Tests for add_request_context processor."""

    def test_adds_context_when_available(self):
        """Test context fields are added when RequestContext is set."""
        ctx = create_context(actor_id="reviewer-7", organization_id="org-1")

        with request_context(ctx):
            result = add_request_context(None, "info", {})

        assert result["request_id"] == str(ctx.request_id)
        assert result["correlation_id"] == str(ctx.correlation_id)
        assert result["actor_id"] == "reviewer-7"
        assert result["organization_id"] == "org-1"

    def test_explicit_keys_win(self):
        """Test event keys are not overwritten by the context."""
        ctx = create_context(organization_id="org-1")

        with request_context(ctx):
            result = add_request_context(None, "info", {"organization_id": "org-2"})

        assert result["organization_id"] == "org-2"

    def test_unset_fields_omitted(self):
        """Test None context fields are not added."""
        with request_context(create_context()):
            result = add_request_context(None, "info", {})

        assert "actor_id" not in result

    def test_no_context_available(self):
        """Test graceful handling when no context is set."""
        result = add_request_context(None, "info", {"message": "test"})

        assert result == {"message": "test"}


class TestProcessors:
    """Tests for the environment and uvicorn processors."""

    def test_adds_environment(self):
        """Test environment is added to event dict."""
        mock_settings = MagicMock()
        mock_settings.ENVIRONMENT = "production"

        with patch("vantage.core.logging.get_settings", return_value=mock_settings):
            result = add_environment_info(None, "info", {})

        assert result["environment"] == "production"

    def test_drops_color_message(self):
        """Test color_message key is removed."""
        result = drop_color_message_key(None, "info", {"message": "test", "color_message": "x"})

        assert result == {"message": "test"}


class TestSetupLogging:
    """Tests for setup_logging function."""

    def test_json_output(self, configured, capsys):
        """Test JSON lines carry level, logger name, environment and context."""
        setup_logging(log_level="INFO", json_format=True)
        logger = get_logger("vantage.test")
        ctx = create_context(organization_id="org-1")

        with request_context(ctx):
            logger.info("risk_scored", user_id="u-1", score=55)

        line = capsys.readouterr().out.strip().splitlines()[-1]
        entry = json.loads(line)
        assert entry["event"] == "risk_scored"
        assert entry["level"] == "info"
        assert entry["logger"] == "vantage.test"
        assert entry["environment"] == "test"
        assert entry["user_id"] == "u-1"
        assert entry["organization_id"] == "org-1"
        assert "timestamp" in entry

    def test_level_filtering(self, configured, capsys):
        """Test events below the configured level are dropped."""
        setup_logging(log_level="WARNING", json_format=True)
        logger = get_logger("vantage.test")

        logger.info("quiet")
        logger.warning("loud")

        out = capsys.readouterr().out
        assert "quiet" not in out
        assert "loud" in out
        assert logging.getLogger().level == logging.WARNING

    def test_stdlib_records_routed(self, configured, capsys):
        """Test standard library loggers share the structured output."""
        setup_logging(log_level="INFO", json_format=True)

        logging.getLogger("uvicorn.error").info("server started")

        entry = json.loads(capsys.readouterr().out.strip().splitlines()[-1])
        assert entry["event"] == "server started"
        assert entry["environment"] == "test"


class TestContextVars:
    """Tests for LogContext."""

    def test_log_context_binds_values(self):
        """Test that LogContext binds values during block."""
        structlog.contextvars.clear_contextvars()

        with LogContext(operation="org_sweep", organization_id="org-1"):
            ctx = structlog.contextvars.get_contextvars()
            assert ctx["operation"] == "org_sweep"

        assert "operation" not in structlog.contextvars.get_contextvars()

    def test_log_context_keeps_outer_keys_and_unbinds_on_error(self):
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id="req-1")

        with pytest.raises(RuntimeError), LogContext(organization_id="org-1"):
            assert structlog.contextvars.get_contextvars()["organization_id"] == "org-1"
            raise RuntimeError("boom")

        assert structlog.contextvars.get_contextvars() == {"request_id": "req-1"}
        structlog.contextvars.clear_contextvars()


class TestLogHelpers:
    """Tests for logging helper functions."""

    @pytest.mark.parametrize(
        ("status", "level"), [(200, "info"), (404, "warning"), (503, "error")]
    )
    def test_log_request_end_levels(self, status: int, level: str):
        """Test the level follows the status class."""
        with capture_logs() as logs:
            log_request_end(get_logger("t"), "GET", "/v1/risk/user/u-1", status, 12.3456)

        assert logs[0]["log_level"] == level
        assert logs[0]["http_status"] == status
        assert logs[0]["duration_ms"] == 12.35

    def test_log_exception(self):
        with capture_logs() as logs:
            log_exception(get_logger("t"), ValueError("bad"), path="/x")

        assert logs[0]["error_type"] == "ValueError"
        assert logs[0]["error_message"] == "bad"
        assert logs[0]["path"] == "/x"

    def test_log_external_call(self):
        """Test failed calls are warnings and successful calls debug."""
        with capture_logs() as logs:
            log_external_call(get_logger("t"), "fact_service", "get_peers", 5.0, success=True)
            log_external_call(get_logger("t"), "fact_service", "get_peers", 5.0, success=False)

        assert [entry["log_level"] for entry in logs] == ["debug", "warning"]
        assert logs[1]["service"] == "fact_service"
