"""Tests for observability module."""

import json
import logging
import time

import pytest

from rolegraph.observability import (
    AuditContext,
    LogContext,
    LogEntry,
    LogLevel,
    StructuredFormatter,
    StructuredLogger,
    Timer,
    actor_id_var,
    configure_logging,
    emit_counter,
    emit_metric,
    emit_timer,
    get_logger,
    ip_address_var,
    register_metric_callback,
    request_id_var,
    unregister_metric_callback,
    user_agent_var,
)


@pytest.fixture
def received():
    """Collect emitted metrics for the duration of a test."""
    events: list[tuple] = []

    def callback(name: str, value: float, labels: dict) -> None:
        events.append((name, value, labels))

    register_metric_callback(callback)
    yield events
    unregister_metric_callback(callback)


class TestLogContext:
    """Tests for LogContext."""

    def test_current_returns_empty_when_no_context(self) -> None:
        """Current returns empty context when no vars set."""
        context = LogContext.current()
        assert context.request_id is None
        assert context.actor_id is None
        assert context.ip_address is None

    def test_to_dict_excludes_none_values(self) -> None:
        """to_dict excludes None values."""
        context = LogContext(request_id="req-123", actor_id=None, ip_address="10.0.0.1")
        result = context.to_dict()

        assert result == {"request_id": "req-123", "ip_address": "10.0.0.1"}
        assert "actor_id" not in result

    def test_to_dict_includes_extra(self) -> None:
        """to_dict includes extra fields."""
        context = LogContext(request_id="req-123", extra={"custom": "value"})
        result = context.to_dict()

        assert result["request_id"] == "req-123"
        assert result["custom"] == "value"


class TestLogEntry:
    """Tests for LogEntry."""

    def test_to_json_basic(self) -> None:
        """to_json produces valid JSON."""
        entry = LogEntry(
            level=LogLevel.INFO,
            message="Role created",
            timestamp="2024-01-01T00:00:00Z",
            logger="test",
        )
        result = json.loads(entry.to_json())

        assert result["level"] == "INFO"
        assert result["message"] == "Role created"
        assert result["timestamp"] == "2024-01-01T00:00:00Z"
        assert result["logger"] == "test"
        assert "context" not in result

    def test_to_json_with_error_and_duration(self) -> None:
        """to_json includes error info and duration."""
        entry = LogEntry(
            level=LogLevel.ERROR,
            message="Failed",
            timestamp="2024-01-01T00:00:00Z",
            logger="test",
            context={"role_id": "r-1"},
            error={"type": "ValueError", "message": "bad value"},
            duration_ms=12.5,
        )
        result = json.loads(entry.to_json())

        assert result["context"]["role_id"] == "r-1"
        assert result["error"]["type"] == "ValueError"
        assert result["duration_ms"] == 12.5


class TestStructuredFormatter:
    """Tests for StructuredFormatter."""

    def _record(self, **extra) -> logging.LogRecord:
        record = logging.LogRecord(
            name="test",
            level=logging.INFO,
            pathname="test.py",
            lineno=1,
            msg="Test message",
            args=(),
            exc_info=None,
        )
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_formats_as_json(self) -> None:
        """Formats log record as JSON."""
        parsed = json.loads(StructuredFormatter().format(self._record()))

        assert parsed["level"] == "INFO"
        assert parsed["message"] == "Test message"
        assert parsed["logger"] == "test"
        assert "timestamp" in parsed

    def test_merges_context_vars_and_record_context(self) -> None:
        """Context variables and per-call context both appear."""
        with AuditContext(actor_id="admin-1", request_id="req-9"):
            parsed = json.loads(
                StructuredFormatter().format(self._record(context={"role_id": "r-1"}))
            )

        assert parsed["context"] == {
            "request_id": "req-9",
            "actor_id": "admin-1",
            "role_id": "r-1",
        }


class TestStructuredLogger:
    """Tests for StructuredLogger."""

    def test_info_logs_at_info_level(self, caplog: pytest.LogCaptureFixture) -> None:
        """Info method logs at INFO level."""
        logger = StructuredLogger("test.logger")

        with caplog.at_level(logging.INFO, logger="test.logger"):
            logger.info("Test message", context={"role_id": "r-1"}, duration_ms=3.0)

        assert len(caplog.records) == 1
        assert caplog.records[0].levelname == "INFO"
        assert caplog.records[0].context == {"role_id": "r-1"}
        assert caplog.records[0].duration_ms == 3.0

    def test_error_attaches_exception(self, caplog: pytest.LogCaptureFixture) -> None:
        """Error method logs at ERROR level with exception info."""
        logger = StructuredLogger("test.error")

        with caplog.at_level(logging.ERROR, logger="test.error"):
            logger.error("Error message", error=RuntimeError("boom"))

        assert len(caplog.records) == 1
        assert caplog.records[0].levelname == "ERROR"
        assert caplog.records[0].exc_info[0] is RuntimeError


class TestAuditContext:
    """Tests for AuditContext."""

    def test_sets_context_vars(self) -> None:
        """Sets context variables within context and resets after."""
        with AuditContext(
            actor_id="admin-1",
            request_id="req-123",
            ip_address="10.0.0.1",
            user_agent="curl/8.0",
        ):
            assert request_id_var.get() == "req-123"
            assert actor_id_var.get() == "admin-1"
            assert ip_address_var.get() == "10.0.0.1"
            assert user_agent_var.get() == "curl/8.0"

        assert request_id_var.get() is None
        assert actor_id_var.get() is None
        assert user_agent_var.get() is None

    def test_generates_request_id_if_not_provided(self) -> None:
        """Generates request ID if not provided."""
        with AuditContext() as ctx:
            assert ctx.request_id
            assert request_id_var.get() == ctx.request_id

    @pytest.mark.asyncio
    async def test_works_as_async_context_manager(self) -> None:
        """Works as async context manager."""
        async with AuditContext(request_id="async-req") as ctx:
            assert ctx.request_id == "async-req"
            assert request_id_var.get() == "async-req"


class TestTimer:
    """Tests for Timer."""

    def test_measures_duration(self) -> None:
        """Measures elapsed time."""
        with Timer() as timer:
            time.sleep(0.05)

        assert timer.duration_ms >= 40  # Allow some variance
        assert timer.duration_ms < 1000


class TestMetrics:
    """Tests for metric functions."""

    def test_register_and_emit_metric(self, received) -> None:
        """Register callback and emit metric."""
        emit_metric("test.metric", 42.5, {"key": "value"})

        name, value, labels = received[-1]
        assert name == "test.metric"
        assert value == 42.5
        assert labels["key"] == "value"

    def test_emit_counter(self, received) -> None:
        """Emit counter increments by 1."""
        emit_counter("test.counter")

        name, value, _ = received[-1]
        assert name == "test.counter"
        assert value == 1.0

    def test_emit_timer(self, received) -> None:
        """Emit timer with duration."""
        emit_timer("test.timer", 123.45)

        name, value, _ = received[-1]
        assert name == "test.timer"
        assert value == 123.45

    def test_actor_label_from_context(self, received) -> None:
        """The acting principal is added as a label."""
        with AuditContext(actor_id="admin-7"):
            emit_counter("test.actor")

        assert received[-1][2]["actor_id"] == "admin-7"

    def test_failing_callback_does_not_raise(self, received) -> None:
        """A broken callback doesn't stop other callbacks."""
        def broken(name: str, value: float, labels: dict) -> None:
            raise RuntimeError("sink down")

        register_metric_callback(broken)
        try:
            emit_counter("test.resilient")
        finally:
            unregister_metric_callback(broken)

        assert received[-1][0] == "test.resilient"

    def test_unregister(self) -> None:
        """Unregistered callbacks receive nothing."""
        events: list[str] = []

        def callback(name: str, value: float, labels: dict) -> None:
            events.append(name)

        register_metric_callback(callback)
        unregister_metric_callback(callback)
        emit_counter("test.silent")

        assert events == []


class TestConfigureLogging:
    """Tests for configure_logging."""

    @pytest.fixture(autouse=True)
    def restore_root_logger(self):
        root = logging.getLogger("rolegraph")
        level, handlers = root.level, list(root.handlers)
        yield
        root.setLevel(level)
        root.handlers[:] = handlers

    def test_configures_root_logger(self) -> None:
        """Configures the package root logger."""
        configure_logging(level=LogLevel.DEBUG, format="json")

        root = logging.getLogger("rolegraph")
        assert root.level == logging.DEBUG
        assert isinstance(root.handlers[0].formatter, StructuredFormatter)

    def test_text_format(self) -> None:
        """Text format uses a plain formatter."""
        configure_logging(level="WARNING", format="text")

        root = logging.getLogger("rolegraph")
        assert root.level == logging.WARNING
        assert not isinstance(root.handlers[0].formatter, StructuredFormatter)

    def test_get_logger_returns_structured_logger(self) -> None:
        """get_logger returns StructuredLogger."""
        logger = get_logger("test.module")
        assert isinstance(logger, StructuredLogger)
