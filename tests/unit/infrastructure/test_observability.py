"""Unit tests for structured logging configuration and correlation ids."""

import json
import os
from collections.abc import Iterator
from unittest.mock import patch

import pytest
import structlog
from structlog.testing import capture_logs

from platesync.application.services.base import LoggingMixin, traced
from platesync.infrastructure.observability import (
    configure_structlog,
    correlation_scope,
    get_logger_for_component,
    redact_signatures,
)
from platesync.infrastructure.observability.correlation import (
    correlation_id_processor,
    generate_correlation_id,
    get_correlation_id,
    set_correlation_id,
)


@pytest.fixture(autouse=True)
def reset_logging_state() -> Iterator[None]:
    set_correlation_id("")
    yield
    set_correlation_id("")
    structlog.reset_defaults()


class TestCorrelation:
    """Tests for correlation id helpers."""

    def test_generate_is_unique(self) -> None:
        assert generate_correlation_id() != generate_correlation_id()

    def test_set_and_get(self) -> None:
        set_correlation_id("req-1")
        assert get_correlation_id() == "req-1"

    def test_processor_adds_id_only_when_set(self) -> None:
        assert "correlation_id" not in correlation_id_processor(None, "info", {})

        set_correlation_id("req-2")
        assert correlation_id_processor(None, "info", {})["correlation_id"] == "req-2"

    def test_processor_keeps_explicit_id(self) -> None:
        set_correlation_id("req-3")

        entry = correlation_id_processor(None, "info", {"correlation_id": "bound"})

        assert entry["correlation_id"] == "bound"

    def test_scope_restores_previous_value(self) -> None:
        with correlation_scope("req-4") as value:
            assert value == "req-4"
            assert get_correlation_id() == "req-4"

        assert get_correlation_id() == ""

    def test_scope_reuses_outer_id(self) -> None:
        with correlation_scope("outer"):
            with correlation_scope("inner") as value:
                assert value == "outer"

    def test_scope_generates_id_when_none_given(self) -> None:
        with correlation_scope() as value:
            assert value
            assert get_correlation_id() == value


class TestTraced:
    """Tests for the @traced decorator."""

    async def test_operation_logs_share_one_correlation_id(self) -> None:
        class Worker(LoggingMixin):
            def __init__(self) -> None:
                self._init_logger(component="finalization")

            @traced
            async def run(self, batch_id: str) -> str:
                self._log_operation("run", batch_id=batch_id).info("step_one")
                self._log_operation("run", batch_id=batch_id).info("step_two")
                return get_correlation_id()

        with capture_logs() as logs:
            worker = Worker()
            used = await worker.run("b-1")

        assert used
        assert [entry["correlation_id"] for entry in logs] == [used, used]
        assert get_correlation_id() == ""


class TestRedactSignatures:
    def test_signature_names_replaced_by_length(self) -> None:
        entry = redact_signatures(
            None,
            "info",
            {"event": "x", "signature_name": "Alice Smith", "batch_id": "b-1"},
        )

        assert "signature_name" not in entry
        assert entry["signature_name_length"] == 11
        assert entry["batch_id"] == "b-1"

    def test_output_never_contains_signature(
        self, capsys: pytest.CaptureFixture[str]
    ) -> None:
        configure_structlog(environment="production")

        structlog.get_logger().info(
            "leaky_event", primary_attestor_name="Alice Smith"
        )

        out = capsys.readouterr().out
        assert "Alice Smith" not in out
        assert json.loads(out.strip().splitlines()[-1])[
            "primary_attestor_name_length"
        ] == 11


class TestConfigureStructlog:
    """Tests for configure_structlog()."""

    def test_production_uses_json_renderer(self) -> None:
        configure_structlog(environment="production")

        processors = structlog.get_config()["processors"]
        assert isinstance(processors[-1], structlog.processors.JSONRenderer)

    def test_development_uses_console_renderer(self) -> None:
        configure_structlog(environment="development")

        processors = structlog.get_config()["processors"]
        assert isinstance(processors[-1], structlog.dev.ConsoleRenderer)

    def test_environment_read_from_env(self) -> None:
        with patch.dict(os.environ, {"PLATESYNC_ENV": "development"}):
            configure_structlog()

        processors = structlog.get_config()["processors"]
        assert isinstance(processors[-1], structlog.dev.ConsoleRenderer)

    def test_level_filters_entries(self, capsys: pytest.CaptureFixture[str]) -> None:
        with patch.dict(os.environ, {"LOG_LEVEL": "WARNING"}):
            configure_structlog(environment="production")

        structlog.get_logger().info("quiet_event")
        structlog.get_logger().warning("loud_event")

        out = capsys.readouterr().out
        assert "quiet_event" not in out
        assert "loud_event" in out

    def test_json_output_includes_service_context(
        self, capsys: pytest.CaptureFixture[str]
    ) -> None:
        configure_structlog(environment="production")
        set_correlation_id("req-json")

        class AuditService(LoggingMixin):
            def __init__(self) -> None:
                self._init_logger(component="finalization")

        service = AuditService()
        service._log_operation("finalize", batch_id="b-1").info("batch_finalized")

        entry = json.loads(capsys.readouterr().out.strip().splitlines()[-1])
        assert entry["event"] == "batch_finalized"
        assert entry["level"] == "info"
        assert entry["service"] == "AuditService"
        assert entry["component"] == "finalization"
        assert entry["operation"] == "finalize"
        assert entry["batch_id"] == "b-1"
        assert entry["correlation_id"] == "req-json"
        assert "timestamp" in entry

    def test_get_logger_for_component(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_structlog(environment="production")

        get_logger_for_component("schema", component="persistence").info("ready")

        entry = json.loads(capsys.readouterr().out.strip().splitlines()[-1])
        assert entry["service"] == "schema"
        assert entry["component"] == "persistence"
