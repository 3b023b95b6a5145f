"""Tests for structured logging configuration."""

from __future__ import annotations

import json
import logging
import sys
from io import StringIO
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from espresso_gallery.logging_config import (
    ErrorFilter,
    StructuredFormatter,
    configure_logging,
)


def _record(name: str = "espresso_gallery.auth.routes", level: int = logging.INFO, **kwargs):
    return logging.LogRecord(
        name=name,
        level=level,
        pathname="test.py",
        lineno=1,
        msg=kwargs.pop("msg", "Test"),
        args=(),
        exc_info=kwargs.pop("exc_info", None),
    )


@pytest.fixture(autouse=True)
def _restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        if handler not in handlers:
            handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


class TestStructuredFormatter:
    """Tests for StructuredFormatter JSON output."""

    @pytest.fixture
    def formatter(self) -> StructuredFormatter:
        return StructuredFormatter()

    def test_basic_json_output(self, formatter: StructuredFormatter) -> None:
        data = json.loads(formatter.format(_record(msg="User logged in")))

        assert "timestamp" in data
        assert data["level"] == "INFO"
        assert data["logger"] == "espresso_gallery.auth.routes"
        assert data["message"] == "User logged in"
        assert data["category"] == "auth"

    @pytest.mark.parametrize(
        ("logger_name", "category"),
        [
            ("espresso_gallery.auth.dependencies", "auth"),
            ("espresso_gallery.media.pipeline", "media"),
            ("espresso_gallery.gallery.store", "gallery"),
            ("espresso_gallery.routes.gallery", "gallery"),
            ("espresso_gallery.routes.content", "content"),
            ("espresso_gallery.routes.subscriptions", "content"),
            ("espresso_gallery.db.repository", "db"),
            ("sqlalchemy.engine", "db"),
            ("espresso_gallery.main", "http"),
            ("espresso_gallery.routes.creators", "http"),
            ("uvicorn.access", "http"),
            ("espresso_gallery.tracing", "system"),
            ("unknown.logger", "system"),
        ],
    )
    def test_category_detection(
        self, formatter: StructuredFormatter, logger_name: str, category: str
    ) -> None:
        data = json.loads(formatter.format(_record(logger_name)))
        assert data["category"] == category

    def test_user_id_included(self, formatter: StructuredFormatter) -> None:
        record = _record()
        record.user_id = 42  # type: ignore[attr-defined]
        data = json.loads(formatter.format(record))
        assert data["user_id"] == 42
        assert "user_id" not in data.get("extra", {})

    def test_user_id_excluded_when_none(self, formatter: StructuredFormatter) -> None:
        record = _record()
        record.user_id = None  # type: ignore[attr-defined]
        assert "user_id" not in json.loads(formatter.format(record))

    def test_extra_fields(self, formatter: StructuredFormatter) -> None:
        record = _record()
        record.filename_stored = "processed_1_a.jpg"  # type: ignore[attr-defined]
        record.custom_obj = object()  # type: ignore[attr-defined]
        data = json.loads(formatter.format(record))
        assert data["extra"]["filename_stored"] == "processed_1_a.jpg"
        assert isinstance(data["extra"]["custom_obj"], str)

    def test_exception_info(self, formatter: StructuredFormatter) -> None:
        try:
            raise ValueError("Test error")
        except ValueError:
            exc_info = sys.exc_info()

        data = json.loads(formatter.format(_record(level=logging.ERROR, exc_info=exc_info)))
        assert "ValueError" in data["exception"]
        assert "Test error" in data["exception"]

    def test_trace_id_from_opentelemetry(self, formatter: StructuredFormatter) -> None:
        mock_span = MagicMock()
        mock_span.is_recording.return_value = True
        mock_span.get_span_context.return_value.trace_id = 0x1234567890ABCDEF1234567890ABCDEF

        with patch("opentelemetry.trace.get_current_span", return_value=mock_span):
            data = json.loads(formatter.format(_record()))
        assert data["trace_id"] == "1234567890abcdef1234567890abcdef"

    def test_trace_id_not_recording(self, formatter: StructuredFormatter) -> None:
        mock_span = MagicMock()
        mock_span.is_recording.return_value = False

        with patch("opentelemetry.trace.get_current_span", return_value=mock_span):
            data = json.loads(formatter.format(_record()))
        assert "trace_id" not in data

    def test_trace_id_from_record(self, formatter: StructuredFormatter) -> None:
        record = _record()
        record.trace_id = "custom-trace-id"  # type: ignore[attr-defined]
        assert json.loads(formatter.format(record))["trace_id"] == "custom-trace-id"


class TestErrorFilter:
    @pytest.mark.parametrize(
        ("level", "allowed"),
        [
            (logging.CRITICAL, True),
            (logging.ERROR, True),
            (logging.WARNING, False),
            (logging.INFO, False),
            (logging.DEBUG, False),
        ],
    )
    def test_levels(self, level: int, allowed: bool) -> None:
        assert ErrorFilter().filter(_record(level=level)) is allowed


class TestConfigureLogging:
    def test_json_format_output(self) -> None:
        output = StringIO()
        configure_logging(json_format=True, log_level=logging.INFO, stream=output)

        logging.getLogger("espresso_gallery.media.pipeline").info("Stored file")

        data = json.loads(output.getvalue().strip())
        assert data["message"] == "Stored file"
        assert data["category"] == "media"

    def test_plain_format_output(self) -> None:
        output = StringIO()
        configure_logging(json_format=False, log_level=logging.INFO, stream=output)

        logging.getLogger("test.plain").info("Test message")

        content = output.getvalue()
        assert "Test message" in content
        assert "INFO" in content
        with pytest.raises(json.JSONDecodeError):
            json.loads(content.strip())

    def test_log_level_filtering(self) -> None:
        output = StringIO()
        configure_logging(json_format=False, log_level=logging.WARNING, stream=output)

        logger = logging.getLogger("test.level")
        logger.info("hidden")
        logger.warning("shown")

        assert "hidden" not in output.getvalue()
        assert "shown" in output.getvalue()

    def test_noisy_loggers_quieted(self) -> None:
        configure_logging(json_format=False, stream=StringIO())
        assert logging.getLogger("PIL").level == logging.WARNING
        assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING

    def test_error_log_file(self, tmp_path: Path) -> None:
        app_log = tmp_path / "logs" / "app.log"
        error_log = tmp_path / "logs" / "error.log"
        configure_logging(
            json_format=True,
            stream=StringIO(),
            log_file=str(app_log),
            error_log_file=str(error_log),
        )

        logger = logging.getLogger("espresso_gallery.db")
        logger.info("routine")
        logger.error("broken")
        for handler in logging.getLogger().handlers:
            handler.flush()

        assert "routine" in app_log.read_text()
        errors = error_log.read_text()
        assert "broken" in errors
        assert "routine" not in errors
