"""
Tests for logging_manager module.

Tests SalonbookLogger output files, the safe_logger function and the
NullLogger class that provide null-safe logging throughout the codebase.
"""
import pytest
from unittest.mock import MagicMock

import click

from salonbook.core.exceptions import TagInUseError
from salonbook.core.logging_manager import (
    NullLogger,
    SalonbookLogger,
    handle_cli_error,
    safe_logger,
)


class TestSalonbookLogger:
    """Tests for SalonbookLogger file output."""

    def test_creates_log_directory(self, tmp_path):
        """Logger should create its directory if missing."""
        log_dir = tmp_path / "nested" / "logs"
        SalonbookLogger(log_dir, "tagging")
        assert log_dir.is_dir()

    def test_operation_written_to_component_log(self, tmp_path):
        """log_operation should write JSON details to <component>.log."""
        logger = SalonbookLogger(tmp_path, "tagging")
        logger.log_operation("set_entity_tags_completed", {"entity": "service:svc1"})

        content = (tmp_path / "tagging.log").read_text()
        assert "set_entity_tags_completed" in content
        assert '"entity": "service:svc1"' in content

    def test_error_written_to_error_log(self, tmp_path):
        """log_error should write the error and its context to errors.log."""
        logger = SalonbookLogger(tmp_path, "tagging")
        logger.log_error(ValueError("boom"), {"operation": "delete_tag"})

        content = (tmp_path / "errors.log").read_text()
        assert "ValueError: boom" in content
        assert "operation=delete_tag" in content

    def test_traceback_logged_inside_except_block(self, tmp_path):
        """log_error should include the traceback when handling an exception."""
        logger = SalonbookLogger(tmp_path, "tagging")
        try:
            raise RuntimeError("inside")
        except RuntimeError as e:
            logger.log_error(e)

        assert "Traceback" in (tmp_path / "errors.log").read_text()

    def test_records_include_thread_name(self, tmp_path):
        """File records should name the thread that logged them."""
        logger = SalonbookLogger(tmp_path, "tagging")
        logger.log_info("hello")

        assert "[MainThread]" in (tmp_path / "tagging.log").read_text()

    def test_repeated_construction_does_not_duplicate(self, tmp_path):
        """Creating the logger twice should not double every record."""
        SalonbookLogger(tmp_path, "tagging")
        logger = SalonbookLogger(tmp_path, "tagging")
        logger.log_info("only once")

        assert (tmp_path / "tagging.log").read_text().count("only once") == 1

    def test_log_cli_error_formats_message(self, tmp_path):
        """log_cli_error should return a short message for the terminal."""
        logger = SalonbookLogger(tmp_path, "tagging")
        message = logger.log_cli_error(TagInUseError("Cannot delete tag that is in use."))

        assert message == "❌ TagInUseError: Cannot delete tag that is in use."


class TestNullLogger:
    """Tests for NullLogger class."""

    def test_null_logger_methods_are_no_ops(self):
        """NullLogger logging methods should do nothing."""
        logger = NullLogger()
        logger.log_operation("test_op", {"key": "value"})
        logger.log_error(ValueError("test error"), {"context": "test"})
        logger.log_debug("debug message", {"key": "value"})
        logger.log_info("info message", {"key": "value"})
        logger.log_warning("warning message", {"key": "value"})

    def test_null_logger_log_cli_error_returns_formatted(self):
        """NullLogger.log_cli_error should return formatted error string."""
        logger = NullLogger()
        result = logger.log_cli_error(ValueError("test error"), {"context": "test"})
        assert "ValueError" in result
        assert "test error" in result


class TestSafeLogger:
    """Tests for safe_logger function."""

    def test_safe_logger_returns_logger_when_provided(self):
        """safe_logger should return the same logger when not None."""
        mock_logger = MagicMock(spec=SalonbookLogger)
        assert safe_logger(mock_logger) is mock_logger

    def test_safe_logger_returns_null_logger_when_none(self):
        """safe_logger should return NullLogger when logger is None."""
        assert isinstance(safe_logger(None), NullLogger)

    def test_safe_logger_null_logger_is_singleton(self):
        """safe_logger should return the same NullLogger instance."""
        assert safe_logger(None) is safe_logger(None)

    def test_works_with_log_details(self):
        """safe_logger should pass details through unchanged."""
        mock_logger = MagicMock(spec=SalonbookLogger)
        details = {"tag_id": "abc", "attempt": 2}

        safe_logger(mock_logger).log_warning("retrying", details)
        mock_logger.log_warning.assert_called_once_with("retrying", details)


class TestHandleCliError:
    """Tests for handle_cli_error."""

    def test_exits_with_code_and_prints_message(self, capsys):
        """handle_cli_error should print a clean message and exit."""
        ctx = click.Context(click.Command("tags"), obj={"verbose": False})

        with pytest.raises(SystemExit) as exc_info:
            handle_cli_error(ctx, ValueError("bad input"), "tags_create")

        assert exc_info.value.code == 1
        assert "ValueError: bad input" in capsys.readouterr().err

    def test_logs_through_context_logger(self):
        """handle_cli_error should log via the logger stored on the context."""
        mock_logger = MagicMock(spec=SalonbookLogger)
        mock_logger.log_cli_error.return_value = "❌ ValueError: x"
        ctx = click.Context(click.Command("tags"), obj={"logger": mock_logger})

        with pytest.raises(SystemExit):
            handle_cli_error(ctx, ValueError("x"), "tags_delete", {"tag_id": "t1"})

        context = mock_logger.log_cli_error.call_args[0][1]
        assert context == {"operation": "tags_delete", "tag_id": "t1"}
