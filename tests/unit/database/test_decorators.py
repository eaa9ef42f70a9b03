"""Tests for database decorators and context managers."""
import pytest
from unittest.mock import MagicMock

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from salonbook.database.decorators import (
    DatabaseOperation,
    handle_db_errors,
    log_database_operation,
)
from salonbook.core.exceptions import DatabaseError, TagInUseError
from salonbook.core.logging_manager import SalonbookLogger


class TestDatabaseOperation:
    """Tests for DatabaseOperation context manager."""

    def test_successful_operation(self):
        """DatabaseOperation should log completion on success."""
        mock_logger = MagicMock(spec=SalonbookLogger)

        with DatabaseOperation(mock_logger, "set_entity_tags", {"entity": "service:svc1"}):
            result = 1 + 1

        assert result == 2
        mock_logger.log_operation.assert_called_once()
        call_args = mock_logger.log_operation.call_args
        assert call_args[0][0] == "set_entity_tags_completed"
        assert call_args[0][1]["success"] is True
        assert call_args[0][1]["entity"] == "service:svc1"

    def test_successful_operation_with_none_logger(self):
        """DatabaseOperation should work with None logger (uses NullLogger)."""
        with DatabaseOperation(None, "test_operation"):
            result = 1 + 1

        assert result == 2

    def test_integrity_error_raises_database_error(self):
        """DatabaseOperation should convert IntegrityError to DatabaseError."""
        mock_logger = MagicMock(spec=SalonbookLogger)

        with pytest.raises(DatabaseError) as exc_info:
            with DatabaseOperation(mock_logger, "test_operation"):
                raise IntegrityError("statement", {}, Exception("duplicate"))

        assert "Data integrity violation" in str(exc_info.value)
        mock_logger.log_error.assert_called_once()

    def test_error_message_names_operation_and_entity(self):
        """Wrapped errors should say where they happened."""
        with pytest.raises(DatabaseError) as exc_info:
            with DatabaseOperation(None, "set_entity_tags", {"entity": "service:svc1"}):
                raise SQLAlchemyError("connection failed")

        message = str(exc_info.value)
        assert "set_entity_tags" in message
        assert "service:svc1" in message

    def test_sqlalchemy_error_raises_database_error(self):
        """DatabaseOperation should convert SQLAlchemyError to DatabaseError."""
        mock_logger = MagicMock(spec=SalonbookLogger)

        with pytest.raises(DatabaseError) as exc_info:
            with DatabaseOperation(mock_logger, "test_operation"):
                raise SQLAlchemyError("connection failed")

        assert "Database operation failed" in str(exc_info.value)
        mock_logger.log_error.assert_called_once()

    def test_domain_errors_propagate_unchanged(self):
        """DatabaseError subclasses should pass through as-is."""
        with pytest.raises(TagInUseError):
            with DatabaseOperation(None, "delete_tag"):
                raise TagInUseError("in use")

    def test_other_exceptions_propagate(self):
        """DatabaseOperation should propagate non-SQLAlchemy exceptions."""
        mock_logger = MagicMock(spec=SalonbookLogger)

        with pytest.raises(ValueError):
            with DatabaseOperation(mock_logger, "test_operation"):
                raise ValueError("invalid value")

        mock_logger.log_error.assert_called_once()

    def test_log_start_option(self):
        """DatabaseOperation should log start when log_start=True."""
        mock_logger = MagicMock(spec=SalonbookLogger)

        with DatabaseOperation(mock_logger, "test_operation", log_start=True):
            pass

        mock_logger.log_debug.assert_called_once()
        assert "Starting test_operation" in mock_logger.log_debug.call_args[0][0]

    def test_no_log_start_by_default(self):
        """DatabaseOperation should not log start by default."""
        mock_logger = MagicMock(spec=SalonbookLogger)

        with DatabaseOperation(mock_logger, "test_operation"):
            pass

        mock_logger.log_debug.assert_not_called()

    def test_duration_is_logged(self):
        """DatabaseOperation should log duration on completion."""
        mock_logger = MagicMock(spec=SalonbookLogger)

        with DatabaseOperation(mock_logger, "test_operation"):
            pass

        call_args = mock_logger.log_operation.call_args
        assert "duration_seconds" in call_args[0][1]
        assert isinstance(call_args[0][1]["duration_seconds"], float)


class TestHandleDbErrors:
    """Tests for handle_db_errors decorator."""

    def test_translates_sqlalchemy_error(self):
        @handle_db_errors
        def failing():
            raise SQLAlchemyError("gone")

        with pytest.raises(DatabaseError, match="Database operation failed"):
            failing()

    def test_returns_result(self):
        @handle_db_errors
        def working():
            return 42

        assert working() == 42


class TestLogDatabaseOperation:
    """Tests for log_database_operation decorator."""

    def test_logs_completion(self):
        class Service:
            logger = MagicMock(spec=SalonbookLogger)

            @log_database_operation("recount")
            def run(self):
                return "done"

        service = Service()
        assert service.run() == "done"
        assert service.logger.log_operation.call_args[0][0] == "recount_completed"

    def test_logs_and_reraises_errors(self):
        class Service:
            logger = MagicMock(spec=SalonbookLogger)

            @log_database_operation("recount")
            def run(self):
                raise ValueError("bad")

        service = Service()
        with pytest.raises(ValueError):
            service.run()
        service.logger.log_error.assert_called_once()
