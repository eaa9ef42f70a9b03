#!/usr/bin/env python3
"""
decorators.py
--------------------
Shared decorators and context managers for store operations.

Both translate SQLAlchemy failures into DatabaseError and log duration and
outcome, so managers only deal with their own semantics.
"""
# --- Annotations ---
from __future__ import annotations

# --- Standard library imports ---
from datetime import datetime
from functools import wraps
from typing import Any, Callable, Dict, Optional

# --- Third party imports ---
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

# --- Local imports ---
from salonbook.core.exceptions import DatabaseError
from salonbook.core.logging_manager import SalonbookLogger, safe_logger


class DatabaseOperation:
    """
    Context manager that logs a store operation and normalizes its errors.

    On success logs ``<name>_completed`` with the duration. On failure logs
    the error with context, then re-raises: IntegrityError and other
    SQLAlchemyError become DatabaseError with ``context`` in the message;
    DatabaseError subclasses and non-store exceptions propagate unchanged.

    Usage:
        with DatabaseOperation(self.logger, "set_entity_tags",
                               {"entity": "service:svc1"}):
            ...
    """

    def __init__(
        self,
        logger: Optional[SalonbookLogger],
        operation_name: str,
        context: Optional[Dict[str, Any]] = None,
        log_start: bool = False,
    ) -> None:
        self.logger = safe_logger(logger)
        self.operation_name = operation_name
        self.context = context or {}
        self.log_start = log_start
        self.start_time: Optional[datetime] = None

    def __enter__(self) -> "DatabaseOperation":
        self.start_time = datetime.now()
        if self.log_start:
            self.logger.log_debug(f"Starting {self.operation_name}", self.context or None)
        return self

    def __exit__(self, exc_type, exc_value, tb) -> bool:
        duration = (datetime.now() - self.start_time).total_seconds()

        if exc_type is None:
            self.logger.log_operation(
                f"{self.operation_name}_completed",
                {**self.context, "duration_seconds": duration, "success": True},
            )
            return False

        self.logger.log_error(
            exc_value,
            {
                "operation": self.operation_name,
                "duration_seconds": duration,
                **self.context,
            },
        )

        where = self._describe()
        if isinstance(exc_value, IntegrityError):
            raise DatabaseError(
                f"Data integrity violation{where}: {exc_value.orig}"
            ) from exc_value
        if isinstance(exc_value, SQLAlchemyError):
            raise DatabaseError(
                f"Database operation failed{where}: {exc_value}"
            ) from exc_value
        return False

    def _describe(self) -> str:
        if not self.context:
            return f" in {self.operation_name}"
        details = ", ".join(f"{k}={v}" for k, v in self.context.items())
        return f" in {self.operation_name} ({details})"


def log_database_operation(operation_name: str):
    """
    Decorator to log a manager method's duration and outcome.

    The wrapped method's instance must expose ``logger``.

    Args:
        operation_name: Name recorded in the log

    Returns:
        Decorator function
    """

    def decorator(function: Callable) -> Callable:
        @wraps(function)
        def wrapper(self, *args, **kwargs):
            start_time = datetime.now()
            logger = safe_logger(getattr(self, "logger", None))

            try:
                result = function(self, *args, **kwargs)
            except Exception as e:
                logger.log_error(
                    e,
                    {
                        "operation": operation_name,
                        "duration_seconds": (datetime.now() - start_time).total_seconds(),
                    },
                )
                raise

            logger.log_operation(
                f"{operation_name}_completed",
                {
                    "duration_seconds": (datetime.now() - start_time).total_seconds(),
                    "success": True,
                },
            )
            return result

        return wrapper

    return decorator


def handle_db_errors(function: Callable) -> Callable:
    """
    Decorator translating SQLAlchemy errors into DatabaseError.

    Args:
        function: Function to wrap

    Returns:
        Wrapped function with error handling
    """

    @wraps(function)
    def wrapper(*args, **kwargs):
        try:
            return function(*args, **kwargs)
        except IntegrityError as e:
            raise DatabaseError(f"Data integrity violation: {e.orig}") from e
        except SQLAlchemyError as e:
            raise DatabaseError(f"Database operation failed: {e}") from e

    return wrapper
