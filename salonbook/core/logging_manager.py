#!/usr/bin/env python3
"""
logging_manager.py
--------------------
Centralized logging for the tagging engine.

Writes structured, rotating log files for store operations, reconciler
activity and migration runs. Components accept ``logger=None`` and use
``safe_logger()`` so they never need ``if logger:`` guards.
"""
# --- Annotations ---
from __future__ import annotations

# --- Standard library imports ---
import json
import logging
import sys
import traceback
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Optional

# --- Third party imports ---
import click


FILE_FORMAT = (
    "%(asctime)s - %(name)s - %(levelname)s - [%(threadName)s] "
    "[%(funcName)s:%(lineno)d] - %(message)s"
)
CONSOLE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class SalonbookLogger:
    """
    Rotating-file logger shared by managers, the reconciler and the CLI.

    Two files are written under ``log_dir``:
        - ``<component_name>.log``: everything from DEBUG up
        - ``errors.log``: errors only, for quick scanning

    Warnings and above are echoed to stderr. Reconciler threads log
    through the same instance, so the thread name is part of every
    file record.

    Attributes:
        log_dir: Directory for log files
        component_name: Logger namespace (e.g. 'tagging', 'migration')
        main_logger: Logger for all operations
        error_logger: Logger for errors only
    """

    def __init__(
        self,
        log_dir: Path,
        component_name: str = "tagging",
        max_bytes: int = 10 * 1024 * 1024,
        backup_count: int = 5,
    ) -> None:
        """
        Initialize the logging system.

        Args:
            log_dir: Directory for log files (created if missing)
            component_name: Namespace for this component's loggers
            max_bytes: Maximum log file size before rotation (default: 10MB)
            backup_count: Number of rotated files to keep (default: 5)
        """
        self.log_dir = Path(log_dir)
        self.component_name = component_name
        self.max_bytes = max_bytes
        self.backup_count = backup_count
        self._setup_loggers()

    def _setup_loggers(self) -> None:
        """Create the operation and error loggers with their handlers."""
        self.log_dir.mkdir(parents=True, exist_ok=True)

        self.main_logger = logging.getLogger(f"salonbook.{self.component_name}")
        self.main_logger.setLevel(logging.DEBUG)
        # Reset only this logger's handlers so repeated construction
        # (one per CLI invocation in tests) does not duplicate output
        self.main_logger.handlers = []

        self.error_logger = logging.getLogger(f"salonbook.{self.component_name}.errors")
        self.error_logger.setLevel(logging.ERROR)
        self.error_logger.handlers = []

        self._add_file_handler(
            self.main_logger, self.log_dir / f"{self.component_name}.log", logging.DEBUG
        )
        self._add_file_handler(
            self.error_logger, self.log_dir / "errors.log", logging.ERROR
        )

        console_handler = logging.StreamHandler()
        console_handler.setLevel(logging.WARNING)
        console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt="%H:%M:%S"))
        self.main_logger.addHandler(console_handler)

    def _add_file_handler(
        self, logger: logging.Logger, file_path: Path, level: int
    ) -> None:
        """Attach a rotating UTF-8 file handler at ``level``."""
        handler = RotatingFileHandler(
            file_path,
            maxBytes=self.max_bytes,
            backupCount=self.backup_count,
            encoding="utf-8",
        )
        handler.setLevel(level)
        handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        logger.addHandler(handler)

    @staticmethod
    def _format(prefix: str, message: str, details: Optional[Dict[str, Any]]) -> str:
        if details:
            return f"{prefix} - {message}: {json.dumps(details, default=str)}"
        return f"{prefix} - {message}"

    def log_operation(
        self, operation: str, details: Optional[Dict[str, Any]] = None
    ) -> None:
        """
        Log a completed store operation at INFO.

        Args:
            operation: Name of the operation
            details: Optional operation details (serialized as JSON)
        """
        self.main_logger.info(self._format("OPERATION", operation, details or {}))

    def log_error(
        self, error: Exception, context: Optional[Dict[str, Any]] = None
    ) -> None:
        """
        Log an error with context to the error log.

        The traceback is included when called from an ``except`` block.

        Args:
            error: Exception that occurred
            context: Optional context (operation, entity, tag id...)
        """
        self.error_logger.error(f"ERROR - {type(error).__name__}: {error}")

        if context:
            context_str = ", ".join(f"{k}={v}" for k, v in context.items())
            self.error_logger.error(f"Context: {context_str}")

        if sys.exc_info()[0] is not None:
            self.error_logger.error(f"Traceback:\n{traceback.format_exc()}")

    def log_debug(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        """Log debug information."""
        self.main_logger.debug(self._format("DEBUG", message, details))

    def log_info(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        """Log general information."""
        self.main_logger.info(self._format("INFO", message, details))

    def log_warning(
        self, message: str, details: Optional[Dict[str, Any]] = None
    ) -> None:
        """
        Log a warning.

        Used for non-critical failures the system tolerates, such as an
        abandoned usage count adjustment or a missing legacy table.
        """
        self.main_logger.warning(self._format("WARNING", message, details))

    def log_cli_error(
        self,
        error: Exception,
        context: Optional[Dict[str, Any]] = None,
        show_traceback: bool = False,
    ) -> str:
        """
        Log full error details and return a short message for the terminal.

        Args:
            error: Exception to log
            context: Where the error happened
            show_traceback: Append the traceback to the returned message

        Returns:
            Message suitable for CLI display

        Examples:
            >>> logger.log_cli_error(TagInUseError("Cannot delete tag that is in use."))
            '❌ TagInUseError: Cannot delete tag that is in use.'
        """
        self.log_error(error, context or {"source": "cli"})

        message = f"❌ {type(error).__name__}: {error}"
        if show_traceback:
            return f"{message}\n\n{traceback.format_exc()}"
        return message


def handle_cli_error(
    ctx: "click.Context",
    error: Exception,
    operation: str,
    additional_context: Optional[Dict[str, Any]] = None,
    exit_code: int = 1,
) -> None:
    """
    Standardized error handling for CLI commands.

    Logs the error through the logger stored on the Click context, prints a
    clean message to stderr and exits.

    Args:
        ctx: Click context holding ``logger`` and ``verbose``
        error: Exception that occurred
        operation: Name of the failed command (e.g. 'tags_delete')
        additional_context: Extra context such as the tag id or entity
        exit_code: Process exit code (default: 1)

    Note:
        This function never returns - it always calls sys.exit()
    """
    logger: Optional[SalonbookLogger] = ctx.obj.get("logger")
    verbose: bool = ctx.obj.get("verbose", False)

    context = {"operation": operation}
    if additional_context:
        context.update(additional_context)

    error_msg = safe_logger(logger).log_cli_error(error, context, show_traceback=verbose)

    click.echo(error_msg, err=True)
    sys.exit(exit_code)


class NullLogger:
    """
    Logger with the SalonbookLogger interface that discards everything.
    """

    def log_operation(self, operation: str, details: Optional[Dict[str, Any]] = None) -> None:
        pass

    def log_error(self, error: Exception, context: Optional[Dict[str, Any]] = None) -> None:
        pass

    def log_debug(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        pass

    def log_info(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        pass

    def log_warning(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        pass

    def log_cli_error(
        self,
        error: Exception,
        context: Optional[Dict[str, Any]] = None,
        show_traceback: bool = False,
    ) -> str:
        """Format the error without logging it."""
        return f"❌ {type(error).__name__}: {error}"


_null_logger = NullLogger()


def safe_logger(logger: Optional[SalonbookLogger]) -> SalonbookLogger:
    """
    Return the provided logger, or a shared NullLogger if None.

    Use:
        safe_logger(self.logger).log_info("message")
    """
    return logger if logger is not None else _null_logger  # type: ignore[return-value]
