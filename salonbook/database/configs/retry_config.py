#!/usr/bin/env python3
"""
retry_config.py
----------------

Retry policy for usage count adjustments.

Only lock-wait style errors are worth retrying: the row is momentarily
held by another transaction. Everything else fails on the first attempt.
"""
from dataclasses import dataclass
from typing import Tuple


# MySQL error 1205: "Lock wait timeout exceeded; try restarting transaction"
LOCK_WAIT_ERROR_CODES: Tuple[int, ...] = (1205,)

# Lowercased driver messages that signal lock contention (SQLITE_BUSY,
# SQLITE_LOCKED and the MySQL text for drivers without numeric args)
LOCK_WAIT_MARKERS: Tuple[str, ...] = (
    "lock wait timeout exceeded",
    "database is locked",
    "database table is locked",
)


@dataclass(frozen=True)
class RetryPolicy:
    """
    Bounded exponential backoff.

    Attributes:
        max_attempts: Total attempts including the first
        base_delay: Seconds to wait after the first failure; doubles after each
    """
    max_attempts: int = 3
    base_delay: float = 0.05

    def delay_for(self, attempt: int) -> float:
        """Seconds to sleep after the zero-based ``attempt`` failed."""
        return self.base_delay * (2 ** attempt)


DEFAULT_RETRY_POLICY = RetryPolicy()


def is_lock_wait_error(error: BaseException) -> bool:
    """
    Check whether ``error`` is a transient lock-wait timeout.

    Only the DBAPI error wrapped by SQLAlchemy (``error.orig``) is
    inspected; the statement text and bound parameters are ignored.
    """
    driver_error = getattr(error, "orig", None) or error
    args = getattr(driver_error, "args", ())

    if args and args[0] in LOCK_WAIT_ERROR_CODES:
        return True

    message = str(driver_error).lower()
    return any(marker in message for marker in LOCK_WAIT_MARKERS)
