#!/usr/bin/env python3
"""
base_manager.py
--------------------
Base manager providing unit-of-work handling and retry utilities.

Every public manager method accepts an optional ``session``. When the
caller passes one, the method joins the caller's transaction and leaves
commit/rollback to the caller. When it does not, the manager opens its own
session, commits on success, rolls back on failure and closes it.

Key Features:
    - unit_of_work(): owned-or-participant transaction handling
    - _execute_with_retry(): bounded exponential backoff on lock waits,
      used by the usage count reconciler for its single-row updates
    - Consistent logging via safe_logger

Example:
    class TagManager(BaseManager):
        def get_by_id(self, tag_id, session=None):
            with self.unit_of_work(session) as s:
                return s.get(Tag, tag_id)
"""
# --- Annotations ---
from __future__ import annotations

# --- Standard library imports ---
import time
from abc import ABC
from contextlib import contextmanager
from typing import Any, Callable, Iterator, Optional

# --- Third party imports ---
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, sessionmaker

# --- Local imports ---
from salonbook.core.exceptions import DatabaseError
from salonbook.core.logging_manager import SalonbookLogger, safe_logger
from salonbook.database.configs import DEFAULT_RETRY_POLICY, RetryPolicy, is_lock_wait_error


class BaseManager(ABC):
    """
    Abstract base for managers that work against a session factory.

    Attributes:
        session_factory: Factory for sessions the manager owns
        logger: Optional logger for operation tracking
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        logger: Optional[SalonbookLogger] = None,
    ) -> None:
        """
        Initialize the base manager.

        Args:
            session_factory: SQLAlchemy sessionmaker bound to the engine
            logger: Optional logger for operation tracking
        """
        self.session_factory = session_factory
        self.logger = logger

    # -------------------------------------------------------------------------
    # Transaction Handling
    # -------------------------------------------------------------------------

    @contextmanager
    def unit_of_work(self, session: Optional[Session] = None) -> Iterator[Session]:
        """
        Yield a session, owning its transaction only if none was supplied.

        Args:
            session: Caller's session, or None to open a private one

        Yields:
            Session to run the operation on
        """
        if session is not None:
            yield session
            return

        owned = self.session_factory()
        try:
            yield owned
            owned.commit()
        except Exception:
            owned.rollback()
            raise
        finally:
            owned.close()

    # -------------------------------------------------------------------------
    # Retry Helper
    # -------------------------------------------------------------------------

    def _execute_with_retry(
        self,
        operation: Callable[[], Any],
        policy: RetryPolicy = DEFAULT_RETRY_POLICY,
    ) -> Any:
        """
        Execute an operation, retrying lock-wait timeouts with backoff.

        Args:
            operation: Callable performing one complete transaction
            policy: Attempt count and base delay

        Returns:
            Result of the operation

        Raises:
            OperationalError: If the error is not a lock wait, or the
                attempts are exhausted
            DatabaseError: If the retry loop completes without success
        """
        for attempt in range(policy.max_attempts):
            try:
                return operation()
            except OperationalError as e:
                if is_lock_wait_error(e) and attempt < policy.max_attempts - 1:
                    wait_time = policy.delay_for(attempt)

                    safe_logger(self.logger).log_debug(
                        f"Lock wait timeout, retrying in {wait_time}s",
                        {"attempt": attempt + 1, "max_attempts": policy.max_attempts},
                    )

                    time.sleep(wait_time)
                    continue

                raise

        raise DatabaseError("Retry loop completed without success")
