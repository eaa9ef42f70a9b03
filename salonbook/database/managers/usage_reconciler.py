#!/usr/bin/env python3
"""
usage_reconciler.py
-------------------
Keeps ``tags.usageCount`` eventually consistent with ``entity_tags``.

The association service reports what changed as a TagDelta; the reconciler
turns the delta into single-row atomic adjustments, each in its own short
transaction on its own session, running on a small thread pool off the
caller's path. A failed adjustment is retried on lock-wait timeouts and
otherwise logged and abandoned: a drifting counter is tolerated, a failed
tagging request is not. ``recount()`` repairs any drift from the actual
association rows.

Key Features:
    - increment / decrement: one atomic UPDATE, floored at zero
    - update_tag_usage_counts: apply an old/new id pair, never raises
    - defer: apply a delta only once the caller's root transaction commits
    - schedule / drain / shutdown: background execution
    - recount: rebuild counts from entity_tags

Usage:
    reconciler = UsageCountReconciler(session_factory, logger)

    with db.session_scope() as session:
        delta = assoc.set_entity_tags("service", "svc1", ["t1"], session=session)
        reconciler.defer(session, delta)

    reconciler.drain()

Notes
==============
Deferred deltas are parked per transaction, savepoints included. Rolling
back a savepoint drops the deltas recorded inside it; releasing it keeps
them for the enclosing transaction. Nothing is submitted before the root
transaction commits.
"""
# --- Annotations ---
from __future__ import annotations

# --- Standard library imports ---
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import wait as wait_for_futures
from typing import Dict, Iterable, List, Optional, Set

# --- Third party imports ---
from sqlalchemy import case, event, func, select, update
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session, SessionTransaction, sessionmaker

# --- Local imports ---
from salonbook.core.logging_manager import SalonbookLogger, safe_logger
from salonbook.database.configs import DEFAULT_RETRY_POLICY, RetryPolicy, is_lock_wait_error
from salonbook.database.decorators import DatabaseOperation
from salonbook.database.models import EntityTag, Tag

from .base_manager import BaseManager
from .tag_delta import TagDelta

PENDING_KEY = "salonbook.pending_tag_deltas"


class UsageCountReconciler(BaseManager):
    """
    Applies usage count deltas for tags.

    Attributes:
        session_factory: Factory for the reconciler's own sessions
        logger: Optional logger; failures are reported with log_warning
        retry_policy: Attempts and backoff for lock-wait timeouts
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        logger: Optional[SalonbookLogger] = None,
        max_workers: int = 2,
        retry_policy: RetryPolicy = DEFAULT_RETRY_POLICY,
    ) -> None:
        super().__init__(session_factory, logger)
        self.retry_policy = retry_policy
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="usage-reconciler"
        )
        self._futures: Set[Future] = set()
        self._lock = threading.Lock()

    # -------------------------------------------------------------------------
    # Single adjustments
    # -------------------------------------------------------------------------

    def increment(self, tag_id: str) -> bool:
        """
        Add one to a tag's usage count.

        Returns:
            True if the update committed, False if it was abandoned
        """
        stmt = (
            update(Tag)
            .where(Tag.id == tag_id)
            .values(usage_count=Tag.usage_count + 1)
            .execution_options(synchronize_session=False)
        )
        return self._adjust(stmt, "increment", tag_id)

    def decrement(self, tag_id: str) -> bool:
        """
        Subtract one from a tag's usage count, never going below zero.

        Returns:
            True if the update committed, False if it was abandoned
        """
        stmt = (
            update(Tag)
            .where(Tag.id == tag_id)
            .values(
                usage_count=case(
                    (Tag.usage_count > 0, Tag.usage_count - 1),
                    else_=0,
                )
            )
            .execution_options(synchronize_session=False)
        )
        return self._adjust(stmt, "decrement", tag_id)

    def _adjust(self, stmt, direction: str, tag_id: str) -> bool:
        def run_update() -> None:
            with self.session_factory() as session:
                with session.begin():
                    session.execute(stmt)

        try:
            self._execute_with_retry(run_update, self.retry_policy)
            return True
        except OperationalError as e:
            if is_lock_wait_error(e):
                safe_logger(self.logger).log_warning(
                    f"Usage count {direction} abandoned (non-critical)",
                    {
                        "tag_id": tag_id,
                        "attempts": self.retry_policy.max_attempts,
                        "error": str(e),
                    },
                )
                return False
            self._log_failure(direction, tag_id, e)
            return False
        except SQLAlchemyError as e:
            self._log_failure(direction, tag_id, e)
            return False

    def _log_failure(self, direction: str, tag_id: str, error: Exception) -> None:
        safe_logger(self.logger).log_warning(
            f"Usage count {direction} failed (non-critical)",
            {"tag_id": tag_id, "error": str(error)},
        )

    # -------------------------------------------------------------------------
    # Delta application
    # -------------------------------------------------------------------------

    def update_tag_usage_counts(
        self,
        old_tag_ids: Optional[Iterable[str]],
        new_tag_ids: Optional[Iterable[str]],
    ) -> None:
        """
        Decrement removed tags and increment added ones.

        Each tag is adjusted in its own transaction. Failures are logged and
        skipped; this method never raises.
        """
        delta = TagDelta(list(old_tag_ids or []), list(new_tag_ids or []))
        if not delta.has_changes:
            return

        logger = safe_logger(self.logger)
        failed: List[str] = []

        for tag_id in delta.removed:
            if not self.decrement(tag_id):
                failed.append(tag_id)
        for tag_id in delta.added:
            if not self.increment(tag_id):
                failed.append(tag_id)

        logger.log_operation(
            "usage_counts_updated",
            {"added": delta.added, "removed": delta.removed, "failed": failed},
        )

    def apply_deltas(self, deltas: Iterable[TagDelta]) -> None:
        """Apply several deltas in order."""
        for delta in deltas:
            try:
                self.update_tag_usage_counts(delta.old_tag_ids, delta.new_tag_ids)
            except Exception as e:
                safe_logger(self.logger).log_error(e, {"operation": "apply_deltas"})

    def schedule(
        self,
        old_tag_ids: Optional[Iterable[str]],
        new_tag_ids: Optional[Iterable[str]],
    ) -> Future:
        """
        Run update_tag_usage_counts on the worker pool.

        Returns:
            Future of the background task; callers are not required to wait
        """
        return self._submit(
            self.apply_deltas,
            [TagDelta(list(old_tag_ids or []), list(new_tag_ids or []))],
        )

    def _submit(self, fn, *args) -> Future:
        future = self._executor.submit(fn, *args)
        with self._lock:
            self._futures.add(future)
        future.add_done_callback(self._forget)
        return future

    def _forget(self, future: Future) -> None:
        with self._lock:
            self._futures.discard(future)

    # -------------------------------------------------------------------------
    # Commit hooks
    # -------------------------------------------------------------------------

    def defer(self, session: Session, delta: TagDelta) -> None:
        """
        Apply a delta after the session's root transaction commits.

        The delta is recorded against the innermost open transaction. If that
        transaction, or any transaction enclosing it, rolls back, the delta
        is dropped. A session with no transaction yet is begun.
        """
        if not delta.has_changes:
            return

        transaction = session.get_nested_transaction() or session.get_transaction()
        if transaction is None:
            transaction = session.begin()

        pending: Dict[SessionTransaction, List[TagDelta]] = session.info.setdefault(
            PENDING_KEY, {}
        )
        pending.setdefault(transaction, []).append(delta)

        if not event.contains(session, "after_commit", self._after_commit):
            event.listen(session, "after_commit", self._after_commit)
            event.listen(session, "after_soft_rollback", self._after_soft_rollback)
            event.listen(session, "after_transaction_end", self._after_transaction_end)

    def _after_commit(self, session: Session) -> None:
        # Also fired when a savepoint is released
        if session.in_nested_transaction():
            return

        pending = session.info.pop(PENDING_KEY, None)
        if not pending:
            return

        deltas = [delta for recorded in pending.values() for delta in recorded]
        try:
            self._submit(self.apply_deltas, deltas)
        except RuntimeError as e:
            safe_logger(self.logger).log_warning(
                "Usage count update not scheduled (non-critical)",
                {"deltas": len(deltas), "error": str(e)},
            )

    def _after_soft_rollback(self, session: Session, previous_transaction) -> None:
        pending = session.info.get(PENDING_KEY)
        if not pending:
            return

        discarded = [
            transaction
            for transaction in pending
            if _is_within(transaction, previous_transaction)
        ]
        for transaction in discarded:
            del pending[transaction]

        if discarded:
            safe_logger(self.logger).log_debug(
                "Discarded usage count deltas of rolled back transaction",
                {"transactions": len(discarded)},
            )

    def _after_transaction_end(self, session: Session, transaction) -> None:
        if transaction.parent is not None:
            return
        discarded = session.info.pop(PENDING_KEY, None)
        if discarded:
            safe_logger(self.logger).log_debug(
                "Discarded usage count deltas of uncommitted transaction",
                {"transactions": len(discarded)},
            )

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def drain(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for queued adjustments to finish.

        Returns:
            True if everything finished within the timeout
        """
        with self._lock:
            pending = list(self._futures)
        if not pending:
            return True
        _, not_done = wait_for_futures(pending, timeout=timeout)
        return not not_done

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    # -------------------------------------------------------------------------
    # Repair
    # -------------------------------------------------------------------------

    def recount(self, tag_id: Optional[str] = None) -> Dict[str, int]:
        """
        Rebuild usage counts from the rows in ``entity_tags``.

        Args:
            tag_id: Limit to one tag, or None for every tag

        Returns:
            Mapping of tag id to corrected count, for tags whose count changed
        """
        counts_stmt = select(EntityTag.tag_id, func.count(EntityTag.id)).group_by(
            EntityTag.tag_id
        )
        tags_stmt = select(Tag.id, Tag.usage_count)
        if tag_id is not None:
            counts_stmt = counts_stmt.where(EntityTag.tag_id == tag_id)
            tags_stmt = tags_stmt.where(Tag.id == tag_id)

        corrections: Dict[str, int] = {}
        with DatabaseOperation(self.logger, "recount_usage_counts", {"tag_id": tag_id}):
            with self.session_factory() as session:
                with session.begin():
                    actual = {row[0]: row[1] for row in session.execute(counts_stmt)}

                    for current_id, stored in session.execute(tags_stmt).all():
                        expected = actual.get(current_id, 0)
                        if stored != expected:
                            session.execute(
                                update(Tag)
                                .where(Tag.id == current_id)
                                .values(usage_count=expected)
                                .execution_options(synchronize_session=False)
                            )
                            corrections[current_id] = expected

        safe_logger(self.logger).log_info(
            "Usage counts recounted", {"tag_id": tag_id, "corrected": corrections}
        )
        return corrections


def _is_within(transaction: Optional[SessionTransaction], ancestor: SessionTransaction) -> bool:
    """Check whether ``transaction`` is ``ancestor`` or nested inside it."""
    while transaction is not None:
        if transaction is ancestor:
            return True
        transaction = transaction.parent
    return False
