"""
test_usage_reconciler.py
------------------------
Unit tests for UsageCountReconciler.

Retry behaviour is exercised against a mocked session factory; count
arithmetic, deferral and recount run against the temporary database.
"""
import threading

import pytest
from unittest.mock import MagicMock, patch

from sqlalchemy import update
from sqlalchemy.exc import OperationalError, ProgrammingError

from salonbook.database.configs import RetryPolicy
from salonbook.database.managers import TagDelta, UsageCountReconciler
from salonbook.database.managers.usage_reconciler import PENDING_KEY
from salonbook.database.models import EntityTag, EntityType, Tag


def lock_wait_error():
    return OperationalError(
        "UPDATE tags", {}, Exception(1205, "Lock wait timeout exceeded; try restarting transaction")
    )


@pytest.fixture
def mock_session():
    return MagicMock()


@pytest.fixture
def mock_reconciler(mock_session):
    """Reconciler whose sessions are mocks."""
    factory = MagicMock()
    factory.return_value.__enter__.return_value = mock_session
    logger = MagicMock()
    reconciler = UsageCountReconciler(
        factory, logger, max_workers=1, retry_policy=RetryPolicy(3, 0.05)
    )
    yield reconciler
    reconciler.shutdown()


def set_count(test_db, tag_id, value):
    with test_db.session_scope() as session:
        session.execute(update(Tag).where(Tag.id == tag_id).values(usage_count=value))


class TestRetry:
    """Lock-wait retries and abandonment."""

    @patch("salonbook.database.managers.base_manager.time.sleep")
    def test_lock_wait_is_retried(self, mock_sleep, mock_reconciler, mock_session):
        mock_session.execute.side_effect = [lock_wait_error(), None]

        assert mock_reconciler.increment("tag0000001") is True
        assert mock_session.execute.call_count == 2
        mock_sleep.assert_called_once_with(0.05)

    @patch("salonbook.database.managers.base_manager.time.sleep")
    def test_backoff_doubles(self, mock_sleep, mock_reconciler, mock_session):
        mock_session.execute.side_effect = [lock_wait_error(), lock_wait_error(), None]

        assert mock_reconciler.decrement("tag0000001") is True
        assert [c.args[0] for c in mock_sleep.call_args_list] == [0.05, 0.1]

    @patch("salonbook.database.managers.base_manager.time.sleep")
    def test_exhausted_retries_are_abandoned(self, mock_sleep, mock_reconciler, mock_session):
        mock_session.execute.side_effect = lock_wait_error()

        assert mock_reconciler.increment("tag0000001") is False
        assert mock_session.execute.call_count == 3
        assert mock_sleep.call_count == 2
        mock_reconciler.logger.log_warning.assert_called_once()
        assert "abandoned" in mock_reconciler.logger.log_warning.call_args[0][0]

    @patch("salonbook.database.managers.base_manager.time.sleep")
    def test_other_errors_are_not_retried(self, mock_sleep, mock_reconciler, mock_session):
        mock_session.execute.side_effect = ProgrammingError("UPDATE tags", {}, Exception("boom"))

        assert mock_reconciler.increment("tag0000001") is False
        assert mock_session.execute.call_count == 1
        mock_sleep.assert_not_called()
        mock_reconciler.logger.log_warning.assert_called_once()

    def test_update_never_raises(self, mock_reconciler, mock_session):
        mock_session.execute.side_effect = ProgrammingError("UPDATE tags", {}, Exception("boom"))

        mock_reconciler.update_tag_usage_counts(["a"], ["b"])

        details = mock_reconciler.logger.log_operation.call_args[0][1]
        assert details["failed"] == ["a", "b"]


class TestAdjustments:
    """Counts against the real store."""

    def test_increment_and_decrement(self, reconciler, make_tag, usage_count):
        tag = make_tag("vip")

        reconciler.increment(tag.id)
        reconciler.increment(tag.id)
        reconciler.decrement(tag.id)

        assert usage_count(tag.id) == 1

    def test_decrement_floors_at_zero(self, reconciler, make_tag, usage_count):
        tag = make_tag("vip")

        assert reconciler.decrement(tag.id) is True
        assert usage_count(tag.id) == 0

    def test_unknown_tag_is_a_no_op(self, reconciler):
        assert reconciler.increment("nosuchtag1") is True

    def test_update_tag_usage_counts(self, test_db, reconciler, make_tag, usage_count):
        t1, t2, t3 = make_tag("t1"), make_tag("t2"), make_tag("t3")
        set_count(test_db, t1.id, 1)
        set_count(test_db, t2.id, 1)

        reconciler.update_tag_usage_counts([t1.id, t2.id], [t2.id, t3.id])

        assert usage_count(t1.id) == 0
        assert usage_count(t2.id) == 1
        assert usage_count(t3.id) == 1

    def test_none_lists_are_empty(self, reconciler, make_tag, usage_count):
        tag = make_tag("t1")

        reconciler.update_tag_usage_counts(None, [tag.id])
        reconciler.update_tag_usage_counts(None, None)

        assert usage_count(tag.id) == 1

    def test_schedule_runs_in_background(self, reconciler, make_tag, usage_count):
        tag = make_tag("t1")

        future = reconciler.schedule([], [tag.id])
        future.result(timeout=10)

        assert usage_count(tag.id) == 1
        assert reconciler.drain(timeout=10) is True


class TestDefer:
    """Deltas follow the caller's transaction outcome."""

    def test_applied_after_commit(self, test_db, reconciler, make_tag, usage_count):
        tag = make_tag("t1")

        with test_db.session_scope() as session:
            reconciler.defer(session, TagDelta([], [tag.id]))
            assert session.info[PENDING_KEY]

        assert usage_count(tag.id) == 1

    def test_discarded_on_rollback(self, test_db, reconciler, make_tag, usage_count):
        tag = make_tag("t1")

        session = test_db.SessionLocal()
        try:
            session.execute(update(Tag).where(Tag.id == tag.id).values(description="x"))
            reconciler.defer(session, TagDelta([], [tag.id]))
            session.rollback()
            assert PENDING_KEY not in session.info
        finally:
            session.close()

        assert usage_count(tag.id) == 0

    def test_listener_registered_once(self, test_db, reconciler, make_tag, usage_count):
        t1, t2 = make_tag("t1"), make_tag("t2")

        with test_db.session_scope() as session:
            reconciler.defer(session, TagDelta([], [t1.id]))
            reconciler.defer(session, TagDelta([], [t2.id]))

        assert usage_count(t1.id) == 1
        assert usage_count(t2.id) == 1

    def test_session_reused_after_commit(self, test_db, reconciler, make_tag, usage_count):
        tag = make_tag("t1")

        session = test_db.SessionLocal()
        try:
            reconciler.defer(session, TagDelta([], [tag.id]))
            session.commit()
            session.execute(update(Tag).where(Tag.id == tag.id).values(description="x"))
            reconciler.defer(session, TagDelta([tag.id], []))
            session.rollback()
            assert PENDING_KEY not in session.info
        finally:
            session.close()

        assert usage_count(tag.id) == 1

    def test_empty_delta_is_ignored(self, test_db, reconciler):
        session = test_db.SessionLocal()
        try:
            reconciler.defer(session, TagDelta(["a"], ["a"]))
            assert PENDING_KEY not in session.info
        finally:
            session.close()

    def test_failed_hand_off_does_not_fail_commit(self, test_db, make_tag, usage_count):
        tag = make_tag("t1")
        stopped = UsageCountReconciler(test_db.SessionLocal, MagicMock())
        stopped.shutdown()

        with test_db.session_scope() as session:
            stopped.defer(session, TagDelta([], [tag.id]))

        stopped.logger.log_warning.assert_called_once()
        assert "not scheduled" in stopped.logger.log_warning.call_args[0][0]
        assert usage_count(tag.id) == 0


class TestDeferSavepoints:
    """Deltas recorded inside savepoints (begin_nested)."""

    @staticmethod
    def touch(session, tag):
        # Opens the outer transaction before the first SAVEPOINT
        session.execute(update(Tag).where(Tag.id == tag.id).values(description="x"))

    def test_rolled_back_savepoint_discards_deltas(
        self, test_db, entity_tag_manager, make_tag, usage_count
    ):
        tag = make_tag("t1")

        with test_db.session_scope() as session:
            self.touch(session, tag)
            with pytest.raises(ValueError):
                with session.begin_nested():
                    entity_tag_manager.set_entity_tags(
                        "service", "svc1", [tag.id], session=session
                    )
                    raise ValueError("cancelled")

        assert entity_tag_manager.get_entity_tags("service", "svc1") == []
        assert usage_count(tag.id) == 0

    def test_released_savepoint_waits_for_root_commit(
        self, test_db, reconciler, entity_tag_manager, make_tag, usage_count
    ):
        tag = make_tag("t1")

        with patch.object(reconciler, "_submit", wraps=reconciler._submit) as submit:
            with test_db.session_scope() as session:
                self.touch(session, tag)
                with session.begin_nested():
                    entity_tag_manager.set_entity_tags(
                        "service", "svc1", [tag.id], session=session
                    )

                assert session.in_transaction()
                submit.assert_not_called()
                assert session.info[PENDING_KEY]

            submit.assert_called_once()

        assert usage_count(tag.id) == 1

    def test_outer_rollback_discards_released_savepoint(
        self, test_db, entity_tag_manager, make_tag, usage_count
    ):
        tag = make_tag("t1")

        with pytest.raises(RuntimeError):
            with test_db.session_scope() as session:
                self.touch(session, tag)
                with session.begin_nested():
                    entity_tag_manager.set_entity_tags(
                        "service", "svc1", [tag.id], session=session
                    )
                raise RuntimeError("booking failed")

        assert usage_count(tag.id) == 0

    def test_inner_rollback_keeps_outer_savepoint(
        self, test_db, entity_tag_manager, make_tag, usage_count
    ):
        t1, t2 = make_tag("t1"), make_tag("t2")

        with test_db.session_scope() as session:
            self.touch(session, t1)
            with session.begin_nested():
                entity_tag_manager.set_entity_tags("service", "svc1", [t1.id], session=session)
                with pytest.raises(ValueError):
                    with session.begin_nested():
                        entity_tag_manager.set_entity_tags(
                            "staff", "st1", [t2.id], session=session
                        )
                        raise ValueError("cancelled")

        assert usage_count(t1.id) == entity_tag_manager.count_associations(t1.id) == 1
        assert usage_count(t2.id) == entity_tag_manager.count_associations(t2.id) == 0


class TestConcurrency:
    """Adjustments from several threads at once."""

    def test_concurrent_increments_are_not_lost(
        self, test_db, make_tag, usage_count, fast_retry_policy
    ):
        tag = make_tag("t1")
        logger = MagicMock()
        pool = UsageCountReconciler(
            test_db.SessionLocal, logger, max_workers=4, retry_policy=fast_retry_policy
        )

        def submit_batch():
            for _ in range(10):
                pool.schedule([], [tag.id])

        try:
            threads = [threading.Thread(target=submit_batch) for _ in range(4)]
            for thread in threads:
                thread.start()
            for thread in threads:
                thread.join()
            assert pool.drain(timeout=60) is True
        finally:
            pool.shutdown()

        abandoned = logger.log_warning.call_count
        assert usage_count(tag.id) == 40 - abandoned


class TestRecount:
    """recount() rebuilds counts from entity_tags."""

    def test_corrects_drift(self, test_db, reconciler, make_tag):
        t1, t2 = make_tag("t1"), make_tag("t2")
        with test_db.session_scope() as session:
            session.add(EntityTag(entity_type=EntityType.SERVICE, entity_id="s1", tag_id=t1.id))
            session.add(EntityTag(entity_type=EntityType.STAFF, entity_id="st1", tag_id=t1.id))
        set_count(test_db, t2.id, 7)

        corrections = reconciler.recount()

        assert corrections == {t1.id: 2, t2.id: 0}
        assert reconciler.recount() == {}

    def test_single_tag(self, test_db, reconciler, make_tag):
        t1, t2 = make_tag("t1"), make_tag("t2")
        set_count(test_db, t1.id, 3)
        set_count(test_db, t2.id, 3)

        assert reconciler.recount(t1.id) == {t1.id: 0}

        with test_db.session_scope() as session:
            assert session.get(Tag, t2.id).usage_count == 3
