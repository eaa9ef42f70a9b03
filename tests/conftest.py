"""
conftest.py
-----------
Shared pytest fixtures for the tagging engine tests.

Provides fixtures for:
- A temporary SQLite database with the tagging schema
- Managers and the usage count reconciler bound to it
- Legacy join tables for migration tests
- Small factories for tags and entity ids
"""
import pytest
from pathlib import Path
from tempfile import TemporaryDirectory

from salonbook.database.configs import RetryPolicy


# ----- Path Fixtures -----

@pytest.fixture
def tmp_dir():
    """Create a temporary directory for test file operations."""
    with TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def test_db_url(tmp_dir):
    """SQLAlchemy URL of a temporary SQLite database."""
    return f"sqlite:///{tmp_dir / 'test.db'}"


# ----- Test Database Fixtures -----

@pytest.fixture
def fast_retry_policy():
    """Retry policy with negligible backoff."""
    return RetryPolicy(max_attempts=3, base_delay=0.001)


@pytest.fixture
def test_db(test_db_url, fast_retry_policy):
    """
    Create test database instance with schema.

    Returns a SalonbookDB with an initialized schema. Pending usage count
    updates are awaited and connections released after the test.
    """
    from salonbook.database.manager import SalonbookDB

    db = SalonbookDB(db_url=test_db_url, retry_policy=fast_retry_policy)
    db.initialize_schema()

    yield db

    db.close()


@pytest.fixture
def tag_manager(test_db):
    """TagManager bound to the test database."""
    return test_db.tags


@pytest.fixture
def entity_tag_manager(test_db):
    """EntityTagManager wired to the test database's reconciler."""
    return test_db.entity_tags


@pytest.fixture
def reconciler(test_db):
    """UsageCountReconciler of the test database."""
    return test_db.reconciler


@pytest.fixture
def legacy_tables(test_db):
    """Create the five legacy join tables in the test database."""
    from salonbook.database.models import LEGACY_TABLES, legacy_metadata

    legacy_metadata.create_all(test_db.engine)
    return LEGACY_TABLES


# ----- Sample Data Factories -----

@pytest.fixture
def make_tag(tag_manager):
    """Factory creating tags through the TagManager."""

    def _make_tag(name, **fields):
        return tag_manager.create({"name": name, **fields})

    return _make_tag


@pytest.fixture
def usage_count(test_db):
    """Read a tag's usage count after pending updates have been applied."""
    from salonbook.database.models import Tag

    def _usage_count(tag_id):
        test_db.reconciler.drain()
        with test_db.session_scope() as session:
            return session.get(Tag, tag_id).usage_count

    return _usage_count
