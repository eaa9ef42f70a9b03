#!/usr/bin/env python3
"""
manager.py
--------------------
Database manager for the Salonbook tagging engine.

Provides the SalonbookDB class, the single entry point that wires the engine,
session factory, managers and schema migrations together.
Handles:
    - Initialization of the database engine and sessionmaker
    - Tag and association managers sharing one session factory
    - The background usage count reconciler
    - The legacy join table migration job
    - Schema creation and migration management via Alembic

Key Features:
    - session_scope(): transactional scope with automatic rollback
    - Managers accept that session to join the caller's transaction
    - Usage counts follow committed association changes automatically
    - Works with SQLite (default) and MySQL (``mysql+pymysql://...``)

Usage:
    db = SalonbookDB("mysql+pymysql://user:pw@localhost/salonbook")
    db.initialize_schema()

    with db.session_scope() as session:
        tag = db.tags.create({"name": "VIP"}, session=session)
        db.entity_tags.set_entity_tags("service", "svc1", [tag.id], session=session)

    db.close()

Notes
==============
- Schema revisions live in salonbook/migrations (Alembic)
- All datetime fields are UTC-aware
- Usage counts are eventually consistent; call reconciler.drain() to wait
"""
# --- Annotations ---
from __future__ import annotations

# --- Standard library imports ---
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterator, Optional, Union

# --- Third party ---
from sqlalchemy import Engine, create_engine, event
from sqlalchemy.engine import make_url
from sqlalchemy.orm import Session, sessionmaker

from alembic import command
from alembic.config import Config
from alembic.runtime.migration import MigrationContext

# --- Local imports ---
from salonbook.core.exceptions import DatabaseError
from salonbook.core.logging_manager import SalonbookLogger
from salonbook.core.paths import ALEMBIC_DIR, DEFAULT_DB_URL
from salonbook.database.configs import DEFAULT_RETRY_POLICY, RetryPolicy

from .decorators import handle_db_errors, log_database_operation
from .legacy_migration import LegacyTagMigration
from .managers import EntityTagManager, TagManager, UsageCountReconciler
from .models import Base


class SalonbookDB:
    """
    Primary interface for the tagging database.

    Attributes:
        db_url (str): SQLAlchemy database URL.
        alembic_dir (Path): Filesystem path to the Alembic directory.
        engine (Engine): SQLAlchemy engine instance.
        SessionLocal (sessionmaker): Factory for new sessions.
        tags (TagManager): Tag CRUD.
        entity_tags (EntityTagManager): Tag associations.
        reconciler (UsageCountReconciler): Background usage count updates.
        legacy_migration (LegacyTagMigration): Legacy join table migration.
    """

    # ---- Initialization ----
    def __init__(
        self,
        db_url: str = DEFAULT_DB_URL,
        alembic_dir: Optional[Union[str, Path]] = None,
        log_dir: Optional[Union[str, Path]] = None,
        reconciler_workers: int = 2,
        retry_policy: RetryPolicy = DEFAULT_RETRY_POLICY,
        echo: bool = False,
    ) -> None:
        """
        Initialize database engine, session factory and managers.

        Args:
            db_url (str): SQLAlchemy URL of the database.
            alembic_dir (str | Path): Alembic directory (defaults to the
                packaged migrations).
            log_dir (str | Path): Directory for log files (optional)
            reconciler_workers (int): Threads for usage count updates
            retry_policy (RetryPolicy): Lock-wait retry policy for the reconciler
            echo (bool): Echo SQL statements
        """
        self.db_url = str(db_url)
        self.alembic_dir = Path(alembic_dir or ALEMBIC_DIR).expanduser().resolve()

        # --- Logging ---
        if log_dir:
            self.log_dir = Path(log_dir).expanduser().resolve()
            self.logger: Optional[SalonbookLogger] = SalonbookLogger(
                self.log_dir,
                component_name="tagging",
            )
        else:
            self.logger = None

        self._setup_engine(echo)

        # --- Managers ---
        self.reconciler = UsageCountReconciler(
            self.SessionLocal,
            self.logger,
            max_workers=reconciler_workers,
            retry_policy=retry_policy,
        )
        self.tags = TagManager(self.SessionLocal, self.logger)
        self.entity_tags = EntityTagManager(
            self.SessionLocal, self.logger, reconciler=self.reconciler
        )
        self.legacy_migration = LegacyTagMigration(
            self.engine, self.SessionLocal, self.logger
        )

    def _setup_engine(self, echo: bool) -> None:
        """Initialize database engine and session factory."""
        try:
            if self.logger:
                self.logger.log_operation(
                    "database_init_start",
                    {
                        "db_url": make_url(self.db_url).render_as_string(hide_password=True),
                        "alembic_dir": str(self.alembic_dir),
                    },
                )

            url = make_url(self.db_url)
            is_sqlite = url.get_backend_name() == "sqlite"
            if is_sqlite and url.database and url.database != ":memory:":
                Path(url.database).expanduser().parent.mkdir(parents=True, exist_ok=True)

            self.engine: Engine = create_engine(
                url,
                echo=echo,
                future=True,
                pool_pre_ping=True,
            )

            if is_sqlite:
                event.listen(self.engine, "connect", _enable_sqlite_foreign_keys)

            self.SessionLocal: sessionmaker = sessionmaker(
                bind=self.engine,
                autoflush=True,
                expire_on_commit=False,
                future=True,
            )

            self.alembic_cfg: Config = self._setup_alembic()

            if self.logger:
                self.logger.log_operation("database_init_complete", {"success": True})

        except Exception as e:
            if self.logger:
                self.logger.log_error(e, {"operation": "database_init"})
            raise DatabaseError(f"Database initialization failed: {e}") from e

    # ---- Session Management ----
    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        """
        Provide a transactional scope around operations with logging.

        Pass the yielded session to manager methods to run them in one
        transaction. Association changes made in the scope update usage
        counts only after the commit.

        Usage:
            with db.session_scope() as session:
                db.entity_tags.add_entity_tags("staff", "st1", ["t1"], session=session)
        """
        session = self.SessionLocal()
        session_id = datetime.now().strftime("%Y%m%d_%H%M%S_%f")

        if self.logger:
            self.logger.log_debug("session_start", {"session_id": session_id})

        try:
            yield session
            session.commit()
            if self.logger:
                self.logger.log_debug("session_commit", {"session_id": session_id})

        except Exception as e:
            session.rollback()
            if self.logger:
                self.logger.log_error(
                    e, {"operation": "session_rollback", "session_id": session_id}
                )
            raise
        finally:
            session.close()
            if self.logger:
                self.logger.log_debug("session_close", {"session_id": session_id})

    def get_session(self) -> Session:
        """Create and return a new SQLAlchemy session."""
        return self.SessionLocal()

    # ---- Alembic ----
    def _setup_alembic(self) -> Config:
        """Setup Alembic configuration."""
        try:
            if self.logger:
                self.logger.log_debug("Setting up Alembic configuration...")

            alembic_cfg = Config()
            alembic_cfg.set_main_option("script_location", str(self.alembic_dir))
            alembic_cfg.set_main_option("sqlalchemy.url", self.db_url.replace("%", "%%"))
            alembic_cfg.set_main_option(
                "file_template",
                "%%(year)d%%(month).2d%%(day).2d_%%(hour).2d%%(minute).2d_%%(slug)s",
            )
            return alembic_cfg
        except Exception as e:
            if self.logger:
                self.logger.log_error(e, {"operation": "setup_alembic"})
            raise DatabaseError(f"Alembic configuration failed: {e}") from e

    def _run_alembic(self, fn, *args) -> None:
        # Share the engine's connection so SQLite pragmas and in-flight state apply
        with self.engine.begin() as connection:
            self.alembic_cfg.attributes["connection"] = connection
            try:
                fn(self.alembic_cfg, *args)
            finally:
                self.alembic_cfg.attributes.pop("connection", None)

    def initialize_schema(self) -> None:
        """
        Create missing tables and record the schema revision.

        Actions:
            Creates every table from the ORM models that does not exist yet
            If the database has no Alembic revision, stamps it to head
            Legacy join tables are never created
        """
        try:
            Base.metadata.create_all(bind=self.engine)
        except Exception as e:
            raise DatabaseError(f"Could not initialize database: {e}") from e

        if self.get_migration_history().get("current_revision"):
            return

        try:
            self._run_alembic(command.stamp, "head")
            if self.logger:
                self.logger.log_operation(
                    "database_schema_created",
                    {"tables": sorted(Base.metadata.tables)},
                )
        except Exception as e:
            if self.logger:
                self.logger.log_error(e, {"operation": "stamp_database"})

    @handle_db_errors
    @log_database_operation("upgrade_database")
    def upgrade_database(self, revision: str = "head") -> None:
        """
        Upgrade the database schema to the specified Alembic revision.

        Args:
            revision (str, optional):
                The target revision to upgrade to.
                Defaults to 'head' (latest revision).
        """
        try:
            self._run_alembic(command.upgrade, revision)
        except Exception as e:
            raise DatabaseError(f"Database upgrade failed: {e}") from e

    def get_migration_history(self) -> Dict[str, Optional[str]]:
        """
        Get the current migration status of the database.

        Returns:
            Dictionary with keys:
                - 'current_revision' (str | None):
                  Current Alembic revision of the database.
                - 'status' (str):
                  Either 'up_to_date' or 'needs_migration'.
                - 'error' (str, optional):
                  Present if an exception occurred.
        """
        try:
            with self.engine.connect() as conn:
                context = MigrationContext.configure(conn)
                current_rev = context.get_current_revision()

            return {
                "current_revision": current_rev,
                "status": "up_to_date" if current_rev else "needs_migration",
            }
        except Exception as e:
            if self.logger:
                self.logger.log_error(e, {"operation": "get_migration_history"})
            return {"error": str(e)}

    # ---- Lifecycle ----
    def close(self) -> None:
        """Wait for pending usage count updates, then release connections."""
        self.reconciler.shutdown(wait=True)
        self.engine.dispose()

    def __enter__(self) -> "SalonbookDB":
        return self

    def __exit__(self, exc_type, exc_value, tb) -> None:
        self.close()


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    # Required for ON DELETE CASCADE on entity_tags.tagId
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()
