#!/usr/bin/env python3
"""
legacy_migration.py
-------------------
Copies the five legacy per-entity tag join tables into ``entity_tags``.

Each legacy row ``(entityId, tagId, createdDate)`` becomes one unified row
with the table's entity type. Rows already present in ``entity_tags`` are
skipped, so the job can be run any number of times and resumes cleanly after
a partial failure. Legacy tables are never modified or dropped by ``run()``
and usage counts are left alone; ``UsageCountReconciler.recount()`` is the
separate step that brings them in line afterwards.

Dropping the legacy tables is a distinct, explicit operation
(``drop_legacy_tables``) reached only through a confirmed CLI command.

Usage:
    job = LegacyTagMigration(engine, session_factory, logger)
    summary = job.run()
    print(summary.total_migrated, summary.total_skipped)
"""
# --- Annotations ---
from __future__ import annotations

# --- Standard library imports ---
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

# --- Third party imports ---
from sqlalchemy import func, inspect, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

# --- Local imports ---
from salonbook.core.exceptions import MigrationError
from salonbook.core.logging_manager import SalonbookLogger, safe_logger
from salonbook.database.configs import LEGACY_TAG_TABLES, LegacyTagTable
from salonbook.database.models import LEGACY_TABLES, EntityTag, EntityType, utc_now


@dataclass
class TableMigrationResult:
    """Outcome of migrating one legacy table."""
    table_name: str
    entity_type: str
    migrated: int = 0
    skipped: int = 0
    missing: bool = False


@dataclass
class MigrationSummary:
    """Per-table results of a full run plus totals."""
    tables: List[TableMigrationResult] = field(default_factory=list)

    @property
    def total_migrated(self) -> int:
        return sum(result.migrated for result in self.tables)

    @property
    def total_skipped(self) -> int:
        return sum(result.skipped for result in self.tables)

    @property
    def missing_tables(self) -> List[str]:
        return [result.table_name for result in self.tables if result.missing]


@dataclass
class DropSummary:
    """
    Outcome of dropping the legacy tables.

    Attributes:
        dropped: (table, row count at drop time) pairs
        not_found: Tables that did not exist
        errors: (table, error message) pairs
    """
    dropped: List[Tuple[str, int]] = field(default_factory=list)
    not_found: List[str] = field(default_factory=list)
    errors: List[Tuple[str, str]] = field(default_factory=list)


class LegacyTagMigration:
    """
    One-shot, idempotent migration of legacy tag join tables.

    Attributes:
        engine: Engine of the database holding both schemas
        session_factory: Factory for migration sessions
        tables: Legacy tables to process, in order
    """

    def __init__(
        self,
        engine: Engine,
        session_factory: Optional[sessionmaker] = None,
        logger: Optional[SalonbookLogger] = None,
        tables: Sequence[LegacyTagTable] = LEGACY_TAG_TABLES,
    ) -> None:
        self.engine = engine
        self.session_factory = session_factory or sessionmaker(
            bind=engine, expire_on_commit=False
        )
        self.logger = logger
        self.tables = list(tables)

    # -------------------------------------------------------------------------
    # Schema
    # -------------------------------------------------------------------------

    def table_exists(self, table_name: str) -> bool:
        return inspect(self.engine).has_table(table_name)

    def ensure_unified_table(self) -> bool:
        """
        Create ``entity_tags`` if it does not exist yet.

        Returns:
            True if the table was created, False if it already existed
        """
        if self.table_exists(EntityTag.__tablename__):
            safe_logger(self.logger).log_info("entity_tags table already exists")
            return False

        EntityTag.__table__.create(self.engine, checkfirst=True)
        safe_logger(self.logger).log_operation("entity_tags_created", {})
        return True

    # -------------------------------------------------------------------------
    # Migration
    # -------------------------------------------------------------------------

    def migrate_table(self, config: LegacyTagTable) -> TableMigrationResult:
        """
        Copy one legacy table into ``entity_tags``.

        A missing table is skipped with a notice. For each row the
        ``(entityType, entityId, tagId)`` triple is looked up first; existing
        triples are counted as skipped, new ones are inserted with the
        legacy ``createdDate`` (or the current time when it is null).

        Raises:
            MigrationError: If reading or writing fails; rows inserted before
                the failure for this table are rolled back
        """
        logger = safe_logger(self.logger)
        entity_type = EntityType(config.entity_type)
        result = TableMigrationResult(config.table_name, config.entity_type)

        if not self.table_exists(config.table_name):
            logger.log_warning(
                f"{config.table_name} table does not exist. Skipping.",
                {"table": config.table_name},
            )
            result.missing = True
            return result

        legacy = LEGACY_TABLES[config.table_name]
        entity_column = legacy.c[config.entity_id_column]

        try:
            with self.session_factory() as session:
                with session.begin():
                    rows = session.execute(
                        select(entity_column, legacy.c.tagId, legacy.c.createdDate)
                    ).all()

                    for entity_id, tag_id, created_date in rows:
                        if self._exists(session, entity_type, entity_id, tag_id):
                            result.skipped += 1
                            continue

                        session.add(
                            EntityTag(
                                entity_type=entity_type,
                                entity_id=entity_id,
                                tag_id=tag_id,
                                created_date=created_date or utc_now(),
                            )
                        )
                        session.flush()
                        result.migrated += 1
        except SQLAlchemyError as e:
            logger.log_error(e, {"operation": "migrate_table", "table": config.table_name})
            raise MigrationError(f"Error migrating {config.table_name}: {e}") from e

        logger.log_operation(
            "legacy_table_migrated",
            {
                "table": config.table_name,
                "migrated": result.migrated,
                "skipped": result.skipped,
            },
        )
        return result

    @staticmethod
    def _exists(
        session: Session, entity_type: EntityType, entity_id: str, tag_id: str
    ) -> bool:
        return (
            session.scalars(
                select(EntityTag.id).where(
                    EntityTag.entity_type == entity_type,
                    EntityTag.entity_id == entity_id,
                    EntityTag.tag_id == tag_id,
                )
            ).first()
            is not None
        )

    def run(self) -> MigrationSummary:
        """
        Ensure the unified table, then migrate every legacy table in order.

        Returns:
            MigrationSummary with per-table counts and totals

        Raises:
            MigrationError: On the first table that fails
        """
        logger = safe_logger(self.logger)
        logger.log_info("Starting legacy tag migration")

        try:
            self.ensure_unified_table()
        except SQLAlchemyError as e:
            raise MigrationError(f"Error creating entity_tags table: {e}") from e

        summary = MigrationSummary()
        for config in self.tables:
            summary.tables.append(self.migrate_table(config))

        logger.log_operation(
            "legacy_migration_completed",
            {
                "migrated": summary.total_migrated,
                "skipped": summary.total_skipped,
                "missing_tables": summary.missing_tables,
            },
        )
        return summary

    # -------------------------------------------------------------------------
    # Cleanup
    # -------------------------------------------------------------------------

    def drop_legacy_tables(self) -> DropSummary:
        """
        Drop every legacy join table that still exists.

        Run only after ``run()`` completed and ``entity_tags`` has been
        verified. Each table is handled independently; a failure is
        recorded and the next table is attempted.
        """
        logger = safe_logger(self.logger)
        summary = DropSummary()

        for config in self.tables:
            table_name = config.table_name
            if not self.table_exists(table_name):
                summary.not_found.append(table_name)
                continue

            legacy = LEGACY_TABLES[table_name]
            try:
                with self.engine.begin() as conn:
                    count = conn.scalar(select(func.count()).select_from(legacy)) or 0
                    legacy.drop(conn)
                summary.dropped.append((table_name, count))
                logger.log_operation("legacy_table_dropped", {"table": table_name, "records": count})
            except SQLAlchemyError as e:
                logger.log_error(e, {"operation": "drop_legacy_tables", "table": table_name})
                summary.errors.append((table_name, str(e)))

        return summary
