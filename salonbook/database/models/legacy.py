"""
Legacy Join Tables
------------------

Core ``Table`` definitions for the five pre-unification tag join tables.

They live on their own ``MetaData`` so ``create_all`` for the engine never
recreates them. The migration job reads them, the tag delete guard counts
their rows, and ``drop_legacy_tables`` removes them. Tests create them
explicitly to simulate a partially migrated database.
"""
# --- Standard library imports ---
from typing import Dict

# --- Third party imports ---
from sqlalchemy import Column, DateTime, MetaData, String, Table

# --- Local imports ---
from ..configs.legacy_tables import LEGACY_TAG_TABLES

legacy_metadata = MetaData()


def _build_legacy_table(table_name: str, entity_id_column: str) -> Table:
    return Table(
        table_name,
        legacy_metadata,
        Column("id", String(10), primary_key=True),
        Column(entity_id_column, String(50), nullable=False),
        Column("tagId", String(10), nullable=False),
        Column("createdDate", DateTime(timezone=True), nullable=True),
    )


LEGACY_TABLES: Dict[str, Table] = {
    config.table_name: _build_legacy_table(config.table_name, config.entity_id_column)
    for config in LEGACY_TAG_TABLES
}
