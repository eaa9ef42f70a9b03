"""
Database Models Package
------------------------

SQLAlchemy ORM models for the tagging engine.

- base: Base class, timestamp mixin, id generation
- enums: EntityType
- tag: Tag
- entity_tag: EntityTag (the unified association table)
- legacy: Core tables for the five legacy join tables

Usage:
    from salonbook.database.models import Tag, EntityTag, EntityType
"""
# Base classes
from .base import Base, TimestampMixin, generate_id, utc_now

# Enumerations
from .enums import EntityType

# Models
from .tag import DEFAULT_TAG_COLOR, Tag
from .entity_tag import EntityTag

# Legacy join tables (not part of Base.metadata)
from .legacy import LEGACY_TABLES, legacy_metadata

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    "generate_id",
    "utc_now",
    # Enums
    "EntityType",
    # Models
    "DEFAULT_TAG_COLOR",
    "Tag",
    "EntityTag",
    # Legacy
    "LEGACY_TABLES",
    "legacy_metadata",
]
