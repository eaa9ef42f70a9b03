#!/usr/bin/env python3
"""
Salonbook Tagging Database Package
----------------------------------
Storage layer of the tagging engine.

This package provides:
- The SalonbookDB facade (engine, sessions, schema, managers)
- Tag and polymorphic association managers
- The background usage count reconciler
- The legacy join table migration job
"""

from .manager import SalonbookDB
from salonbook.core.exceptions import (
    DatabaseError,
    DuplicateTagError,
    MigrationError,
    TagInUseError,
    TagNotFoundError,
    ValidationError,
)
from .decorators import (
    DatabaseOperation,
    log_database_operation,
    handle_db_errors,
)
from .legacy_migration import LegacyTagMigration, MigrationSummary
from .managers import EntityTagManager, TagDelta, TagManager, UsageCountReconciler

__all__ = [
    # Main manager
    "SalonbookDB",
    # Exceptions
    "DatabaseError",
    "DuplicateTagError",
    "MigrationError",
    "TagInUseError",
    "TagNotFoundError",
    "ValidationError",
    # Managers
    "EntityTagManager",
    "TagManager",
    "TagDelta",
    "UsageCountReconciler",
    "LegacyTagMigration",
    "MigrationSummary",
    # Decorators
    "DatabaseOperation",
    "log_database_operation",
    "handle_db_errors",
]
