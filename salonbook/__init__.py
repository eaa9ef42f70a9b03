"""
Salonbook Tagging Package
=========================

Polymorphic entity tagging for the Salonbook booking and inventory backend.

Companies tag appointments, staff, spaces, services, products, users,
companies and company products with a shared vocabulary of tags. All
associations live in one ``entity_tags`` table; each tag carries a
denormalized ``usageCount`` kept eventually consistent by a background
reconciler.

Main Components:
    - core: Logging, validation, paths, exceptions
    - database.models: Tag, EntityTag, EntityType and the legacy join tables
    - database.managers: TagManager, EntityTagManager, UsageCountReconciler
    - database.legacy_migration: Consolidation of the legacy join tables
    - database.cli: ``tagdb`` command-line interface

Example Usage:
    >>> from salonbook import SalonbookDB
    >>> from salonbook.database.models import EntityType
    >>> db = SalonbookDB("sqlite:///salonbook.db")
    >>> delta = db.entity_tags.set_entity_tags(EntityType.SERVICE, "svc1", ["t1"])
"""

__version__ = "1.0.0"
__author__ = "Salonbook Backend Team"

from salonbook.database.manager import SalonbookDB
from salonbook.core.paths import DATA_DIR, DB_PATH, DEFAULT_DB_URL, LOG_DIR

__all__ = [
    "SalonbookDB",
    "DATA_DIR",
    "DB_PATH",
    "DEFAULT_DB_URL",
    "LOG_DIR",
]
