"""
Database Managers
-----------------

Managers for the tagging store, one per concern.

Modules:
    - base_manager: unit-of-work and retry utilities
    - tag_manager: Tag CRUD and the delete guard
    - entity_tag_manager: polymorphic tag associations
    - usage_reconciler: eventually consistent tag usage counts
"""
from .base_manager import BaseManager
from .entity_tag_manager import EntityTagManager
from .tag_delta import TagDelta
from .tag_manager import TagManager, TagPage
from .usage_reconciler import UsageCountReconciler

__all__ = [
    "BaseManager",
    "EntityTagManager",
    "TagDelta",
    "TagManager",
    "TagPage",
    "UsageCountReconciler",
]
