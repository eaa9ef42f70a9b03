#!/usr/bin/env python3
"""
tag_manager.py
--------------------
Manages Tag rows: the vocabulary shared by every taggable entity type.

Tags are created by administrators, renamed or recolored, and deactivated
rather than deleted once anything uses them. ``usage_count`` is read here
but never written; only the UsageCountReconciler adjusts it.

Key Features:
    - CRUD operations for tags
    - Paginated listing with search and active filter
    - Delete guard across the unified and legacy association tables

Usage:
    tag_mgr = TagManager(session_factory, logger)

    tag = tag_mgr.create({"name": "VIP", "color": "#F59E0B"})
    page = tag_mgr.get_paginated(limit=12, search="vip")
    tag_mgr.deactivate(tag.id)
"""
# --- Annotations ---
from __future__ import annotations

# --- Standard library imports ---
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

# --- Third party imports ---
from sqlalchemy import func, inspect, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

# --- Local imports ---
from salonbook.core.exceptions import (
    DuplicateTagError,
    TagInUseError,
    TagNotFoundError,
    ValidationError,
)
from salonbook.core.logging_manager import safe_logger
from salonbook.core.validators import DataValidator
from salonbook.database.decorators import DatabaseOperation
from salonbook.database.models import DEFAULT_TAG_COLOR, LEGACY_TABLES, EntityTag, Tag

from .base_manager import BaseManager

DUPLICATE_NAME_MESSAGE = "Tag with this name already exists"
IN_USE_MESSAGE = "Cannot delete tag that is in use. Deactivate it instead."
MAX_PAGE_SIZE = 100


@dataclass
class TagPage:
    """
    One page of tags plus pagination metadata.

    Attributes:
        tags: Tags on this page
        total: Number of tags matching the filters
        limit: Page size actually applied
        offset: Offset actually applied
    """
    tags: List[Tag] = field(default_factory=list)
    total: int = 0
    limit: int = 12
    offset: int = 0

    @property
    def total_pages(self) -> int:
        return max(1, math.ceil(self.total / self.limit))

    @property
    def current_page(self) -> int:
        return self.offset // self.limit + 1


class TagManager(BaseManager):
    """
    Manages Tag table operations.

    Tag names are unique and case-sensitive. Deleting a tag cascades to its
    associations at the database level, which is why delete() refuses while
    any association exists.
    """

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def exists(self, name: str, session: Optional[Session] = None) -> bool:
        """
        Check if a tag with this exact name exists.

        Args:
            name: Tag name (surrounding whitespace ignored)

        Returns:
            True if found, False otherwise (including blank names)
        """
        return self.get_by_name(name, session=session) is not None

    def get_by_id(self, tag_id: str, session: Optional[Session] = None) -> Optional[Tag]:
        """
        Retrieve a tag by id.

        Returns:
            Tag if found, None otherwise
        """
        tag_id = DataValidator.validate_id(tag_id, "tag id")
        with DatabaseOperation(self.logger, "get_tag_by_id", {"tag_id": tag_id}):
            with self.unit_of_work(session) as s:
                return s.get(Tag, tag_id)

    def get_by_name(self, name: str, session: Optional[Session] = None) -> Optional[Tag]:
        """
        Retrieve a tag by exact (case-sensitive) name.

        Returns:
            Tag if found, None otherwise
        """
        normalized = DataValidator.normalize_string(name)
        if not normalized:
            return None

        with DatabaseOperation(self.logger, "get_tag_by_name"):
            with self.unit_of_work(session) as s:
                return s.scalars(select(Tag).where(Tag.name == normalized)).first()

    def get_all(
        self,
        active_only: bool = False,
        search: Optional[str] = None,
        session: Optional[Session] = None,
    ) -> List[Tag]:
        """
        Retrieve all tags, most used first.

        Args:
            active_only: Exclude deactivated tags
            search: Substring matched against name and description

        Returns:
            Tags ordered by usage count (desc) then name
        """
        stmt = self._filtered(select(Tag), search, True if active_only else None)
        stmt = stmt.order_by(Tag.usage_count.desc(), Tag.name.asc())

        with DatabaseOperation(self.logger, "get_all_tags"):
            with self.unit_of_work(session) as s:
                return list(s.scalars(stmt))

    def get_paginated(
        self,
        limit: int = 12,
        offset: int = 0,
        search: str = "",
        is_active: Optional[bool] = None,
        session: Optional[Session] = None,
    ) -> TagPage:
        """
        Retrieve one page of tags for the admin console.

        Args:
            limit: Page size, capped at 100 (non-positive falls back to 12)
            offset: Rows to skip (negative treated as 0)
            search: Substring matched against name and description
            is_active: Filter on active flag, None for all

        Returns:
            TagPage with the tags and pagination metadata
        """
        limit = min(int(limit or 12), MAX_PAGE_SIZE)
        if limit <= 0:
            limit = 12
        offset = max(int(offset or 0), 0)

        count_stmt = self._filtered(select(func.count(Tag.id)), search, is_active)
        page_stmt = (
            self._filtered(select(Tag), search, is_active)
            .order_by(Tag.usage_count.desc(), Tag.name.asc())
            .limit(limit)
            .offset(offset)
        )

        with DatabaseOperation(self.logger, "get_tags_paginated"):
            with self.unit_of_work(session) as s:
                total = s.scalar(count_stmt) or 0
                tags = list(s.scalars(page_stmt))

        return TagPage(tags=tags, total=total, limit=limit, offset=offset)

    @staticmethod
    def _filtered(stmt, search: Optional[str], is_active: Optional[bool]):
        term = DataValidator.normalize_string(search)
        if term:
            stmt = stmt.where(
                or_(
                    Tag.name.contains(term, autoescape=True),
                    Tag.description.contains(term, autoescape=True),
                )
            )
        if is_active is not None:
            stmt = stmt.where(Tag.is_active == is_active)
        return stmt

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def create(self, metadata: Dict[str, Any], session: Optional[Session] = None) -> Tag:
        """
        Create a new tag.

        Args:
            metadata: Dictionary with keys:
                - name (required)
                - description, color, icon, is_active (optional)

        Returns:
            Created Tag

        Raises:
            ValidationError: If the name is missing or the color is malformed
            DuplicateTagError: If a tag with this name already exists
        """
        DataValidator.validate_required_fields(metadata, ["name"])
        fields = self._normalize_fields(metadata)
        if not fields.get("name"):
            raise ValidationError("Tag name cannot be empty")
        fields.setdefault("color", DEFAULT_TAG_COLOR)

        with DatabaseOperation(self.logger, "create_tag", {"name": fields["name"]}):
            with self.unit_of_work(session) as s:
                if s.scalars(select(Tag.id).where(Tag.name == fields["name"])).first():
                    raise DuplicateTagError(DUPLICATE_NAME_MESSAGE)

                tag = Tag(**fields)
                s.add(tag)
                self._flush_unique_name(s)

                safe_logger(self.logger).log_debug(
                    f"Created tag: {tag.name}", {"tag_id": tag.id}
                )
                return tag

    def update(
        self,
        tag_id: str,
        metadata: Dict[str, Any],
        session: Optional[Session] = None,
    ) -> Tag:
        """
        Update a tag's display fields.

        Only keys present in ``metadata`` change. ``usage_count`` cannot be
        set here.

        Raises:
            TagNotFoundError: If the tag does not exist
            DuplicateTagError: If renaming to an existing name
            ValidationError: If usage_count is given or a field is malformed
        """
        if "usage_count" in metadata or "usageCount" in metadata:
            raise ValidationError("usage_count is maintained automatically")

        fields = self._normalize_fields(metadata)
        if "name" in metadata and not fields.get("name"):
            raise ValidationError("Tag name cannot be empty")

        with DatabaseOperation(self.logger, "update_tag", {"tag_id": tag_id}):
            with self.unit_of_work(session) as s:
                tag = self._require(s, tag_id)

                new_name = fields.get("name")
                if new_name and new_name != tag.name:
                    clash = s.scalars(
                        select(Tag.id).where(Tag.name == new_name, Tag.id != tag.id)
                    ).first()
                    if clash:
                        raise DuplicateTagError(DUPLICATE_NAME_MESSAGE)

                for key, value in fields.items():
                    setattr(tag, key, value)
                self._flush_unique_name(s)
                return tag

    def deactivate(self, tag_id: str, session: Optional[Session] = None) -> Tag:
        """
        Hide a tag from pickers while keeping its associations.

        Returns:
            The updated Tag
        """
        return self.update(tag_id, {"is_active": False}, session=session)

    def activate(self, tag_id: str, session: Optional[Session] = None) -> Tag:
        return self.update(tag_id, {"is_active": True}, session=session)

    def delete(self, tag_id: str, session: Optional[Session] = None) -> None:
        """
        Permanently delete an unused tag.

        Raises:
            TagNotFoundError: If the tag does not exist
            TagInUseError: If any unified or legacy association references it
        """
        with DatabaseOperation(self.logger, "delete_tag", {"tag_id": tag_id}):
            with self.unit_of_work(session) as s:
                tag = self._require(s, tag_id)

                in_use = self.count_references(tag.id, session=s)
                if in_use:
                    safe_logger(self.logger).log_info(
                        "Refused to delete tag in use",
                        {"tag_id": tag.id, "references": in_use},
                    )
                    raise TagInUseError(IN_USE_MESSAGE)

                s.delete(tag)
                s.flush()

    def count_references(self, tag_id: str, session: Optional[Session] = None) -> int:
        """
        Count associations referencing a tag in every association table.

        Legacy join tables are only counted if they still exist.
        """
        with self.unit_of_work(session) as s:
            total = s.scalar(
                select(func.count(EntityTag.id)).where(EntityTag.tag_id == tag_id)
            ) or 0

            inspector = inspect(s.connection())
            for name, table in LEGACY_TABLES.items():
                if inspector.has_table(name):
                    total += s.scalar(
                        select(func.count()).select_from(table).where(table.c.tagId == tag_id)
                    ) or 0
            return total

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def _require(session: Session, tag_id: str) -> Tag:
        tag_id = DataValidator.validate_id(tag_id, "tag id")
        tag = session.get(Tag, tag_id)
        if tag is None:
            raise TagNotFoundError(f"Tag not found: {tag_id}")
        return tag

    @staticmethod
    def _flush_unique_name(session: Session) -> None:
        # Another writer may have claimed the name since the pre-check
        try:
            session.flush()
        except IntegrityError as e:
            raise DuplicateTagError(DUPLICATE_NAME_MESSAGE) from e

    @staticmethod
    def _normalize_fields(metadata: Dict[str, Any]) -> Dict[str, Any]:
        """Map API keys (camelCase or snake_case) to validated model fields."""
        fields: Dict[str, Any] = {}

        if "name" in metadata:
            fields["name"] = DataValidator.normalize_string(metadata["name"])
        if "description" in metadata:
            fields["description"] = DataValidator.normalize_string(metadata["description"])
        if "icon" in metadata:
            fields["icon"] = DataValidator.normalize_string(metadata["icon"])
        if metadata.get("color") is not None:
            fields["color"] = DataValidator.validate_color(metadata["color"])

        active = metadata.get("is_active", metadata.get("isActive"))
        if active is not None:
            fields["is_active"] = DataValidator.normalize_bool(active)

        return fields
