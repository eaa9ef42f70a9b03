#!/usr/bin/env python3
"""
entity_tag_manager.py
---------------------
The tag association service: sole reader and writer of ``entity_tags``.

Every operation validates the entity type against the closed EntityType
set before touching the store, and runs either inside the caller's session
(the caller commits or rolls back) or inside a private transaction it
commits itself. Replace/add/remove return a TagDelta describing the tag ids
before and after the change. The manager never writes ``usageCount``: when
built with a reconciler it hands the delta to ``reconciler.defer()``, which
applies it after the enclosing transaction commits.

Key Features:
    - get_entity_tags: tags of one entity ordered by name
    - set_entity_tags: atomic replace (read, delete all, bulk insert)
    - add_entity_tags / remove_entity_tags: incremental changes
    - get_entities_for_tag: reverse lookup

Usage:
    assoc = EntityTagManager(session_factory, logger, reconciler=reconciler)

    # Own transaction
    delta = assoc.set_entity_tags(EntityType.SERVICE, "svc1", ["t1", "t2"])

    # Inside the caller's transaction
    with db.session_scope() as session:
        session.add(service)
        assoc.set_entity_tags(EntityType.SERVICE, service.id, tag_ids, session=session)
"""
# --- Annotations ---
from __future__ import annotations

# --- Standard library imports ---
from typing import TYPE_CHECKING, Iterable, List, Optional, Tuple, Union

# --- Third party imports ---
from sqlalchemy import delete, func, insert, select
from sqlalchemy.orm import Session, sessionmaker

# --- Local imports ---
from salonbook.core.logging_manager import SalonbookLogger, safe_logger
from salonbook.core.validators import DataValidator
from salonbook.database.decorators import DatabaseOperation
from salonbook.database.models import EntityTag, EntityType, Tag, generate_id

from .base_manager import BaseManager
from .tag_delta import TagDelta

if TYPE_CHECKING:
    from .usage_reconciler import UsageCountReconciler


class EntityTagManager(BaseManager):
    """
    Manages associations between tags and entities of any EntityType.

    Attributes:
        reconciler: Optional UsageCountReconciler receiving deltas after commit
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        logger: Optional[SalonbookLogger] = None,
        reconciler: Optional["UsageCountReconciler"] = None,
    ) -> None:
        super().__init__(session_factory, logger)
        self.reconciler = reconciler

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def get_entity_tags(
        self,
        entity_type: Union[EntityType, str],
        entity_id: str,
        session: Optional[Session] = None,
    ) -> List[Tag]:
        """
        Get the tags associated with an entity, ordered by tag name.

        Args:
            entity_type: EntityType member or its stored value
            entity_id: Opaque id of the entity

        Returns:
            List of Tag objects (empty if the entity has no tags)

        Raises:
            ValidationError: If the entity type or id is invalid
            DatabaseError: If the query fails
        """
        entity_type, entity_id = self._validate_entity(entity_type, entity_id)

        stmt = (
            select(Tag)
            .join(EntityTag, EntityTag.tag_id == Tag.id)
            .where(EntityTag.entity_type == entity_type, EntityTag.entity_id == entity_id)
            .order_by(Tag.name)
        )

        with DatabaseOperation(self.logger, "get_entity_tags", self._context(entity_type, entity_id)):
            with self.unit_of_work(session) as s:
                return list(s.scalars(stmt))

    def get_entity_tag_ids(
        self,
        entity_type: Union[EntityType, str],
        entity_id: str,
        session: Optional[Session] = None,
    ) -> List[str]:
        """Get the ids of the tags associated with an entity."""
        entity_type, entity_id = self._validate_entity(entity_type, entity_id)

        with DatabaseOperation(self.logger, "get_entity_tag_ids", self._context(entity_type, entity_id)):
            with self.unit_of_work(session) as s:
                return self._current_tag_ids(s, entity_type, entity_id)

    def get_entities_for_tag(
        self,
        tag_id: str,
        entity_type: Optional[Union[EntityType, str]] = None,
        session: Optional[Session] = None,
    ) -> List[Tuple[EntityType, str]]:
        """
        Reverse lookup: which entities carry a tag.

        Args:
            tag_id: Tag to look up
            entity_type: Restrict to one entity type

        Returns:
            List of (entity_type, entity_id) pairs ordered by type then id
        """
        tag_id = DataValidator.validate_id(tag_id, "tag id")
        stmt = select(EntityTag.entity_type, EntityTag.entity_id).where(EntityTag.tag_id == tag_id)
        if entity_type is not None:
            stmt = stmt.where(EntityTag.entity_type == EntityType.validate(entity_type))
        stmt = stmt.order_by(EntityTag.entity_type, EntityTag.entity_id)

        with DatabaseOperation(self.logger, "get_entities_for_tag", {"tag_id": tag_id}):
            with self.unit_of_work(session) as s:
                return [(row.entity_type, row.entity_id) for row in s.execute(stmt)]

    def count_associations(self, tag_id: str, session: Optional[Session] = None) -> int:
        """Number of ``entity_tags`` rows referencing a tag."""
        tag_id = DataValidator.validate_id(tag_id, "tag id")
        with self.unit_of_work(session) as s:
            return s.scalar(
                select(func.count(EntityTag.id)).where(EntityTag.tag_id == tag_id)
            ) or 0

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def set_entity_tags(
        self,
        entity_type: Union[EntityType, str],
        entity_id: str,
        tag_ids: Optional[Iterable[str]],
        session: Optional[Session] = None,
    ) -> TagDelta:
        """
        Replace all tags of an entity in one transaction.

        Steps: read the current ids, delete every association of the
        entity, insert one row per requested id. Repeated ids in
        ``tag_ids`` are collapsed. Usage counts are not touched here.

        Args:
            entity_type: EntityType member or its stored value
            entity_id: Opaque id of the entity
            tag_ids: Tag ids the entity should end up with (None clears)
            session: Caller's session; when given the caller commits

        Returns:
            TagDelta with the ids before (old_tag_ids) and after (new_tag_ids)

        Raises:
            ValidationError: If any input is invalid
            DatabaseError: If the store fails; an owned transaction is
                rolled back and nothing is changed
        """
        entity_type, entity_id = self._validate_entity(entity_type, entity_id)
        new_tag_ids = DataValidator.normalize_id_list(tag_ids)

        with DatabaseOperation(self.logger, "set_entity_tags", self._context(entity_type, entity_id)):
            with self.unit_of_work(session) as s:
                old_tag_ids = self._current_tag_ids(s, entity_type, entity_id)

                s.execute(
                    delete(EntityTag).where(
                        EntityTag.entity_type == entity_type,
                        EntityTag.entity_id == entity_id,
                    )
                )
                self._insert(s, entity_type, entity_id, new_tag_ids)

                delta = TagDelta(old_tag_ids=old_tag_ids, new_tag_ids=new_tag_ids)
                self._hand_off(s, delta)

        return delta

    def add_entity_tags(
        self,
        entity_type: Union[EntityType, str],
        entity_id: str,
        tag_ids: Optional[Iterable[str]],
        session: Optional[Session] = None,
    ) -> TagDelta:
        """
        Add tags to an entity without removing existing ones.

        Ids already associated are skipped, so repeating a call is harmless.

        Returns:
            TagDelta; ``added`` holds the ids actually inserted
        """
        entity_type, entity_id = self._validate_entity(entity_type, entity_id)
        requested = DataValidator.normalize_id_list(tag_ids)

        with DatabaseOperation(self.logger, "add_entity_tags", self._context(entity_type, entity_id)):
            with self.unit_of_work(session) as s:
                old_tag_ids = self._current_tag_ids(s, entity_type, entity_id)
                existing = set(old_tag_ids)
                to_insert = [tag_id for tag_id in requested if tag_id not in existing]

                self._insert(s, entity_type, entity_id, to_insert)

                delta = TagDelta(old_tag_ids=old_tag_ids, new_tag_ids=old_tag_ids + to_insert)
                self._hand_off(s, delta)

        return delta

    def remove_entity_tags(
        self,
        entity_type: Union[EntityType, str],
        entity_id: str,
        tag_ids: Optional[Iterable[str]],
        session: Optional[Session] = None,
    ) -> TagDelta:
        """
        Remove specific tags from an entity.

        Ids that are not associated are ignored.

        Returns:
            TagDelta; ``removed`` holds the ids actually deleted
        """
        entity_type, entity_id = self._validate_entity(entity_type, entity_id)
        requested = DataValidator.normalize_id_list(tag_ids)

        with DatabaseOperation(self.logger, "remove_entity_tags", self._context(entity_type, entity_id)):
            with self.unit_of_work(session) as s:
                old_tag_ids = self._current_tag_ids(s, entity_type, entity_id)

                if requested:
                    s.execute(
                        delete(EntityTag).where(
                            EntityTag.entity_type == entity_type,
                            EntityTag.entity_id == entity_id,
                            EntityTag.tag_id.in_(requested),
                        )
                    )

                removing = set(requested)
                delta = TagDelta(
                    old_tag_ids=old_tag_ids,
                    new_tag_ids=[tag_id for tag_id in old_tag_ids if tag_id not in removing],
                )
                self._hand_off(s, delta)

        return delta

    def clear_entity_tags(
        self,
        entity_type: Union[EntityType, str],
        entity_id: str,
        session: Optional[Session] = None,
    ) -> TagDelta:
        """
        Remove every tag of an entity.

        Entity deletion does not cascade to ``entity_tags``; callers that
        delete an entity call this in the same transaction.
        """
        return self.set_entity_tags(entity_type, entity_id, [], session=session)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def _validate_entity(
        entity_type: Union[EntityType, str], entity_id: str
    ) -> Tuple[EntityType, str]:
        return (
            EntityType.validate(entity_type),
            DataValidator.validate_id(entity_id, "entity id"),
        )

    @staticmethod
    def _context(entity_type: EntityType, entity_id: str) -> dict:
        return {"entity": f"{entity_type.value}:{entity_id}"}

    @staticmethod
    def _current_tag_ids(session: Session, entity_type: EntityType, entity_id: str) -> List[str]:
        return list(
            session.scalars(
                select(EntityTag.tag_id)
                .where(EntityTag.entity_type == entity_type, EntityTag.entity_id == entity_id)
                .order_by(EntityTag.created_date, EntityTag.id)
            )
        )

    @staticmethod
    def _insert(
        session: Session, entity_type: EntityType, entity_id: str, tag_ids: List[str]
    ) -> None:
        if not tag_ids:
            return
        session.execute(
            insert(EntityTag),
            [
                {
                    "id": generate_id(),
                    "entity_type": entity_type,
                    "entity_id": entity_id,
                    "tag_id": tag_id,
                }
                for tag_id in tag_ids
            ],
        )

    def _hand_off(self, session: Session, delta: TagDelta) -> None:
        """Queue the delta for the reconciler, applied once the session commits."""
        safe_logger(self.logger).log_debug(
            "Association delta",
            {"added": delta.added, "removed": delta.removed},
        )
        if self.reconciler is not None and delta.has_changes:
            self.reconciler.defer(session, delta)
