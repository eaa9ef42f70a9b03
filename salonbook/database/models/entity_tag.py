"""
Entity Tag Association
----------------------

The single polymorphic join table between tags and every taggable entity.

``entityId`` deliberately has no foreign key: it points into one of eight
entity tables depending on ``entityType``. Rows are removed when their tag
is deleted (FK cascade) but not when the tagged entity is deleted; callers
that delete entities are responsible for clearing their tags.
"""
# --- Annotations ---
from __future__ import annotations

# --- Standard library imports ---
from datetime import datetime

# --- Third party imports ---
from sqlalchemy import DateTime, Enum, ForeignKey, Index, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

# --- Local imports ---
from .base import Base, generate_id, utc_now
from .enums import EntityType


class EntityTag(Base):
    """
    One ``(entityType, entityId, tagId)`` association.

    Attributes:
        id: Opaque short string identifier
        entity_type: Kind of the tagged entity
        entity_id: Opaque id of the tagged entity, scoped by entity_type
        tag_id: Associated tag
        created_date: When the association was made (preserved by the
            legacy migration)
    """

    __tablename__ = "entity_tags"
    __table_args__ = (
        UniqueConstraint("entityType", "entityId", "tagId", name="unique_entity_tag"),
        Index("idx_entity_type_id", "entityType", "entityId"),
    )

    id: Mapped[str] = mapped_column(String(10), primary_key=True, default=generate_id)
    entity_type: Mapped[EntityType] = mapped_column(
        "entityType",
        Enum(
            EntityType,
            name="entity_type",
            values_callable=lambda enum: [member.value for member in enum],
            validate_strings=True,
        ),
        nullable=False,
        index=True,
    )
    entity_id: Mapped[str] = mapped_column("entityId", String(50), nullable=False, index=True)
    tag_id: Mapped[str] = mapped_column(
        "tagId",
        String(10),
        ForeignKey("tags.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    created_date: Mapped[datetime] = mapped_column(
        "createdDate",
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
        server_default=func.now(),
    )

    def __repr__(self) -> str:
        return (
            f"<EntityTag(entity={self.entity_type.value}:{self.entity_id}, "
            f"tag_id={self.tag_id})>"
        )
