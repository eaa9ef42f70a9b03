"""
Tag Model
---------

Administrator-defined labels shared by every taggable entity type.
"""
# --- Annotations ---
from __future__ import annotations

# --- Standard library imports ---
from typing import Any, Dict, Optional

# --- Third party imports ---
from sqlalchemy import Boolean, CheckConstraint, Integer, String, Text, true
from sqlalchemy.orm import Mapped, mapped_column

# --- Local imports ---
from .base import Base, TimestampMixin, generate_id

DEFAULT_TAG_COLOR = "#3B82F6"


class Tag(TimestampMixin, Base):
    """
    A tag that can be attached to any entity type.

    Attributes:
        id: Opaque short string identifier
        name: Display name (unique, case-sensitive)
        description: Optional free text
        color: Hex color used by the admin console
        icon: Optional icon name
        is_active: Inactive tags keep their associations but are hidden
            from pickers
        usage_count: Denormalized number of associations. Written only by
            the UsageCountReconciler; may lag behind briefly.
        created_date: Creation timestamp
        last_modified: Last update timestamp
    """

    __tablename__ = "tags"
    __table_args__ = (
        CheckConstraint("name != ''", name="ck_tag_non_empty_name"),
        CheckConstraint("usageCount >= 0", name="ck_tag_usage_count_non_negative"),
    )

    # ---- Primary fields ----
    id: Mapped[str] = mapped_column(String(10), primary_key=True, default=generate_id)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    color: Mapped[str] = mapped_column(
        String(7), nullable=False, default=DEFAULT_TAG_COLOR
    )
    icon: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    is_active: Mapped[bool] = mapped_column(
        "isActive", Boolean, nullable=False, default=True, server_default=true()
    )
    usage_count: Mapped[int] = mapped_column(
        "usageCount", Integer, nullable=False, default=0, server_default="0"
    )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize with the API's camelCase keys."""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "color": self.color,
            "icon": self.icon,
            "isActive": self.is_active,
            "usageCount": self.usage_count,
            "createdDate": self.created_date,
            "lastModified": self.last_modified,
        }

    def __repr__(self) -> str:
        return f"<Tag(id={self.id}, name={self.name})>"

    def __str__(self) -> str:
        state = "" if self.is_active else ", inactive"
        return f"Tag '{self.name}' ({self.usage_count} uses{state})"
