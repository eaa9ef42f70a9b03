"""
Base Classes and Helpers
------------------------

Foundational ORM pieces for the tagging schema.

Classes:
    - Base: Declarative base for all SQLAlchemy models
    - TimestampMixin: createdDate / lastModified columns

Functions:
    - generate_id: Short opaque identifiers for tags and associations
    - utc_now: Timezone-aware current time
"""
# --- Annotations ---
from __future__ import annotations

# --- Standard library imports ---
import secrets
import string
from datetime import datetime, timezone

# --- Third party ---
from sqlalchemy import DateTime, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

ID_ALPHABET = string.ascii_letters + string.digits + "_-"
ID_LENGTH = 10


def generate_id(length: int = ID_LENGTH) -> str:
    """Return a random URL-safe identifier of ``length`` characters."""
    return "".join(secrets.choice(ID_ALPHABET) for _ in range(length))


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# --- Base ORM class ---
class Base(DeclarativeBase):
    """
    Base class for all ORM models.

    Holds the metadata used by ``create_all`` and by Alembic. The legacy
    join tables are deliberately kept off this metadata.
    """

    pass


class TimestampMixin:
    """
    Creation and modification timestamps.

    Column names follow the existing MySQL schema (``createdDate``,
    ``lastModified``).
    """

    created_date: Mapped[datetime] = mapped_column(
        "createdDate",
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
        server_default=func.now(),
    )
    last_modified: Mapped[datetime] = mapped_column(
        "lastModified",
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
        onupdate=utc_now,
        server_default=func.now(),
    )
