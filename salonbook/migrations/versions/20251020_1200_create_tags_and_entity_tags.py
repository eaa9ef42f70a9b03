"""create tags and entity_tags

Revision ID: 4f1c2a9b7e30
Revises:
Create Date: 2025-10-20 12:00:00.000000

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "4f1c2a9b7e30"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ENTITY_TYPES = (
    "appointment",
    "staff",
    "space",
    "service",
    "product",
    "user",
    "company",
    "company_product",
)


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "tags",
        sa.Column("id", sa.String(length=10), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("color", sa.String(length=7), nullable=False),
        sa.Column("icon", sa.String(length=50), nullable=True),
        sa.Column("isActive", sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column("usageCount", sa.Integer(), server_default="0", nullable=False),
        sa.Column(
            "createdDate",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "lastModified",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.CheckConstraint("name != ''", name="ck_tag_non_empty_name"),
        sa.CheckConstraint("usageCount >= 0", name="ck_tag_usage_count_non_negative"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
    )

    op.create_table(
        "entity_tags",
        sa.Column("id", sa.String(length=10), nullable=False),
        sa.Column("entityType", sa.Enum(*ENTITY_TYPES, name="entity_type"), nullable=False),
        sa.Column("entityId", sa.String(length=50), nullable=False),
        sa.Column("tagId", sa.String(length=10), nullable=False),
        sa.Column(
            "createdDate",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(["tagId"], ["tags.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("entityType", "entityId", "tagId", name="unique_entity_tag"),
    )

    op.create_index("ix_entity_tags_entityType", "entity_tags", ["entityType"])
    op.create_index("ix_entity_tags_entityId", "entity_tags", ["entityId"])
    op.create_index("ix_entity_tags_tagId", "entity_tags", ["tagId"])
    op.create_index("idx_entity_type_id", "entity_tags", ["entityType", "entityId"])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index("idx_entity_type_id", table_name="entity_tags")
    op.drop_index("ix_entity_tags_tagId", table_name="entity_tags")
    op.drop_index("ix_entity_tags_entityId", table_name="entity_tags")
    op.drop_index("ix_entity_tags_entityType", table_name="entity_tags")
    op.drop_table("entity_tags")
    op.drop_table("tags")
