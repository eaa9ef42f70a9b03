"""Tests for the Tag and EntityTag models and id generation."""
import pytest
from sqlalchemy import inspect

from salonbook.database.models import (
    DEFAULT_TAG_COLOR,
    EntityTag,
    EntityType,
    Tag,
    generate_id,
)
from salonbook.database.models.base import ID_ALPHABET


class TestGenerateId:
    """Tests for generate_id."""

    def test_length_and_alphabet(self):
        value = generate_id()
        assert len(value) == 10
        assert set(value) <= set(ID_ALPHABET)

    def test_ids_are_unique(self):
        assert len({generate_id() for _ in range(200)}) == 200


class TestSchema:
    """The created schema keeps the camelCase column names."""

    def test_tag_columns(self, test_db):
        columns = {c["name"] for c in inspect(test_db.engine).get_columns("tags")}
        assert {"isActive", "usageCount", "createdDate", "lastModified"} <= columns

    def test_entity_tag_unique_triple(self, test_db):
        constraints = inspect(test_db.engine).get_unique_constraints("entity_tags")
        assert any(
            c["column_names"] == ["entityType", "entityId", "tagId"] for c in constraints
        )

    def test_legacy_tables_not_created(self, test_db):
        assert not inspect(test_db.engine).has_table("service_tags")


class TestTagModel:
    """Tests for Tag defaults and serialization."""

    def test_defaults(self, test_db):
        with test_db.session_scope() as session:
            tag = Tag(name="VIP")
            session.add(tag)
            session.flush()

            assert len(tag.id) == 10
            assert tag.color == DEFAULT_TAG_COLOR
            assert tag.is_active is True
            assert tag.usage_count == 0

    def test_to_dict_uses_camel_case(self, test_db):
        with test_db.session_scope() as session:
            tag = Tag(name="VIP", color="#fff")
            session.add(tag)
            session.flush()
            data = tag.to_dict()

        assert data["name"] == "VIP"
        assert data["isActive"] is True
        assert data["usageCount"] == 0

    def test_deleting_tag_cascades_to_associations(self, test_db):
        with test_db.session_scope() as session:
            tag = Tag(name="VIP")
            session.add(tag)
            session.flush()
            session.add(
                EntityTag(entity_type=EntityType.USER, entity_id="u1", tag_id=tag.id)
            )
            tag_id = tag.id

        with test_db.session_scope() as session:
            session.delete(session.get(Tag, tag_id))

        with test_db.session_scope() as session:
            assert session.query(EntityTag).count() == 0

    def test_entity_type_rejects_unknown_string(self, test_db):
        from sqlalchemy.exc import StatementError

        with pytest.raises(StatementError):
            with test_db.session_scope() as session:
                tag = Tag(name="VIP")
                session.add(tag)
                session.flush()
                session.add(EntityTag(entity_type="invoice", entity_id="i1", tag_id=tag.id))
                session.flush()
