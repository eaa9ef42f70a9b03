#!/usr/bin/env python3
"""
legacy_tables.py
-----------------

Declarative description of the five pre-unification tag join tables.

Before ``entity_tags`` existed, each taggable entity kind had its own join
table with a kind-specific id column. The migration job and the tag
delete guard both iterate this list instead of hard-coding table names.
"""
from dataclasses import dataclass
from typing import List


@dataclass(frozen=True)
class LegacyTagTable:
    """
    One legacy join table.

    Attributes:
        table_name: Name of the table in the database
        entity_type: EntityType value its rows map to in ``entity_tags``
        entity_id_column: Column holding the entity id
    """
    table_name: str
    entity_type: str
    entity_id_column: str


# Migration order follows the order the tables were introduced
LEGACY_TAG_TABLES: List[LegacyTagTable] = [
    LegacyTagTable("company_tags", "company", "companyId"),
    LegacyTagTable("product_tags", "product", "productId"),
    LegacyTagTable("service_tags", "service", "serviceId"),
    LegacyTagTable("space_tags", "space", "spaceId"),
    LegacyTagTable("company_product_tags", "company_product", "companyProductId"),
]
