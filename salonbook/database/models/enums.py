"""
Enumeration Types
------------------

Enums:
    - EntityType: The closed set of object kinds that can be tagged

``entity_tags.entityId`` has no foreign key: it points into eight
different tables. EntityType is what scopes that opaque id, so every
value reaching the store must pass through ``EntityType.validate``.
"""
# --- Annotations ---
from __future__ import annotations

# --- Standard library imports ---
from enum import Enum
from typing import Any, List, Optional

# --- Local imports ---
from salonbook.core.exceptions import ValidationError


class EntityType(str, Enum):
    """
    Enumeration of taggable entity types.

    Values are stored as strings in ``entity_tags.entityType``.
    """

    APPOINTMENT = "appointment"
    STAFF = "staff"
    SPACE = "space"
    SERVICE = "service"
    PRODUCT = "product"
    USER = "user"
    COMPANY = "company"
    COMPANY_PRODUCT = "company_product"

    @classmethod
    def choices(cls) -> List[str]:
        """Get all stored entity type values."""
        return [entity_type.value for entity_type in cls]

    @classmethod
    def validate(cls, value: Any) -> "EntityType":
        """
        Strict conversion used by the store-facing API.

        Accepts an EntityType member or its exact stored value.

        Raises:
            ValidationError: For anything outside the closed set
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise ValidationError(
                f"Invalid entity type: {value!r}. "
                f"Expected one of: {', '.join(cls.choices())}"
            ) from None

    @classmethod
    def normalize(cls, value: Any) -> Optional["EntityType"]:
        """
        Lenient conversion for user-facing input.

        Accepts case and whitespace variations, plurals and the
        ``companyproduct`` spelling. Returns None when nothing matches.
        """
        if isinstance(value, cls):
            return value
        if not value:
            return None

        normalized = str(value).strip().lower().replace("-", "_")
        if normalized in cls.choices():
            return cls(normalized)

        aliases = {
            "appointments": cls.APPOINTMENT,
            "staffs": cls.STAFF,
            "spaces": cls.SPACE,
            "services": cls.SERVICE,
            "products": cls.PRODUCT,
            "users": cls.USER,
            "companies": cls.COMPANY,
            "company_products": cls.COMPANY_PRODUCT,
            "companyproduct": cls.COMPANY_PRODUCT,
            "companyproducts": cls.COMPANY_PRODUCT,
        }
        return aliases.get(normalized)

    @property
    def display_name(self) -> str:
        """Get human-readable display name."""
        display_map = {
            self.COMPANY_PRODUCT: "Company Product",
        }
        return display_map.get(self, self.value.title())
