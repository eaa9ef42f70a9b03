#!/usr/bin/env python3
"""
validators.py
--------------------
Validation and normalization helpers for tag and association input.

Everything here runs before the store is touched, so a rejected request
never opens a transaction.
"""
from __future__ import annotations

import re
from typing import Any, Dict, Iterable, List, Optional

from .exceptions import ValidationError

HEX_COLOR_PATTERN = re.compile(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")


class DataValidator:
    """Centralized data validation for tagging operations."""

    @staticmethod
    def validate_required_fields(
        data: Dict[str, Any], required_fields: List[str]
    ) -> None:
        """
        Validate that required fields are present and non-empty.

        Args:
            data: Data dictionary to validate
            required_fields: List of required field names

        Raises:
            ValidationError: If validation fails
        """
        for field in required_fields:
            if field not in data or not data[field]:
                raise ValidationError(f"Required field '{field}' missing or empty")

    @staticmethod
    def normalize_string(value: Any) -> Optional[str]:
        """
        Strip surrounding whitespace; empty results become None.

        Case is preserved: tag names are case-sensitive.
        """
        if value is None:
            return None
        text = str(value).strip()
        return text or None

    @staticmethod
    def normalize_bool(value: Any) -> Optional[bool]:
        """
        Convert various inputs to boolean.

        Args:
            value: Value to convert

        Returns:
            Boolean value or None

        Raises:
            ValidationError: If conversion fails
        """
        if isinstance(value, bool):
            return value
        elif isinstance(value, (int, float)):
            if value == 0:
                return False
            elif value == 1:
                return True
            else:
                raise ValidationError(f"Cannot convert numeric '{value}' to boolean")
        elif isinstance(value, str):
            if value.lower() in ("true", "1", "yes", "on"):
                return True
            elif value.lower() in ("false", "0", "no", "off"):
                return False
            else:
                raise ValidationError(f"Cannot convert '{value}' to boolean")
        elif value is not None:
            return bool(value)
        return None

    @staticmethod
    def validate_color(value: Any) -> str:
        """
        Validate a hex color string (``#RGB`` or ``#RRGGBB``).

        Raises:
            ValidationError: If the value is not a hex color
        """
        color = DataValidator.normalize_string(value)
        if not color or not HEX_COLOR_PATTERN.match(color):
            raise ValidationError(f"Invalid color '{value}': expected #RGB or #RRGGBB")
        return color

    @staticmethod
    def validate_id(value: Any, label: str = "id") -> str:
        """
        Validate an opaque identifier and return it as a stripped string.

        Raises:
            ValidationError: If the identifier is missing or blank
        """
        normalized = DataValidator.normalize_string(value)
        if normalized is None:
            raise ValidationError(f"{label} cannot be empty")
        return normalized

    @staticmethod
    def normalize_id_list(values: Optional[Iterable[Any]], label: str = "tag id") -> List[str]:
        """
        Validate a list of identifiers, dropping repeats but keeping order.

        Args:
            values: Identifiers (None is treated as an empty list)
            label: Name used in error messages

        Returns:
            List of unique, stripped identifiers in first-seen order

        Raises:
            ValidationError: If any identifier is blank, or a bare string
                was passed instead of a list
        """
        if values is None:
            return []
        if isinstance(values, str):
            raise ValidationError(f"Expected a list of {label}s, got a string")

        seen: Dict[str, None] = {}
        for value in values:
            seen.setdefault(DataValidator.validate_id(value, label), None)
        return list(seen)
