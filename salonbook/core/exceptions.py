#!/usr/bin/env python3
"""
exceptions.py
--------------------
Custom exception classes for the Salonbook tagging engine.

Exception Hierarchy:
    Exception (built-in)
    ├── DatabaseError - Base for all storage-related errors
    │   ├── IntegrityViolationError - User-actionable integrity problems
    │   │   ├── DuplicateTagError - Tag name already taken
    │   │   ├── TagInUseError - Delete refused while associations exist
    │   │   └── TagNotFoundError - Tag id does not exist
    │   └── MigrationError - Legacy join table consolidation failures
    └── ValidationError - Input rejected before any store access

Lock-wait timeouts on usage count updates never appear here: the
reconciler retries and then abandons them without raising.

Usage:
    from salonbook.core.exceptions import DatabaseError, ValidationError

    try:
        db.entity_tags.set_entity_tags("service", "svc1", ["t1"])
    except ValidationError as e:
        logger.error(f"Invalid input: {e}")
    except DatabaseError as e:
        logger.error(f"Tagging failed: {e}")
"""


class DatabaseError(Exception):
    """
    Base exception for storage errors.

    Raised when store operations fail due to connection issues, query
    errors or integrity violations. Messages carry the operation and,
    where relevant, the entity being tagged.

    Examples:
        >>> raise DatabaseError("Error setting entity tags for service:svc1: ...")
    """

    pass


class IntegrityViolationError(DatabaseError):
    """
    Integrity problem the caller can act on.

    The message is meant to be shown to the administrator as-is.
    """

    pass


class DuplicateTagError(IntegrityViolationError):
    """
    Raised when creating or renaming a tag to a name that already exists.

    Examples:
        >>> raise DuplicateTagError("Tag with this name already exists")
    """

    pass


class TagInUseError(IntegrityViolationError):
    """
    Raised when deleting a tag that still has associations.

    Associations are counted in the unified ``entity_tags`` table and in
    every legacy join table that still exists.

    Examples:
        >>> raise TagInUseError("Cannot delete tag that is in use. Deactivate it instead.")
    """

    pass


class TagNotFoundError(IntegrityViolationError):
    """Raised when an operation targets a tag id that does not exist."""

    pass


class MigrationError(DatabaseError):
    """
    Exception for legacy join table consolidation failures.

    Examples:
        >>> raise MigrationError("Error migrating service_tags: connection lost")
    """

    pass


class ValidationError(Exception):
    """
    Exception for input validation failures.

    Raised before any store access:
    - Unknown entity type
    - Empty entity id or tag id
    - Missing tag name
    - Malformed color value

    Examples:
        >>> raise ValidationError("Invalid entity type: 'invoice'")
        >>> raise ValidationError("Required field 'name' missing or empty")
    """

    pass
