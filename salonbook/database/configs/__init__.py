"""
Declarative configuration for the tagging engine: the legacy join tables
and the usage count retry policy.
"""
from .legacy_tables import LEGACY_TAG_TABLES, LegacyTagTable
from .retry_config import DEFAULT_RETRY_POLICY, RetryPolicy, is_lock_wait_error

__all__ = [
    "LEGACY_TAG_TABLES",
    "LegacyTagTable",
    "DEFAULT_RETRY_POLICY",
    "RetryPolicy",
    "is_lock_wait_error",
]
