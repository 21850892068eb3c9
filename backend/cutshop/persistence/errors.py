"""
Persistence-specific errors.

Every storage failure surfaces as PersistenceError (StorageFailure).
"""

from ..errors import CutshopError


class PersistenceError(CutshopError):
    """Base exception for persistence operations."""

    code = "STORAGE_FAILURE"
    status_code = 500


class SchemaError(PersistenceError):
    """Schema migration or validation failed."""

    pass
