"""
Cutshop error taxonomy.

All errors inherit from CutshopError for easy catching.
Each error carries a stable code so HTTP and client layers can
distinguish failure kinds without parsing messages.
"""


class CutshopError(Exception):
    """Base exception for all Cutshop failures."""

    code = "ERROR"
    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class NotFoundError(CutshopError):
    """Raised when a referenced job, material, recut or user does not exist."""

    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, entity_type: str, entity_id):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type.capitalize()} not found: {entity_id}")


class OutOfRangeError(CutshopError):
    """Raised when a sheet index falls outside the current bounds."""

    code = "OUT_OF_RANGE"
    status_code = 400

    def __init__(self, sheet_index: int, size: int):
        self.sheet_index = sheet_index
        self.size = size
        super().__init__(
            f"Sheet index {sheet_index} out of range (0..{size - 1})"
            if size > 0
            else f"Sheet index {sheet_index} out of range (no sheets)"
        )


class InvalidArgumentError(CutshopError):
    """Raised for unrecognized status values and non-positive counts."""

    code = "INVALID_ARGUMENT"
    status_code = 400


class UnauthorizedError(CutshopError):
    """Raised when no valid session is present."""

    code = "UNAUTHORIZED"
    status_code = 401

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)


class ForbiddenError(CutshopError):
    """Raised when the session user lacks the required role."""

    code = "FORBIDDEN"
    status_code = 403
