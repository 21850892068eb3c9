"""
Job-specific error types.
"""

from ..errors import InvalidArgumentError


class InvalidStateTransitionError(InvalidArgumentError):
    """Raised when attempting an illegal job state transition."""

    def __init__(self, entity_type: str, current_state: str, target_state: str):
        self.entity_type = entity_type
        self.current_state = current_state
        self.target_state = target_state
        super().__init__(
            f"Invalid {entity_type} state transition: "
            f"{current_state} -> {target_state}"
        )
