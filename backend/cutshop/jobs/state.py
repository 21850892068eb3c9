"""
State transition validation for jobs.

Operator actions (pause, resume, timers) follow the transition table
below. Completion is derived from sheet statuses instead: a job becomes
DONE when no sheet is pending and drops back to IN_PROGRESS when one
becomes pending again (see JobRegistry.sync_completion).
"""

from typing import Set, Tuple

from .errors import InvalidStateTransitionError
from .models import JobStatus


# Legal operator-driven job state transitions
_JOB_TRANSITIONS: Set[Tuple[JobStatus, JobStatus]] = {
    # Opening a job starts its timer
    (JobStatus.WAITING, JobStatus.IN_PROGRESS),
    (JobStatus.PAUSED, JobStatus.IN_PROGRESS),

    # Pausing
    (JobStatus.WAITING, JobStatus.PAUSED),
    (JobStatus.IN_PROGRESS, JobStatus.PAUSED),

    # Derived completion
    (JobStatus.WAITING, JobStatus.DONE),
    (JobStatus.IN_PROGRESS, JobStatus.DONE),
    (JobStatus.PAUSED, JobStatus.DONE),
    (JobStatus.DONE, JobStatus.IN_PROGRESS),
}


def can_transition_job(from_status: JobStatus, to_status: JobStatus) -> bool:
    """
    Check if a job state transition is legal.

    Staying in the same state is always allowed.
    """
    if from_status == to_status:
        return True
    return (from_status, to_status) in _JOB_TRANSITIONS


def validate_job_transition(from_status: JobStatus, to_status: JobStatus) -> None:
    """
    Raises:
        InvalidStateTransitionError: If the transition is not allowed
    """
    if not can_transition_job(from_status, to_status):
        raise InvalidStateTransitionError("job", from_status.value, to_status.value)
