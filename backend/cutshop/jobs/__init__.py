"""
Jobs: cutting jobs, their cutlists, materials and recut entries.

Job status follows operator actions (timers, pause, resume) and is
derived to DONE once no sheet is pending.
"""

from .errors import InvalidStateTransitionError
from .models import (
    JobStatus,
    TimeLog,
    RecutEntry,
    Material,
    Cutlist,
    Job,
    DashboardStats,
)
from .state import can_transition_job, validate_job_transition
from .registry import JobRegistry

__all__ = [
    # Errors
    "InvalidStateTransitionError",
    # Models
    "JobStatus",
    "TimeLog",
    "RecutEntry",
    "Material",
    "Cutlist",
    "Job",
    "DashboardStats",
    # State validation
    "can_transition_job",
    "validate_job_transition",
    # Registry
    "JobRegistry",
]
