"""
Job, cutlist, material and recut entry data models.

A job groups one or more cutlists; each cutlist holds the coloured
sheet materials cut for it. Every material and every recut entry owns
an index-addressed status sequence whose length always equals its
sheet count.

All models use Pydantic for validation.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import Field

from ..models import ApiModel
from ..catalog.models import Color
from ..sheets.models import SheetStatus


class JobStatus(str, Enum):
    """Job-level status."""

    WAITING = "waiting"  # Created, no time logged yet
    IN_PROGRESS = "in_progress"  # Timer running or sheets being processed
    PAUSED = "paused"  # Paused by operator
    DONE = "done"  # Every sheet processed


class TimeLog(ApiModel):
    """One timed work interval on a job."""

    id: int
    job_id: int
    start_time: datetime
    end_time: Optional[datetime] = None
    user_id: Optional[int] = None
    created_at: datetime


class RecutEntry(ApiModel):
    """
    A rework batch tied to a material.

    Tracked independently: its own quantity and its own status sequence.
    """

    id: int
    material_id: int
    quantity: int
    reason: Optional[str] = None
    sheet_statuses: List[SheetStatus] = Field(default_factory=list)
    completed_sheets: int = 0
    created_at: datetime
    user_id: Optional[int] = None


class Material(ApiModel):
    """
    A coloured sheet-stock batch assigned to a cutlist.

    completed_sheets is a cached count of CUT entries in sheet_statuses.
    """

    id: int
    cutlist_id: Optional[int] = None
    job_id: Optional[int] = None
    color_id: int
    total_sheets: int
    completed_sheets: int = 0
    sheet_statuses: List[SheetStatus] = Field(default_factory=list)
    created_at: datetime
    color: Optional[Color] = None
    recut_entries: List[RecutEntry] = Field(default_factory=list)

    @property
    def skipped_sheets(self) -> int:
        return sum(1 for s in self.sheet_statuses if s == SheetStatus.SKIP)

    @property
    def pending_sheets(self) -> int:
        return sum(1 for s in self.sheet_statuses if s == SheetStatus.PENDING)


class Cutlist(ApiModel):
    """An ordered group of materials within a job."""

    id: int
    job_id: int
    name: str
    order_index: int = 0
    created_at: datetime
    materials: List[Material] = Field(default_factory=list)


class Job(ApiModel):
    """A cutting job with its cutlists and time logs."""

    id: int
    job_number: str
    customer_name: str
    job_name: str
    status: JobStatus = JobStatus.WAITING
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    total_duration: Optional[int] = None  # seconds
    created_at: datetime
    updated_at: datetime
    cutlists: List[Cutlist] = Field(default_factory=list)
    time_logs: List[TimeLog] = Field(default_factory=list)

    @property
    def materials(self) -> List[Material]:
        """All materials across cutlists, in cutlist order."""
        return [m for cutlist in self.cutlists for m in cutlist.materials]

    @property
    def total_sheets(self) -> int:
        return sum(m.total_sheets for m in self.materials)

    @property
    def completed_sheets(self) -> int:
        return sum(m.completed_sheets for m in self.materials)


class DashboardStats(ApiModel):
    """Aggregate counters for the dashboard."""

    total_jobs: int = 0
    waiting_jobs: int = 0
    in_progress_jobs: int = 0
    paused_jobs: int = 0
    done_jobs: int = 0

    # Over jobs created within the sheets window
    total_sheets: int = 0
    cut_sheets: int = 0
    skipped_sheets: int = 0
    pending_sheets: int = 0
    recut_sheets: int = 0

    # Over time logs started within the time window
    total_seconds: int = 0
    logged_jobs: int = 0
    average_job_seconds: float = 0.0
