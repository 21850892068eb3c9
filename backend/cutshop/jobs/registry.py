"""
Job registry.

Job, cutlist and material lifecycle over PersistenceManager:
- Job creation with its first cutlist and materials
- Listing with search and status filters
- Timers, pause and resume
- Derived completion from sheet statuses
- Dashboard statistics

Per-sheet status changes go through SheetStatusStore; callers invoke
sync_completion afterwards so the job status follows its sheets.
"""

import logging
from datetime import datetime, timedelta
from typing import Iterable, List, Optional, Tuple

from ..errors import InvalidArgumentError, NotFoundError
from ..persistence.manager import PersistenceManager
from ..sheets.models import SheetStatus
from ..sheets.state import count_cut, has_pending, pending_sequence, validate_count
from .models import Cutlist, DashboardStats, Job, JobStatus, Material
from .errors import InvalidStateTransitionError
from .state import validate_job_transition

logger = logging.getLogger(__name__)


def _parse_bound(value: Optional[str], name: str) -> Optional[str]:
    """Turn a query-string date or timestamp into an ISO bound."""
    if not value:
        return None
    try:
        return datetime.fromisoformat(value).isoformat()
    except ValueError:
        raise InvalidArgumentError(f"Invalid {name}: {value!r}. Expected an ISO date")


def _parse_upper_bound(value: Optional[str], name: str) -> Tuple[Optional[str], Optional[str]]:
    """
    Turn a query-string upper bound into (exclusive, inclusive) ISO bounds.

    A bare date covers the whole day: it becomes an exclusive bound at the
    next midnight. A timestamp is an inclusive bound.
    """
    bound = _parse_bound(value, name)
    if bound is None:
        return None, None
    if len(value) == 10:
        return (datetime.fromisoformat(bound) + timedelta(days=1)).isoformat(), None
    return None, bound


class JobRegistry:
    """
    Persistent job registry.

    Every read goes to storage so all requests observe the latest
    committed state.
    """

    def __init__(self, persistence_manager: PersistenceManager):
        self._persistence = persistence_manager

    # Jobs

    def create_job(
        self,
        customer_name: str,
        job_name: str,
        materials: Iterable[Tuple[int, int]],
    ) -> Job:
        """
        Create a job with a first cutlist holding the given materials.

        Args:
            customer_name: Customer the job is cut for
            job_name: Short job description
            materials: (color_id, total_sheets) pairs, at least one

        Raises:
            InvalidArgumentError: On blank names, no materials or non-positive sheet counts
            NotFoundError: If a colour does not exist
        """
        customer_name = (customer_name or "").strip()
        job_name = (job_name or "").strip()
        if not customer_name:
            raise InvalidArgumentError("Customer name is required")
        if not job_name:
            raise InvalidArgumentError("Job name is required")

        material_rows = []
        for color_id, total_sheets in materials:
            validate_count(total_sheets, "Total sheets")
            if self._persistence.load_color(color_id) is None:
                raise NotFoundError("color", color_id)
            material_rows.append({
                "color_id": color_id,
                "total_sheets": total_sheets,
                "sheet_statuses": [s.value for s in pending_sequence(total_sheets)],
            })
        if not material_rows:
            raise InvalidArgumentError("At least one material is required")

        job_id = self._persistence.insert_job(
            {"customer_name": customer_name, "job_name": job_name, "status": JobStatus.WAITING.value},
            [{"name": "Cutlist 1", "order_index": 0, "materials": material_rows}],
        )
        job = self.get_job(job_id)
        logger.info(f"Job created: {job.job_number} ({customer_name} - {job_name})")
        return job

    def get_job(self, job_id: int) -> Job:
        """
        Raises:
            NotFoundError: If the job does not exist
        """
        data = self._persistence.load_job(job_id)
        if data is None:
            raise NotFoundError("job", job_id)
        return Job.model_validate(data)

    def list_jobs(self, search: Optional[str] = None, status: Optional[str] = None) -> List[Job]:
        """
        List jobs, newest first.

        Raises:
            InvalidArgumentError: If status is not a known job status
        """
        if status:
            try:
                status = JobStatus(status).value
            except ValueError:
                valid = ", ".join(s.value for s in JobStatus)
                raise InvalidArgumentError(f"Invalid status: {status}. Valid values: {valid}")
        rows = self._persistence.load_all_jobs(search=search or None, status=status or None)
        return [Job.model_validate(row) for row in rows]

    def delete_job(self, job_id: int) -> None:
        if not self._persistence.delete_job(job_id):
            raise NotFoundError("job", job_id)
        logger.info(f"Job deleted: {job_id}")

    # Timers

    def start_timer(self, job_id: int, user_id: Optional[int] = None) -> Job:
        """
        Open a time log for a job.

        A job with an open log keeps it; a DONE job is left untouched.
        """
        job = self.get_job(job_id)
        if job.status == JobStatus.DONE:
            return job

        now = datetime.now()
        if not self._persistence.load_open_time_logs(job_id):
            self._persistence.insert_time_log(job_id, now.isoformat(), user_id)

        fields = {}
        if job.status != JobStatus.IN_PROGRESS:
            validate_job_transition(job.status, JobStatus.IN_PROGRESS)
            fields["status"] = JobStatus.IN_PROGRESS.value
        if job.start_time is None:
            fields["start_time"] = now.isoformat()
        if fields:
            self._persistence.update_job(job_id, fields)
        return self.get_job(job_id)

    def stop_timer(self, job_id: int) -> Job:
        """Close open time logs and add their duration to the job total."""
        job = self.get_job(job_id)
        self._close_timers(job)
        return self.get_job(job_id)

    def pause_job(self, job_id: int) -> Job:
        """
        Raises:
            InvalidStateTransitionError: If the job cannot be paused from its status
        """
        job = self.get_job(job_id)
        validate_job_transition(job.status, JobStatus.PAUSED)
        self._close_timers(job)
        self._persistence.update_job(job_id, {"status": JobStatus.PAUSED.value})
        logger.info(f"Job paused: {job_id}")
        return self.get_job(job_id)

    def resume_job(self, job_id: int, user_id: Optional[int] = None) -> Job:
        """
        Raises:
            InvalidStateTransitionError: Unless the job is paused
        """
        job = self.get_job(job_id)
        if job.status != JobStatus.PAUSED:
            raise InvalidStateTransitionError("job", job.status.value, JobStatus.IN_PROGRESS.value)
        self._persistence.update_job(job_id, {"status": JobStatus.IN_PROGRESS.value})
        if not self._persistence.load_open_time_logs(job_id):
            self._persistence.insert_time_log(job_id, datetime.now().isoformat(), user_id)
        logger.info(f"Job resumed: {job_id}")
        return self.get_job(job_id)

    def _close_timers(self, job: Job) -> None:
        # Summed over fractional seconds and rounded once
        if not self._persistence.close_open_time_logs(job.id, datetime.now().isoformat()):
            return
        total = self._persistence.total_logged_seconds(job.id)
        self._persistence.update_job(job.id, {"total_duration": int(round(total))})

    # Completion

    def sync_completion(self, job_id: int) -> Optional[Job]:
        """
        Derive DONE from sheet statuses.

        A job with at least one sheet and no pending sheet (materials and
        recuts alike) is DONE; a DONE job that regains a pending sheet
        returns to IN_PROGRESS.

        Returns:
            The updated job if its status changed, else None
        """
        job = self.get_job(job_id)
        statuses: List[SheetStatus] = []
        for material in job.materials:
            statuses.extend(material.sheet_statuses)
            for recut in material.recut_entries:
                statuses.extend(recut.sheet_statuses)

        complete = bool(statuses) and not has_pending(statuses)
        if complete and job.status != JobStatus.DONE:
            self._close_timers(job)
            self._persistence.update_job(job_id, {
                "status": JobStatus.DONE.value,
                "end_time": datetime.now().isoformat(),
            })
            logger.info(f"Job completed: {job.job_number}")
        elif not complete and job.status == JobStatus.DONE:
            self._persistence.update_job(job_id, {
                "status": JobStatus.IN_PROGRESS.value,
                "end_time": None,
            })
            logger.info(f"Job reopened: {job.job_number}")
        else:
            return None
        return self.get_job(job_id)

    def sync_completion_for_material(self, material_id: int) -> Optional[Job]:
        """sync_completion for the job owning a material."""
        job_id = self._persistence.load_job_id_for_material(material_id)
        if job_id is None:
            return None
        return self.sync_completion(job_id)

    # Cutlists and materials

    def create_cutlists(self, job_id: int, count: int) -> List[Cutlist]:
        """Append `count` cutlists named Cutlist N."""
        validate_count(count, "Count")
        self.get_job(job_id)
        ids = self._persistence.insert_cutlists(job_id, count)
        return [Cutlist.model_validate(self._persistence.load_cutlist(i)) for i in ids]

    def delete_cutlist(self, cutlist_id: int) -> int:
        """
        Delete a cutlist and its materials.

        Returns:
            The owning job ID
        """
        job_id = self._persistence.delete_cutlist(cutlist_id)
        if job_id is None:
            raise NotFoundError("cutlist", cutlist_id)
        self.sync_completion(job_id)
        return job_id

    def add_material(
        self,
        job_id: int,
        color_id: int,
        total_sheets: int,
        cutlist_id: Optional[int] = None,
    ) -> Material:
        """
        Add an all-pending material to a job.

        Goes to the given cutlist, else the job's first cutlist, which is
        created when the job has none.
        """
        validate_count(total_sheets, "Total sheets")
        job = self.get_job(job_id)
        if self._persistence.load_color(color_id) is None:
            raise NotFoundError("color", color_id)

        if cutlist_id is not None:
            if cutlist_id not in {c.id for c in job.cutlists}:
                raise NotFoundError("cutlist", cutlist_id)
        elif job.cutlists:
            cutlist_id = job.cutlists[0].id
        else:
            cutlist_id = self._persistence.insert_cutlists(job_id, 1)[0]

        material_id = self._persistence.insert_material(cutlist_id, {
            "color_id": color_id,
            "total_sheets": total_sheets,
            "sheet_statuses": [s.value for s in pending_sequence(total_sheets)],
        })
        self.sync_completion(job_id)
        return Material.model_validate(self._persistence.load_material(material_id))

    def delete_material(self, material_id: int) -> Optional[int]:
        """
        Delete a material and its recut entries.

        Returns:
            The owning job ID, if the material belonged to one
        """
        job_id = self._persistence.load_job_id_for_material(material_id)
        if not self._persistence.delete_material(material_id):
            raise NotFoundError("material", material_id)
        if job_id is not None:
            self.sync_completion(job_id)
        return job_id

    # Dashboard

    def dashboard_stats(
        self,
        sheets_from: Optional[str] = None,
        sheets_to: Optional[str] = None,
        time_from: Optional[str] = None,
        time_to: Optional[str] = None,
    ) -> DashboardStats:
        """
        Aggregate counters.

        Job counts cover every job. Sheet totals cover jobs created within
        [sheets_from, sheets_to]; time totals cover logs started within
        [time_from, time_to]. Bare dates as upper bounds include the day.
        """
        stats = DashboardStats()

        for row in self._persistence.load_all_jobs():
            stats.total_jobs += 1
            status = row["status"]
            if status == JobStatus.WAITING.value:
                stats.waiting_jobs += 1
            elif status == JobStatus.IN_PROGRESS.value:
                stats.in_progress_jobs += 1
            elif status == JobStatus.PAUSED.value:
                stats.paused_jobs += 1
            elif status == JobStatus.DONE.value:
                stats.done_jobs += 1

        created_before, created_until = _parse_upper_bound(sheets_to, "sheetsTo")
        sheet_jobs = self._persistence.load_all_jobs(
            created_from=_parse_bound(sheets_from, "sheetsFrom"),
            created_before=created_before,
            created_until=created_until,
        )
        for job in (Job.model_validate(row) for row in sheet_jobs):
            for material in job.materials:
                stats.total_sheets += material.total_sheets
                stats.cut_sheets += count_cut(material.sheet_statuses)
                stats.skipped_sheets += material.skipped_sheets
                stats.pending_sheets += material.pending_sheets
                stats.recut_sheets += sum(r.quantity for r in material.recut_entries)

        now = datetime.now()
        elapsed = 0.0
        logged_jobs = set()
        started_before, started_until = _parse_upper_bound(time_to, "timeTo")
        for log in self._persistence.load_time_logs(
            started_from=_parse_bound(time_from, "timeFrom"),
            started_before=started_before,
            started_until=started_until,
        ):
            start = datetime.fromisoformat(log["start_time"])
            end = datetime.fromisoformat(log["end_time"]) if log["end_time"] else now
            elapsed += max(0.0, (end - start).total_seconds())
            logged_jobs.add(log["job_id"])

        stats.total_seconds = int(round(elapsed))
        stats.logged_jobs = len(logged_jobs)
        if logged_jobs:
            stats.average_job_seconds = round(stats.total_seconds / len(logged_jobs), 1)
        return stats
