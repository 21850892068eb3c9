"""
Job view session.

Binds one open job view to the API client and the reconciler: clicks go
through the optimistic path, refreshes feed authoritative snapshots, and
broadcast events for anything on screen trigger a refresh.
"""

import logging
from typing import Any, Dict, Optional, Set

from ..sheets.models import EntityKind
from .api import CutshopClient
from .errors import CutshopClientError
from .reconciler import OptimisticReconciler, PendingUpdate, RollbackPolicy

logger = logging.getLogger(__name__)

_JOB_EVENTS = {"job_updated", "job_timer_started", "job_timer_stopped", "cutlist_deleted"}
_MATERIAL_EVENTS = {
    "material_updated",
    "material_deleted",
    "sheets_added",
    "sheet_status_updated",
    "sheet_deleted",
    "recut_added",
}
_RECUT_EVENTS = {"recut_deleted", "recut_sheet_status_updated"}


class JobViewSession:
    """
    State behind one job detail view.

    Args:
        client: API client
        job_id: The job shown
        reconciler: Shared reconciler; a fresh one is created if omitted
    """

    def __init__(self, client: CutshopClient, job_id: int, reconciler: Optional[OptimisticReconciler] = None):
        self._client = client
        self.job_id = job_id
        self.reconciler = reconciler or OptimisticReconciler()
        self.job = None
        self.deleted = False

    # Identifiers on screen

    @property
    def material_ids(self) -> Set[int]:
        return {m.id for m in self.job.materials} if self.job else set()

    @property
    def recut_ids(self) -> Set[int]:
        if not self.job:
            return set()
        return {r.id for m in self.job.materials for r in m.recut_entries}

    # Snapshots

    def refresh(self) -> None:
        """
        Fetch the job and feed every material and recut sequence to the
        reconciler. Materials and recuts gone from the job are forgotten.
        """
        job = self._client.get_job(self.job_id)
        gone_materials = self.material_ids - {m.id for m in job.materials}
        gone_recuts = self.recut_ids - {r.id for m in job.materials for r in m.recut_entries}
        for material in job.materials:
            self.reconciler.apply_snapshot(EntityKind.MATERIAL, material.id, material.sheet_statuses)
            for recut in material.recut_entries:
                self.reconciler.apply_snapshot(EntityKind.RECUT, recut.id, recut.sheet_statuses)
        self.job = job
        self._forget(gone_materials, gone_recuts)

    def refresh_recuts(self, material_id: Optional[int] = None) -> None:
        """Fetch recut lists for one material, or for every material on screen."""
        material_ids = [material_id] if material_id is not None else sorted(self.material_ids)
        for mid in material_ids:
            for recut in self._client.list_recuts(mid):
                self.reconciler.apply_snapshot(EntityKind.RECUT, recut.id, recut.sheet_statuses)

    # Clicks

    def click_sheet(self, material_id: int, sheet_index: int) -> PendingUpdate:
        update = self.reconciler.begin(EntityKind.MATERIAL, material_id, sheet_index)
        try:
            self._client.set_sheet_status(material_id, sheet_index, update.target)
        except CutshopClientError as e:
            self._rollback(update, e)
        else:
            self.reconciler.succeed(update)
        return update

    def click_recut_sheet(self, recut_id: int, sheet_index: int) -> PendingUpdate:
        update = self.reconciler.begin(EntityKind.RECUT, recut_id, sheet_index)
        try:
            self._client.set_recut_sheet_status(recut_id, sheet_index, update.target)
        except CutshopClientError as e:
            self._rollback(update, e)
        else:
            self.reconciler.succeed(update)
        return update

    def _rollback(self, update: PendingUpdate, error: CutshopClientError) -> None:
        self.reconciler.fail(update, error.message)
        if self.reconciler.policy is RollbackPolicy.SERVER:
            # Show the freshly fetched server value rather than the click-time one
            try:
                self.refresh()
            except CutshopClientError as e:
                logger.warning(f"Refresh after rollback failed: {e}")

    # Broadcasts

    def handle_event(self, event: Dict[str, Any]) -> bool:
        """
        React to a broadcast event.

        Returns:
            True if the event concerned this view and a refresh ran
        """
        event_type = event.get("type")
        data = event.get("data") or {}

        if event_type == "job_deleted":
            if data.get("jobId") == self.job_id:
                self.deleted = True
                self._forget(self.material_ids, self.recut_ids)
                self.job = None
            return False

        if self.deleted or not self._concerns_view(event_type, data):
            return False

        if event_type == "material_deleted":
            self.reconciler.forget(EntityKind.MATERIAL, data.get("materialId"))
        elif event_type == "recut_deleted":
            self.reconciler.forget(EntityKind.RECUT, data.get("recutId"))
        self.refresh()
        if event_type in _RECUT_EVENTS or event_type == "recut_added":
            self.refresh_recuts(data.get("materialId"))
        return True

    def _forget(self, material_ids: Set[int], recut_ids: Set[int]) -> None:
        for material_id in material_ids:
            self.reconciler.forget(EntityKind.MATERIAL, material_id)
        for recut_id in recut_ids:
            self.reconciler.forget(EntityKind.RECUT, recut_id)

    def _concerns_view(self, event_type: Optional[str], data: Dict[str, Any]) -> bool:
        if event_type in _JOB_EVENTS:
            return data.get("jobId") == self.job_id
        if event_type in _MATERIAL_EVENTS:
            return data.get("materialId") in self.material_ids
        if event_type in _RECUT_EVENTS:
            return data.get("recutId") in self.recut_ids or data.get("materialId") in self.material_ids
        return False
