"""
Material endpoints: per-sheet status, resizing and recut entries.

Status values in request bodies are plain strings so that an unknown
value is rejected by the sheet store as INVALID_ARGUMENT (400) rather
than by request validation.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request
from pydantic import StrictInt

from ..auth.dependencies import require_user
from ..auth.models import User
from ..broadcast.events import EventType
from ..models import ApiModel
from .common import acknowledge, dump, notify, sync_job_for_material

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/materials", tags=["materials"])


class ProgressRequest(ApiModel):
    completed_sheets: StrictInt


class AddSheetsRequest(ApiModel):
    additional_sheets: StrictInt
    is_recut: bool = False


class SheetStatusRequest(ApiModel):
    """Request body for PUT /materials/{id}/sheet-status."""

    sheet_index: StrictInt
    status: str


class StatusRequest(ApiModel):
    """Request body for POST /materials/{id}/sheets/{index}."""

    status: str


class RecutRequest(ApiModel):
    quantity: StrictInt
    reason: Optional[str] = None


def _set_sheet_status(request: Request, material_id: int, sheet_index: int, status: str):
    material = request.app.state.sheet_store.set_sheet_status(material_id, sheet_index, status)
    stored = material.sheet_statuses[sheet_index].value
    notify(request, EventType.SHEET_STATUS_UPDATED, {
        "materialId": material_id,
        "sheetIndex": sheet_index,
        "status": stored,
    })
    sync_job_for_material(request, material_id)
    return acknowledge("Sheet status updated", material=material)


@router.put("/{material_id}/progress")
async def update_progress(
    material_id: int,
    body: ProgressRequest,
    request: Request,
    user: User = Depends(require_user),
):
    """
    Legacy bare-count progress update.

    The status sequence is rewritten so exactly completedSheets sheets
    are cut.
    """
    material = request.app.state.sheet_store.set_completed_count(material_id, body.completed_sheets)
    notify(request, EventType.MATERIAL_UPDATED, {
        "materialId": material_id,
        "completedSheets": material.completed_sheets,
    })
    sync_job_for_material(request, material_id)
    return acknowledge("Material progress updated", material=material)


@router.post("/{material_id}/add-sheets")
async def add_sheets(
    material_id: int,
    body: AddSheetsRequest,
    request: Request,
    user: User = Depends(require_user),
):
    material = request.app.state.sheet_store.add_sheets(
        material_id, body.additional_sheets, is_recut=body.is_recut, user_id=user.id
    )
    notify(request, EventType.SHEETS_ADDED, {
        "materialId": material_id,
        "additionalSheets": body.additional_sheets,
        "isRecut": body.is_recut,
    })
    sync_job_for_material(request, material_id)
    logger.info(f"Material {material_id}: {body.additional_sheets} sheet(s) added (recut={body.is_recut})")
    return acknowledge("Sheets added successfully", material=material)


@router.put("/{material_id}/sheet-status")
async def update_sheet_status(
    material_id: int,
    body: SheetStatusRequest,
    request: Request,
    user: User = Depends(require_user),
):
    return _set_sheet_status(request, material_id, body.sheet_index, body.status)


@router.post("/{material_id}/sheets/{sheet_index}")
async def set_sheet(
    material_id: int,
    sheet_index: int,
    body: StatusRequest,
    request: Request,
    user: User = Depends(require_user),
):
    return _set_sheet_status(request, material_id, sheet_index, body.status)


@router.delete("/{material_id}/sheet/{sheet_index}")
async def delete_sheet(
    material_id: int,
    sheet_index: int,
    request: Request,
    user: User = Depends(require_user),
):
    """Remove one sheet; later sheets shift down by one index."""
    material = request.app.state.sheet_store.delete_sheet(material_id, sheet_index)
    notify(request, EventType.SHEET_DELETED, {"materialId": material_id, "sheetIndex": sheet_index})
    sync_job_for_material(request, material_id)
    return acknowledge("Sheet deleted successfully", material=material)


@router.delete("/{material_id}")
async def delete_material(material_id: int, request: Request, user: User = Depends(require_user)):
    job_id = request.app.state.job_registry.delete_material(material_id)
    notify(request, EventType.MATERIAL_DELETED, {"materialId": material_id, "jobId": job_id})
    return acknowledge("Material deleted successfully")


@router.get("/{material_id}/recuts")
async def list_recuts(material_id: int, request: Request, user: User = Depends(require_user)):
    return [dump(r) for r in request.app.state.sheet_store.list_recut_entries(material_id)]


@router.post("/{material_id}/recuts")
async def add_recut(
    material_id: int,
    body: RecutRequest,
    request: Request,
    user: User = Depends(require_user),
):
    recut = request.app.state.sheet_store.add_recut_entry(
        material_id, body.quantity, reason=body.reason, user_id=user.id
    )
    notify(request, EventType.RECUT_ADDED, {
        "materialId": material_id,
        "recutId": recut.id,
        "quantity": recut.quantity,
        "reason": recut.reason,
    })
    sync_job_for_material(request, material_id)
    return acknowledge("Recut entry added successfully", recut=recut)
