"""
Recut entry endpoints.
"""

from fastapi import APIRouter, Depends, Request
from pydantic import StrictInt

from ..auth.dependencies import require_user
from ..auth.models import User
from ..broadcast.events import EventType
from ..models import ApiModel
from .common import acknowledge, notify, sync_job_for_material

router = APIRouter(prefix="/api/recuts", tags=["recuts"])


class RecutSheetStatusRequest(ApiModel):
    sheet_index: StrictInt
    status: str


@router.delete("/{recut_id}")
async def delete_recut(recut_id: int, request: Request, user: User = Depends(require_user)):
    recut = request.app.state.sheet_store.delete_recut_entry(recut_id)
    notify(request, EventType.RECUT_DELETED, {"recutId": recut_id, "materialId": recut.material_id})
    sync_job_for_material(request, recut.material_id)
    return acknowledge("Recut entry deleted successfully")


@router.put("/{recut_id}/sheet-status")
async def update_recut_sheet_status(
    recut_id: int,
    body: RecutSheetStatusRequest,
    request: Request,
    user: User = Depends(require_user),
):
    """Set one sheet of a recut entry, bounded by its quantity."""
    recut = request.app.state.sheet_store.set_recut_sheet_status(recut_id, body.sheet_index, body.status)
    notify(request, EventType.RECUT_SHEET_STATUS_UPDATED, {
        "recutId": recut_id,
        "materialId": recut.material_id,
        "sheetIndex": body.sheet_index,
        "status": recut.sheet_statuses[body.sheet_index].value,
    })
    sync_job_for_material(request, recut.material_id)
    return acknowledge("Recut sheet status updated", recut=recut)
