"""
Cutlist endpoints.
"""

from fastapi import APIRouter, Depends, Request

from ..auth.dependencies import require_user
from ..auth.models import User
from ..broadcast.events import EventType
from .common import acknowledge, notify

router = APIRouter(prefix="/api/cutlists", tags=["cutlists"])


@router.delete("/{cutlist_id}")
async def delete_cutlist(cutlist_id: int, request: Request, user: User = Depends(require_user)):
    """Delete a cutlist with its materials and their recut entries."""
    job_id = request.app.state.job_registry.delete_cutlist(cutlist_id)
    notify(request, EventType.CUTLIST_DELETED, {"cutlistId": cutlist_id, "jobId": job_id})
    return acknowledge("Cutlist deleted successfully")
