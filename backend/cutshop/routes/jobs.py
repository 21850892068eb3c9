"""
Job endpoints: listing, creation, timers, cutlists and materials.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Request
from pydantic import StrictInt

from ..auth.dependencies import require_user
from ..auth.models import User
from ..broadcast.events import EventType
from ..models import ApiModel
from .common import acknowledge, dump, notify

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/jobs", tags=["jobs"])


class MaterialSpec(ApiModel):
    color_id: int
    total_sheets: StrictInt


class CreateJobRequest(ApiModel):
    """Request body for job creation."""

    customer_name: str
    job_name: str
    materials: List[MaterialSpec]


class AddMaterialRequest(ApiModel):
    color_id: int
    total_sheets: StrictInt
    cutlist_id: Optional[int] = None


class CreateCutlistsRequest(ApiModel):
    count: StrictInt = 1


@router.get("")
async def list_jobs(
    request: Request,
    search: Optional[str] = None,
    status: Optional[str] = None,
    user: User = Depends(require_user),
):
    """
    List jobs, newest first.

    search matches job number, customer and job name case-insensitively;
    status filters on an exact job status.
    """
    jobs = request.app.state.job_registry.list_jobs(search=search, status=status)
    return [dump(job) for job in jobs]


@router.get("/{job_id}")
async def get_job(job_id: int, request: Request, user: User = Depends(require_user)):
    return dump(request.app.state.job_registry.get_job(job_id))


@router.post("")
async def create_job(body: CreateJobRequest, request: Request, user: User = Depends(require_user)):
    job = request.app.state.job_registry.create_job(
        body.customer_name,
        body.job_name,
        [(m.color_id, m.total_sheets) for m in body.materials],
    )
    notify(request, EventType.JOB_CREATED, {"jobId": job.id, "jobNumber": job.job_number})
    return dump(job)


@router.post("/{job_id}/start-timer")
async def start_timer(job_id: int, request: Request, user: User = Depends(require_user)):
    job = request.app.state.job_registry.start_timer(job_id, user_id=user.id)
    notify(request, EventType.JOB_TIMER_STARTED, {"jobId": job.id, "status": job.status.value})
    return acknowledge("Job timer started", job=job)


@router.post("/{job_id}/stop-timer")
async def stop_timer(job_id: int, request: Request, user: User = Depends(require_user)):
    job = request.app.state.job_registry.stop_timer(job_id)
    notify(request, EventType.JOB_TIMER_STOPPED, {"jobId": job.id, "totalDuration": job.total_duration})
    return acknowledge("Job timer stopped", job=job)


@router.post("/{job_id}/pause")
async def pause_job(job_id: int, request: Request, user: User = Depends(require_user)):
    job = request.app.state.job_registry.pause_job(job_id)
    notify(request, EventType.JOB_UPDATED, {"jobId": job.id, "status": job.status.value})
    return acknowledge("Job paused successfully", job=job)


@router.post("/{job_id}/resume")
async def resume_job(job_id: int, request: Request, user: User = Depends(require_user)):
    job = request.app.state.job_registry.resume_job(job_id, user_id=user.id)
    notify(request, EventType.JOB_UPDATED, {"jobId": job.id, "status": job.status.value})
    return acknowledge("Job resumed successfully", job=job)


@router.delete("/{job_id}")
async def delete_job(job_id: int, request: Request, user: User = Depends(require_user)):
    request.app.state.job_registry.delete_job(job_id)
    notify(request, EventType.JOB_DELETED, {"jobId": job_id})
    return acknowledge("Job deleted successfully")


@router.post("/{job_id}/materials")
async def add_material(
    job_id: int,
    body: AddMaterialRequest,
    request: Request,
    user: User = Depends(require_user),
):
    material = request.app.state.job_registry.add_material(
        job_id, body.color_id, body.total_sheets, cutlist_id=body.cutlist_id
    )
    notify(request, EventType.JOB_UPDATED, {"jobId": job_id, "materialId": material.id})
    return acknowledge("Material added to job successfully", material=material)


@router.post("/{job_id}/cutlists")
async def create_cutlists(
    job_id: int,
    body: CreateCutlistsRequest,
    request: Request,
    user: User = Depends(require_user),
):
    cutlists = request.app.state.job_registry.create_cutlists(job_id, body.count)
    notify(request, EventType.JOB_UPDATED, {"jobId": job_id})
    return {"cutlists": [dump(c) for c in cutlists]}
