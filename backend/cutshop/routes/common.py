"""
Helpers shared by the HTTP routes.

Responses are plain dicts with camelCase keys; mutations answer with a
{"message": ..., <entity>: ...} acknowledgement and publish one
broadcast event after the write has committed.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import Request
from pydantic import BaseModel

from ..broadcast.events import EventType

logger = logging.getLogger(__name__)


def dump(model: BaseModel) -> Dict[str, Any]:
    """Serialize a model the way the API exposes it."""
    return model.model_dump(mode="json", by_alias=True)


def acknowledge(message: str, **entities: Any) -> Dict[str, Any]:
    body: Dict[str, Any] = {"message": message}
    for key, value in entities.items():
        body[key] = dump(value) if isinstance(value, BaseModel) else value
    return body


def notify(request: Request, event_type: EventType, data: Optional[Dict[str, Any]] = None) -> int:
    return request.app.state.notifier.notify(event_type, data)


def sync_job_for_material(request: Request, material_id: int) -> None:
    """Re-derive job completion after a sheet change and announce a status flip."""
    job = request.app.state.job_registry.sync_completion_for_material(material_id)
    if job is not None:
        notify(request, EventType.JOB_UPDATED, {"jobId": job.id, "status": job.status.value})
