"""
Colour catalog endpoints.

Any signed-in user may read; creating, changing and deleting colours
and groups requires an admin.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Request

from ..auth.dependencies import require_admin, require_user
from ..auth.models import User
from ..models import ApiModel
from .common import acknowledge, dump

router = APIRouter(prefix="/api", tags=["colors"])


class CreateColorRequest(ApiModel):
    name: str
    hex_color: str
    group_id: Optional[int] = None
    texture: Optional[str] = None


class UpdateColorRequest(ApiModel):
    """Partial update; omitted fields keep their value."""

    name: Optional[str] = None
    hex_color: Optional[str] = None
    group_id: Optional[int] = None
    texture: Optional[str] = None


class ColorGroupRequest(ApiModel):
    name: str


@router.get("/colors")
async def list_colors(request: Request, search: Optional[str] = None, user: User = Depends(require_user)):
    return [dump(c) for c in request.app.state.color_registry.list_colors(search=search)]


@router.post("/colors")
async def create_color(body: CreateColorRequest, request: Request, user: User = Depends(require_admin)):
    color = request.app.state.color_registry.create_color(
        body.name, body.hex_color, group_id=body.group_id, texture=body.texture
    )
    return dump(color)


@router.put("/colors/{color_id}")
async def update_color(
    color_id: int,
    body: UpdateColorRequest,
    request: Request,
    user: User = Depends(require_admin),
):
    color = request.app.state.color_registry.update_color(color_id, body.model_dump(exclude_unset=True))
    return acknowledge("Color updated successfully", color=color)


@router.delete("/colors/{color_id}")
async def delete_color(color_id: int, request: Request, user: User = Depends(require_admin)):
    request.app.state.color_registry.delete_color(color_id)
    return acknowledge("Color deleted successfully")


@router.get("/color-groups")
async def list_color_groups(request: Request, user: User = Depends(require_user)):
    return [dump(g) for g in request.app.state.color_registry.list_groups()]


@router.post("/color-groups")
async def create_color_group(body: ColorGroupRequest, request: Request, user: User = Depends(require_admin)):
    return dump(request.app.state.color_registry.create_group(body.name))


@router.put("/color-groups/{group_id}")
async def rename_color_group(
    group_id: int,
    body: ColorGroupRequest,
    request: Request,
    user: User = Depends(require_admin),
):
    group = request.app.state.color_registry.rename_group(group_id, body.name)
    return acknowledge("Color group updated successfully", group=group)


@router.delete("/color-groups/{group_id}")
async def delete_color_group(group_id: int, request: Request, user: User = Depends(require_admin)):
    request.app.state.color_registry.delete_group(group_id)
    return acknowledge("Color group deleted successfully")
