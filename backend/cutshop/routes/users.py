"""
User administration endpoints (super admin only).
"""

from typing import Optional

from fastapi import APIRouter, Depends, Request

from ..auth.dependencies import require_super_admin
from ..auth.models import User
from ..models import ApiModel
from .common import acknowledge, dump

router = APIRouter(prefix="/api/users", tags=["users"])


class CreateUserRequest(ApiModel):
    username: str
    password: str
    email: Optional[str] = None
    role: str = "admin"


class UpdateUserRequest(ApiModel):
    username: Optional[str] = None
    password: Optional[str] = None
    email: Optional[str] = None
    role: Optional[str] = None


@router.get("")
async def list_users(request: Request, user: User = Depends(require_super_admin)):
    return [dump(u) for u in request.app.state.user_registry.list_users()]


@router.post("")
async def create_user(body: CreateUserRequest, request: Request, user: User = Depends(require_super_admin)):
    created = request.app.state.user_registry.create_user(
        body.username, body.password, email=body.email, role=body.role
    )
    return dump(created)


@router.put("/{user_id}")
async def update_user(
    user_id: int,
    body: UpdateUserRequest,
    request: Request,
    user: User = Depends(require_super_admin),
):
    updated = request.app.state.user_registry.update_user(user_id, body.model_dump(exclude_unset=True))
    return dump(updated)


@router.delete("/{user_id}")
async def delete_user(user_id: int, request: Request, user: User = Depends(require_super_admin)):
    request.app.state.user_registry.delete_user(user_id, acting_user_id=user.id)
    return acknowledge("User deleted successfully")
