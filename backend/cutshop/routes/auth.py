"""
Login, logout, current user and first-run setup.
"""

import logging

from fastapi import APIRouter, Depends, Request

from ..auth.dependencies import end_session, require_user, start_session
from ..auth.models import User
from ..models import ApiModel

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["auth"])


class CredentialsRequest(ApiModel):
    """Request body for login and setup."""

    username: str
    password: str


def _session_user(user: User) -> dict:
    return {"id": user.id, "username": user.username, "role": user.role.value}


@router.post("/login")
async def login(body: CredentialsRequest, request: Request):
    user = request.app.state.user_registry.authenticate(body.username, body.password)
    start_session(request, user)
    logger.info(f"Login: {user.username}")
    return {"user": _session_user(user)}


@router.post("/logout")
async def logout(request: Request):
    end_session(request)
    return {"message": "Logged out successfully"}


@router.get("/me")
async def current_user(user: User = Depends(require_user)):
    """The session user, re-read from storage so role changes show immediately."""
    return {"user": _session_user(user)}


@router.get("/setup/required")
async def setup_required(request: Request):
    return {"required": request.app.state.user_registry.setup_required()}


@router.post("/setup")
async def setup(body: CredentialsRequest, request: Request):
    """
    Create the first super admin.

    Refused with 400 once any user exists.
    """
    user = request.app.state.user_registry.setup_initial_admin(body.username, body.password)
    logger.info(f"Initial super admin created: {user.username}")
    return {"message": "Initial admin user created successfully"}
