"""
Cutshop backend service: jobs, sheet tracking and live updates.
"""

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.sessions import SessionMiddleware

from .auth.users import UserRegistry
from .broadcast.notifier import BroadcastNotifier
from .broadcast.registry import ConnectionRegistry
from .catalog.registry import ColorRegistry
from .config import SESSION_COOKIE_NAME, Settings
from .errors import CutshopError
from .jobs.registry import JobRegistry
from .persistence.manager import PersistenceManager
from .routes import ROUTERS
from .sheets.store import SheetStatusStore

logger = logging.getLogger(__name__)


async def handle_cutshop_error(request: Request, exc: CutshopError) -> JSONResponse:
    """Render every domain error as {"message", "code"} with its HTTP status."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    else:
        logger.warning(f"{request.method} {request.url.path} rejected ({exc.code}): {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.message, "code": exc.code},
    )


def create_app(settings: Optional[Settings] = None, bcrypt_rounds: Optional[int] = None) -> FastAPI:
    """
    Create the Cutshop application.

    Args:
        settings: Runtime settings. Read from the environment if not provided.
        bcrypt_rounds: Password hashing cost override (tests use a low value).

    Returns:
        FastAPI application with storage, registries and the broadcast
        channel attached to app.state
    """
    settings = settings or Settings.from_env()

    app = FastAPI(title="Cutshop Backend", version="0.1.0")

    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.session_secret,
        session_cookie=SESSION_COOKIE_NAME,
        max_age=settings.session_max_age,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(CutshopError, handle_cutshop_error)

    persistence = PersistenceManager(db_path=settings.db_path)
    user_kwargs = {"bcrypt_rounds": bcrypt_rounds} if bcrypt_rounds else {}

    app.state.settings = settings
    app.state.persistence = persistence
    app.state.user_registry = UserRegistry(persistence_manager=persistence, **user_kwargs)
    app.state.color_registry = ColorRegistry(persistence_manager=persistence)
    app.state.job_registry = JobRegistry(persistence_manager=persistence)
    app.state.sheet_store = SheetStatusStore(persistence_manager=persistence)
    app.state.connections = ConnectionRegistry()
    app.state.notifier = BroadcastNotifier(app.state.connections)

    for router in ROUTERS:
        app.include_router(router)

    logger.info(f"Cutshop app created (db={settings.db_path})")
    return app

