"""
Runtime configuration: single source.

Values come from environment variables and are read once per process
via Settings.from_env(). Tests build Settings directly.
"""

import os
from dataclasses import dataclass, field
from typing import List

DEFAULT_DB_PATH = "./cutshop.db"
DEFAULT_SESSION_SECRET = "cutshop-dev-secret"
DEFAULT_SESSION_MAX_AGE = 24 * 60 * 60
DEFAULT_CORS_ORIGINS = "http://localhost:5173"
DEFAULT_BROADCAST_QUEUE_SIZE = 100
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8085

# Client polling fallback (seconds)
JOB_DETAIL_POLL_INTERVAL = 5.0
RECUT_LIST_POLL_INTERVAL = 3.0

SESSION_COOKIE_NAME = "cutshop-session"


@dataclass
class Settings:
    """Server settings."""

    db_path: str = DEFAULT_DB_PATH
    session_secret: str = DEFAULT_SESSION_SECRET
    session_max_age: int = DEFAULT_SESSION_MAX_AGE
    cors_origins: List[str] = field(default_factory=lambda: [DEFAULT_CORS_ORIGINS])
    broadcast_queue_size: int = DEFAULT_BROADCAST_QUEUE_SIZE
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        origins = os.environ.get("CUTSHOP_CORS_ORIGINS", DEFAULT_CORS_ORIGINS)
        return cls(
            db_path=os.environ.get("CUTSHOP_DB_PATH", DEFAULT_DB_PATH),
            session_secret=os.environ.get("CUTSHOP_SESSION_SECRET", DEFAULT_SESSION_SECRET),
            session_max_age=int(os.environ.get("CUTSHOP_SESSION_MAX_AGE", DEFAULT_SESSION_MAX_AGE)),
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
            broadcast_queue_size=int(
                os.environ.get("CUTSHOP_BROADCAST_QUEUE_SIZE", DEFAULT_BROADCAST_QUEUE_SIZE)
            ),
            host=os.environ.get("CUTSHOP_HOST", DEFAULT_HOST),
            port=int(os.environ.get("CUTSHOP_PORT", DEFAULT_PORT)),
            log_level=os.environ.get("CUTSHOP_LOG_LEVEL", "INFO").upper(),
        )
