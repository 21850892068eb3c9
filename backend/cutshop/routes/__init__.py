"""
HTTP and WebSocket routes.
"""

from . import auth, colors, cutlists, dashboard, health, jobs, materials, realtime, recuts, users

ROUTERS = [
    health.router,
    auth.router,
    jobs.router,
    cutlists.router,
    materials.router,
    recuts.router,
    colors.router,
    users.router,
    dashboard.router,
    realtime.router,
]

__all__ = ["ROUTERS"]
