"""
Per-sheet status tracking.

Each material and each recut entry owns an index-addressed sequence of
pending/cut/skip statuses. The store (sheets.store) is the server-side
authority; the cycle helper is the policy clients apply on activation.
"""

from .models import SheetStatus, EntityKind
from .state import next_status, parse_status

__all__ = [
    "SheetStatus",
    "EntityKind",
    "next_status",
    "parse_status",
]
