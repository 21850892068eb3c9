"""
Real-time broadcast of state changes to connected viewers.

One shared channel, no topic filtering: every viewer receives every
event and filters by the identifiers it has open.
"""

from .events import BroadcastEvent, EventType
from .registry import Connection, ConnectionRegistry
from .notifier import BroadcastNotifier

__all__ = [
    "BroadcastEvent",
    "EventType",
    "Connection",
    "ConnectionRegistry",
    "BroadcastNotifier",
]
