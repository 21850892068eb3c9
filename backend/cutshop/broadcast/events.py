"""
Broadcast event model.

Events are immutable records of an authoritative state change. The wire
format is one JSON object per message:

    {"type": "sheet_status_updated",
     "data": {"materialId": 5, "sheetIndex": 2, "status": "cut"},
     "timestamp": "..."}

Payloads carry identifiers and deltas, not full entities. Viewers filter
by the identifiers they currently have open.
"""

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional


class EventType(str, Enum):
    """Types of broadcast events."""

    JOB_CREATED = "job_created"
    JOB_UPDATED = "job_updated"
    JOB_DELETED = "job_deleted"
    JOB_TIMER_STARTED = "job_timer_started"
    JOB_TIMER_STOPPED = "job_timer_stopped"
    CUTLIST_DELETED = "cutlist_deleted"
    MATERIAL_UPDATED = "material_updated"
    MATERIAL_DELETED = "material_deleted"
    SHEETS_ADDED = "sheets_added"
    SHEET_STATUS_UPDATED = "sheet_status_updated"
    SHEET_DELETED = "sheet_deleted"
    RECUT_ADDED = "recut_added"
    RECUT_DELETED = "recut_deleted"
    RECUT_SHEET_STATUS_UPDATED = "recut_sheet_status_updated"


@dataclass(frozen=True)
class BroadcastEvent:
    """Immutable event record."""

    event_type: EventType
    data: Dict[str, Any] = field(default_factory=dict)
    timestamp: str = ""  # ISO 8601, UTC

    @classmethod
    def create(cls, event_type: EventType, data: Optional[Dict[str, Any]] = None) -> "BroadcastEvent":
        """Create a new event stamped with the current time."""
        return cls(
            event_type=EventType(event_type),
            data=data or {},
            timestamp=datetime.now(timezone.utc).isoformat(),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.event_type.value,
            "data": self.data,
            "timestamp": self.timestamp,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=str)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BroadcastEvent":
        return cls(
            event_type=EventType(data["type"]),
            data=data.get("data") or {},
            timestamp=data.get("timestamp", ""),
        )
