"""
Optimistic update reconciler.

Holds what a viewer displays for each sheet. A click writes the next
status in the cycle immediately; the request outcome and later server
snapshots then settle it:

- success leaves the optimistic value until a snapshot supersedes it
- failure rolls the optimistic entry back and reports the error
- a snapshot replaces server state and drops optimistic entries whose
  requests have all settled

State is one flat mapping keyed by (kind, entity_id, sheet_index).
"""

import logging
import threading
from collections import defaultdict
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from ..sheets.models import EntityKind, SheetStatus
from ..sheets.state import next_status, parse_status

logger = logging.getLogger(__name__)

SheetKey = Tuple[EntityKind, int, int]

ErrorCallback = Callable[["PendingUpdate", str], None]


class RollbackPolicy(str, Enum):
    """Where a failed update rolls back to."""

    SNAPSHOT = "snapshot"  # Optimistic entry as it was before the click
    SERVER = "server"  # Last server-confirmed value


@dataclass(frozen=True)
class PendingUpdate:
    """Handle for one in-flight optimistic write."""

    kind: EntityKind
    entity_id: int
    sheet_index: int
    previous: Optional[SheetStatus]  # optimistic entry before the click, None if there was none
    target: SheetStatus

    @property
    def key(self) -> SheetKey:
        return (self.kind, self.entity_id, self.sheet_index)


class OptimisticReconciler:
    """
    Client-side sheet status view.

    Args:
        on_error: Called with (update, message) after every rollback
        policy: Rollback target for failed updates
    """

    def __init__(
        self,
        on_error: Optional[ErrorCallback] = None,
        policy: RollbackPolicy = RollbackPolicy.SNAPSHOT,
    ):
        self._on_error = on_error
        self.policy = RollbackPolicy(policy)
        self._lock = threading.RLock()
        self._optimistic: Dict[SheetKey, SheetStatus] = {}
        self._in_flight: Dict[SheetKey, int] = defaultdict(int)
        self._server: Dict[Tuple[EntityKind, int], List[SheetStatus]] = {}

    # Reads

    def server_status(self, kind: EntityKind, entity_id: int, sheet_index: int) -> Optional[SheetStatus]:
        with self._lock:
            statuses = self._server.get((EntityKind(kind), entity_id))
            if statuses is None or not 0 <= sheet_index < len(statuses):
                return None
            return statuses[sheet_index]

    def displayed_status(self, kind: EntityKind, entity_id: int, sheet_index: int) -> SheetStatus:
        """Optimistic value if present, else the last snapshot, else pending."""
        kind = EntityKind(kind)
        with self._lock:
            optimistic = self._optimistic.get((kind, entity_id, sheet_index))
            if optimistic is not None:
                return optimistic
            return self.server_status(kind, entity_id, sheet_index) or SheetStatus.PENDING

    def displayed_statuses(self, kind: EntityKind, entity_id: int) -> List[SheetStatus]:
        """The whole sequence as shown, sized by the last snapshot."""
        kind = EntityKind(kind)
        with self._lock:
            size = len(self._server.get((kind, entity_id), []))
            return [self.displayed_status(kind, entity_id, i) for i in range(size)]

    def in_flight(self, kind: EntityKind, entity_id: int, sheet_index: int) -> int:
        with self._lock:
            return self._in_flight.get((EntityKind(kind), entity_id, sheet_index), 0)

    def has_optimistic(self, kind: EntityKind, entity_id: int, sheet_index: int) -> bool:
        with self._lock:
            return (EntityKind(kind), entity_id, sheet_index) in self._optimistic

    # Writes

    def begin(self, kind: EntityKind, entity_id: int, sheet_index: int) -> PendingUpdate:
        """
        Record a click.

        Every call advances the cycle once and counts as its own request;
        two quick clicks move the sheet two steps.
        """
        kind = EntityKind(kind)
        key = (kind, entity_id, sheet_index)
        with self._lock:
            previous = self._optimistic.get(key)
            target = next_status(self.displayed_status(kind, entity_id, sheet_index))
            self._optimistic[key] = target
            self._in_flight[key] += 1
        logger.debug(f"Optimistic {kind.value} {entity_id}[{sheet_index}] -> {target.value}")
        return PendingUpdate(kind, entity_id, sheet_index, previous, target)

    def succeed(self, update: PendingUpdate) -> None:
        """The server accepted the write; keep showing it until the next snapshot."""
        with self._lock:
            self._settle(update.key)

    def fail(self, update: PendingUpdate, message: str, server_value: Optional[SheetStatus] = None) -> None:
        """
        Roll back a rejected write and report it.

        SNAPSHOT restores the optimistic entry captured at click time (or
        clears it). SERVER clears the optimistic entry so the server value
        shows, taking server_value as that value when given.
        """
        key = update.key
        with self._lock:
            self._settle(key)
            if self.policy is RollbackPolicy.SERVER:
                self._optimistic.pop(key, None)
                if server_value is not None:
                    self._set_server_cell(update.kind, update.entity_id, update.sheet_index, parse_status(server_value))
            elif update.previous is None:
                self._optimistic.pop(key, None)
            else:
                self._optimistic[key] = update.previous

        logger.warning(
            f"Rolled back {update.kind.value} {update.entity_id}[{update.sheet_index}]: {message}"
        )
        if self._on_error is not None:
            self._on_error(update, message)

    def apply_snapshot(self, kind: EntityKind, entity_id: int, statuses: Iterable) -> None:
        """
        Record authoritative statuses for one entity.

        Optimistic entries of that entity with no request in flight are
        dropped; entries still in flight keep showing.
        """
        kind = EntityKind(kind)
        snapshot = [parse_status(s) for s in statuses]
        with self._lock:
            self._server[(kind, entity_id)] = snapshot
            settled = [
                key for key in self._optimistic
                if key[0] == kind and key[1] == entity_id and not self._in_flight.get(key)
            ]
            for key in settled:
                del self._optimistic[key]

    def forget(self, kind: EntityKind, entity_id: int) -> None:
        """Drop all state for a deleted entity."""
        kind = EntityKind(kind)
        with self._lock:
            self._server.pop((kind, entity_id), None)
            for key in [k for k in self._optimistic if k[0] == kind and k[1] == entity_id]:
                del self._optimistic[key]

    def _settle(self, key: SheetKey) -> None:
        remaining = self._in_flight.get(key, 0) - 1
        if remaining > 0:
            self._in_flight[key] = remaining
        else:
            self._in_flight.pop(key, None)

    def _set_server_cell(self, kind: EntityKind, entity_id: int, sheet_index: int, status: SheetStatus) -> None:
        statuses = self._server.get((kind, entity_id))
        if statuses is not None and 0 <= sheet_index < len(statuses):
            statuses[sheet_index] = status
