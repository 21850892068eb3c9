"""
Broadcast notifier.

Fan-out of authoritative state changes to every open viewer. Delivery
is fire-and-forget and at-most-once per viewer per call; a viewer that
is not connected misses the event and resynchronizes on its next poll.
"""

import logging
from typing import Any, Dict, Optional

from .events import BroadcastEvent, EventType
from .registry import ConnectionRegistry

logger = logging.getLogger(__name__)


class BroadcastNotifier:
    """Publishes events on the single shared channel."""

    def __init__(self, registry: ConnectionRegistry):
        self._registry = registry

    @property
    def registry(self) -> ConnectionRegistry:
        return self._registry

    def notify(self, event_type: EventType, data: Optional[Dict[str, Any]] = None) -> int:
        """
        Queue an event for every open connection.

        Closed connections and connections that fail to accept the
        message are removed from the registry. Never raises for a
        delivery problem.

        Returns:
            Number of connections the event was queued for
        """
        event = BroadcastEvent.create(event_type, data)
        message = event.to_json()

        queued = 0
        for connection in self._registry.list_connections():
            if connection.closed:
                self._registry.remove(connection)
                continue
            try:
                if connection.enqueue(message):
                    queued += 1
            except Exception as e:
                logger.warning(f"Dropping connection {connection.id[:8]} after enqueue failure: {e}")
                connection.close()
                self._registry.remove(connection)

        logger.debug(f"Broadcast {event.event_type.value} to {queued} viewer(s)")
        return queued
