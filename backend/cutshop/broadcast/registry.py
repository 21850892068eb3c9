"""
Connection registry for real-time viewers.

Each open WebSocket is wrapped in a Connection that owns a bounded FIFO
outbound queue and a writer task draining it. Enqueueing never waits on
the socket: a full queue drops the message for that connection only.
The registry is owned by the app (app.state.connections) and passed by
reference to whatever broadcasts.
"""

import asyncio
import logging
import threading
import uuid
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)


class Connection:
    """One open viewer socket with its own outbound queue."""

    def __init__(self, websocket, queue_size: int = 100, loop: Optional[asyncio.AbstractEventLoop] = None):
        self.id = str(uuid.uuid4())
        self._websocket = websocket
        self._loop = loop or asyncio.get_running_loop()
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=queue_size)
        self.closed = False
        self.sent = 0
        self.dropped = 0

    def enqueue(self, message: str) -> bool:
        """
        Queue a message for this connection without blocking.

        Safe to call from the connection's event loop or from another
        thread.

        Returns:
            False if the connection is closed or its queue is full
        """
        if self.closed:
            return False

        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if running is self._loop:
            return self._put(message)

        try:
            self._loop.call_soon_threadsafe(self._put, message)
        except RuntimeError:
            # Event loop already closed
            self.closed = True
            return False
        return True

    def _put(self, message: str) -> bool:
        if self.closed:
            return False
        try:
            self._queue.put_nowait(message)
        except asyncio.QueueFull:
            self.dropped += 1
            logger.warning(f"Connection {self.id[:8]} outbound queue full, event dropped")
            return False
        return True

    async def run_sender(self) -> None:
        """Send queued messages in order until the socket fails or the task is cancelled."""
        try:
            while True:
                message = await self._queue.get()
                await self._websocket.send_text(message)
                self.sent += 1
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.info(f"Connection {self.id[:8]} send failed, closing: {e}")
            self.closed = True

    def close(self) -> None:
        self.closed = True


class ConnectionRegistry:
    """Set of currently open viewer connections."""

    def __init__(self):
        # connection id -> Connection
        self._connections: Dict[str, Connection] = {}
        self._lock = threading.Lock()

    def add(self, connection: Connection) -> None:
        with self._lock:
            self._connections[connection.id] = connection
        logger.info(f"Viewer connected: {connection.id[:8]} ({self.count()} open)")

    def remove(self, connection: Connection) -> bool:
        """
        Remove a connection.

        Returns:
            False if it was not registered
        """
        with self._lock:
            removed = self._connections.pop(connection.id, None) is not None
        if removed:
            logger.info(f"Viewer disconnected: {connection.id[:8]} ({self.count()} open)")
        return removed

    def list_connections(self) -> List[Connection]:
        """Snapshot of open connections; safe to iterate while others connect."""
        with self._lock:
            return list(self._connections.values())

    def count(self) -> int:
        with self._lock:
            return len(self._connections)

    def __len__(self) -> int:
        return self.count()
