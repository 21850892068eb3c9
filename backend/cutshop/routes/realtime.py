"""
Real-time channel.

Every connected viewer receives every broadcast event on /ws. Messages
sent by viewers are ignored; the read loop only detects disconnects.
"""

import asyncio
import logging

from fastapi import APIRouter, WebSocket

from ..broadcast.registry import Connection

logger = logging.getLogger(__name__)

router = APIRouter(tags=["realtime"])


@router.websocket("/ws")
async def realtime(websocket: WebSocket):
    registry = websocket.app.state.connections
    connection = Connection(websocket, queue_size=websocket.app.state.settings.broadcast_queue_size)

    # Registered before the handshake completes so no event after it is missed
    registry.add(connection)
    sender = None
    try:
        await websocket.accept()
        sender = asyncio.create_task(connection.run_sender())
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
    finally:
        connection.close()
        registry.remove(connection)
        if sender is not None:
            sender.cancel()
