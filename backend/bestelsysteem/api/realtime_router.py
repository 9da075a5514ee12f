"""
Websocket bridges for the notification bus.

Each endpoint streams one channel as JSON messages of the form
{"channel": ..., "payload": ...}. The subscription is registered before the
handshake completes, so a connected client never misses an event emitted
after connect() returns.
"""

import asyncio
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from bestelsysteem.services.notifications import DATA_CHANGED, MESSAGE, ORDER_CHANGED

logger = logging.getLogger(__name__)

router = APIRouter(tags=["realtime"])


async def _watch_disconnect(websocket: WebSocket, cancel: asyncio.Event) -> None:
    """Drain incoming frames until the client goes away, then cancel."""
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
    finally:
        cancel.set()


async def _stream(websocket: WebSocket, channel: str) -> None:
    bus = websocket.app.state.bus
    cancel = asyncio.Event()
    subscription = bus.subscribe(channel, cancel)
    await websocket.accept()
    watcher = asyncio.create_task(_watch_disconnect(websocket, cancel))
    logger.info(f"[Realtime] Client connected to {channel}")
    try:
        async for event in subscription:
            await websocket.send_json(event.to_dict())
    except WebSocketDisconnect:
        logger.info(f"[Realtime] Client left {channel} during send")
    finally:
        cancel.set()
        subscription.close()
        watcher.cancel()
        logger.info(f"[Realtime] Client disconnected from {channel}")


@router.websocket("/ws/orders")
async def order_changes(websocket: WebSocket):
    """order-changed: bar and kitchen screens re-fetch their queue."""
    await _stream(websocket, ORDER_CHANGED)


@router.websocket("/ws/data")
async def data_changes(websocket: WebSocket):
    """data-changed: the statistics screen re-fetches."""
    await _stream(websocket, DATA_CHANGED)


@router.websocket("/ws/messages")
async def messages(websocket: WebSocket):
    """Admin announcements."""
    await _stream(websocket, MESSAGE)
