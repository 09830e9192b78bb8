"""
WebSocket endpoint for real-time progress updates.

Clients connect to /ws/progress?id=<download_id>. Every state change of that
job is pushed as {"type": "progress", "download_id": ..., "data": {...}}.
Nothing is replayed on connect; poll /api/progress/{id} for the current state.
"""

import asyncio
import json
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect
from starlette.websockets import WebSocketState

from app.services.progress_broadcaster import ProgressBroadcaster, get_progress_broadcaster

logger = logging.getLogger(__name__)

router = APIRouter()


class WebSocketObserver:
    """
    Adapts a WebSocket to the broadcaster's observer interface.

    deliver() only enqueues; pump() performs the sends in order. The queue is
    fed through the loop the socket lives on, so deliver() is safe to call
    from any thread.
    """

    def __init__(self, websocket: WebSocket):
        self.websocket = websocket
        self._loop = asyncio.get_running_loop()
        self._queue: asyncio.Queue[str] = asyncio.Queue()
        self._closed = False

    @property
    def is_open(self) -> bool:
        return (
            not self._closed
            and self.websocket.client_state == WebSocketState.CONNECTED
            and self.websocket.application_state == WebSocketState.CONNECTED
        )

    def deliver(self, message: dict) -> None:
        self.send_text(json.dumps(message))

    def send_text(self, text: str) -> None:
        self._loop.call_soon_threadsafe(self._queue.put_nowait, text)

    def close(self) -> None:
        self._closed = True

    async def pump(self) -> None:
        """Send queued messages until the socket goes away."""
        while True:
            text = await self._queue.get()
            try:
                await self.websocket.send_text(text)
            except (WebSocketDisconnect, RuntimeError) as e:
                logger.debug(f"Stopped sending progress: {e}")
                self.close()
                return


@router.websocket("/ws/progress")
async def websocket_progress(
    websocket: WebSocket,
    download_id: Optional[str] = Query(None, alias="id"),
    broadcaster: ProgressBroadcaster = Depends(get_progress_broadcaster),
):
    """websocket endpoint for real-time progress updates"""
    await websocket.accept()

    observer = WebSocketObserver(websocket)
    if download_id:
        broadcaster.attach(download_id, observer)

    sender = asyncio.create_task(observer.pump())

    try:
        while True:
            # keep connection alive and receive any client messages
            data = await websocket.receive_text()
            # client can send "ping" to keep alive
            if data == "ping":
                observer.send_text("pong")
    except WebSocketDisconnect:
        logger.debug(f"Progress client disconnected ({download_id})")
    except Exception as e:
        logger.warning(f"websocket error: {e}")
    finally:
        observer.close()
        if download_id:
            broadcaster.detach(download_id, observer)
        sender.cancel()
        try:
            await sender
        except asyncio.CancelledError:
            pass
