"""
WebSocket endpoint for StreamAtlas map clients.

``/ws/markers`` replays the current marker set and clock text, then
streams every ``upsert`` / ``remove`` / ``time`` message emitted by the
live or history driver.  A client too slow to keep up is closed with
code 1013 and may reconnect for a fresh replay.
"""

from __future__ import annotations

import asyncio

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from viewer.sink import LAGGING

router = APIRouter(tags=["websocket"])


@router.websocket("/ws/markers")
async def marker_stream(ws: WebSocket) -> None:
    await ws.accept()
    sink = getattr(ws.app.state, "sink", None)
    if sink is None:
        await ws.close(code=1011, reason="Marker sink unavailable")
        return

    queue = sink.subscribe()

    async def _forward() -> None:
        try:
            while True:
                message = await queue.get()
                if message is LAGGING:
                    await ws.close(code=1013, reason="Client too slow")
                    return
                await ws.send_json(message)
        except (WebSocketDisconnect, RuntimeError):
            # socket already closed by the client
            return

    forwarder = asyncio.create_task(_forward())
    try:
        while True:
            # Keep connection alive; client may send pings.
            await ws.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        sink.unsubscribe(queue)
        forwarder.cancel()
        try:
            await forwarder
        except asyncio.CancelledError:
            pass
