from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from ..coordinator import SessionCoordinator
from ..dependencies import get_coordinator
from ..messages import error
from ..room import send_message

logger = logging.getLogger(__name__)

router = APIRouter(prefix="", tags=["ws"])


@router.websocket("/ws/{room_id}")
async def websocket_endpoint(
    ws: WebSocket,
    room_id: str,
    coordinator: SessionCoordinator = Depends(get_coordinator),
):
    # The room is not checked here: the ``join`` message carries the player id
    # and is validated by the coordinator.
    await ws.accept()
    session = coordinator.connect(room_id, ws)
    try:
        while not session.closed:
            frame = await ws.receive()
            if frame["type"] == "websocket.disconnect":
                break
            try:
                await coordinator.handle_message(session, frame.get("text"))
            except Exception:
                logger.exception("Room %s: error handling message", session.room_id)
                await send_message(ws, error("Internal server error"), session.player_id)
    except WebSocketDisconnect:
        pass
    finally:
        await coordinator.disconnect(session)
