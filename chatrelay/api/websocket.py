# chatrelay/api/websocket.py

from __future__ import annotations

import logging

from fastapi import APIRouter, WebSocket, status

from chatrelay.core import state
from chatrelay.services.auth_service import resolve_identity

logger = logging.getLogger(__name__)

router = APIRouter()

# ============================================================================
# WEBSOCKET ENDPOINT
# ============================================================================

@router.websocket("/v1/ws/{room_id}")
async def websocket_endpoint(websocket: WebSocket, room_id: str):
    """
    WebSocket endpoint for one chat room.

    Authentication:
    ===============
    Bearer token in the Authorization header or the ?token= query
    parameter. A handshake without a valid token is refused with code
    1008 and never joins the room.

    Client -> Server:
        "Hello!"  or  {"content": "Hello!"}

    Server -> Client:
        {"type": "message", "id": "...", "room_id": "...", "sender_id": "alice",
         "content": "Hello!", "created_at": "..."}
        {"type": "typing_indicator", "is_typing": true, "user_id": "GEMINI"}

    Args:
        websocket: WebSocket connection object
        room_id: Path parameter naming the room; the room exists while
            someone is connected to it
    """
    identity = resolve_identity(websocket)
    if identity is None:
        # Rejected before the handshake completes, so the room is never joined
        logger.warning("WebSocket rejected: room=%s, no valid token", room_id)
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason="not authenticated")
        return

    logger.info("WebSocket connect: room=%s user=%s", room_id, identity)
    await state.chat_service.handle_stream(room_id, websocket, identity)
