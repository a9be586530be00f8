# chatrelay/api/routes/rooms.py

from typing import List

from fastapi import APIRouter, Depends, HTTPException

from chatrelay.core import state
from chatrelay.models.models import MessageHistory, RoomInfo
from chatrelay.services.auth_service import get_current_user_id
from chatrelay.services.message_store import MessageStoreError

router = APIRouter(prefix="/v1")

# ============================================================================
# ROOM ENDPOINTS
# ============================================================================

@router.get("/rooms", response_model=List[RoomInfo])
async def list_rooms():
    """
    List rooms that currently have connected members.

    Rooms are not stored anywhere: a room shows up here while at least
    one WebSocket is connected to it.

    Returns:
        List[RoomInfo]: Active rooms with their member counts
    """
    return state.room_registry.get_rooms_info()


@router.get("/rooms/{room_id}/messages", response_model=MessageHistory)
async def get_room_messages(room_id: str, user_id: str = Depends(get_current_user_id)):
    """
    Get the persisted message history of a room, oldest first.

    Args:
        room_id: Room to read
        user_id: Authenticated caller (bearer token required)

    Returns:
        MessageHistory: room_id and its messages (empty for unknown rooms)

    Raises:
        HTTPException: 401 without a valid token, 503 if the store fails
    """
    try:
        messages = await state.message_store.list_by_room(room_id)
    except MessageStoreError as e:
        raise HTTPException(status_code=503, detail=f"Message store unavailable: {e}")

    return MessageHistory(room_id=room_id, messages=messages)
