# chatrelay/api/routes/metrics.py
from fastapi import APIRouter
from datetime import datetime, timezone

from chatrelay.core import state

router = APIRouter()

@router.get("/metrics")
async def get_metrics():
    """
    Traffic and capacity metrics endpoint.

    Returns:
        dict: Message statistics (total, per second, daily projection),
            capacity (connections, active rooms) and in-flight AI replies

    Example Response:
        {
            "total_messages": 1200,
            "uptime_hours": 3.5,
            "messages_per_second": 0.1,
            "daily_messages_projected": 8228,
            "concurrent_connections": 42,
            "active_rooms_with_members": 7,
            "pending_ai_replies": 1,
            "rooms": [{"room_id": "general", "member_count": 30}, ...]
        }
    """
    uptime_seconds = (datetime.now(timezone.utc) - state.app_start_time).total_seconds()
    message_counter = state.chat_service.message_counter

    if uptime_seconds > 0:
        messages_per_second = message_counter / uptime_seconds
        daily_messages = int(messages_per_second * 86400)
    else:
        messages_per_second = 0
        daily_messages = 0

    return {
        # Statistics
        "total_messages": message_counter,
        "uptime_hours": round(uptime_seconds / 3600, 2) if uptime_seconds > 0 else 0,
        "messages_per_second": round(messages_per_second, 2),
        "daily_messages_projected": daily_messages,

        # Capacity
        "concurrent_connections": state.room_registry.connection_count(),
        "active_rooms_with_members": len(state.room_registry.room_ids()),
        "pending_ai_replies": state.chat_service.pending_replies,
        "rooms": [info.model_dump() for info in state.room_registry.get_rooms_info()],
    }
