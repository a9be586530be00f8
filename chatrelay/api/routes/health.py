# chatrelay/api/routes/health.py

from fastapi import APIRouter

from chatrelay.core import state

router = APIRouter()

@router.get("/health")
async def health():
    """
    Health check endpoint.

    Returns current system status, connection counts, and room counts.
    Used by container health probes and monitoring.

    Returns:
        dict: Status, connection count, active room count
    """
    return {
        "status": "healthy",
        "connections": state.room_registry.connection_count(),
        "active_rooms_with_members": len(state.room_registry.room_ids()),
    }
