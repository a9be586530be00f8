# chatrelay/api/routes/root.py

from fastapi import APIRouter

from chatrelay import __version__

router = APIRouter()


@router.get("/")
async def root():
    """
    Root endpoint - API information.

    Returns basic info about the API and its features.
    """
    return {
        "message": "Chat Relay - rooms with AI replies",
        "version": __version__,
        "architecture": "single process, in-memory room registry",
        "features": ["dynamic_rooms", "message_history", "ai_replies", "typing_indicators"],
        "endpoints": {
            "websocket": "/v1/ws/{room_id}",
            "rooms": "/v1/rooms",
            "history": "/v1/rooms/{room_id}/messages",
            "health": "/health",
            "metrics": "/metrics",
        },
    }
