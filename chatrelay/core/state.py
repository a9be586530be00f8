# chatrelay/core/state.py
from __future__ import annotations

from datetime import datetime, timezone

from chatrelay.core.config import settings
from chatrelay.services.chat_service import ChatService
from chatrelay.services.gemini_client import GeminiClient
from chatrelay.services.message_store import build_message_store
from chatrelay.services.room_registry import RoomRegistry

# Global singletons for app state
room_registry = RoomRegistry()
message_store = build_message_store(settings)
gemini_client = GeminiClient(
    api_key=settings.GEMINI_API_KEY,
    model=settings.GEMINI_MODEL,
    base_url=settings.GEMINI_API_URL,
    timeout=settings.GEMINI_TIMEOUT,
)
chat_service = ChatService(
    registry=room_registry,
    store=message_store,
    completion_client=gemini_client,
    ai_sender_id=settings.AI_SENDER_ID,
    ai_reply_enabled=settings.AI_REPLY_ENABLED,
)

# Metrics
app_start_time: datetime = datetime.now(timezone.utc)
