# chatrelay/models/models.py
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal

from pydantic import BaseModel, ConfigDict, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Message(BaseModel):
    """
    A chat message as persisted and broadcast.

    Messages are frozen once created. Every recipient gets its own
    JSON view through to_wire(), never the model instance itself.
    """

    model_config = ConfigDict(frozen=True)

    type: Literal["message"] = "message"
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    room_id: str
    sender_id: str
    content: str
    created_at: datetime = Field(default_factory=_utcnow)

    @classmethod
    def create(cls, room_id: str, sender_id: str, content: str) -> "Message":
        """Build a new message with a fresh id and the current UTC time."""
        return cls(room_id=room_id, sender_id=sender_id, content=content)

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")


class Event(BaseModel):
    """Out-of-band notification sent alongside messages. Never persisted."""

    model_config = ConfigDict(frozen=True)

    type: str

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")


class TypingIndicatorEvent(Event):
    type: Literal["typing_indicator"] = "typing_indicator"
    is_typing: bool
    user_id: str


class RoomInfo(BaseModel):
    room_id: str
    member_count: int


class MessageHistory(BaseModel):
    room_id: str
    messages: List[Message]
