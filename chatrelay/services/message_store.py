# chatrelay/services/message_store.py

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlmodel import Field, SQLModel, select
from sqlmodel.ext.asyncio.session import AsyncSession

from chatrelay.models.models import Message

logger = logging.getLogger(__name__)


class MessageStoreError(Exception):
    """Raised when a message cannot be written to or read from the store."""


# ============================================================================
# STORE INTERFACE
# ============================================================================

class MessageStore:
    """
    Persistence collaborator for chat messages.

    save() either stores the message or raises MessageStoreError. Callers
    treat that error as non-fatal: the message is dropped and the session
    goes on.
    """

    async def init(self) -> None:
        """Prepare the backend (create tables, open pools). Called on startup."""

    async def close(self) -> None:
        """Release backend resources. Called on shutdown."""

    async def save(self, message: Message) -> None:
        raise NotImplementedError

    async def list_by_room(self, room_id: str) -> List[Message]:
        raise NotImplementedError


# ============================================================================
# IN-MEMORY STORE
# ============================================================================

class InMemoryMessageStore(MessageStore):
    """
    Keeps messages in a dict keyed by room.

    Data is lost on restart. Good for development and tests.
    """

    def __init__(self) -> None:
        self._messages: Dict[str, List[Message]] = {}
        self._lock = asyncio.Lock()

    async def save(self, message: Message) -> None:
        async with self._lock:
            self._messages.setdefault(message.room_id, []).append(message)

    async def list_by_room(self, room_id: str) -> List[Message]:
        async with self._lock:
            return list(self._messages.get(room_id, []))


# ============================================================================
# SQL STORE
# ============================================================================

class ChatMessageRecord(SQLModel, table=True):
    __tablename__ = "chat_messages"

    id: str = Field(primary_key=True)
    room_id: str = Field(index=True)
    sender_id: str
    content: str
    created_at: datetime = Field(index=True)

    @classmethod
    def from_message(cls, message: Message) -> "ChatMessageRecord":
        return cls(
            id=message.id,
            room_id=message.room_id,
            sender_id=message.sender_id,
            content=message.content,
            created_at=message.created_at,
        )

    def to_message(self) -> Message:
        created_at = self.created_at
        # SQLite drops tzinfo; everything we write is UTC
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)
        return Message(
            id=self.id,
            room_id=self.room_id,
            sender_id=self.sender_id,
            content=self.content,
            created_at=created_at,
        )


class SQLMessageStore(MessageStore):
    """
    Stores messages in a relational database through SQLModel.

    Any SQLAlchemy URL with an async driver works, e.g.
    "sqlite+aiosqlite:///./chat.db" or "postgresql+asyncpg://...".
    """

    def __init__(self, database_url: str, engine: Optional[AsyncEngine] = None) -> None:
        self.database_url = database_url
        self.engine = engine or create_async_engine(database_url)

    async def init(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.create_all)
        logger.info("✓ Message store ready (%s)", self.engine.url.drivername)

    async def close(self) -> None:
        await self.engine.dispose()

    async def save(self, message: Message) -> None:
        try:
            async with AsyncSession(self.engine, expire_on_commit=False) as session:
                session.add(ChatMessageRecord.from_message(message))
                await session.commit()
        except SQLAlchemyError as e:
            raise MessageStoreError(f"failed to save message {message.id}: {e}") from e

    async def list_by_room(self, room_id: str) -> List[Message]:
        statement = (
            select(ChatMessageRecord)
            .where(ChatMessageRecord.room_id == room_id)
            .order_by(ChatMessageRecord.created_at)
        )
        try:
            async with AsyncSession(self.engine) as session:
                records = (await session.exec(statement)).all()
        except SQLAlchemyError as e:
            raise MessageStoreError(f"failed to load messages for room {room_id}: {e}") from e
        return [record.to_message() for record in records]


def build_message_store(settings) -> MessageStore:
    """Pick the store backend from settings.MESSAGE_STORE."""
    if settings.MESSAGE_STORE == "sql":
        return SQLMessageStore(settings.DATABASE_URL)
    if settings.MESSAGE_STORE != "memory":
        logger.warning("Unknown MESSAGE_STORE %r, falling back to memory", settings.MESSAGE_STORE)
    return InMemoryMessageStore()
