# chatrelay/services/chat_service.py

from __future__ import annotations

import asyncio
import json
import logging
from typing import Optional, Set

from fastapi import WebSocket, WebSocketDisconnect, status
from starlette.websockets import WebSocketState

from chatrelay.models.models import Message, TypingIndicatorEvent
from chatrelay.services.gemini_client import CompletionError, GeminiClient
from chatrelay.services.message_store import MessageStore
from chatrelay.services.room_registry import RoomRegistry

logger = logging.getLogger(__name__)

MISSING_IDENTITY_REASON = "missing identity"


def parse_frame(raw: str) -> str:
    """
    Turn an inbound text frame into message content.

    Clients may send {"content": "..."} or plain text. Anything that is
    not a JSON object with a string "content" is relayed verbatim.
    """
    try:
        data = json.loads(raw)
    except ValueError:
        return raw
    if isinstance(data, dict) and isinstance(data.get("content"), str):
        return data["content"]
    return raw


# ============================================================================
# CHAT SERVICE
# ============================================================================

class ChatService:
    """
    Owns the lifecycle of every chat WebSocket and the AI replies they trigger.

    Protocol:
    =========

    Client -> Server:
        Text frame, either plain text or {"content": "Hello!"}

    Server -> Client:
        Message:
            {"type": "message", "id": "...", "room_id": "...", "sender_id": "...",
             "content": "...", "created_at": "..."}
        Typing indicator (AI reply in progress):
            {"type": "typing_indicator", "is_typing": true, "user_id": "GEMINI"}

    Lifecycle:
    ==========
    1. accept() the WebSocket (failure aborts before the room is touched)
    2. Join the room
    3. Read frames one at a time; each frame is persisted, broadcast to the
       room (sender included) and answered by a detached AI reply task
    4. On disconnect or read error, leave the room and close
    """

    def __init__(
        self,
        registry: RoomRegistry,
        store: MessageStore,
        completion_client: Optional[GeminiClient] = None,
        ai_sender_id: str = "GEMINI",
        ai_reply_enabled: bool = True,
    ) -> None:
        self.registry = registry
        self.store = store
        self.completion_client = completion_client
        self.ai_sender_id = ai_sender_id
        self.ai_reply_enabled = ai_reply_enabled and completion_client is not None

        # Strong references so detached reply tasks are not garbage collected
        self._reply_tasks: Set[asyncio.Task] = set()

        # Metrics
        self.message_counter: int = 0

    # ------------------------------------------------------------------
    # Stream handler
    # ------------------------------------------------------------------

    async def handle_stream(self, room_id: str, websocket: WebSocket, identity: Optional[str]) -> None:
        """
        Run one client connection from upgrade to close.

        Args:
            room_id: Room the client connects to
            websocket: The not yet accepted WebSocket
            identity: Verified user id from the identity provider, or None

        Returns once the connection is closed and no longer registered.
        Errors inside the session are logged and never propagate, except
        a failed accept(), which happens before any registration.
        """
        await websocket.accept()
        await self.registry.join(room_id, websocket)

        try:
            while True:
                try:
                    raw = await websocket.receive_text()
                except WebSocketDisconnect as e:
                    logger.info("Client left room %s (code=%s)", room_id, e.code)
                    break
                except Exception as e:
                    logger.warning("Read error in room %s: %s", room_id, e)
                    break

                if not await self._dispatch(room_id, websocket, identity, raw):
                    break
        except Exception:
            logger.exception("WebSocket error in room %s", room_id)
        finally:
            await self.registry.leave(room_id, websocket)
            await self._close(websocket)

    async def _dispatch(self, room_id: str, websocket: WebSocket, identity: Optional[str], raw: str) -> bool:
        """Handle one inbound frame. Returns False when the session must end."""
        if identity is None:
            logger.warning("Closing connection in room %s: no identity claim", room_id)
            await self._close(websocket, code=status.WS_1011_INTERNAL_ERROR, reason=MISSING_IDENTITY_REASON)
            return False

        message = Message.create(room_id=room_id, sender_id=identity, content=parse_frame(raw))

        try:
            await self.store.save(message)
        except Exception as e:
            logger.error("Write error, dropping message %s in room %s: %s", message.id, room_id, e)
            return True

        self.message_counter += 1
        await self.registry.broadcast(room_id, message)
        self.spawn_ai_reply(room_id, message.content)
        return True

    async def _close(self, websocket: WebSocket, code: int = status.WS_1000_NORMAL_CLOSURE, reason: str = "") -> None:
        if (
            websocket.application_state != WebSocketState.CONNECTED
            or websocket.client_state != WebSocketState.CONNECTED
        ):
            return
        try:
            await websocket.close(code=code, reason=reason)
        except Exception as e:
            logger.debug("Close error (connection already gone): %s", e)

    # ------------------------------------------------------------------
    # AI reply task
    # ------------------------------------------------------------------

    def spawn_ai_reply(self, room_id: str, prompt: str) -> Optional[asyncio.Task]:
        """
        Start a detached AI reply for a user message.

        The task only gets the room id and prompt text, so it keeps running
        (and broadcasting) after the triggering connection has gone.
        """
        if not self.ai_reply_enabled:
            return None

        task = asyncio.create_task(self.run_ai_reply(room_id, prompt), name=f"ai-reply:{room_id}")
        self._reply_tasks.add(task)
        task.add_done_callback(self._reply_tasks.discard)
        return task

    async def run_ai_reply(self, room_id: str, prompt: str) -> Optional[Message]:
        """
        Produce and deliver an AI reply to a room.

        Always brackets the work with exactly one typing-started and one
        typing-stopped event, the latter even when completion or
        persistence fails. Returns the reply, or None when there is none.
        """
        await self.registry.broadcast_event(room_id, self._typing(True))
        try:
            reply_text = await self.completion_client.complete(prompt)

            reply = Message.create(room_id=room_id, sender_id=self.ai_sender_id, content=reply_text)
            await self.store.save(reply)

            self.message_counter += 1
            await self.registry.broadcast(room_id, reply)
            return reply
        except CompletionError as e:
            logger.error("Failed to get AI response for room %s: %s", room_id, e)
        except Exception as e:
            logger.error("AI reply failed for room %s: %s", room_id, e)
        finally:
            await self.registry.broadcast_event(room_id, self._typing(False))
        return None

    def _typing(self, is_typing: bool) -> TypingIndicatorEvent:
        return TypingIndicatorEvent(is_typing=is_typing, user_id=self.ai_sender_id)

    @property
    def pending_replies(self) -> int:
        return len(self._reply_tasks)

    async def wait_for_replies(self) -> None:
        """Wait for every in-flight AI reply. Used on shutdown and in tests."""
        while True:
            pending = [task for task in self._reply_tasks if not task.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)
