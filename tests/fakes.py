"""In-process stand-ins for the WebSocket transport and external collaborators."""

import asyncio

from fastapi import WebSocketDisconnect
from starlette.websockets import WebSocketState

from chatrelay.models.models import Message
from chatrelay.services.message_store import InMemoryMessageStore, MessageStoreError

DISCONNECT = object()


class FakeWebSocket:
    """Scriptable WebSocket: push inbound frames, inspect what was sent."""

    def __init__(self, name="ws", fail_send=False, fail_accept=False):
        self.name = name
        self.fail_send = fail_send
        self.fail_accept = fail_accept
        self.inbound = asyncio.Queue()
        self.sent = []
        self.closed_with = None
        self.client_state = WebSocketState.CONNECTING
        self.application_state = WebSocketState.CONNECTING

    def __repr__(self):
        return f"FakeWebSocket({self.name})"

    def push(self, *frames):
        for frame in frames:
            self.inbound.put_nowait(frame)

    def disconnect(self):
        self.inbound.put_nowait(DISCONNECT)

    async def accept(self):
        if self.fail_accept:
            raise RuntimeError("handshake failed")
        self.client_state = WebSocketState.CONNECTED
        self.application_state = WebSocketState.CONNECTED

    async def receive_text(self):
        item = await self.inbound.get()
        if item is DISCONNECT:
            self.client_state = WebSocketState.DISCONNECTED
            raise WebSocketDisconnect(code=1000)
        if isinstance(item, Exception):
            raise item
        return item

    async def send_json(self, data):
        if self.fail_send:
            raise RuntimeError("socket is closed")
        self.sent.append(data)

    async def close(self, code=1000, reason=None):
        self.closed_with = (code, reason)
        self.application_state = WebSocketState.DISCONNECTED

    def messages(self):
        return [payload for payload in self.sent if payload.get("type") == "message"]

    def typing_events(self):
        return [payload for payload in self.sent if payload.get("type") == "typing_indicator"]


class FakeCompletionClient:
    """Completion collaborator returning a canned reply or raising."""

    def __init__(self, reply="Hello from the AI", error=None, gate=None):
        self.reply = reply
        self.error = error
        self.gate = gate
        self.prompts = []
        self.closed = False

    async def complete(self, prompt):
        self.prompts.append(prompt)
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.reply

    async def close(self):
        self.closed = True


class FailingMessageStore(InMemoryMessageStore):
    """Store whose writes fail, optionally only for one sender."""

    def __init__(self, fail_sender=None):
        super().__init__()
        self.fail_sender = fail_sender
        self.attempts = 0

    async def save(self, message: Message) -> None:
        self.attempts += 1
        if self.fail_sender is None or message.sender_id == self.fail_sender:
            raise MessageStoreError("database unavailable")
        await super().save(message)
