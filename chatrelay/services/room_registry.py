# chatrelay/services/room_registry.py

from __future__ import annotations

import asyncio
import logging
from typing import Dict, FrozenSet, List, Set

from fastapi import WebSocket, status

from chatrelay.models.models import Event, Message, RoomInfo

logger = logging.getLogger(__name__)

SEND_FAILED_REASON = "send failed"

# ============================================================================
# ROOM REGISTRY
# ============================================================================

class RoomRegistry:
    """
    Tracks which live WebSocket connections belong to which room.

    A room exists only while it has members: it is created by the first
    join() and deleted by the leave() that empties it. Nothing about a
    room is persisted.

    Data Structures:
        _rooms: Maps room_id -> Set of WebSocket connections in that room
                Example: {"general": {websocket1, websocket2}}

    Locking:
        A single asyncio.Lock guards _rooms. join/leave hold it for the
        whole mutation. broadcast/broadcast_event hold it only to take a
        snapshot of the room, send outside the lock, and prune dead
        connections in a second locked pass. The lock is never re-entered.

    Scaling:
        Single process, in-memory only.
    """

    def __init__(self) -> None:
        # Map: room_id -> Set[WebSocket connections]
        self._rooms: Dict[str, Set[WebSocket]] = {}
        self._lock = asyncio.Lock()

    async def join(self, room_id: str, websocket: WebSocket) -> None:
        """
        Add a connection to a room, creating the room if needed.

        Joining twice with the same pair is a no-op.
        """
        async with self._lock:
            connections = self._rooms.setdefault(room_id, set())
            connections.add(websocket)
            member_count = len(connections)

        logger.info("→ Connection joined room '%s' (%s members)", room_id, member_count)

    async def leave(self, room_id: str, websocket: WebSocket) -> None:
        """
        Remove a connection from a room.

        Deletes the room entry once its last member leaves. Leaving a room
        the connection is not in does nothing.
        """
        async with self._lock:
            removed = self._discard(room_id, websocket)
            member_count = len(self._rooms.get(room_id, ()))

        if removed:
            logger.info("← Connection left room '%s' (%s members)", room_id, member_count)

    async def broadcast(self, room_id: str, message: Message) -> None:
        """
        Send a chat message to every connection currently in a room.

        Args:
            room_id: Target room
            message: Message to deliver (serialized per recipient)

        Error Handling:
            A connection whose send fails is removed from the room and
            closed. The failure never reaches the caller and never stops
            delivery to the other members.
        """
        connections = await self._snapshot(room_id)
        if not connections:
            logger.debug("[routing] Skipped broadcast: room=%s has 0 members", room_id)
            return

        payload = message.to_wire()
        logger.info("📨 Broadcasting message %s to room %s: %d clients", message.id, room_id, len(connections))

        disconnected: List[WebSocket] = []
        for connection in connections:
            try:
                await connection.send_json(dict(payload))
            except Exception as e:
                logger.error("Send error in room %s: %s", room_id, e)
                # Mark for cleanup
                disconnected.append(connection)

        if disconnected:
            async with self._lock:
                for conn in disconnected:
                    self._discard(room_id, conn)
            logger.warning("Pruned %d dead connection(s) from room %s", len(disconnected), room_id)

            # Closing makes the pruned client's stream handler hit a read error and clean up
            for conn in disconnected:
                try:
                    await conn.close(code=status.WS_1011_INTERNAL_ERROR, reason=SEND_FAILED_REASON)
                except Exception as e:
                    logger.debug("Close error after failed send in room %s: %s", room_id, e)

    async def broadcast_event(self, room_id: str, event: Event) -> None:
        """
        Send an out-of-band event (e.g. typing indicator) to a room.

        Same fan-out as broadcast(), but a failed send is only logged:
        the connection keeps its membership.
        """
        connections = await self._snapshot(room_id)
        if not connections:
            return

        payload = event.to_wire()
        for connection in connections:
            try:
                await connection.send_json(dict(payload))
            except Exception as e:
                logger.warning("Event send error in room %s (%s): %s", room_id, event.type, e)

    def room_ids(self) -> List[str]:
        """Rooms that currently have at least one member."""
        return list(self._rooms.keys())

    def members(self, room_id: str) -> FrozenSet[WebSocket]:
        """Copy of the connections registered under a room."""
        return frozenset(self._rooms.get(room_id, ()))

    def connection_count(self) -> int:
        return sum(len(connections) for connections in self._rooms.values())

    def get_rooms_info(self) -> List[RoomInfo]:
        """
        Get information about all active rooms with members.

        Used by the /v1/rooms and /metrics endpoints.
        """
        return [
            RoomInfo(room_id=room_id, member_count=len(connections))
            for room_id, connections in self._rooms.items()
        ]

    async def _snapshot(self, room_id: str) -> List[WebSocket]:
        async with self._lock:
            return list(self._rooms.get(room_id, ()))

    def _discard(self, room_id: str, websocket: WebSocket) -> bool:
        # Caller must hold self._lock
        connections = self._rooms.get(room_id)
        if connections is None or websocket not in connections:
            return False

        connections.discard(websocket)
        # Clean up empty rooms from memory
        if not connections:
            del self._rooms[room_id]
        return True
