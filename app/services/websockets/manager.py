# app/services/websockets/manager.py
from collections import defaultdict
from typing import Any, Dict, Set

from fastapi import WebSocket
from fastapi.encoders import jsonable_encoder
import logging

from app.core.enums import Role

logger = logging.getLogger(__name__)


def user_room(user_id: str) -> str:
    return f"user:{user_id}"


def role_room(role: Role) -> str:
    return Role(role).room


class ConnectionManager:
    """
    In-process room registry for the notifications socket.

    A connection joins `user:{id}` and `role:{ROLE}` for the user it was
    authenticated as and nothing else. Sends are best effort: a failing socket
    is logged and dropped, never raised to the caller.
    """

    def __init__(self):
        self.rooms: Dict[str, Set[WebSocket]] = defaultdict(set)
        self.memberships: Dict[WebSocket, Set[str]] = {}

    async def connect(self, websocket: WebSocket, user_id: str, role: Role):
        await websocket.accept()
        joined = {user_room(user_id), role_room(role)}
        for room in joined:
            self.rooms[room].add(websocket)
        self.memberships[websocket] = joined
        logger.info(f"WebSocket connected for user {user_id} ({Role(role).value}). Total connections: {len(self.memberships)}")

    def disconnect(self, websocket: WebSocket):
        for room in self.memberships.pop(websocket, set()):
            members = self.rooms.get(room)
            if members is None:
                continue
            members.discard(websocket)
            if not members:
                del self.rooms[room]
        logger.info(f"WebSocket disconnected. Total connections: {len(self.memberships)}")

    def room_size(self, room: str) -> int:
        return len(self.rooms.get(room, ()))

    async def send_personal_message(self, websocket: WebSocket, event: str, data: Any = None):
        await websocket.send_json({"event": event, "data": jsonable_encoder(data)})

    async def send_to_room(self, room: str, event: str, data: Any = None):
        """Emit to every socket in the room; dead sockets are cleaned up."""
        message = {"event": event, "data": jsonable_encoder(data)}
        disconnected = []

        for connection in list(self.rooms.get(room, ())):
            try:
                await connection.send_json(message)
            except Exception as e:
                logger.warning(f"Error sending {event} to {room}: {e}")
                disconnected.append(connection)

        # Clean up disconnected clients
        for connection in disconnected:
            self.disconnect(connection)


# Global connection manager instance
manager = ConnectionManager()
