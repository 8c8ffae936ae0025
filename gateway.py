import asyncio
import json
import re
import uuid
from typing import Awaitable, Callable, Dict, Optional

from fastapi import WebSocket, WebSocketDisconnect

from backend import RoomRegistry
from constants import (
    DEFAULT_ROOM,
    GUEST_PREFIX,
    MAX_LABEL_LENGTH,
    ROLE_SPECTATOR,
    SEND_TIMEOUT_SEC,
)
from logging_config import get_logger
from schemas.messages import (
    IncrementCommand,
    NoticeMessage,
    RestartCommand,
    StateMessage,
    parse_command,
)
from session import ActionRejected, Client, GameRoom

logger = get_logger(__name__)

_LABEL_STRIP = re.compile(r"[^\w\- ]", re.ASCII)


def sanitize_label(value: Optional[str], fallback: str) -> str:
    """Trim, cut to MAX_LABEL_LENGTH and drop anything but word chars, '-' and ' '."""
    text = (value or "").strip()
    if not text:
        return fallback
    cleaned = _LABEL_STRIP.sub("", text[:MAX_LABEL_LENGTH])
    return cleaned or fallback


def guest_name() -> str:
    return f"{GUEST_PREFIX}{uuid.uuid4().hex[:8]}"


def welcome_text(room: GameRoom, client: Client) -> str:
    if client.role == ROLE_SPECTATOR:
        players = room.public_state()["players"]
        return (
            f"Joined {room.room_id} as Spectator "
            f"(players are {players['odd'] or '—'} and {players['even'] or '—'})."
        )
    return f"Joined {room.room_id} as {client.role.upper()} player."


class Connection:
    """One live socket attached to a room roster entry."""

    def __init__(
        self,
        websocket,
        room: GameRoom,
        client: Client,
        send_timeout: float = SEND_TIMEOUT_SEC,
        on_stall: Optional[Callable[["Connection"], Awaitable[None]]] = None,
    ):
        self.websocket = websocket
        self.room = room
        self.client = client
        self.send_timeout = send_timeout
        self.closed = False
        self.on_stall = on_stall
        self._abandoning: Optional[asyncio.Task] = None

    @property
    def room_id(self) -> str:
        return self.room.room_id

    @property
    def client_id(self) -> str:
        return self.client.id

    async def send(self, payload: dict) -> bool:
        """Best effort send. Failures are logged and swallowed.

        A peer that does not take a frame within `send_timeout` is closed, so it
        cannot hold up the room lock for everyone else.
        """
        if self.closed:
            return False
        try:
            await asyncio.wait_for(self.websocket.send_text(json.dumps(payload)), self.send_timeout)
            return True
        except asyncio.TimeoutError:
            logger.warning(f"Send to {self.client.name} in room {self.room_id} timed out, closing connection")
            self.closed = True
            self._abandoning = asyncio.create_task(self._abandon())
            return False
        except Exception as e:
            logger.debug(f"Send to {self.client.name} in room {self.room_id} failed: {e}")
            return False

    async def _abandon(self) -> None:
        # Runs outside the room lock held by whoever was sending
        try:
            await asyncio.wait_for(self.websocket.close(code=1011), self.send_timeout)
        except Exception as e:
            logger.debug(f"Error closing WebSocket for {self.client.name}: {e}")
        if self.on_stall is not None:
            await self.on_stall(self)


class GameGateway:
    """Attaches sockets to rooms, routes commands and fans out state."""

    def __init__(self, registry: RoomRegistry, send_timeout: float = SEND_TIMEOUT_SEC):
        self.registry = registry
        self.send_timeout = send_timeout
        # Format: {room_id: {client_id: Connection}}
        self.room_connections: Dict[str, Dict[str, Connection]] = {}

    def connection_count(self, room_id: str) -> int:
        return len(self.room_connections.get(room_id, {}))

    # outbound
    async def broadcast_state(self, room: GameRoom) -> None:
        connections = list(self.room_connections.get(room.room_id, {}).values())
        if not connections:
            return
        public = room.public_state()
        sends = [
            c.send(StateMessage(**public, youAre=room.role_of(c.client_id)).model_dump())
            for c in connections
        ]
        await asyncio.gather(*sends, return_exceptions=True)
        logger.debug(f"Broadcast state to {len(sends)} connections in room {room.room_id}")

    async def broadcast_notice(self, room: GameRoom, text: str) -> None:
        payload = NoticeMessage(text=text).model_dump()
        connections = list(self.room_connections.get(room.room_id, {}).values())
        await asyncio.gather(*(c.send(payload) for c in connections), return_exceptions=True)

    async def send_notice(self, connection: Connection, text: str) -> None:
        await connection.send(NoticeMessage(text=text).model_dump())

    # lifecycle
    async def connect(self, websocket, room: Optional[str] = None, name: Optional[str] = None) -> Connection:
        """Register an accepted socket in its room and greet it."""
        room_id = sanitize_label(room, DEFAULT_ROOM)
        display_name = sanitize_label(name, "") or guest_name()

        while True:
            game_room = self.registry.get_or_create(room_id)
            async with game_room.lock:
                # Room emptied and dropped while we waited; start over on a fresh one
                if not self.registry.is_current(game_room):
                    continue
                client = game_room.join(display_name)
                connection = Connection(
                    websocket, game_room, client, send_timeout=self.send_timeout, on_stall=self.disconnect
                )
                self.room_connections.setdefault(room_id, {})[client.id] = connection
                await self.send_notice(connection, welcome_text(game_room, client))
                await self.broadcast_state(game_room)
                return connection

    async def handle_message(self, connection: Connection, raw) -> None:
        try:
            command = parse_command(raw)
        except ValueError as e:
            logger.debug(f"Dropped malformed payload from {connection.client.name} in room {connection.room_id}: {e}")
            return
        room = connection.room
        async with room.lock:
            if not self.registry.is_current(room) or connection.client_id not in room.clients:
                return
            try:
                if isinstance(command, IncrementCommand):
                    changed = room.increment(connection.client_id, command.row, command.col)
                elif isinstance(command, RestartCommand):
                    room.restart(connection.client_id)
                    changed = True
                else:
                    return
            except ActionRejected as exc:
                await self.send_notice(connection, exc.notice)
                return
            if changed:
                await self.broadcast_state(room)

    async def disconnect(self, connection: Connection) -> None:
        """Remove a connection from its room. Safe to call more than once."""
        connection.closed = True
        room = connection.room
        async with room.lock:
            connections = self.room_connections.get(room.room_id, {})
            if connections.get(connection.client_id) is connection:
                del connections[connection.client_id]
            if connection.client_id not in room.clients:
                return

            promoted = room.leave(connection.client_id)
            if promoted is not None:
                await self.broadcast_notice(room, f"{promoted.name} is now {promoted.role.upper()} player.")

            if room.is_empty:
                self.registry.remove(room.room_id, room)
                if not connections:
                    self.room_connections.pop(room.room_id, None)
                logger.info(f"No more connections in room {room.room_id}, cleaning up")
            else:
                await self.broadcast_state(room)

    # websocket endpoint body
    async def serve(self, websocket: WebSocket, room: Optional[str] = None, name: Optional[str] = None) -> None:
        await websocket.accept()
        connection = await self.connect(websocket, room, name)
        logger.info(f"WebSocket connection accepted for {connection.client.name} in room {connection.room_id}")
        try:
            while not connection.closed:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    logger.info(f"WebSocket disconnected normally for {connection.client.name} in room {connection.room_id}")
                    break
                # Binary frames carry the same JSON as text frames
                data = message.get("text")
                if data is None:
                    data = message.get("bytes")
                if data is None:
                    continue
                await self.handle_message(connection, data)
        except WebSocketDisconnect:
            logger.info(f"WebSocket disconnected for {connection.client.name} in room {connection.room_id}")
        except Exception as e:
            logger.error(f"WebSocket error for {connection.client.name} in room {connection.room_id}: {e}", exc_info=True)
        finally:
            await self.disconnect(connection)
