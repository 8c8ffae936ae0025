from typing import Dict, List, Optional

from logging_config import get_logger
from session import GameRoom

logger = get_logger(__name__)


class RoomRegistry:
    """In-memory room store for this process: one GameRoom per room key."""

    def __init__(self):
        self._rooms: Dict[str, GameRoom] = {}
        logger.info("Initializing in-memory RoomRegistry")

    def get(self, room_id: str) -> Optional[GameRoom]:
        return self._rooms.get(room_id)

    def get_or_create(self, room_id: str) -> GameRoom:
        room = self._rooms.get(room_id)
        if room is None:
            room = GameRoom(room_id)
            self._rooms[room_id] = room
            logger.info(f"Created room {room_id}")
        return room

    def remove(self, room_id: str, room: Optional[GameRoom] = None) -> bool:
        """Drop a room. If `room` is given, only that exact instance is removed."""
        current = self._rooms.get(room_id)
        if current is None or (room is not None and current is not room):
            return False
        del self._rooms[room_id]
        logger.info(f"Removed room {room_id}")
        return True

    def is_current(self, room: GameRoom) -> bool:
        return self._rooms.get(room.room_id) is room

    def rooms(self) -> List[GameRoom]:
        return [self._rooms[k] for k in sorted(self._rooms)]

    def __contains__(self, room_id: str) -> bool:
        return room_id in self._rooms

    def __len__(self) -> int:
        return len(self._rooms)
