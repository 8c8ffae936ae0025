from pydantic import BaseModel
from typing import Optional

from schemas.messages import PlayersView


class HealthResponse(BaseModel):
    ok: bool = True


class RoomSummary(BaseModel):
    room_id: str
    players: PlayersView
    spectatorCount: int
    gameOver: bool
    winner: Optional[str] = None
    connected: int


class RoomDetailsResponse(RoomSummary):
    board: list[list[int]]
    created_at: str
