from fastapi import APIRouter, Depends, HTTPException, Request
from datetime import datetime
from typing import List

from backend import RoomRegistry
from gateway import GameGateway, sanitize_label
from logging_config import get_logger
from schemas.rooms import RoomDetailsResponse, RoomSummary
from session import GameRoom

logger = get_logger(__name__)

rooms_router = APIRouter(prefix="/rooms", tags=["rooms"])


def get_registry(request: Request) -> RoomRegistry:
    return request.app.state.registry


def get_gateway(request: Request) -> GameGateway:
    return request.app.state.gateway


def _summary_fields(room: GameRoom, gateway: GameGateway) -> dict:
    state = room.public_state()
    return {
        "room_id": room.room_id,
        "players": state["players"],
        "spectatorCount": state["spectatorCount"],
        "gameOver": state["gameOver"],
        "winner": state["winner"],
        "connected": gateway.connection_count(room.room_id),
    }


@rooms_router.get("", response_model=List[RoomSummary])
@rooms_router.get("/", response_model=List[RoomSummary], include_in_schema=False)
async def list_rooms(registry: RoomRegistry = Depends(get_registry), gateway: GameGateway = Depends(get_gateway)):
    """Live rooms in this process, ordered by room key."""
    rooms = registry.rooms()
    logger.debug(f"Listing {len(rooms)} rooms")
    return [RoomSummary(**_summary_fields(room, gateway)) for room in rooms]


@rooms_router.get("/{room_id}", response_model=RoomDetailsResponse)
async def get_room_details(
    room_id: str,
    registry: RoomRegistry = Depends(get_registry),
    gateway: GameGateway = Depends(get_gateway),
):
    """
    Read-only view of one room. Never creates the room.

    Returns the summary fields plus:
    - board: current counters
    - created_at: when this room instance was created
    """
    key = sanitize_label(room_id, "")
    room = registry.get(key) if key else None
    if not room:
        logger.info(f"Room details failed: Room {key} not found")
        raise HTTPException(status_code=404, detail="Room not found")

    return RoomDetailsResponse(
        **_summary_fields(room, gateway),
        board=room.public_state()["board"],
        created_at=datetime.fromtimestamp(room.created_at).isoformat(),
    )
