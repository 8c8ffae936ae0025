import json
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field, StrictInt, TypeAdapter

from constants import BOARD_SIZE, MSG_INCREMENT, MSG_NOTICE, MSG_RESTART, MSG_STATE

Coordinate = Annotated[StrictInt, Field(ge=0, lt=BOARD_SIZE)]


# Client -> server
class IncrementCommand(BaseModel):
    type: Literal["increment"] = MSG_INCREMENT
    row: Coordinate
    col: Coordinate


class RestartCommand(BaseModel):
    type: Literal["restart"] = MSG_RESTART


Command = Annotated[Union[IncrementCommand, RestartCommand], Field(discriminator="type")]

command_adapter = TypeAdapter(Command)


def parse_command(raw: Union[str, bytes]) -> Command:
    """Decode one inbound frame, text or binary.

    Raises ValueError for bad JSON and pydantic.ValidationError (also a
    ValueError) for an unknown type or missing/ill-typed fields.
    """
    payload = json.loads(raw)
    return command_adapter.validate_python(payload)


# Server -> client
class PlayersView(BaseModel):
    odd: Optional[str] = None
    even: Optional[str] = None


class StateMessage(BaseModel):
    type: Literal["state"] = MSG_STATE
    board: list[list[int]]
    gameOver: bool
    winner: Optional[Literal["odd", "even"]] = None
    players: PlayersView
    spectatorCount: int
    youAre: Literal["odd", "even", "spectator"]


class NoticeMessage(BaseModel):
    type: Literal["message"] = MSG_NOTICE
    text: str
