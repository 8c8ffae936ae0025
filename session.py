import asyncio
import time
import uuid
from typing import Dict, List, Optional

import board as board_engine
from constants import BOARD_SIZE, PLAYER_ROLES, ROLE_EVEN, ROLE_ODD, ROLE_SPECTATOR
from logging_config import get_logger

logger = get_logger(__name__)

GAME_OVER_NOTICE = "Game is over. Press Restart to begin a new round."
RESTART_DENIED_NOTICE = "Only players can restart."

STATUS_PLAYING = "playing"
STATUS_ENDED = "ended"


class ActionRejected(Exception):
    """A command was refused; `notice` is shown to the client that sent it."""

    def __init__(self, notice: str):
        super().__init__(notice)
        self.notice = notice


class Client:
    def __init__(self, name: str, role: str, client_id: Optional[str] = None, joined_at: Optional[float] = None):
        self.id = client_id or uuid.uuid4().hex
        self.name = name
        self.role = role
        self.joined_at = time.time() if joined_at is None else joined_at

    @property
    def is_player(self) -> bool:
        return self.role in PLAYER_ROLES

    def __repr__(self) -> str:
        return f"Client(id={self.id[:8]}, name={self.name!r}, role={self.role})"


class GameRoom:
    """
    Per-room game session: board, game-over flag, winner and the roster of
    connected clients with their roles.

    Roles are always derived from the current roster. Nothing counts seats
    separately, so a seat freed with no spectator to promote is handed to
    the next joiner.
    """

    def __init__(self, room_id: str, size: int = BOARD_SIZE):
        self.room_id = room_id
        self.size = size
        self.board = board_engine.create_board(size)
        self.game_over = False
        self.winner: Optional[str] = None
        self.clients: Dict[str, Client] = {}  # client_id -> Client, join order
        self.created_at = time.time()
        # Serialises join/command/leave handling for this room only
        self.lock = asyncio.Lock()

    @property
    def status(self) -> str:
        return STATUS_ENDED if self.game_over else STATUS_PLAYING

    @property
    def is_empty(self) -> bool:
        return not self.clients

    def holder_of(self, role: str) -> Optional[Client]:
        for c in self.clients.values():
            if c.role == role:
                return c
        return None

    def spectators(self) -> List[Client]:
        # sorted() is stable, so equal timestamps keep roster order
        return sorted(
            (c for c in self.clients.values() if c.role == ROLE_SPECTATOR),
            key=lambda c: c.joined_at,
        )

    # roster
    def assign_role(self) -> str:
        has_odd = has_even = False
        for c in self.clients.values():
            if c.role == ROLE_ODD:
                has_odd = True
            elif c.role == ROLE_EVEN:
                has_even = True
        if not has_odd:
            return ROLE_ODD
        if not has_even:
            return ROLE_EVEN
        return ROLE_SPECTATOR

    def join(self, name: str, client_id: Optional[str] = None, joined_at: Optional[float] = None) -> Client:
        client = Client(name, self.assign_role(), client_id=client_id, joined_at=joined_at)
        self.clients[client.id] = client
        logger.info(f"{client.name} joined room {self.room_id} as {client.role} ({len(self.clients)} connected)")
        return client

    def promote_spectator(self, role: str) -> Optional[Client]:
        candidates = self.spectators()
        if not candidates:
            return None
        promoted = candidates[0]
        promoted.role = role
        logger.info(f"{promoted.name} promoted to {role} in room {self.room_id}")
        return promoted

    def leave(self, client_id: str) -> Optional[Client]:
        """Remove a client; return the promoted spectator if a seat was refilled."""
        leaving = self.clients.pop(client_id, None)
        if leaving is None:
            return None
        logger.info(f"{leaving.name} ({leaving.role}) left room {self.room_id} ({len(self.clients)} connected)")
        if leaving.is_player:
            return self.promote_spectator(leaving.role)
        return None

    # commands
    def increment(self, client_id: str, row: int, col: int) -> bool:
        """Apply an increment. Returns True if the board changed.

        Raises ActionRejected once the game has ended. Spectators and
        out-of-range cells are ignored without a notice.
        """
        if self.game_over:
            raise ActionRejected(GAME_OVER_NOTICE)
        client = self.clients.get(client_id)
        if client is None or not client.is_player:
            return False
        if not board_engine.in_bounds(row, col, self.size):
            return False
        board_engine.increment(self.board, row, col)
        winner = board_engine.evaluate_winner(self.board)
        if winner:
            self.game_over = True
            self.winner = winner
            logger.info(f"Room {self.room_id}: {winner} wins after {client.name} played ({row}, {col})")
        return True

    def restart(self, client_id: str) -> None:
        client = self.clients.get(client_id)
        if client is None or not client.is_player:
            raise ActionRejected(RESTART_DENIED_NOTICE)
        self.board = board_engine.create_board(self.size)
        self.game_over = False
        self.winner = None
        logger.info(f"Room {self.room_id} restarted by {client.name}")

    # snapshots
    def public_state(self) -> dict:
        odd = self.holder_of(ROLE_ODD)
        even = self.holder_of(ROLE_EVEN)
        return {
            "board": board_engine.copy_board(self.board),
            "gameOver": self.game_over,
            "winner": self.winner,
            "players": {
                "odd": odd.name if odd else None,
                "even": even.name if even else None,
            },
            "spectatorCount": sum(1 for c in self.clients.values() if c.role == ROLE_SPECTATOR),
        }

    def role_of(self, client_id: str) -> str:
        client = self.clients.get(client_id)
        return client.role if client else ROLE_SPECTATOR
