"""Board engine for odd/even tic-tac-toe.

A board is a square grid of non-negative counters. Players never place marks;
they bump a cell by one. A line wins when every cell in it is non-zero and
all of them share the same parity.
"""
from typing import Iterator, List, Optional, Tuple

from constants import BOARD_SIZE, ROLE_EVEN, ROLE_ODD

Board = List[List[int]]
Cell = Tuple[int, int]


def create_board(size: int = BOARD_SIZE) -> Board:
    return [[0] * size for _ in range(size)]


def in_bounds(row: int, col: int, size: int = BOARD_SIZE) -> bool:
    return 0 <= row < size and 0 <= col < size


def increment(board: Board, row: int, col: int) -> int:
    """Add one to a cell and return its new value. Caller checks bounds."""
    board[row][col] += 1
    return board[row][col]


def line_parity(values: List[int]) -> Optional[str]:
    """Return "odd"/"even" if the line is a parity win, otherwise None."""
    if not values or any(v == 0 for v in values):
        return None
    if all(v % 2 == 1 for v in values):
        return ROLE_ODD
    if all(v % 2 == 0 for v in values):
        return ROLE_EVEN
    return None


def iter_lines(board: Board) -> Iterator[List[Cell]]:
    """Yield the coordinates of every line in scan order.

    Row i is followed by column i for i in 0..n-1, then the main diagonal,
    then the anti-diagonal. The first winning line in this order decides.
    """
    n = len(board)
    for i in range(n):
        yield [(i, c) for c in range(n)]
        yield [(r, i) for r in range(n)]
    yield [(i, i) for i in range(n)]
    yield [(i, n - 1 - i) for i in range(n)]


def find_winning_line(board: Board) -> Optional[Tuple[str, List[Cell]]]:
    for cells in iter_lines(board):
        parity = line_parity([board[r][c] for r, c in cells])
        if parity:
            return parity, cells
    return None


def evaluate_winner(board: Board) -> Optional[str]:
    found = find_winning_line(board)
    return found[0] if found else None


def copy_board(board: Board) -> Board:
    return [list(row) for row in board]
