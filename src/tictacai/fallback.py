"""Network-free move choice used whenever the LLM path cannot deliver."""

from __future__ import annotations

from typing import Optional, Sequence, Tuple

from .errors import NoMovesAvailableError
from .game import Move

# Centre, then corners, then edge midpoints.
PREFERENCE_ORDER: Tuple[Move, ...] = (
    Move(1, 1),
    Move(0, 0),
    Move(0, 2),
    Move(2, 0),
    Move(2, 2),
    Move(0, 1),
    Move(1, 0),
    Move(1, 2),
    Move(2, 1),
)


def get_fallback_move(board: Sequence[Sequence[Optional[str]]]) -> Move:
    for move in PREFERENCE_ORDER:
        if board[move.row][move.col] is None:
            return move
    raise NoMovesAvailableError()
