"""Board rendering, move prompts and reply parsing for LLM move requests."""

from __future__ import annotations

import re
from typing import Optional, Sequence

from .errors import MoveParseError
from .game import BOARD_SIZE, Move

Board = Sequence[Sequence[Optional[str]]]

EMPTY_MARK = "."

# First "<digit>,<digit>" anywhere in the reply, read as row,col.
MOVE_RE = re.compile(r"(\d),\s*(\d)", re.ASCII)

MOVE_TEMPLATE = """Current Tic-Tac-Toe board state (0-indexed, top-left is 0,0):
{BOARD}
You are playing as '{PLAYER}' against '{OPPONENT}'.
Empty cells are shown as '{EMPTY}'.
What is your next move? Play as optimally as possible."""


def render_board(board: Board) -> str:
    """Three rows of space-separated cells, ``.`` marking empty squares."""

    rows = []
    for row in range(BOARD_SIZE):
        cells = [board[row][col] or EMPTY_MARK for col in range(BOARD_SIZE)]
        rows.append(" ".join(cells))
    return "\n".join(rows) + "\n"


def build_move_prompt(board: Board, player_symbol: str, opponent_symbol: str) -> str:
    values = {
        "BOARD": render_board(board),
        "PLAYER": player_symbol,
        "OPPONENT": opponent_symbol,
        "EMPTY": EMPTY_MARK,
    }
    rendered = MOVE_TEMPLATE
    for key, val in values.items():
        rendered = rendered.replace(f"{{{key}}}", val)
    return rendered


def parse_move(text: str) -> Move:
    match = MOVE_RE.search(text or "")
    if not match:
        raise MoveParseError(text)
    return Move(int(match.group(1)), int(match.group(2)))


def is_valid_move(board: Board, move: Move) -> bool:
    return (
        0 <= move.row < BOARD_SIZE
        and 0 <= move.col < BOARD_SIZE
        and board[move.row][move.col] is None
    )
