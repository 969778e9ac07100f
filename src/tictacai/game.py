"""Core rules for classic 3x3 tic-tac-toe with round and score bookkeeping."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

BOARD_SIZE = 3

Symbol = str  # any non-empty string, typically an emoji


@dataclass(frozen=True)
class Move:
    row: int
    col: int


WINNING_LINES: Tuple[Tuple[Move, Move, Move], ...] = (
    # rows
    (Move(0, 0), Move(0, 1), Move(0, 2)),
    (Move(1, 0), Move(1, 1), Move(1, 2)),
    (Move(2, 0), Move(2, 1), Move(2, 2)),
    # columns
    (Move(0, 0), Move(1, 0), Move(2, 0)),
    (Move(0, 1), Move(1, 1), Move(2, 1)),
    (Move(0, 2), Move(1, 2), Move(2, 2)),
    # diagonals
    (Move(0, 0), Move(1, 1), Move(2, 2)),
    (Move(0, 2), Move(1, 1), Move(2, 0)),
)

DEFAULT_SOUND_KEY = "default_click"

EMOJI_SOUND_KEYS: Dict[Symbol, str] = {
    "\U0001F600": "happy",
    "\U0001F680": "rocket",
    "\U0001F31F": "star",
    "❤️": "heart",
    "\U0001F389": "tada",
    "\U0001F431": "meow",
    "\U0001F355": "eat_slice",
    "⚽": "kick_ball",
}
SYMBOL_OPTIONS: Tuple[Symbol, ...] = tuple(EMOJI_SOUND_KEYS)


def sound_key_for(symbol: Symbol) -> str:
    return EMOJI_SOUND_KEYS.get(symbol, DEFAULT_SOUND_KEY)


@dataclass(frozen=True)
class PlayerConfig:
    name: str
    symbol: Symbol
    color: str
    sound_key: str = DEFAULT_SOUND_KEY
    is_ai: bool = False


# ---------- Board ----------


def _empty_cells() -> List[List[Optional[Symbol]]]:
    return [[None] * BOARD_SIZE for _ in range(BOARD_SIZE)]


@dataclass
class TicTacToeBoard:
    # None marks an empty cell
    cells: List[List[Optional[Symbol]]] = field(default_factory=_empty_cells)

    def is_full(self) -> bool:
        return all(cell is not None for row in self.cells for cell in row)

    def place(self, symbol: Symbol, row: int, col: int) -> None:
        if not (0 <= row < BOARD_SIZE and 0 <= col < BOARD_SIZE):
            raise ValueError("Cell is outside the board")
        if self.cells[row][col] is not None:
            raise ValueError("Cell already occupied")
        self.cells[row][col] = symbol

    def winning_line(self, symbol: Symbol) -> Optional[Tuple[Move, ...]]:
        for line in WINNING_LINES:
            if all(self.cells[m.row][m.col] == symbol for m in line):
                return line
        return None

    def snapshot(self) -> Tuple[Tuple[Optional[Symbol], ...], ...]:
        """Read-only copy handed to the AI subsystem."""

        return tuple(tuple(row) for row in self.cells)


# ---------- Game ----------


@dataclass
class TicTacToeGame:
    player1: PlayerConfig
    player2: PlayerConfig
    board: TicTacToeBoard = field(default_factory=TicTacToeBoard)
    winner: Optional[PlayerConfig] = None
    winning_cells: Optional[Tuple[Move, ...]] = None
    drawn: bool = False
    player1_wins: int = 0
    player2_wins: int = 0
    draws: int = 0
    round_number: int = 1

    active_player: PlayerConfig = field(init=False)
    round_starter: PlayerConfig = field(init=False)

    def __post_init__(self) -> None:
        if self.player1.symbol == self.player2.symbol:
            raise ValueError("Players cannot choose the same symbol")
        # Player 1 always opens the first round of a session.
        self.active_player = self.player1
        self.round_starter = self.player1

    @property
    def game_over(self) -> bool:
        return self.winner is not None or self.drawn

    def opponent_of(self, player: PlayerConfig) -> PlayerConfig:
        return self.player2 if player == self.player1 else self.player1

    def play_move(self, row: int, col: int) -> None:
        """Place the active player's symbol, then settle win/draw or switch turns."""
        if self.game_over:
            raise ValueError("Round already finished")

        player = self.active_player
        self.board.place(player.symbol, row, col)

        line = self.board.winning_line(player.symbol)
        if line is not None:
            self.winner = player
            self.winning_cells = line
            if player == self.player1:
                self.player1_wins += 1
            else:
                self.player2_wins += 1
            return

        if self.board.is_full():
            self.drawn = True
            self.draws += 1
            return

        self.active_player = self.opponent_of(player)

    def new_round(self) -> None:
        # The loser opens after a win; otherwise the starter alternates.
        if self.winner is not None:
            starter = self.opponent_of(self.winner)
        else:
            starter = self.opponent_of(self.round_starter)

        self.board = TicTacToeBoard()
        self.winner = None
        self.winning_cells = None
        self.drawn = False
        self.round_number += 1
        self.active_player = starter
        self.round_starter = starter
