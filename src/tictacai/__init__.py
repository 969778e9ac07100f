"""TicTacAI package exposing game logic, the LLM opponent, and the web application."""

from .ai import AIPlayer
from .game import TicTacToeGame
from .ui import app

__all__ = ["AIPlayer", "TicTacToeGame", "app"]
