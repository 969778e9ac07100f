"""FastAPI-powered web UI for playing tic-tac-toe in the browser."""

from __future__ import annotations

import json
import logging
import threading
import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Dict, List, Literal, Optional, Tuple

import httpx
from fastapi import BackgroundTasks, FastAPI, HTTPException, Request
from fastapi.responses import HTMLResponse
from pydantic import BaseModel, Field, field_validator, model_validator

from .ai import AIPlayer
from .config import DIFFICULTY_LEVELS, ConfigLoader
from .errors import ConfigError
from .game import SYMBOL_OPTIONS, PlayerConfig, TicTacToeGame, sound_key_for
from .resolver import ProviderResolver
from .settings import credential_environment, load_settings

log = logging.getLogger("tictacai.ui")

GameMode = Literal["pvp", "pvai"]
COLOR_PATTERN = r"^#[0-9a-fA-F]{6}$"


@dataclass
class GameSession:
    """Container for an active game, its mode and any pending AI turn."""

    game: TicTacToeGame
    mode: GameMode
    difficulty: str
    move_log: List[Dict[str, int | str]] = field(default_factory=list)
    ai_pending: bool = False
    ai_notice: Optional[str] = None
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)


SESSIONS: Dict[str, GameSession] = {}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the AI player once per process and share it through ``app.state``."""

    settings = load_settings()
    async with httpx.AsyncClient() as client:
        loader = ConfigLoader(settings.ai_config, client)
        resolver = ProviderResolver(loader, credential_environment())
        ai_player = AIPlayer(loader, resolver, client)
        try:
            await ai_player.initialize()
        except ConfigError as exc:
            log.warning("AI unavailable, falling back to basic strategy: %s", exc)
        app.state.ai_player = ai_player
        yield
        SESSIONS.clear()


app = FastAPI(
    title="TicTacAI",
    description="Tic-tac-toe played in the browser, optionally against an LLM",
    lifespan=lifespan,
)


class PlayerSetup(BaseModel):
    """One player's choices on the setup screen."""

    name: str = Field(default="", max_length=40)
    symbol: str = Field(min_length=1, max_length=8)
    color: str = Field(pattern=COLOR_PATTERN)


class NewGameRequest(BaseModel):
    """Request payload for starting a new game."""

    mode: GameMode = "pvp"
    difficulty: Optional[str] = Field(
        default=None, description="AI difficulty: easy, medium or hard"
    )
    player1: PlayerSetup
    player2: PlayerSetup

    @field_validator("difficulty")
    @classmethod
    def ensure_supported_difficulty(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and value not in DIFFICULTY_LEVELS:
            raise ValueError(
                f"Unsupported difficulty {value}. "
                f"Choose one of {', '.join(DIFFICULTY_LEVELS)}."
            )
        return value

    @model_validator(mode="after")
    def ensure_distinct_symbols(self) -> "NewGameRequest":
        if self.player1.symbol == self.player2.symbol:
            raise ValueError(
                "Players cannot choose the same symbol. Please select different symbols."
            )
        return self


class MoveRequest(BaseModel):
    """Request payload for submitting a move on an existing game."""

    row: int = Field(ge=0, le=2)
    col: int = Field(ge=0, le=2)


def _get_ai_player(request: Request) -> AIPlayer:
    ai_player = getattr(request.app.state, "ai_player", None)
    if ai_player is None:
        raise HTTPException(status_code=503, detail="AI player is not ready")
    return ai_player


def _player_from_setup(setup: PlayerSetup, default_name: str, is_ai: bool) -> PlayerConfig:
    return PlayerConfig(
        name=setup.name.strip() or default_name,
        symbol=setup.symbol,
        color=setup.color,
        sound_key=sound_key_for(setup.symbol),
        is_ai=is_ai,
    )


def _create_session(request: NewGameRequest, default_difficulty: str) -> Tuple[str, GameSession]:
    """Create a new game session and register it for later access."""

    vs_ai = request.mode == "pvai"
    player1 = _player_from_setup(request.player1, "Player 1", is_ai=False)
    player2 = _player_from_setup(
        request.player2, "AI Player" if vs_ai else "Player 2", is_ai=vs_ai
    )
    session = GameSession(
        game=TicTacToeGame(player1=player1, player2=player2),
        mode=request.mode,
        difficulty=request.difficulty or default_difficulty,
    )
    session_id = uuid.uuid4().hex
    SESSIONS[session_id] = session
    return session_id, session


def _get_session(game_id: str) -> GameSession:
    try:
        return SESSIONS[game_id]
    except KeyError as exc:
        raise HTTPException(status_code=404, detail="Game not found") from exc


def _player_number(game: TicTacToeGame, player: Optional[PlayerConfig]) -> Optional[int]:
    if player is None:
        return None
    return 1 if player == game.player1 else 2


def _schedule_ai_if_needed(session: GameSession) -> bool:
    """Mark an AI turn as pending when the AI is to move. Caller holds the lock."""

    game = session.game
    if game.game_over or not game.active_player.is_ai or session.ai_pending:
        return False
    session.ai_pending = True
    return True


async def _run_ai_turn(game_id: str, ai_player: AIPlayer) -> None:
    session = SESSIONS.get(game_id)
    if not session:
        return

    try:
        await ai_player.simulate_thinking_delay()

        with session.lock:
            game = session.game
            if game.game_over or not game.active_player.is_ai:
                return
            ai = game.active_player
            opponent = game.opponent_of(ai)
            round_number = game.round_number
            snapshot = game.board.snapshot()

        decision = await ai_player.decide_move(
            snapshot, ai.symbol, opponent.symbol, session.difficulty
        )

        with session.lock:
            if game.round_number != round_number or game.active_player != ai:
                return
            game.play_move(decision.move.row, decision.move.col)
            session.move_log.append(
                {
                    "player": _player_number(game, ai),
                    "row": decision.move.row,
                    "col": decision.move.col,
                }
            )
            session.ai_notice = decision.notice
    finally:
        with session.lock:
            session.ai_pending = False


def _serialize_player(player: PlayerConfig) -> Dict[str, object]:
    return {
        "name": player.name,
        "symbol": player.symbol,
        "color": player.color,
        "soundKey": player.sound_key,
        "isAI": player.is_ai,
    }


def _serialize_session(game_id: str, session: GameSession) -> Dict[str, object]:
    with session.lock:
        game = session.game
        state: Dict[str, object] = {
            "id": game_id,
            "mode": session.mode,
            "difficulty": session.difficulty,
            "round": game.round_number,
            "players": [_serialize_player(game.player1), _serialize_player(game.player2)],
            "currentPlayer": _player_number(game, game.active_player),
            "board": [[cell or "" for cell in row] for row in game.board.cells],
            "winner": _player_number(game, game.winner),
            "winningCells": [
                {"row": m.row, "col": m.col} for m in (game.winning_cells or ())
            ],
            "drawn": game.drawn,
            "gameOver": game.game_over,
            "scores": {
                "player1": game.player1_wins,
                "player2": game.player2_wins,
                "draws": game.draws,
            },
            "moveLog": list(session.move_log),
            "aiPending": session.ai_pending,
            "aiNotice": session.ai_notice,
        }
        if session.move_log:
            state["lastMove"] = session.move_log[-1]
        return state


def _apply_player_move(session: GameSession, row: int, col: int) -> bool:
    """Apply a human move; returns True when an AI reply must be scheduled."""

    with session.lock:
        game = session.game
        if game.game_over:
            raise HTTPException(status_code=400, detail="Round already finished")

        if session.ai_pending or game.active_player.is_ai:
            raise HTTPException(status_code=400, detail="AI is completing its move")

        player = game.active_player
        try:
            game.play_move(row, col)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

        session.move_log.append(
            {"player": _player_number(game, player), "row": row, "col": col}
        )
        session.ai_notice = None
        return _schedule_ai_if_needed(session)


@app.post("/api/game")
async def create_game(
    payload: NewGameRequest, request: Request, background_tasks: BackgroundTasks
) -> Dict[str, object]:
    ai_player = _get_ai_player(request)
    game_id, session = _create_session(payload, ai_player.difficulty)
    with session.lock:
        should_schedule_ai = _schedule_ai_if_needed(session)
    if should_schedule_ai:
        background_tasks.add_task(_run_ai_turn, game_id, ai_player)
    return _serialize_session(game_id, session)


@app.get("/api/game/{game_id}")
async def get_game(game_id: str) -> Dict[str, object]:
    session = _get_session(game_id)
    return _serialize_session(game_id, session)


@app.post("/api/game/{game_id}/move")
async def make_move(
    game_id: str,
    payload: MoveRequest,
    request: Request,
    background_tasks: BackgroundTasks,
) -> Dict[str, object]:
    session = _get_session(game_id)
    if _apply_player_move(session, payload.row, payload.col):
        background_tasks.add_task(_run_ai_turn, game_id, _get_ai_player(request))
    return _serialize_session(game_id, session)


@app.post("/api/game/{game_id}/round")
async def new_round(
    game_id: str, request: Request, background_tasks: BackgroundTasks
) -> Dict[str, object]:
    session = _get_session(game_id)
    with session.lock:
        if session.ai_pending:
            raise HTTPException(status_code=400, detail="AI is completing its move")
        session.game.new_round()
        session.move_log.clear()
        session.ai_notice = None
        should_schedule_ai = _schedule_ai_if_needed(session)
    if should_schedule_ai:
        background_tasks.add_task(_run_ai_turn, game_id, _get_ai_player(request))
    return _serialize_session(game_id, session)


@app.get("/api/ai/status")
async def ai_status(request: Request) -> Dict[str, object]:
    ai_player = _get_ai_player(request)
    status: Dict[str, object] = {
        "loaded": ai_player.loader.is_loaded,
        "provider": None,
        "difficulty": ai_player.difficulty,
        "difficulties": [],
    }
    if ai_player.loader.is_loaded:
        config = ai_player.loader.get_config()
        status["provider"] = ai_player.resolver.get_available_provider()
        status["difficulties"] = [
            {
                "level": level,
                "name": config.difficulties.get(level).name,
                "description": config.difficulties.get(level).description,
            }
            for level in DIFFICULTY_LEVELS
        ]
    return status


@app.get("/", response_class=HTMLResponse)
def index() -> str:
    return HTML_PAGE


HTML_PAGE = """<!DOCTYPE html>
<html lang=\"en\">
  <head>
    <meta charset=\"utf-8\" />
    <meta name=\"viewport\" content=\"width=device-width, initial-scale=1\" />
    <title>Tic Tac Toe</title>
    <style>
      :root {
        color-scheme: light;
        font-family: system-ui, -apple-system, BlinkMacSystemFont, \"Segoe UI\", sans-serif;
      }
      body {
        margin: 0;
        min-height: 100vh;
        display: flex;
        justify-content: center;
        padding: 2rem 1rem;
        background: #f4f6fb;
        color: #13203a;
      }
      main {
        width: min(560px, 100%);
        background: #ffffff;
        border-radius: 16px;
        padding: 1.5rem 2rem 2rem;
        box-shadow: 0 12px 32px rgba(19, 32, 58, 0.12);
      }
      h1, h2 { text-align: center; }
      .hidden { display: none !important; }
      .player-setup { display: grid; gap: 0.5rem; margin-bottom: 1rem; }
      .player-setup label { display: flex; justify-content: space-between; gap: 1rem; }
      .controls { display: flex; justify-content: center; gap: 0.75rem; margin-top: 1rem; }
      button {
        border: none;
        border-radius: 8px;
        padding: 0.5rem 1rem;
        font-size: 1rem;
        cursor: pointer;
        color: #ffffff;
        background: #007bff;
      }
      button.secondary { background: #28a745; }
      #status { text-align: center; font-size: 1.4rem; margin: 1rem 0; }
      #notice { text-align: center; color: #b35c00; min-height: 1.2rem; }
      #board {
        display: grid;
        grid-template-columns: repeat(3, 100px);
        grid-template-rows: repeat(3, 100px);
        justify-content: center;
        gap: 0;
      }
      .cell {
        border: 2px solid #000000;
        background: #cccccc;
        font-size: 56px;
        display: flex;
        align-items: center;
        justify-content: center;
        cursor: pointer;
      }
      .scores { display: flex; justify-content: space-between; margin-top: 1rem; }
    </style>
  </head>
  <body>
    <main>
      <section id=\"setup\">
        <h1>Game Setup</h1>
        <label>Game mode
          <select id=\"mode\">
            <option value=\"pvp\">Player vs Player</option>
            <option value=\"pvai\">Player vs AI</option>
          </select>
        </label>
        <label id=\"difficulty-row\" class=\"hidden\">AI difficulty
          <select id=\"difficulty\"></select>
        </label>
        <div class=\"player-setup\" data-player=\"1\">
          <label for=\"p1-name\">Player 1 <input id=\"p1-name\" value=\"Player 1\" /></label>
          <label>Symbol <select class=\"symbol\" id=\"p1-symbol\"></select></label>
          <label>Line color <input type=\"color\" id=\"p1-color\" value=\"#dc3545\" /></label>
        </div>
        <div class=\"player-setup\" data-player=\"2\">
          <label for=\"p2-name\">Player 2 <input id=\"p2-name\" value=\"Player 2\" /></label>
          <label>Symbol <select class=\"symbol\" id=\"p2-symbol\"></select></label>
          <label>Line color <input type=\"color\" id=\"p2-color\" value=\"#007bff\" /></label>
        </div>
        <div class=\"controls\"><button id=\"start\">Start Game</button></div>
      </section>
      <section id=\"game\" class=\"hidden\">
        <h1>Tic Tac Toe</h1>
        <div id=\"status\"></div>
        <div id=\"notice\" role=\"status\"></div>
        <div id=\"board\"></div>
        <div class=\"controls\">
          <button id=\"new-round\" class=\"hidden\">New Round</button>
          <button id=\"new-game\" class=\"secondary hidden\">New Game</button>
        </div>
        <div class=\"scores\">
          <span id=\"score-1\"></span><span id=\"score-draws\"></span><span id=\"score-2\"></span>
        </div>
      </section>
    </main>
    <script>
      const SYMBOLS = __SYMBOLS__;
      const $ = (id) => document.getElementById(id);
      let gameId = null;
      let state = null;
      let pollHandle = null;

      function fillSymbols() {
        ['p1-symbol', 'p2-symbol'].forEach((id, index) => {
          const select = $(id);
          SYMBOLS.forEach((symbol) => {
            const option = document.createElement('option');
            option.value = symbol;
            option.textContent = symbol;
            select.appendChild(option);
          });
          select.value = SYMBOLS[index === 0 ? 0 : 2];
          select.addEventListener('change', syncSymbols);
        });
        syncSymbols();
      }

      function syncSymbols() {
        const first = $('p1-symbol');
        const second = $('p2-symbol');
        [...first.options].forEach((o) => { o.disabled = o.value === second.value; });
        [...second.options].forEach((o) => { o.disabled = o.value === first.value; });
      }

      async function loadDifficulties() {
        const response = await fetch('/api/ai/status');
        if (!response.ok) return;
        const status = await response.json();
        const select = $('difficulty');
        status.difficulties.forEach((entry) => {
          const option = document.createElement('option');
          option.value = entry.level;
          option.textContent = `${entry.name} - ${entry.description}`;
          select.appendChild(option);
        });
        select.value = status.difficulty;
      }

      $('mode').addEventListener('change', () => {
        const vsAi = $('mode').value === 'pvai';
        $('difficulty-row').classList.toggle('hidden', !vsAi);
        $('p2-name').value = vsAi ? 'AI Player' : 'Player 2';
      });

      async function startGame() {
        if ($('p1-symbol').value === $('p2-symbol').value) {
          alert('Players cannot choose the same symbol. Please select different symbols.');
          return;
        }
        const vsAi = $('mode').value === 'pvai';
        const body = {
          mode: $('mode').value,
          difficulty: vsAi ? $('difficulty').value || null : null,
          player1: { name: $('p1-name').value, symbol: $('p1-symbol').value, color: $('p1-color').value },
          player2: { name: $('p2-name').value, symbol: $('p2-symbol').value, color: $('p2-color').value },
        };
        const response = await fetch('/api/game', {
          method: 'POST',
          headers: { 'Content-Type': 'application/json' },
          body: JSON.stringify(body),
        });
        const payload = await response.json();
        if (!response.ok) {
          alert(JSON.stringify(payload.detail));
          return;
        }
        gameId = payload.id;
        $('setup').classList.add('hidden');
        $('game').classList.remove('hidden');
        render(payload);
      }

      async function post(path, body) {
        const response = await fetch(path, {
          method: 'POST',
          headers: { 'Content-Type': 'application/json' },
          body: body ? JSON.stringify(body) : undefined,
        });
        const payload = await response.json();
        if (!response.ok) {
          $('notice').textContent = payload.detail;
          return;
        }
        render(payload);
      }

      function render(next) {
        state = next;
        const board = $('board');
        board.innerHTML = '';
        const winning = new Set(next.winningCells.map((c) => `${c.row},${c.col}`));
        const winnerColor = next.winner ? next.players[next.winner - 1].color : null;
        next.board.forEach((row, r) => {
          row.forEach((cell, c) => {
            const el = document.createElement('div');
            el.className = 'cell';
            el.textContent = cell;
            if (winning.has(`${r},${c}`)) el.style.background = winnerColor;
            el.addEventListener('click', () => onCellClick(r, c));
            board.appendChild(el);
          });
        });
        const active = next.players[next.currentPlayer - 1];
        if (next.winner) {
          $('status').textContent = `${next.players[next.winner - 1].name} wins!`;
        } else if (next.drawn) {
          $('status').textContent = "It's a draw!";
        } else {
          $('status').textContent = `${active.name}'s turn (${active.symbol})`;
        }
        $('notice').textContent = next.aiNotice || '';
        $('new-round').classList.toggle('hidden', !next.gameOver);
        $('new-game').classList.toggle('hidden', !next.gameOver);
        const [p1, p2] = next.players;
        $('score-1').textContent = `${p1.name} (${p1.symbol}): ${next.scores.player1}`;
        $('score-2').textContent = `${p2.name} (${p2.symbol}): ${next.scores.player2}`;
        $('score-draws').textContent = `Draws: ${next.scores.draws}`;
        schedulePoll();
      }

      function schedulePoll() {
        if (pollHandle) clearTimeout(pollHandle);
        if (!state || !state.aiPending) return;
        pollHandle = setTimeout(async () => {
          const response = await fetch(`/api/game/${gameId}`);
          if (response.ok) render(await response.json());
        }, 400);
      }

      function onCellClick(row, col) {
        if (!state || state.gameOver || state.aiPending) return;
        if (state.board[row][col]) return;
        post(`/api/game/${gameId}/move`, { row, col });
      }

      $('start').addEventListener('click', startGame);
      $('new-round').addEventListener('click', () => post(`/api/game/${gameId}/round`));
      $('new-game').addEventListener('click', () => {
        gameId = null;
        state = null;
        $('game').classList.add('hidden');
        $('setup').classList.remove('hidden');
      });

      fillSymbols();
      loadDifficulties();
    </script>
  </body>
</html>
""".replace("__SYMBOLS__", json.dumps(list(SYMBOL_OPTIONS)))
