"""LLM-backed tic-tac-toe opponent with a deterministic fallback.

Public surface used by the web layer:
  - ``await AIPlayer.initialize()`` loads the provider config
  - ``await AIPlayer.get_move(board, player_symbol, opponent_symbol) -> Move``
  - ``await AIPlayer.simulate_thinking_delay()``

``get_move`` never raises for provider, network or parsing problems; it logs
the failure and answers with :func:`get_fallback_move` instead. A full board
is a caller error and still raises :class:`NoMovesAvailableError`.
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Dict, Optional, Type

import httpx

from .config import DIFFICULTY_LEVELS, AIConfig, ConfigLoader
from .errors import NoMovesAvailableError, ProviderTimeoutError, TicTacAIError
from .fallback import get_fallback_move
from .game import Move
from .prompting import Board, build_move_prompt, is_valid_move, parse_move
from .providers import (
    PROVIDERS,
    CompletionRequest,
    MoveProvider,
    RateLimiter,
    create_provider,
)
from .resolver import ProviderResolver

log = logging.getLogger("tictacai.ai")


@dataclass(frozen=True)
class MoveDecision:
    move: Move
    provider_id: Optional[str] = None
    used_fallback: bool = False
    # errorMessages template explaining the fallback, when one applies
    notice: Optional[str] = None


class AIPlayer:
    def __init__(
        self,
        loader: ConfigLoader,
        resolver: ProviderResolver,
        client: httpx.AsyncClient,
        registry: Optional[Dict[str, Type[MoveProvider]]] = None,
        rate_limiter: Optional[RateLimiter] = None,
        difficulty: Optional[str] = None,
    ) -> None:
        self.loader = loader
        self.resolver = resolver
        self.client = client
        self.registry = PROVIDERS if registry is None else registry
        self.rate_limiter = rate_limiter or RateLimiter()
        self._difficulty: Optional[str] = None
        if difficulty is not None:
            self.difficulty = difficulty

    async def initialize(self) -> AIConfig:
        return await self.loader.load_config()

    @property
    def difficulty(self) -> str:
        if self._difficulty is not None:
            return self._difficulty
        if self.loader.is_loaded:
            configured = self.loader.get_config().default_difficulty
            if configured in DIFFICULTY_LEVELS:
                return configured
            log.warning("Ignoring unknown defaultDifficulty %r", configured)
        return "medium"

    @difficulty.setter
    def difficulty(self, level: str) -> None:
        if level not in DIFFICULTY_LEVELS:
            raise ValueError(
                f"Unsupported difficulty {level!r}. Choose one of {', '.join(DIFFICULTY_LEVELS)}."
            )
        self._difficulty = level

    # ---- public API ----

    async def get_move(
        self,
        board: Board,
        player_symbol: str,
        opponent_symbol: str,
        difficulty: Optional[str] = None,
    ) -> Move:
        decision = await self.decide_move(board, player_symbol, opponent_symbol, difficulty)
        return decision.move

    async def decide_move(
        self,
        board: Board,
        player_symbol: str,
        opponent_symbol: str,
        difficulty: Optional[str] = None,
    ) -> MoveDecision:
        """Like :meth:`get_move` but also reports how the move was obtained."""
        if difficulty is not None and difficulty not in DIFFICULTY_LEVELS:
            log.warning("Unknown difficulty %r, using %s", difficulty, self.difficulty)
            difficulty = None

        try:
            provider_id = self.resolver.get_available_provider()
        except TicTacAIError as exc:
            log.warning("AI provider lookup failed, using fallback move: %s", exc)
            return self._fallback(board, None, exc.error_kind)

        if provider_id is None:
            log.warning("No AI provider available, using fallback move")
            return self._fallback(board, None, "apiKeyMissing")

        try:
            move = await self._request_move(
                provider_id, board, player_symbol, opponent_symbol, difficulty
            )
        except NoMovesAvailableError:
            raise
        except TicTacAIError as exc:
            log.error("Error getting AI move from %s: %s", provider_id, exc)
            return self._fallback(board, provider_id, exc.error_kind)

        if not is_valid_move(board, move):
            log.warning(
                "AI returned invalid move (%d, %d), using fallback", move.row, move.col
            )
            return self._fallback(board, provider_id, "invalidResponse")
        return MoveDecision(move=move, provider_id=provider_id)

    async def simulate_thinking_delay(self) -> None:
        if not self.loader.is_loaded:
            return
        delay = self.loader.get_config().move_delay
        await asyncio.sleep(random.uniform(delay.min, delay.max) / 1000.0)

    # ---- internals ----

    async def _request_move(
        self,
        provider_id: str,
        board: Board,
        player_symbol: str,
        opponent_symbol: str,
        difficulty: Optional[str],
    ) -> Move:
        config = self.loader.get_config()
        provider_config = config.providers[provider_id]

        request = CompletionRequest(
            provider_id=provider_id,
            provider=provider_config,
            difficulty=config.difficulties.get(difficulty or self.difficulty),
            prompt=build_move_prompt(board, player_symbol, opponent_symbol),
            api_key=self.resolver.get_api_key(provider_id),
        )
        provider = create_provider(provider_id, self.client, self.registry)
        self.rate_limiter.acquire(provider_id, provider_config.rate_limit)

        timeout_s = provider_config.timeout_s
        try:
            raw = await asyncio.wait_for(provider.complete(request), timeout=timeout_s)
        except asyncio.TimeoutError as exc:
            raise ProviderTimeoutError(provider_id, timeout_s or 0.0) from exc

        log.debug("Raw reply from %s: %r", provider_id, raw)
        return parse_move(raw)

    def _fallback(self, board: Board, provider_id: Optional[str], kind: str) -> MoveDecision:
        notice = None
        if self.loader.is_loaded:
            notice = self.loader.get_config().error_message(kind)
        return MoveDecision(
            move=get_fallback_move(board),
            provider_id=provider_id,
            used_fallback=True,
            notice=notice,
        )
