"""Provider call strategies keyed by provider id.

Each strategy receives the prompt plus the provider/difficulty settings and
returns the raw reply text, or raises a :class:`ProviderError`. New providers
register with :func:`register_provider` and need no change elsewhere.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import deque
from dataclasses import dataclass
from typing import Deque, Dict, List, Optional, Type

import httpx

from .config import DifficultyProfile, ProviderConfig, RateLimit
from .errors import (
    MissingCredentialError,
    ProviderError,
    ProviderHttpError,
    ProviderNotImplementedError,
    ProviderRateLimitedError,
    ProviderResponseShapeError,
    ProviderTimeoutError,
    UnknownProviderError,
)

log = logging.getLogger("tictacai.providers")


@dataclass(frozen=True)
class CompletionRequest:
    provider_id: str
    provider: ProviderConfig
    difficulty: DifficultyProfile
    prompt: str
    api_key: Optional[str]

    def chat_messages(self) -> List[Dict[str, str]]:
        messages = []
        if self.difficulty.system_prompt:
            messages.append({"role": "system", "content": self.difficulty.system_prompt})
        messages.append({"role": "user", "content": self.prompt})
        return messages


class MoveProvider:
    """Interface for one remote text-generation service."""

    provider_id: str = ""

    def __init__(self, client: httpx.AsyncClient) -> None:
        self.client = client

    async def complete(self, request: CompletionRequest) -> str:
        raise NotImplementedError


PROVIDERS: Dict[str, Type[MoveProvider]] = {}


def register_provider(provider_id: str, registry: Optional[Dict[str, Type[MoveProvider]]] = None):
    target = PROVIDERS if registry is None else registry

    def decorator(cls: Type[MoveProvider]) -> Type[MoveProvider]:
        cls.provider_id = provider_id
        target[provider_id] = cls
        return cls

    return decorator


def create_provider(
    provider_id: str,
    client: httpx.AsyncClient,
    registry: Optional[Dict[str, Type[MoveProvider]]] = None,
) -> MoveProvider:
    registry = PROVIDERS if registry is None else registry
    try:
        cls = registry[provider_id]
    except KeyError as exc:
        raise UnknownProviderError(provider_id) from exc
    return cls(client)


# ---------- Concrete providers ----------


@register_provider("chatgpt")
class ChatCompletionProvider(MoveProvider):
    """OpenAI-style ``/chat/completions`` endpoint with bearer auth."""

    async def complete(self, request: CompletionRequest) -> str:
        if not request.api_key:
            raise MissingCredentialError(request.provider_id)

        provider = request.provider
        if not provider.api_endpoint:
            raise ProviderError(f"{request.provider_id} has no apiEndpoint configured")

        difficulty = request.difficulty
        payload: Dict[str, object] = {"messages": request.chat_messages()}
        if provider.model:
            payload["model"] = provider.model
        if difficulty.temperature is not None:
            payload["temperature"] = difficulty.temperature
        if difficulty.max_tokens is not None:
            payload["max_tokens"] = difficulty.max_tokens
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {request.api_key}",
        }

        try:
            response = await self.client.post(
                provider.api_endpoint,
                json=payload,
                headers=headers,
                timeout=provider.timeout_s,
            )
        except httpx.TimeoutException as exc:
            raise ProviderTimeoutError(request.provider_id, provider.timeout_s or 0.0) from exc
        except httpx.HTTPError as exc:
            raise ProviderError(f"{request.provider_id} request failed: {exc}") from exc

        if not response.is_success:
            raise ProviderHttpError(
                request.provider_id, response.status_code, response.reason_phrase
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise ProviderResponseShapeError(
                f"{request.provider_id} returned a non-JSON body"
            ) from exc
        return self._extract_text(request.provider_id, data)

    @staticmethod
    def _extract_text(provider_id: str, data: object) -> str:
        try:
            content = data["choices"][0]["message"]["content"]  # type: ignore[index]
        except (KeyError, IndexError, TypeError) as exc:
            raise ProviderResponseShapeError(
                f"{provider_id} response has no choices[0].message.content"
            ) from exc
        if not isinstance(content, str):
            raise ProviderResponseShapeError(
                f"{provider_id} response content is {type(content).__name__}, not text"
            )
        return content.strip()


@register_provider("gemini")
class GeminiProvider(MoveProvider):
    async def complete(self, request: CompletionRequest) -> str:
        raise ProviderNotImplementedError(request.provider_id)


@register_provider("claude")
class ClaudeProvider(MoveProvider):
    async def complete(self, request: CompletionRequest) -> str:
        raise ProviderNotImplementedError(request.provider_id)


# ---------- Rate limiting ----------


class RateLimiter:
    """In-memory sliding window per provider id."""

    def __init__(self) -> None:
        self._events: Dict[str, Deque[float]] = {}
        self._lock = threading.Lock()

    def acquire(self, provider_id: str, limit: Optional[RateLimit]) -> None:
        if limit is None or not limit.active:
            return
        now = time.monotonic()
        cutoff = now - limit.window_s
        with self._lock:
            events = self._events.setdefault(provider_id, deque())
            while events and events[0] <= cutoff:
                events.popleft()
            if len(events) >= limit.max_requests:
                retry_after = events[0] + limit.window_s - now
                log.warning(
                    "Rate limit for %s reached (%d per %.1f min)",
                    provider_id,
                    limit.max_requests,
                    limit.per_minutes,
                )
                raise ProviderRateLimitedError(provider_id, retry_after_s=retry_after)
            events.append(now)
