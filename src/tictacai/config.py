"""AI provider configuration: typed model, validation and a caching loader."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple
from urllib.parse import urlparse

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import ConfigFetchError, ConfigValidationError, NotLoadedError

log = logging.getLogger("tictacai.config")

DIFFICULTY_LEVELS: Tuple[str, ...] = ("easy", "medium", "hard")


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)


class RateLimit(_Frozen):
    # Zero or missing values leave the provider unthrottled.
    max_requests: int = Field(default=0, alias="maxRequests")
    per_minutes: float = Field(default=0, alias="perMinutes")

    @property
    def window_s(self) -> float:
        return self.per_minutes * 60.0

    @property
    def active(self) -> bool:
        return self.max_requests > 0 and self.per_minutes > 0


class ProviderConfig(_Frozen):
    """One remote text-generation service."""

    name: str = ""
    enabled: bool = False
    # Disabled stubs may omit the endpoint; callers check before dialing out.
    api_endpoint: Optional[str] = Field(default=None, alias="apiEndpoint")
    model: Optional[str] = None
    api_key: Optional[str] = Field(default=None, alias="apiKey")
    api_key_env_var: Optional[str] = Field(default=None, alias="apiKeyEnvVar")
    # Milliseconds, like every other duration in the document.
    timeout: float = 30_000
    retry_attempts: int = Field(default=0, alias="retryAttempts")
    retry_delay: float = Field(default=0, alias="retryDelay")
    rate_limit: Optional[RateLimit] = Field(default=None, alias="rateLimit")

    @property
    def timeout_s(self) -> Optional[float]:
        """Bounded wait in seconds, or ``None`` when no positive timeout is set."""
        if self.timeout <= 0:
            return None
        return self.timeout / 1000.0


class DifficultyProfile(_Frozen):
    name: str = ""
    description: str = ""
    system_prompt: str = Field(default="", alias="systemPrompt")
    temperature: Optional[float] = None
    max_tokens: Optional[int] = Field(default=None, alias="maxTokens")


class Difficulties(_Frozen):
    easy: DifficultyProfile
    medium: DifficultyProfile
    hard: DifficultyProfile

    def get(self, level: str) -> DifficultyProfile:
        if level not in DIFFICULTY_LEVELS:
            raise KeyError(level)
        return getattr(self, level)


class MoveDelay(_Frozen):
    min: float = 0
    max: float = 0


class AIConfig(_Frozen):
    """Root of ``ai-config.json``; read-only once loaded."""

    providers: Dict[str, ProviderConfig]
    default_provider: str = Field(alias="defaultProvider")
    fallback_providers: Tuple[str, ...] = Field(alias="fallbackProviders")
    difficulties: Difficulties
    default_difficulty: str = Field(default="medium", alias="defaultDifficulty")
    move_delay: MoveDelay = Field(alias="moveDelay")
    error_messages: Dict[str, Any] = Field(alias="errorMessages")

    def error_message(self, kind: str) -> Optional[str]:
        message = self.error_messages.get(kind)
        return message if isinstance(message, str) else None


# ---------- Validation ----------


def _check_structure(data: Any) -> None:
    """Shape checks on the raw document, each naming the failing field."""

    if not isinstance(data, Mapping):
        raise ConfigValidationError("<root>", "not an object")

    providers = data.get("providers")
    if not isinstance(providers, Mapping):
        raise ConfigValidationError("providers", "missing or not an object")

    default_provider = data.get("defaultProvider")
    if not isinstance(default_provider, str):
        raise ConfigValidationError("defaultProvider", "must be a string")

    if not isinstance(data.get("fallbackProviders"), list):
        raise ConfigValidationError("fallbackProviders", "must be an array")

    difficulties = data.get("difficulties")
    if not isinstance(difficulties, Mapping):
        raise ConfigValidationError("difficulties", "missing or not an object")
    for level in DIFFICULTY_LEVELS:
        if not isinstance(difficulties.get(level), Mapping):
            raise ConfigValidationError(
                f"difficulties.{level}", "missing or invalid difficulty level"
            )

    if default_provider not in providers:
        raise ConfigValidationError(
            "defaultProvider", f"{default_provider!r} not found in providers"
        )

    if not isinstance(data.get("moveDelay"), Mapping):
        raise ConfigValidationError("moveDelay", "missing or not an object")

    if not isinstance(data.get("errorMessages"), Mapping):
        raise ConfigValidationError("errorMessages", "missing or not an object")


def validate_config(data: Any) -> AIConfig:
    """Validate a decoded document and build the immutable :class:`AIConfig`."""

    _check_structure(data)
    try:
        return AIConfig.model_validate(data)
    except ValidationError as exc:
        first = exc.errors()[0]
        field = ".".join(str(part) for part in first["loc"]) or "<root>"
        raise ConfigValidationError(field, first["msg"]) from exc


# ---------- Loader ----------


def _is_http(source: str) -> bool:
    return urlparse(source).scheme in ("http", "https")


def _local_path(source: str) -> Path:
    parsed = urlparse(source)
    if parsed.scheme == "file":
        return Path(parsed.path)
    return Path(source)


class ConfigLoader:
    """Fetches the AI config once and hands out the cached instance.

    ``source`` is an ``http(s)`` URL, a ``file:`` URL, or a filesystem path.
    Concurrent first callers wait on the same lock, so only one fetch can
    populate the cache.
    """

    def __init__(self, source: str, client: Optional[httpx.AsyncClient] = None) -> None:
        self.source = source
        self._client = client
        self._config: Optional[AIConfig] = None
        self._lock = asyncio.Lock()

    @property
    def is_loaded(self) -> bool:
        return self._config is not None

    async def load_config(self) -> AIConfig:
        if self._config is not None:
            return self._config

        async with self._lock:
            if self._config is not None:
                return self._config
            data = await self._fetch_document()
            try:
                config = validate_config(data)
            except ConfigValidationError:
                log.error("Rejected AI config from %s", self.source, exc_info=True)
                raise
            self._config = config
            log.info(
                "Loaded AI config from %s (default=%s, fallbacks=%s)",
                self.source,
                config.default_provider,
                list(config.fallback_providers),
            )
            return config

    def get_config(self) -> AIConfig:
        if self._config is None:
            raise NotLoadedError()
        return self._config

    async def _fetch_document(self) -> Any:
        if _is_http(self.source):
            return await self._fetch_http()
        return await self._read_file()

    async def _fetch_http(self) -> Any:
        try:
            if self._client is not None:
                response = await self._client.get(self.source)
            else:
                async with httpx.AsyncClient() as client:
                    response = await client.get(self.source)
        except httpx.HTTPError as exc:
            log.error("Failed to fetch AI config from %s: %s", self.source, exc)
            raise ConfigFetchError(f"Failed to load AI config: {exc}") from exc

        if not response.is_success:
            log.error(
                "Failed to fetch AI config from %s: HTTP %s",
                self.source,
                response.status_code,
            )
            raise ConfigFetchError(
                f"Failed to load AI config: HTTP {response.status_code} {response.reason_phrase}"
            )
        try:
            return response.json()
        except ValueError as exc:
            raise ConfigFetchError(f"AI config is not valid JSON: {exc}") from exc

    async def _read_file(self) -> Any:
        path = _local_path(self.source)
        try:
            text = await asyncio.to_thread(path.read_text, encoding="utf-8")
        except OSError as exc:
            log.error("Failed to read AI config %s: %s", path, exc)
            raise ConfigFetchError(f"Failed to load AI config: {exc}") from exc
        try:
            return json.loads(text)
        except ValueError as exc:
            raise ConfigFetchError(f"AI config is not valid JSON: {exc}") from exc
