"""Exception hierarchy shared by the AI move subsystem."""

from __future__ import annotations

from typing import Optional


class TicTacAIError(Exception):
    """Base class for every error raised by the AI subsystem."""

    # Key into ``AIConfig.error_messages`` used for user-facing notices.
    error_kind: str = "invalidResponse"


# ---------- Configuration ----------


class ConfigError(TicTacAIError):
    pass


class ConfigFetchError(ConfigError):
    error_kind = "networkError"


class ConfigValidationError(ConfigError):
    """Raised when the AI config document has the wrong shape."""

    def __init__(self, field: str, reason: str) -> None:
        super().__init__(f"Invalid AI config: {field}: {reason}")
        self.field = field
        self.reason = reason


class NotLoadedError(ConfigError):
    def __init__(self) -> None:
        super().__init__("AI configuration not loaded. Call load_config() first.")


class UnknownProviderError(TicTacAIError):
    def __init__(self, provider_id: str) -> None:
        super().__init__(f"Provider {provider_id!r} not found")
        self.provider_id = provider_id


# ---------- Provider calls ----------


class ProviderError(TicTacAIError):
    error_kind = "networkError"


class ProviderHttpError(ProviderError):
    def __init__(self, provider_id: str, status_code: int, reason: str = "") -> None:
        detail = f" {reason}" if reason else ""
        super().__init__(f"{provider_id} API error: HTTP {status_code}{detail}")
        self.provider_id = provider_id
        self.status_code = status_code


class ProviderResponseShapeError(ProviderError):
    error_kind = "invalidResponse"


class MissingCredentialError(ProviderError):
    error_kind = "apiKeyMissing"

    def __init__(self, provider_id: str) -> None:
        super().__init__(f"{provider_id} API key not configured")
        self.provider_id = provider_id


class ProviderTimeoutError(ProviderError):
    error_kind = "timeout"

    def __init__(self, provider_id: str, timeout_s: float) -> None:
        super().__init__(f"{provider_id} did not answer within {timeout_s:.1f}s")
        self.provider_id = provider_id
        self.timeout_s = timeout_s


class ProviderRateLimitedError(ProviderError):
    error_kind = "rateLimited"

    def __init__(self, provider_id: str, retry_after_s: Optional[float] = None) -> None:
        super().__init__(f"{provider_id} rate limit reached")
        self.provider_id = provider_id
        self.retry_after_s = retry_after_s


class ProviderNotImplementedError(ProviderError):
    error_kind = "networkError"

    def __init__(self, provider_id: str) -> None:
        super().__init__(f"{provider_id} integration not yet implemented")
        self.provider_id = provider_id


# ---------- Moves ----------


class MoveParseError(TicTacAIError):
    error_kind = "invalidResponse"

    def __init__(self, text: str) -> None:
        super().__init__(f"Invalid move format: {text!r}")
        self.text = text


class NoMovesAvailableError(TicTacAIError):
    def __init__(self) -> None:
        super().__init__("No valid moves available")
