"""Decides which configured provider (if any) may serve the next move."""

from __future__ import annotations

import logging
from typing import Mapping, Optional

from .config import ConfigLoader
from .errors import TicTacAIError, UnknownProviderError

log = logging.getLogger("tictacai.resolver")


class ProviderResolver:
    """Credential lookup and default/fallback provider selection.

    ``credentials`` maps environment variable names to values and stands in
    for whatever environment the process was started with.
    """

    def __init__(self, loader: ConfigLoader, credentials: Optional[Mapping[str, str]] = None) -> None:
        self.loader = loader
        self.credentials: Mapping[str, str] = credentials or {}

    def get_api_key(self, provider_id: str) -> Optional[str]:
        config = self.loader.get_config()
        provider = config.providers.get(provider_id)
        if provider is None:
            raise UnknownProviderError(provider_id)

        if provider.api_key:
            return provider.api_key

        if not provider.api_key_env_var:
            return None
        value = self.credentials.get(provider.api_key_env_var)
        return value if isinstance(value, str) and value else None

    def is_provider_available(self, provider_id: str) -> bool:
        try:
            provider = self.loader.get_config().providers.get(provider_id)
            return bool(provider and provider.enabled and self.get_api_key(provider_id))
        except TicTacAIError:
            return False

    def get_available_provider(self) -> Optional[str]:
        config = self.loader.get_config()

        if self.is_provider_available(config.default_provider):
            return config.default_provider

        for provider_id in config.fallback_providers:
            if self.is_provider_available(provider_id):
                log.info(
                    "Default provider %s unavailable, falling back to %s",
                    config.default_provider,
                    provider_id,
                )
                return provider_id

        return None
