"""Tests for credential resolution and provider selection."""

from __future__ import annotations

import pytest

from tictacai.config import ConfigLoader
from tictacai.errors import UnknownProviderError
from tictacai.resolver import ProviderResolver


async def _resolver(document, write_config, credentials=None):
    loader = ConfigLoader(write_config(document))
    await loader.load_config()
    return ProviderResolver(loader, credentials)


@pytest.mark.asyncio
async def test_inline_key_wins_over_environment(config_dict, write_config):
    resolver = await _resolver(config_dict, write_config, {"OPENAI_API_KEY": "sk-env"})
    assert resolver.get_api_key("chatgpt") == "sk-inline"


@pytest.mark.asyncio
async def test_environment_key_used_without_inline_key(config_dict, write_config):
    del config_dict["providers"]["chatgpt"]["apiKey"]
    resolver = await _resolver(config_dict, write_config, {"OPENAI_API_KEY": "sk-env"})
    assert resolver.get_api_key("chatgpt") == "sk-env"


@pytest.mark.asyncio
async def test_missing_or_non_string_credential_is_none(config_dict, write_config):
    del config_dict["providers"]["chatgpt"]["apiKey"]
    resolver = await _resolver(config_dict, write_config, {"OPENAI_API_KEY": 42})
    assert resolver.get_api_key("chatgpt") is None
    assert not resolver.is_provider_available("chatgpt")


@pytest.mark.asyncio
async def test_unknown_provider(config_dict, write_config):
    resolver = await _resolver(config_dict, write_config)
    with pytest.raises(UnknownProviderError):
        resolver.get_api_key("mistral")
    assert resolver.is_provider_available("mistral") is False


@pytest.mark.asyncio
async def test_disabled_provider_with_key_is_unavailable(config_dict, write_config):
    config_dict["providers"]["chatgpt"]["enabled"] = False
    resolver = await _resolver(config_dict, write_config)
    assert not resolver.is_provider_available("chatgpt")


@pytest.mark.asyncio
async def test_default_provider_preferred(config_dict, write_config):
    resolver = await _resolver(config_dict, write_config)
    assert resolver.get_available_provider() == "chatgpt"


@pytest.mark.asyncio
async def test_first_usable_fallback_selected(config_dict, write_config):
    providers = config_dict["providers"]
    providers["chatgpt"].update(enabled=False)
    del providers["chatgpt"]["apiKey"]
    # a: enabled but no credential; b: enabled with a credential
    providers["a"] = dict(providers["gemini"], enabled=True, apiKeyEnvVar="A_KEY")
    providers["b"] = dict(providers["claude"], enabled=True, apiKeyEnvVar="B_KEY")
    config_dict["fallbackProviders"] = ["a", "b"]

    resolver = await _resolver(config_dict, write_config, {"B_KEY": "sk-b"})
    assert resolver.get_available_provider() == "b"


@pytest.mark.asyncio
async def test_unknown_fallback_entries_are_skipped(config_dict, write_config):
    config_dict["providers"]["chatgpt"]["enabled"] = False
    config_dict["providers"]["claude"]["enabled"] = True
    config_dict["fallbackProviders"] = ["ghost", "claude", "claude"]
    resolver = await _resolver(config_dict, write_config, {"ANTHROPIC_API_KEY": "sk-ant"})
    assert resolver.get_available_provider() == "claude"


@pytest.mark.asyncio
async def test_no_usable_provider_returns_none(config_dict, write_config):
    config_dict["providers"]["chatgpt"]["enabled"] = False
    resolver = await _resolver(config_dict, write_config, {})
    assert resolver.get_available_provider() is None
