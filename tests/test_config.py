"""Tests for AI config validation and the caching loader."""

from __future__ import annotations

import asyncio

import httpx
import pytest

from tictacai.config import ConfigLoader, validate_config
from tictacai.errors import ConfigFetchError, ConfigValidationError, NotLoadedError

CONFIG_URL = "https://game.test/ai-config.json"


def _counting_client(responses):
    """Client answering each request with the next queued response."""

    calls = []
    queue = list(responses)

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return queue.pop(0) if len(queue) > 1 else queue[0]

    return httpx.AsyncClient(transport=httpx.MockTransport(handler)), calls


def test_validate_builds_typed_config(config_dict):
    config = validate_config(config_dict)
    chatgpt = config.providers["chatgpt"]
    assert chatgpt.api_endpoint.endswith("/chat/completions")
    assert chatgpt.timeout_s == 5.0
    assert config.fallback_providers == ("gemini", "claude")
    assert config.difficulties.get("hard").temperature == 0.0
    assert config.default_difficulty == "medium"
    assert config.error_message("timeout") == "AI timed out."


def test_missing_hard_difficulty_rejected(config_dict):
    del config_dict["difficulties"]["hard"]
    with pytest.raises(ConfigValidationError) as excinfo:
        validate_config(config_dict)
    assert excinfo.value.field == "difficulties.hard"


@pytest.mark.parametrize(
    "mutate, field",
    [
        (lambda d: d.pop("providers"), "providers"),
        (lambda d: d.__setitem__("providers", None), "providers"),
        (lambda d: d.__setitem__("defaultProvider", 3), "defaultProvider"),
        (lambda d: d.__setitem__("defaultProvider", "missing"), "defaultProvider"),
        (lambda d: d.__setitem__("fallbackProviders", "gemini"), "fallbackProviders"),
        (lambda d: d.pop("difficulties"), "difficulties"),
        (lambda d: d["difficulties"].__setitem__("easy", "fast"), "difficulties.easy"),
        (lambda d: d.pop("moveDelay"), "moveDelay"),
        (lambda d: d.__setitem__("errorMessages", []), "errorMessages"),
    ],
)
def test_each_structural_check_names_its_field(config_dict, mutate, field):
    mutate(config_dict)
    with pytest.raises(ConfigValidationError) as excinfo:
        validate_config(config_dict)
    assert excinfo.value.field == field


def test_field_level_errors_report_location(config_dict):
    config_dict["providers"]["chatgpt"]["timeout"] = "soon"
    with pytest.raises(ConfigValidationError) as excinfo:
        validate_config(config_dict)
    assert excinfo.value.field == "providers.chatgpt.timeout"


def test_disabled_provider_may_omit_endpoint(config_dict):
    del config_dict["providers"]["gemini"]["apiEndpoint"]
    config = validate_config(config_dict)
    assert config.providers["gemini"].api_endpoint is None


def test_difficulty_profile_fields_are_optional(config_dict):
    del config_dict["difficulties"]["easy"]["name"]
    config_dict["difficulties"]["medium"] = {}
    config = validate_config(config_dict)
    assert config.difficulties.get("easy").name == ""
    medium = config.difficulties.get("medium")
    assert medium.system_prompt == ""
    assert medium.temperature is None
    assert medium.max_tokens is None


def test_values_outside_usual_ranges_are_accepted(config_dict):
    config_dict["difficulties"]["hard"]["temperature"] = 3.5
    config_dict["moveDelay"] = {}
    config_dict["defaultDifficulty"] = "nightmare"
    config_dict["providers"]["chatgpt"]["timeout"] = 0
    config = validate_config(config_dict)
    assert config.difficulties.get("hard").temperature == 3.5
    assert (config.move_delay.min, config.move_delay.max) == (0, 0)
    assert config.providers["chatgpt"].timeout_s is None


def test_non_object_document_rejected():
    with pytest.raises(ConfigValidationError):
        validate_config(["not", "an", "object"])


def test_empty_fallback_list_is_allowed(config_dict):
    config_dict["fallbackProviders"] = []
    assert validate_config(config_dict).fallback_providers == ()


@pytest.mark.asyncio
async def test_two_loads_fetch_once(config_dict):
    client, calls = _counting_client([httpx.Response(200, json=config_dict)])
    async with client:
        loader = ConfigLoader(CONFIG_URL, client)
        first = await loader.load_config()
        second = await loader.load_config()
    assert first is second
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_concurrent_first_loads_share_one_fetch(config_dict):
    client, calls = _counting_client([httpx.Response(200, json=config_dict)])
    async with client:
        loader = ConfigLoader(CONFIG_URL, client)
        results = await asyncio.gather(*(loader.load_config() for _ in range(5)))
    assert len(calls) == 1
    assert all(result is results[0] for result in results)


@pytest.mark.asyncio
async def test_http_error_status_is_fetch_error():
    client, _ = _counting_client([httpx.Response(404)])
    async with client:
        loader = ConfigLoader(CONFIG_URL, client)
        with pytest.raises(ConfigFetchError):
            await loader.load_config()
    assert not loader.is_loaded


@pytest.mark.asyncio
async def test_transport_failure_is_fetch_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        loader = ConfigLoader(CONFIG_URL, client)
        with pytest.raises(ConfigFetchError):
            await loader.load_config()


@pytest.mark.asyncio
async def test_unparseable_body_is_fetch_error():
    client, _ = _counting_client([httpx.Response(200, text="{not json")])
    async with client:
        loader = ConfigLoader(CONFIG_URL, client)
        with pytest.raises(ConfigFetchError):
            await loader.load_config()


@pytest.mark.asyncio
async def test_failed_validation_is_not_cached(config_dict):
    broken = dict(config_dict)
    broken.pop("moveDelay")
    client, calls = _counting_client(
        [httpx.Response(200, json=broken), httpx.Response(200, json=config_dict)]
    )
    async with client:
        loader = ConfigLoader(CONFIG_URL, client)
        with pytest.raises(ConfigValidationError):
            await loader.load_config()
        with pytest.raises(NotLoadedError):
            loader.get_config()
        config = await loader.load_config()
    assert len(calls) == 2
    assert loader.get_config() is config


@pytest.mark.asyncio
async def test_loads_from_file(config_dict, write_config):
    loader = ConfigLoader(write_config(config_dict))
    config = await loader.load_config()
    assert config.default_provider == "chatgpt"


@pytest.mark.asyncio
async def test_missing_file_is_fetch_error(tmp_path):
    loader = ConfigLoader(str(tmp_path / "absent.json"))
    with pytest.raises(ConfigFetchError):
        await loader.load_config()


def test_get_config_before_load_raises():
    with pytest.raises(NotLoadedError):
        ConfigLoader(CONFIG_URL).get_config()
