"""Shared fixtures: a complete AI config document and helpers to persist it."""

from __future__ import annotations

import copy
import json
from pathlib import Path
from typing import Callable, Dict

import pytest

CHAT_URL = "https://llm.test/v1/chat/completions"

BASE_CONFIG: Dict[str, object] = {
    "providers": {
        "chatgpt": {
            "name": "ChatGPT",
            "enabled": True,
            "apiEndpoint": CHAT_URL,
            "model": "gpt-test",
            "apiKey": "sk-inline",
            "apiKeyEnvVar": "OPENAI_API_KEY",
            "timeout": 5000,
            "retryAttempts": 0,
            "retryDelay": 0,
        },
        "gemini": {
            "name": "Gemini",
            "enabled": False,
            "apiEndpoint": "https://gemini.test/generate",
            "apiKeyEnvVar": "GEMINI_API_KEY",
            "timeout": 5000,
            "retryAttempts": 0,
            "retryDelay": 0,
        },
        "claude": {
            "name": "Claude",
            "enabled": False,
            "apiEndpoint": "https://claude.test/messages",
            "apiKeyEnvVar": "ANTHROPIC_API_KEY",
            "timeout": 5000,
            "retryAttempts": 0,
            "retryDelay": 0,
        },
    },
    "defaultProvider": "chatgpt",
    "fallbackProviders": ["gemini", "claude"],
    "difficulties": {
        level: {
            "name": level.title(),
            "description": f"{level} play",
            "systemPrompt": f"You play tic-tac-toe at {level} strength. Reply as row,col.",
            "temperature": temperature,
            "maxTokens": 16,
        }
        for level, temperature in (("easy", 1.0), ("medium", 0.5), ("hard", 0.0))
    },
    "defaultDifficulty": "medium",
    "moveDelay": {"min": 0, "max": 0},
    "errorMessages": {
        "apiKeyMissing": "No API key configured.",
        "networkError": "Network problem.",
        "invalidResponse": "Unusable AI reply.",
        "timeout": "AI timed out.",
        "rateLimited": "AI is rate limited.",
    },
}


@pytest.fixture
def config_dict() -> Dict[str, object]:
    return copy.deepcopy(BASE_CONFIG)


@pytest.fixture
def write_config(tmp_path: Path) -> Callable[[Dict[str, object]], str]:
    def write(document: Dict[str, object]) -> str:
        path = tmp_path / "ai-config.json"
        path.write_text(json.dumps(document), encoding="utf-8")
        return str(path)

    return write
