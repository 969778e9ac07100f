"""Process settings read from the environment (and ``.env`` when present)."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict

from dotenv import load_dotenv

DEFAULT_AI_CONFIG = str(Path(__file__).with_name("ai-config.json"))


def _get_env(name: str, default: str) -> str:
    value = os.environ.get(name)
    if value is None or value.strip() == "":
        return default
    return value.strip()


def _get_env_int(name: str, default: int) -> int:
    try:
        return int(_get_env(name, str(default)))
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    host: str
    port: int
    # http(s) URL or filesystem path of the AI provider document
    ai_config: str
    log_level: str


def load_settings() -> Settings:
    load_dotenv()
    return Settings(
        host=_get_env("TICTACAI_HOST", "0.0.0.0"),
        port=_get_env_int("TICTACAI_PORT", 8000),
        ai_config=_get_env("TICTACAI_AI_CONFIG", DEFAULT_AI_CONFIG),
        log_level=_get_env("TICTACAI_LOG_LEVEL", "INFO").upper(),
    )


def credential_environment() -> Dict[str, str]:
    """Snapshot of the environment used to resolve provider API keys."""

    load_dotenv()
    return dict(os.environ)
