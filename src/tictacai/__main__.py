"""Entry point for running TicTacAI via ``python -m tictacai``."""

from __future__ import annotations

import logging

import uvicorn

from .settings import load_settings


def main() -> None:
    """Start the FastAPI-powered TicTacAI web server."""

    settings = load_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run("tictacai.ui:app", host=settings.host, port=settings.port, reload=False)


if __name__ == "__main__":
    main()
