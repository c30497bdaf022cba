#!/usr/bin/env python3
"""Run the PieceOut HTTP server (settings from the environment / .env)."""

from __future__ import annotations

import logging

import uvicorn

from pieceout.config import Settings
from pieceout.logging_handler import setup_logging
from pieceout.runtime import PieceOut

logger = logging.getLogger("pieceout.main")


def main() -> None:
    settings = Settings.from_env()
    setup_logging(settings.log_level)
    logger.info("Serving PieceOut from %s on %s:%s", settings.db_path, settings.host, settings.port)

    app = PieceOut.create_app(settings)
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
