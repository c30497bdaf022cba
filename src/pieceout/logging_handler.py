import logging
from typing import Optional

FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(
    level: int | str = logging.INFO,
    name: str = "pieceout",
    handler_level: Optional[int] = None,
) -> logging.Logger:
    """Configure and return the package logger (safe to call repeatedly)."""
    logger = logging.getLogger(name)
    logger.setLevel(level)

    if not logger.handlers:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(handler_level or level)
        console_handler.setFormatter(logging.Formatter(FORMAT))
        logger.addHandler(console_handler)

    return logger
