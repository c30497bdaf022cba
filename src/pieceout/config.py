"""
Settings read from the environment (a ``.env`` file is honoured).
"""

from __future__ import annotations

import os
from typing import Mapping

from dotenv import load_dotenv
from pydantic import BaseModel

PREFIX = "PIECEOUT_"


class Settings(BaseModel):
    db_path: str = "pieceout.db"
    image_dir: str = "puzzle_images"
    timer_state_path: str = "timer_state.json"
    lookup_url: str | None = None  # unset ➜ built-in sample catalog
    lookup_timeout: float = 10.0
    reset_on_start: bool = False  # developer affordance: wipes the database file
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8000

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None, dotenv: bool = True) -> "Settings":
        if dotenv and environ is None:
            load_dotenv()
        environ = os.environ if environ is None else environ
        values = {
            name: environ[PREFIX + name.upper()]
            for name in cls.model_fields
            if environ.get(PREFIX + name.upper()) not in (None, "")
        }
        return cls.model_validate(values)
