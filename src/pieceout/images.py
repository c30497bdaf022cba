"""
App-private storage for puzzle photos.

Picked or captured images are copied into one directory under a generated
name; puzzles keep only the resulting path.
"""

from __future__ import annotations

import logging
import random
import shutil
import time
from pathlib import Path
from typing import Callable

from .errors import ImageStorageError, PermissionDenied

logger = logging.getLogger(__name__)


def _epoch_millis() -> int:
    return int(time.time() * 1000)


class ImageStore:
    def __init__(
        self,
        directory: str | Path,
        millis: Callable[[], int] = _epoch_millis,
        rng: random.Random | None = None,
    ):
        self.directory = Path(directory)
        self._millis = millis
        self._rng = rng or random.Random()

    def unique_name(self) -> str:
        return f"puzzle_image_{self._millis()}_{self._rng.randint(0, 999)}.jpg"

    def save(self, source: str | Path) -> str:
        """Copy ``source`` into app storage and return the stored path."""
        target = self.directory / self.unique_name()
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(source, target)
        except PermissionError as exc:
            logger.error("Access to %s refused: %s", source, exc)
            raise PermissionDenied(f"Cannot read image {source}") from exc
        except OSError as exc:
            logger.error("Error saving image to app storage: %s", exc)
            raise ImageStorageError(f"Failed to save image {source}") from exc
        logger.debug("Stored image %s as %s", source, target)
        return str(target)

    def owns(self, uri: str | Path) -> bool:
        """True if ``uri`` points into this store's directory."""
        return Path(uri).resolve().is_relative_to(self.directory.resolve())

    def discard(self, uri: str | None) -> bool:
        """Delete a stored image. Best effort: failures only leak a file."""
        if not uri:
            return False
        if not self.owns(uri):
            logger.warning("Refusing to delete %s outside %s", uri, self.directory)
            return False
        try:
            Path(uri).unlink()
        except OSError:
            return False
        return True

