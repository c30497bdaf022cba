"""
Completion stopwatch that survives backgrounding and relaunch.

The running clock is derived from wall-clock timestamps rather than ticks:
on suspend the elapsed seconds and a timestamp are captured, on resume the
whole seconds that passed meanwhile are added. The same snapshot is written
to a single JSON document so a relaunch can pick the run up again, but only
for the puzzle it belongs to.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Callable

from pydantic import BaseModel, Field, ValidationError as SchemaError

from .errors import ValidationError

logger = logging.getLogger(__name__)


class TimerState(BaseModel):
    elapsed_seconds: int = Field(default=0, alias="elapsedSeconds")
    puzzle_id: int = Field(alias="puzzleId")
    is_running: bool = Field(default=False, alias="isRunning")
    wall_clock: float = Field(alias="wallClockTimestamp")  # epoch seconds of the snapshot

    model_config = {"populate_by_name": True}


class TimerStateStore:
    """One overwrite-in-place JSON document."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def save(self, state: TimerState) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(state.model_dump_json(by_alias=True))
        except OSError:
            logger.exception("Error saving timer state")

    def load(self) -> TimerState | None:
        try:
            raw = self.path.read_text()
        except FileNotFoundError:
            return None
        except OSError:
            logger.exception("Error loading saved timer")
            return None
        try:
            return TimerState.model_validate_json(raw)
        except SchemaError:
            logger.warning("Discarding unreadable timer state at %s", self.path)
            return None

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)


class Stopwatch:
    def __init__(
        self,
        puzzle_id: int,
        state_store: TimerStateStore | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.puzzle_id = puzzle_id
        self.state_store = state_store
        self.clock = clock
        self.is_running = False
        self._elapsed = 0
        self._since: float | None = None  # wall clock of the last capture while running

    # ---- reading -------------------------------------------------------------
    @property
    def elapsed(self) -> int:
        """Whole seconds on the clock right now."""
        if self.is_running and self._since is not None:
            return self._elapsed + int(self.clock() - self._since)
        return self._elapsed

    def snapshot(self) -> TimerState:
        return TimerState(
            elapsed_seconds=self.elapsed,
            puzzle_id=self.puzzle_id,
            is_running=self.is_running,
            wall_clock=self.clock(),
        )

    def _persist(self) -> None:
        if self.state_store is not None:
            self.state_store.save(self.snapshot())

    # ---- transitions -----------------------------------------------------------
    def start(self) -> None:
        if self.is_running:
            return
        self._since = self.clock()
        self.is_running = True
        self._persist()

    def pause(self) -> None:
        if not self.is_running:
            return
        self._elapsed = self.elapsed
        self._since = None
        self.is_running = False
        self._persist()

    def toggle(self) -> None:
        if self.is_running:
            self.pause()
        else:
            self.start()

    def suspend(self) -> TimerState:
        """App going to the background: capture (elapsed, wall clock)."""
        state = self.snapshot()
        if self.is_running:
            self._elapsed = state.elapsed_seconds
            self._since = state.wall_clock
        self._persist()
        return state

    def resume(self) -> int:
        """App back in the foreground: fold the wall-clock delta in if running."""
        if self.is_running and self._since is not None:
            now = self.clock()
            self._elapsed += int(now - self._since)
            self._since = now
        self._persist()
        return self._elapsed

    def reset(self) -> None:
        self.is_running = False
        self._elapsed = 0
        self._since = None
        if self.state_store is not None:
            self.state_store.clear()

    def take(self) -> int:
        """Stop and hand out the run for submission; the stopwatch resets."""
        seconds = self.elapsed
        if seconds <= 0:
            raise ValidationError("Timer must be running to submit a time")
        self.reset()
        return seconds

    # ---- relaunch ----------------------------------------------------------------
    @classmethod
    def restore(
        cls,
        puzzle_id: int,
        state_store: TimerStateStore,
        clock: Callable[[], float] = time.time,
    ) -> "Stopwatch":
        """Rebuild from saved state; state for another puzzle is discarded."""
        watch = cls(puzzle_id, state_store, clock)
        state = state_store.load()
        if state is None:
            return watch
        if state.puzzle_id != puzzle_id:
            logger.info("Discarding timer state of puzzle %s", state.puzzle_id)
            state_store.clear()
            return watch
        watch._elapsed = state.elapsed_seconds
        if state.is_running:
            now = clock()
            watch._elapsed += max(0, int(now - state.wall_clock))
            watch._since = now
            watch.is_running = True
        return watch
