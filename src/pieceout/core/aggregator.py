"""
Best-time bookkeeping for puzzles.

``recompute`` keeps ``Puzzle.best_time_*`` equal to the fastest of the
puzzle's time records. It always runs inside the caller's write scope, so
the stored best time and the record list cannot disagree after a commit.
``best_ppm`` is computed on demand and never stored.
"""

from __future__ import annotations

import datetime as dt
import logging
from typing import TYPE_CHECKING

from ..errors import RecordNotFound, ValidationError
from .records import Puzzle, TimeRecord
from .timing import compute_ppm, format_ppm, split_seconds

if TYPE_CHECKING:
    from ..persistence.store import RecordStore, Transaction, _Reads

logger = logging.getLogger(__name__)


class TimeAggregator:
    def __init__(self, store: RecordStore):
        self.store = store

    def bind(self) -> "TimeAggregator":
        """Recompute whenever a time record is created or deleted."""
        self.store.events.create(TimeRecord)(self._on_time_created)
        self.store.events.delete(TimeRecord)(self._on_time_deleted)
        return self

    # ---- event handlers ------------------------------------------------
    def _on_time_created(self, tx: Transaction, record: TimeRecord) -> None:
        puzzle = tx.get(Puzzle, record.puzzle_id)
        if puzzle is not None:
            tx.update(Puzzle, puzzle.id, last_completed_at=record.date)
        self.recompute(tx, record.puzzle_id)

    def _on_time_deleted(self, tx: Transaction, record: TimeRecord) -> None:
        self.recompute(tx, record.puzzle_id)

    # ---- operations ----------------------------------------------------
    def recompute(self, tx: Transaction, puzzle_id: int) -> Puzzle | None:
        """Write the fastest recorded time onto the puzzle; 0/0/0 when none."""
        puzzle = tx.get(Puzzle, puzzle_id)
        if puzzle is None:
            logger.info("Puzzle %s not found for updating best time", puzzle_id)
            return None

        fastest: int | None = None
        for record in tx.query(TimeRecord, puzzle_id=puzzle_id):
            if fastest is None or record.time_in_seconds < fastest:
                fastest = record.time_in_seconds

        hours, minutes, seconds = split_seconds(fastest or 0)
        return tx.update(
            Puzzle,
            puzzle_id,
            best_time_hours=hours,
            best_time_minutes=minutes,
            best_time_seconds=seconds,
        )

    def best_ppm(self, puzzle_id: int, reader: _Reads | None = None) -> str:
        """Highest pieces-per-minute across the puzzle's records, e.g. ``"33.33"``."""
        records = (reader or self.store).query(TimeRecord, puzzle_id=puzzle_id)
        return format_ppm(max((r.ppm for r in records), default=0.0))

    def record_time(
        self,
        tx: Transaction,
        puzzle_id: int,
        time_in_seconds: int,
        when: dt.datetime | None = None,
    ) -> TimeRecord:
        """Log a completion; PPM is fixed from the puzzle's current piece count."""
        if time_in_seconds <= 0:
            raise ValidationError("Please enter a valid time")
        puzzle = tx.get(Puzzle, puzzle_id)
        if puzzle is None:
            raise RecordNotFound(Puzzle.kind, puzzle_id)
        return tx.create(
            TimeRecord,
            puzzle_id=puzzle_id,
            date=when or self.store.clock(),
            time_in_seconds=time_in_seconds,
            ppm=compute_ppm(time_in_seconds, puzzle.pieces or 0),
        )

    def remove_time(self, tx: Transaction, record_id: int) -> TimeRecord:
        record = tx.require(TimeRecord, record_id)
        tx.delete(record)
        return record
