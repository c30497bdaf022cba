"""
User actions on the puzzle collection.

Every action validates first and then applies all of its writes in a single
store transaction; the time aggregator runs inside that same transaction
through the store's events.
"""

from __future__ import annotations

import datetime as dt
import logging
from typing import TYPE_CHECKING, Any, List

from pydantic import BaseModel

from ..errors import ImageStorageError, ValidationError
from .aggregator import TimeAggregator
from .collection import CollectionQuery, derive, filter_options
from .records import Puzzle, PuzzleDraft, PuzzleEdit, TimeRecord
from .timing import join_hms

if TYPE_CHECKING:
    from ..images import ImageStore
    from ..lookup import ProductLookup
    from ..persistence.store import RecordStore

logger = logging.getLogger(__name__)


class PuzzleDetail(BaseModel):
    puzzle: Puzzle
    best_time: str
    best_ppm: str
    times: List[TimeRecord]


def _clean_text(value: str | None) -> str:
    return value.strip() if value else ""


def _clean_pieces(value: Any) -> int:
    if value is None or value == "":
        return 0
    try:
        pieces = int(value)
    except (TypeError, ValueError):
        raise ValidationError("Pieces must be a whole number") from None
    if pieces < 0:
        raise ValidationError("Pieces cannot be negative")
    return pieces


def _clean_name(value: str | None) -> str:
    name = _clean_text(value)
    if not name:
        raise ValidationError("Please enter a name for the puzzle")
    return name


def _time_part(value: Any, label: str) -> int:
    if value is None or value == "":
        return 0
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{label} must be a whole number") from None
    if number < 0:
        raise ValidationError(f"{label} cannot be negative")
    return number


class Catalog:
    def __init__(
        self,
        store: RecordStore,
        images: ImageStore | None = None,
        aggregator: TimeAggregator | None = None,
    ):
        self.store = store
        self.images = images
        self.aggregator = aggregator or TimeAggregator(store).bind()

    # ---- images ----------------------------------------------------------
    def _store_image(self, source: str | None) -> str | None:
        """Copy a picked image into app storage; ``None`` if the copy failed."""
        if not source or self.images is None:
            return None
        try:
            return self.images.save(source)
        except ImageStorageError:
            logger.warning("Image not attached; saving without it")
            return None

    def _discard_image(self, uri: str | None) -> None:
        if uri and self.images is not None:
            self.images.discard(uri)

    # ---- puzzles ---------------------------------------------------------
    def add_puzzle(self, draft: PuzzleDraft, image_source: str | None = None) -> Puzzle:
        name = _clean_name(draft.name)
        pieces = _clean_pieces(draft.pieces)
        image_uri = self._store_image(image_source)
        try:
            with self.store.transaction() as tx:
                puzzle = tx.create(
                    Puzzle,
                    name=name,
                    brand=_clean_text(draft.brand),
                    pieces=pieces,
                    notes=_clean_text(draft.notes),
                    image_uri=image_uri,
                    created_at=self.store.clock(),
                    best_time_hours=0,
                    best_time_minutes=0,
                    best_time_seconds=0,
                )
        except Exception:
            self._discard_image(image_uri)
            raise
        logger.info("Added puzzle %s %r", puzzle.id, puzzle.name)
        return puzzle

    def edit_puzzle(self, puzzle_id: int, edit: PuzzleEdit, image_source: str | None = None) -> Puzzle:
        current = self.store.require(Puzzle, puzzle_id)
        changes: dict[str, Any] = {}
        for field, value in edit.changes().items():
            if field == "name":
                changes["name"] = _clean_name(value)
            elif field == "pieces":
                changes["pieces"] = _clean_pieces(value)
            elif field in ("brand", "notes"):
                changes[field] = _clean_text(value)
            elif field == "image_uri":
                changes["image_uri"] = None  # only clearing is allowed

        new_image = self._store_image(image_source)
        if new_image is not None:
            changes["image_uri"] = new_image

        try:
            with self.store.transaction() as tx:
                puzzle = tx.update(Puzzle, puzzle_id, **changes) if changes else tx.require(Puzzle, puzzle_id)
        except Exception:
            self._discard_image(new_image)
            raise
        if current.image_uri != puzzle.image_uri:
            self._discard_image(current.image_uri)
        logger.info("Updated puzzle %s", puzzle_id)
        return puzzle

    def delete_puzzle(self, puzzle_id: int) -> None:
        """Delete the puzzle and all of its time records together."""
        with self.store.transaction() as tx:
            puzzle = tx.require(Puzzle, puzzle_id)
            for record in tx.query(TimeRecord, puzzle_id=puzzle_id):
                tx.delete(record)
            tx.delete(puzzle)
        self._discard_image(puzzle.image_uri)
        logger.info("Deleted puzzle %s", puzzle_id)

    def puzzles(self) -> List[Puzzle]:
        return self.store.query(Puzzle)

    def collection(self, query: CollectionQuery | None = None) -> List[Puzzle]:
        return derive(self.puzzles(), query or CollectionQuery())

    def filter_options(self) -> dict[str, list]:
        return filter_options(self.puzzles())

    def detail(self, puzzle_id: int) -> PuzzleDetail:
        puzzle = self.store.require(Puzzle, puzzle_id)
        return PuzzleDetail(
            puzzle=puzzle,
            best_time=puzzle.best_time,
            best_ppm=self.aggregator.best_ppm(puzzle_id),
            times=self.times(puzzle_id),
        )

    # ---- times -----------------------------------------------------------
    def times(self, puzzle_id: int) -> List[TimeRecord]:
        """Time records of a puzzle, newest first."""
        return sorted(self.store.query(TimeRecord, puzzle_id=puzzle_id), key=lambda r: r.date, reverse=True)

    def log_time(self, puzzle_id: int, time_in_seconds: int, when: dt.datetime | None = None) -> TimeRecord:
        with self.store.transaction() as tx:
            record = self.aggregator.record_time(tx, puzzle_id, time_in_seconds, when)
        logger.info("Recorded %ss for puzzle %s", time_in_seconds, puzzle_id)
        return record

    def log_manual_time(self, puzzle_id: int, hours: Any = 0, minutes: Any = 0, seconds: Any = 0) -> TimeRecord:
        total = join_hms(
            _time_part(hours, "Hours"),
            _time_part(minutes, "Minutes"),
            _time_part(seconds, "Seconds"),
        )
        if total == 0:
            raise ValidationError("Please enter a valid time")
        return self.log_time(puzzle_id, total)

    def delete_time(self, record_id: int) -> TimeRecord:
        with self.store.transaction() as tx:
            record = self.aggregator.remove_time(tx, record_id)
        logger.info("Deleted time record %s of puzzle %s", record_id, record.puzzle_id)
        return record

    def best_ppm(self, puzzle_id: int) -> str:
        return self.aggregator.best_ppm(puzzle_id)

    # ---- lookup-assisted entry -------------------------------------------
    def draft_from_barcode(self, lookup: ProductLookup, barcode: str) -> PuzzleDraft:
        """Pre-fill the manual-entry form; unknown barcodes give a bare draft."""
        candidate = lookup.by_barcode(barcode)
        if candidate is None:
            logger.info("No product found for barcode %s", barcode)
            return PuzzleDraft(barcode=barcode)
        return candidate.to_draft()

    def draft_from_search(self, lookup: ProductLookup, text: str) -> PuzzleDraft | None:
        candidate = lookup.search(text)
        return candidate.to_draft() if candidate is not None else None
