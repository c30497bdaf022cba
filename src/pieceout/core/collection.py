"""
Collection view: filter and sort the full puzzle set for display.
"""

from __future__ import annotations

import datetime as dt
import locale
from enum import Enum
from typing import Any, Callable, Iterable, List

from pydantic import BaseModel, field_validator

from .records import Puzzle

ALL = "all"
_EARLIEST = dt.datetime.min.replace(tzinfo=dt.timezone.utc)


class SortKey(str, Enum):
    PIECES_ASC = "pieces-asc"
    PIECES_DESC = "pieces-desc"
    NAME_ASC = "name-asc"
    NAME_DESC = "name-desc"
    DATE_ADDED_DESC = "date-added-desc"
    DATE_ADDED_ASC = "date-added-asc"
    LAST_COMPLETED_DESC = "last-completed-desc"
    LAST_COMPLETED_ASC = "last-completed-asc"


class CollectionQuery(BaseModel):
    """Current filter and sort selections of the collection screen."""

    text: str = ""
    pieces: int | str | None = None  # exact count, or None / "all"
    brand: str | None = None  # exact brand, or None / "all"
    sort: SortKey = SortKey.DATE_ADDED_DESC

    @field_validator("pieces", mode="before")
    @classmethod
    def _pieces_number_or_all(cls, value: Any) -> Any:
        if isinstance(value, str) and value != ALL:
            return int(value)  # ValueError surfaces as a validation error
        return value


# ---- predicates -----------------------------------------------------------
def matches_text(puzzle: Puzzle, text: str) -> bool:
    if not text:
        return True
    needle = text.lower()
    return any(needle in (field or "").lower() for field in (puzzle.name, puzzle.brand, puzzle.notes))


def _unset(value: object) -> bool:
    return value is None or value == ALL


def matches_pieces(puzzle: Puzzle, pieces: int | str | None) -> bool:
    if _unset(pieces):
        return True
    return (puzzle.pieces or 0) == int(pieces)


def matches_brand(puzzle: Puzzle, brand: str | None) -> bool:
    if _unset(brand):
        return True
    return puzzle.brand == brand


# ---- sort keys ----------------------------------------------------------------
def name_key(name: str) -> tuple[str, str]:
    """Locale-aware, case-insensitive collation key; exact text breaks ties."""
    return locale.strxfrm(name.casefold()), name


def _date(value: dt.datetime | None) -> dt.datetime:
    return value or _EARLIEST


def sort_puzzles(puzzles: Iterable[Puzzle], key: SortKey) -> List[Puzzle]:
    """Stable sort by ``key``; piece sorts break ties by name."""
    items = list(puzzles)
    by_name: Callable[[Puzzle], tuple[str, str]] = lambda p: name_key(p.name)

    if key in (SortKey.PIECES_ASC, SortKey.PIECES_DESC):
        items.sort(key=by_name)
        items.sort(key=lambda p: p.pieces or 0, reverse=key is SortKey.PIECES_DESC)
    elif key in (SortKey.NAME_ASC, SortKey.NAME_DESC):
        items.sort(key=by_name, reverse=key is SortKey.NAME_DESC)
    elif key in (SortKey.DATE_ADDED_ASC, SortKey.DATE_ADDED_DESC):
        items.sort(key=lambda p: _date(p.created_at), reverse=key is SortKey.DATE_ADDED_DESC)
    else:
        items.sort(
            key=lambda p: _date(p.last_completed_at),
            reverse=key is SortKey.LAST_COMPLETED_DESC,
        )
    return items


def derive(puzzles: Iterable[Puzzle], query: CollectionQuery) -> List[Puzzle]:
    """Apply text, piece and brand filters, then sort."""
    kept = [
        p
        for p in puzzles
        if matches_text(p, query.text)
        and matches_pieces(p, query.pieces)
        and matches_brand(p, query.brand)
    ]
    return sort_puzzles(kept, query.sort)


def filter_options(puzzles: Iterable[Puzzle]) -> dict[str, list]:
    """Distinct brands and piece counts for the filter pickers."""
    items = list(puzzles)
    brands = sorted({p.brand for p in items if p.brand}, key=name_key)
    pieces = sorted({p.pieces or 0 for p in items})
    return {"brands": brands, "pieces": pieces}
