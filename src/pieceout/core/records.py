"""
Record snapshots – *pure Pydantic* (no SQLAlchemy imports).

* Records handed out by the store are frozen; change one through
  ``Transaction.update`` and read the returned snapshot.
* ``PuzzleDraft`` / ``PuzzleEdit`` carry user input before validation.
"""

from __future__ import annotations

import datetime as dt
from typing import Any, ClassVar

from pydantic import BaseModel, Field, field_validator

from .timing import format_duration, join_hms


class Record(BaseModel):
    """Base class – an immutable snapshot of one stored row."""

    kind: ClassVar[str] = "Record"

    id: int
    model_config = {"frozen": True, "from_attributes": True}


class Puzzle(Record):
    kind: ClassVar[str] = "Puzzle"

    name: str
    brand: str | None = None
    pieces: int | None = 0
    notes: str | None = None
    image_uri: str | None = None
    created_at: dt.datetime | None = None
    last_completed_at: dt.datetime | None = None
    best_time_hours: int = 0
    best_time_minutes: int = 0
    best_time_seconds: int = 0

    @field_validator("best_time_hours", "best_time_minutes", "best_time_seconds", mode="before")
    @classmethod
    def _null_time_is_zero(cls, value: Any) -> Any:
        return 0 if value is None else value

    @property
    def best_time_total(self) -> int:
        """Best time in seconds (0 when nothing was recorded)."""
        return join_hms(self.best_time_hours, self.best_time_minutes, self.best_time_seconds)

    @property
    def best_time(self) -> str:
        return format_duration(self.best_time_total)


class TimeRecord(Record):
    kind: ClassVar[str] = "TimeRecord"

    puzzle_id: int
    date: dt.datetime
    time_in_seconds: int
    ppm: float = 0.0

    @property
    def duration(self) -> str:
        return format_duration(self.time_in_seconds)


class PuzzleDraft(BaseModel):
    """Manual-entry form contents; may be pre-filled from a product lookup."""

    name: str = ""
    brand: str | None = None
    pieces: int | None = None
    notes: str | None = None
    barcode: str | None = None


class PuzzleEdit(BaseModel):
    """Edit-screen fields. ``None`` means "leave unchanged"."""

    name: str | None = None
    brand: str | None = None
    pieces: int | None = None
    notes: str | None = None
    image_uri: None = Field(default=None, description="Send null to remove the image")

    def changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)
