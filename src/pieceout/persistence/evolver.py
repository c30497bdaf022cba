"""
Schema evolution for an existing store file.

Runs while the store is opened. When the stored schema version is behind the
expected one, missing columns are added and the puzzle rows are backfilled:

1. ``created_at`` missing ➜ now (a guess, not the real creation time)
2. ``last_completed_at`` missing ➜ date of the puzzle's newest time record,
   or left null when it has none
3. numeric fields introduced after the stored version ➜ 0 where null

A failure while looking up one puzzle's time records is logged and skipped;
the evolution still completes. Re-running at the same version is a no-op.
"""

from __future__ import annotations

import datetime as dt
import logging
from typing import Callable, Dict, Tuple

from pydantic import BaseModel
from sqlalchemy import func, inspect, select, text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.orm import Session

from ..errors import StoreError
from .models import Base, MetaRow, PuzzleRow, TimeRecordRow, now_utc

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 4
VERSION_KEY = "schema_version"

# puzzle fields each schema version introduced
FIELD_HISTORY: Dict[int, Tuple[str, ...]] = {
    1: ("id", "name", "brand", "pieces", "notes", "image_uri"),
    3: ("best_time_hours", "best_time_minutes", "best_time_seconds"),
    4: ("created_at", "last_completed_at"),
}
NUMERIC_FIELDS = ("best_time_hours", "best_time_minutes", "best_time_seconds")
RECORD_TABLES = (PuzzleRow.__tablename__, TimeRecordRow.__tablename__)


class EvolutionReport(BaseModel):
    """What one evolution pass found and did."""

    previous_version: int | None  # None: the file was created just now
    current_version: int
    backfilled: bool = False
    total_puzzles: int = 0
    with_created_at: int = 0
    with_last_completed: int = 0
    skipped_puzzles: list[int] = []

    @property
    def message(self) -> str:
        if not self.backfilled:
            return f"Schema is already at version {self.current_version}. No migration needed."
        return (
            f"Migrated schema v{self.previous_version} -> v{self.current_version}: "
            f"{self.with_created_at}/{self.total_puzzles} puzzles with createdAt, "
            f"{self.with_last_completed}/{self.total_puzzles} with lastCompletedAt"
        )


def introduced_after(version: int) -> set[str]:
    return {f for v, fields in FIELD_HISTORY.items() if v > version for f in fields}


class SchemaEvolver:
    """Unversioned/OlderVersion ➜ Backfilling ➜ Current."""

    def __init__(self, engine: Engine, clock: Callable[[], dt.datetime] = now_utc):
        self.engine = engine
        self.clock = clock

    # ---- version bookkeeping --------------------------------------------
    def stored_version(self, conn: Connection) -> int | None:
        """Stored schema version; 0 for unversioned tables, None for a new file."""
        tables = set(inspect(conn).get_table_names())
        if MetaRow.__tablename__ in tables:
            value = conn.execute(
                select(MetaRow.value).where(MetaRow.key == VERSION_KEY)
            ).scalar()
            if value is not None:
                return int(value)
        if tables.intersection(RECORD_TABLES):
            return 0
        return None

    @staticmethod
    def _write_version(session: Session, version: int) -> None:
        session.merge(MetaRow(key=VERSION_KEY, value=str(version)))

    # ---- entry point -----------------------------------------------------
    def evolve(self, expected_version: int = SCHEMA_VERSION) -> EvolutionReport:
        with self.engine.begin() as conn:
            stored = self.stored_version(conn)
            if stored is not None and stored > expected_version:
                raise StoreError(
                    f"store schema v{stored} is newer than supported v{expected_version}"
                )
            Base.metadata.create_all(conn)
            if stored is not None and stored < expected_version:
                self._add_missing_columns(conn)

        if stored is None:
            with Session(self.engine) as session, session.begin():
                self._write_version(session, expected_version)
            logger.info("Created store at schema v%s", expected_version)
            return EvolutionReport(previous_version=None, current_version=expected_version)

        if stored == expected_version:
            logger.debug("Schema v%s is current", stored)
            return EvolutionReport(previous_version=stored, current_version=stored)

        logger.info("Evolving schema v%s -> v%s", stored, expected_version)
        with Session(self.engine) as session, session.begin():
            report = self.backfill(session, stored, expected_version)
            self._write_version(session, expected_version)
        logger.info(report.message)
        return report

    # ---- steps ------------------------------------------------------------
    def _add_missing_columns(self, conn: Connection) -> None:
        insp = inspect(conn)
        for table in Base.metadata.sorted_tables:
            present = {c["name"] for c in insp.get_columns(table.name)}
            for column in table.columns:
                if column.name in present:
                    continue
                ddl = column.type.compile(dialect=conn.dialect)
                conn.execute(text(f'ALTER TABLE {table.name} ADD COLUMN "{column.name}" {ddl}'))
                logger.info("Added column %s.%s", table.name, column.name)

    def _latest_completion(self, session: Session, puzzle_id: int) -> dt.datetime | None:
        return session.scalar(
            select(func.max(TimeRecordRow.date)).where(TimeRecordRow.puzzle_id == puzzle_id)
        )

    def backfill(self, session: Session, stored: int, expected: int) -> EvolutionReport:
        now = self.clock()
        new_fields = introduced_after(stored)
        puzzles = session.scalars(select(PuzzleRow).order_by(PuzzleRow.id)).all()
        skipped: list[int] = []

        for row in puzzles:
            if row.created_at is None:
                row.created_at = now
                logger.debug("Set createdAt for puzzle %r", row.name)
            for name in NUMERIC_FIELDS:
                if name in new_fields and getattr(row, name) is None:
                    setattr(row, name, 0)

        for row in puzzles:
            if row.last_completed_at is not None:
                continue
            try:
                latest = self._latest_completion(session, row.id)
            except Exception:
                logger.exception("Could not set lastCompletedAt for puzzle %s", row.id)
                skipped.append(row.id)
                continue
            if latest is not None:
                row.last_completed_at = latest
                logger.debug("Set lastCompletedAt for puzzle %r to %s", row.name, latest)

        session.flush()
        return EvolutionReport(
            previous_version=stored,
            current_version=expected,
            backfilled=True,
            total_puzzles=len(puzzles),
            with_created_at=sum(1 for r in puzzles if r.created_at is not None),
            with_last_completed=sum(1 for r in puzzles if r.last_completed_at is not None),
            skipped_puzzles=skipped,
        )
