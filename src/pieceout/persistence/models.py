"""
SQLite schema: one table per record kind plus a key/value meta table.
"""

import datetime as dt

from sqlalchemy import Column, DateTime, Float, Integer, String, TypeDecorator
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def now_utc() -> dt.datetime:  # compact timezone‑aware timestamp
    return dt.datetime.now(tz=dt.timezone.utc)


class UTCDateTime(TypeDecorator):
    """Store naive UTC, hand back aware UTC (SQLite keeps no offset)."""

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=dt.timezone.utc)
        return value.astimezone(dt.timezone.utc).replace(tzinfo=None)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return value.replace(tzinfo=dt.timezone.utc)


class PuzzleRow(Base):
    __tablename__ = "puzzle_items"
    __table_args__ = {"sqlite_autoincrement": True}  # ids are never reused

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False)
    brand = Column(String, nullable=True)
    pieces = Column(Integer, nullable=True, default=0)
    notes = Column(String, nullable=True)
    image_uri = Column(String, nullable=True)
    best_time_hours = Column(Integer, nullable=True, default=0)
    best_time_minutes = Column(Integer, nullable=True, default=0)
    best_time_seconds = Column(Integer, nullable=True, default=0)
    created_at = Column(UTCDateTime, nullable=True, default=now_utc)
    last_completed_at = Column(UTCDateTime, nullable=True)


class TimeRecordRow(Base):
    __tablename__ = "time_records"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, autoincrement=True)
    puzzle_id = Column(Integer, nullable=False, index=True)  # unenforced reference to puzzle_items.id
    date = Column(UTCDateTime, nullable=False, default=now_utc)
    time_in_seconds = Column(Integer, nullable=False)
    ppm = Column(Float, nullable=False, default=0.0)


class MetaRow(Base):
    __tablename__ = "store_meta"

    key = Column(String, primary_key=True)
    value = Column(String, nullable=False)
