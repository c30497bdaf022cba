"""Pytest configuration and fixtures for PieceOut tests."""

import datetime as dt
import itertools

import pytest

from pieceout.core.catalog import Catalog
from pieceout.images import ImageStore
from pieceout.persistence.store import RecordStore

START = dt.datetime(2024, 5, 1, 12, 0, tzinfo=dt.timezone.utc)


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: dt.datetime = START):
        self.now = now

    def __call__(self) -> dt.datetime:
        return self.now

    def advance(self, **delta) -> dt.datetime:
        self.now = self.now + dt.timedelta(**delta)
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "pieceout.db"


@pytest.fixture
def store(db_path, clock):
    """Fresh store on a temporary file for each test."""
    s = RecordStore(clock=clock)
    s.open(db_path)
    try:
        yield s
    finally:
        s.close()


@pytest.fixture
def images(tmp_path):
    millis = itertools.count(1_700_000_000_000).__next__
    return ImageStore(tmp_path / "puzzle_images", millis=millis)


@pytest.fixture
def catalog(store, images):
    return Catalog(store, images)


@pytest.fixture
def source_image(tmp_path):
    """A picked photo outside app storage."""
    path = tmp_path / "camera_roll" / "IMG_0001.jpg"
    path.parent.mkdir()
    path.write_bytes(b"\xff\xd8\xff\xe0 fake jpeg")
    return path
