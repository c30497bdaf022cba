import threading
import time

import pytest

from pieceout.core.records import Puzzle, TimeRecord
from pieceout.errors import OutsideTransaction, RecordNotFound, StoreError
from pieceout.persistence.evolver import SCHEMA_VERSION
from pieceout.persistence.store import RecordStore


def test_create_and_lookup(store, clock):
    with store.transaction() as tx:
        created = tx.create(Puzzle, name="Hogwarts", brand="Ravensburger", pieces=1000)

    fetched = store.get(Puzzle, created.id)
    assert fetched == created
    assert fetched.name == "Hogwarts"
    assert fetched.best_time_total == 0
    assert store.get(Puzzle, created.id + 100) is None


def test_query_filters_by_equality(store, clock):
    with store.transaction() as tx:
        a = tx.create(Puzzle, name="A")
        b = tx.create(Puzzle, name="B")
        tx.create(TimeRecord, puzzle_id=a.id, date=clock(), time_in_seconds=60, ppm=1.0)
        tx.create(TimeRecord, puzzle_id=b.id, date=clock(), time_in_seconds=90, ppm=1.0)
        tx.create(TimeRecord, puzzle_id=a.id, date=clock(), time_in_seconds=30, ppm=2.0)

    records = store.query(TimeRecord, puzzle_id=a.id)
    assert [r.time_in_seconds for r in records] == [60, 30]
    assert len(store.query(TimeRecord)) == 3


def test_ids_are_monotonic_and_never_reused(store):
    with store.transaction() as tx:
        first = tx.create(Puzzle, name="first")
        second = tx.create(Puzzle, name="second")
    assert second.id > first.id

    with store.transaction() as tx:
        tx.delete(second)
    with store.transaction() as tx:
        third = tx.create(Puzzle, name="third")
    assert third.id > second.id


def test_update_returns_new_snapshot(store):
    with store.transaction() as tx:
        puzzle = tx.create(Puzzle, name="Old")
    with store.transaction() as tx:
        updated = tx.update(Puzzle, puzzle.id, name="New", pieces=250)

    assert puzzle.name == "Old"  # snapshots are immutable
    assert updated.name == "New"
    assert store.require(Puzzle, puzzle.id).pieces == 250


def test_update_rejects_unknown_fields(store):
    with store.transaction() as tx:
        puzzle = tx.create(Puzzle, name="A")
    with pytest.raises(StoreError):
        with store.transaction() as tx:
            tx.update(Puzzle, puzzle.id, colour="red")


def test_missing_records_raise_not_found(store):
    with pytest.raises(RecordNotFound):
        store.require(Puzzle, 42)
    with pytest.raises(RecordNotFound):
        with store.transaction() as tx:
            tx.update(Puzzle, 42, name="x")


def test_handle_outside_its_scope_raises(store):
    with store.transaction() as tx:
        tx.create(Puzzle, name="inside")

    assert not tx.active
    with pytest.raises(OutsideTransaction):
        tx.create(Puzzle, name="outside")
    with pytest.raises(OutsideTransaction):
        tx.get(Puzzle, 1)
    assert [p.name for p in store.query(Puzzle)] == ["inside"]


def test_failed_scope_leaves_no_partial_writes(store):
    with pytest.raises(RuntimeError):
        with store.transaction() as tx:
            tx.create(Puzzle, name="half")
            raise RuntimeError("boom")

    assert store.query(Puzzle) == []


def test_nested_scope_on_same_thread_is_refused(store):
    with store.transaction():
        with pytest.raises(StoreError):
            with store.transaction():
                pass


def test_closed_store_refuses_everything(db_path):
    s = RecordStore()
    with pytest.raises(StoreError):
        s.get(Puzzle, 1)
    s.open(db_path)
    s.close()
    with pytest.raises(StoreError):
        with s.transaction():
            pass
    assert not s.is_open


def test_open_twice_is_an_error(store, db_path):
    with pytest.raises(StoreError):
        store.open(db_path)


def test_write_scopes_are_serialized(store):
    entered = threading.Event()
    release = threading.Event()
    order = []

    def first():
        with store.transaction() as tx:
            tx.create(Puzzle, name="first")
            entered.set()
            release.wait(5)
            order.append("first")

    def second():
        entered.wait(5)
        with store.transaction() as tx:
            tx.create(Puzzle, name="second")
            order.append("second")

    t1 = threading.Thread(target=first)
    t2 = threading.Thread(target=second)
    t1.start()
    t2.start()
    entered.wait(5)
    time.sleep(0.1)

    assert order == []
    assert store.query(Puzzle) == []  # nothing visible before commit

    release.set()
    t1.join(5)
    t2.join(5)
    assert order == ["first", "second"]
    assert [p.name for p in store.query(Puzzle)] == ["first", "second"]


def test_events_receive_the_active_scope(store):
    seen = []

    @store.events.create(Puzzle)
    def on_create(tx, record):
        seen.append((tx.active, record.name))
        tx.update(Puzzle, record.id, notes="touched by handler")

    with store.transaction() as tx:
        puzzle = tx.create(Puzzle, name="evented")

    assert seen == [(True, "evented")]
    assert store.require(Puzzle, puzzle.id).notes == "touched by handler"


def test_destroy_is_explicit(db_path):
    s = RecordStore()
    s.open(db_path)
    with s.transaction() as tx:
        tx.create(Puzzle, name="doomed")
    s.close()

    assert db_path.exists()
    assert RecordStore.destroy(db_path) is True
    assert not db_path.exists()
    assert RecordStore.destroy(db_path) is False

    report = s.open(db_path)
    assert report.previous_version is None
    assert report.current_version == SCHEMA_VERSION
    assert s.query(Puzzle) == []
    s.close()
