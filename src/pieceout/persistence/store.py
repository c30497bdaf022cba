"""
Thin data-access layer around the SQLite record tables.
All writes go through a ``Transaction`` handed out by ``RecordStore.transaction``.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager, nullcontext
from pathlib import Path
from typing import Any, Callable, ContextManager, Dict, Iterator, List, Type, TypeVar

from sqlalchemy import create_engine, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.records import Puzzle, Record, TimeRecord
from ..errors import OutsideTransaction, RecordNotFound, StoreError
from ..events import EventRegistry
from .evolver import SCHEMA_VERSION, EvolutionReport, SchemaEvolver
from .models import PuzzleRow, TimeRecordRow, now_utc

logger = logging.getLogger(__name__)

T_Record = TypeVar("T_Record", bound=Record)

ROW_TYPES: Dict[Type[Record], type] = {
    Puzzle: PuzzleRow,
    TimeRecord: TimeRecordRow,
}


def _row_type(kind: Type[Record]) -> type:
    try:
        return ROW_TYPES[kind]
    except KeyError:
        raise StoreError(f"unknown record kind {kind!r}") from None


class _Reads:
    """Lookup helpers shared by the store and its transactions."""

    def _reading(self) -> ContextManager[Session]:  # pragma: no cover
        raise NotImplementedError

    def get(self, kind: Type[T_Record], record_id: int) -> T_Record | None:
        """Return the record with ``record_id`` or ``None``."""
        with self._reading() as s:
            row = s.get(_row_type(kind), record_id)
            return kind.model_validate(row) if row is not None else None

    def require(self, kind: Type[T_Record], record_id: int) -> T_Record:
        """Like :meth:`get` but raise ``RecordNotFound`` when absent."""
        record = self.get(kind, record_id)
        if record is None:
            raise RecordNotFound(kind.kind, record_id)
        return record

    def query(self, kind: Type[T_Record], **equals: Any) -> List[T_Record]:
        """All records of ``kind`` whose columns equal ``equals``, in id order."""
        row_type = _row_type(kind)
        with self._reading() as s:
            q = select(row_type).filter_by(**equals).order_by(row_type.id)
            return [kind.model_validate(row) for row in s.scalars(q)]


class Transaction(_Reads):
    """
    Handle for one atomic write scope.

    Reads through the handle see the scope's own uncommitted writes. Once the
    scope ends every call raises ``OutsideTransaction``.
    """

    def __init__(self, store: "RecordStore", session: Session):
        self._store = store
        self._session = session
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def _close(self) -> None:
        self._active = False

    def _check(self) -> Session:
        if not self._active:
            raise OutsideTransaction("write scope has already ended")
        return self._session

    def _reading(self) -> ContextManager[Session]:
        return nullcontext(self._check())

    # ---- writes ---------------------------------------------------------
    def create(self, kind: Type[T_Record], **fields: Any) -> T_Record:
        """Insert a new record; the store assigns its id."""
        session = self._check()
        fields.pop("id", None)
        row = _row_type(kind)(**fields)
        session.add(row)
        session.flush()
        record = kind.model_validate(row)
        self._store.events.emit("create", self, record)
        return record

    def update(self, kind: Type[T_Record], record_id: int, **fields: Any) -> T_Record:
        """Change columns of an existing record and return the new snapshot."""
        session = self._check()
        row = session.get(_row_type(kind), record_id)
        if row is None:
            raise RecordNotFound(kind.kind, record_id)
        for name, value in fields.items():
            if name == "id" or name not in row.__table__.columns:
                raise StoreError(f"{kind.kind} has no writable field {name!r}")
            setattr(row, name, value)
        session.flush()
        record = kind.model_validate(row)
        self._store.events.emit("update", self, record)
        return record

    def delete(self, record: Record) -> None:
        session = self._check()
        kind = type(record)
        row = session.get(_row_type(kind), record.id)
        if row is None:
            raise RecordNotFound(kind.kind, record.id)
        session.delete(row)
        session.flush()
        self._store.events.emit("delete", self, record)


class RecordStore(_Reads):
    """
    Explicitly opened SQLite store for puzzles and their time records.

        store = RecordStore()
        store.open("pieceout.db")
        with store.transaction() as tx:
            tx.create(Puzzle, name="Hogwarts", pieces=1000)
        store.close()
    """

    def __init__(self, clock: Callable[[], Any] = now_utc):
        self.engine: Engine | None = None
        self.path: Path | None = None
        self.clock = clock
        self.events = EventRegistry()
        self.report: EvolutionReport | None = None
        self.expected_version = SCHEMA_VERSION
        self._write_lock = threading.Lock()
        self._writer: int | None = None

    # ---- lifecycle ------------------------------------------------------
    def open(self, path: str | Path, expected_version: int = SCHEMA_VERSION) -> EvolutionReport:
        """Open (creating if needed) and evolve the database file at ``path``."""
        if self.engine is not None:
            raise StoreError(f"store already open at {self.path}")
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        engine = create_engine(
            f"sqlite:///{path}",
            connect_args={"check_same_thread": False},
        )
        try:
            report = SchemaEvolver(engine, clock=self.clock).evolve(expected_version)
        except Exception:
            engine.dispose()
            raise
        self.engine, self.path, self.report = engine, path, report
        self.expected_version = expected_version
        logger.info("Opened store %s (schema v%s)", path, report.current_version)
        return report

    def close(self) -> None:
        if self.engine is None:
            return
        with self._write_lock:
            self.engine.dispose()
            self.engine = None
        logger.info("Closed store %s", self.path)

    @property
    def is_open(self) -> bool:
        return self.engine is not None

    @staticmethod
    def destroy(path: str | Path) -> bool:
        """
        Delete the database file at ``path`` (developer reset).

        Never called implicitly. Returns ``True`` if a file was removed.
        """
        path = Path(path)
        removed = False
        for candidate in (path, path.with_name(path.name + "-journal")):
            if candidate.exists():
                candidate.unlink()
                removed = True
        if removed:
            logger.warning("Deleted store file %s", path)
        return removed

    def migrate(self) -> EvolutionReport:
        """Re-run schema evolution on the open store (no-op when current)."""
        engine = self._ensure_open()
        with self._write_lock:
            self.report = SchemaEvolver(engine, clock=self.clock).evolve(self.expected_version)
        return self.report

    # ---- internal util --------------------------------------------------
    def _ensure_open(self) -> Engine:
        if self.engine is None:
            raise StoreError("store is not open; call open(path) first")
        return self.engine

    def _new_session(self) -> Session:
        return Session(bind=self._ensure_open(), expire_on_commit=False)

    def _reading(self) -> ContextManager[Session]:
        return self._new_session()

    # ---- writes ---------------------------------------------------------
    @contextmanager
    def transaction(self) -> Iterator[Transaction]:
        """
        Scoped mutation: everything done through the yielded handle commits
        together, or rolls back if the block raises.

        Scopes are serialized; a second caller blocks until the first ends.
        """
        self._ensure_open()
        if self._writer == threading.get_ident():
            raise StoreError("a write scope is already open on this thread")
        with self._write_lock:
            self._writer = threading.get_ident()
            session = self._new_session()
            tx = Transaction(self, session)
            try:
                yield tx
                session.commit()
            except SQLAlchemyError as exc:
                session.rollback()
                logger.exception("Write scope failed")
                raise StoreError(str(exc)) from exc
            except BaseException:
                session.rollback()
                raise
            finally:
                tx._close()
                session.close()
                self._writer = None
