"""
pieceout.runtime  ──  Application facade and FastAPI factory.

Usage pattern
-------------
    from pieceout.runtime import PieceOut

    app = PieceOut.create_app()            # settings from the environment

    # or, without HTTP:
    box = PieceOut(Settings(db_path="puzzles.db"))
    box.start()
    box.catalog.add_puzzle(PuzzleDraft(name="Hogwarts", pieces=1000))
    box.stop()
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .bootstrap import build_lookup, open_store
from .config import Settings
from .core.catalog import Catalog
from .errors import (
    PermissionDenied,
    PieceOutError,
    ProductLookupError,
    RecordNotFound,
    StoreError,
    ValidationError,
)
from .images import ImageStore
from .lookup import ProductLookup
from .persistence.evolver import EvolutionReport
from .persistence.store import RecordStore
from .stopwatch import Stopwatch, TimerStateStore

logger = logging.getLogger(__name__)


class PieceOut:
    """
    One explicitly started instance per process: the store, the catalog on
    top of it and the peripheral collaborators.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        store: Optional[RecordStore] = None,
        lookup: Optional[ProductLookup] = None,
    ):
        self.settings = settings or Settings.from_env()
        self.store = store or RecordStore()
        self.images = ImageStore(self.settings.image_dir)
        self.timer_states = TimerStateStore(self.settings.timer_state_path)
        self._lookup = lookup
        self._catalog: Optional[Catalog] = None

    # ---------- lifecycle ----------
    def start(self) -> "PieceOut":
        open_store(self.settings, self.store)
        self._catalog = Catalog(self.store, self.images)
        if self._lookup is None:
            self._lookup = build_lookup(self.settings)
        return self

    def stop(self) -> None:
        if self._lookup is not None:
            self._lookup.close()
        self.store.close()
        self._catalog = None

    # ---------- convenience helpers ----------
    @property
    def catalog(self) -> Catalog:
        if self._catalog is None:
            raise RuntimeError("PieceOut.start() has not been called")
        return self._catalog

    @property
    def lookup(self) -> ProductLookup:
        if self._lookup is None:
            raise RuntimeError("PieceOut.start() has not been called")
        return self._lookup

    def stopwatch(self, puzzle_id: int) -> Stopwatch:
        """Stopwatch for ``puzzle_id``, resumed from saved state when it matches."""
        return Stopwatch.restore(puzzle_id, self.timer_states)

    def run_migration(self) -> EvolutionReport:
        return self.store.migrate()

    @classmethod
    def create_app(
        cls,
        settings: Optional[Settings] = None,
        *,
        instance: Optional["PieceOut"] = None,
        **fastapi_kwargs: Any,
    ) -> FastAPI:
        """
        One-liner for the HTTP surface:
            app = PieceOut.create_app(Settings(db_path="puzzles.db"))
        The instance is started and stopped by the app's lifespan.
        """
        from .api import router

        box = instance or cls(settings)

        @asynccontextmanager
        async def lifespan(app: FastAPI) -> AsyncIterator[None]:
            box.start()
            try:
                yield
            finally:
                box.stop()

        fastapi_kwargs.setdefault("title", "PieceOut")
        app = FastAPI(lifespan=lifespan, **fastapi_kwargs)
        app.state.pieceout = box
        app.include_router(router)
        install_error_handlers(app)
        return app


def _error(status: int, detail: str, **extra: Any) -> JSONResponse:
    return JSONResponse(status_code=status, content={"detail": detail, **extra})


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ValidationError)
    async def _validation(request: Request, exc: ValidationError):
        return _error(422, str(exc))

    @app.exception_handler(RecordNotFound)
    async def _not_found(request: Request, exc: RecordNotFound):
        return _error(404, str(exc))

    @app.exception_handler(PermissionDenied)
    async def _denied(request: Request, exc: PermissionDenied):
        return _error(403, str(exc), hint=exc.settings_hint)

    @app.exception_handler(ProductLookupError)
    async def _lookup(request: Request, exc: ProductLookupError):
        return _error(502, "Failed to fetch puzzle information. Please try again.")

    @app.exception_handler(StoreError)
    async def _store(request: Request, exc: StoreError):
        logger.error("Store error on %s %s: %s", request.method, request.url.path, exc)
        return _error(500, "Something went wrong. Please try again.")

    @app.exception_handler(PieceOutError)
    async def _other(request: Request, exc: PieceOutError):
        logger.error("Error on %s %s: %s", request.method, request.url.path, exc)
        return _error(500, "Something went wrong. Please try again.")
