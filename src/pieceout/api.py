"""
HTTP routes standing in for the app screens.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from pydantic import BaseModel, ValidationError as SchemaError

from .core.catalog import PuzzleDetail
from .core.collection import CollectionQuery, SortKey
from .core.records import Puzzle, PuzzleDraft, PuzzleEdit, TimeRecord
from .errors import ValidationError
from .runtime import PieceOut

router = APIRouter()


def get_pieceout(request: Request) -> PieceOut:
    return request.app.state.pieceout


class PuzzleCreate(PuzzleDraft):
    image_source: Optional[str] = None


class PuzzleUpdate(PuzzleEdit):
    image_source: Optional[str] = None

    def changes(self) -> Dict[str, Any]:
        changes = super().changes()
        changes.pop("image_source", None)
        return changes


class TimeEntry(BaseModel):
    """Either a stopwatch run (``seconds`` only) or a manual H/M/S entry."""

    hours: Optional[int] = 0
    minutes: Optional[int] = 0
    seconds: Optional[int] = 0


class ImageAttach(BaseModel):
    source: str


@router.get("/health")
def health() -> Dict[str, str]:
    return {"status": "running"}


# ---- collection -------------------------------------------------------------
@router.get("/puzzles", response_model=List[Puzzle])
def list_puzzles(
    q: str = "",
    pieces: Optional[str] = None,
    brand: Optional[str] = None,
    sort: SortKey = SortKey.DATE_ADDED_DESC,
    box: PieceOut = Depends(get_pieceout),
):
    try:
        query = CollectionQuery(text=q, pieces=pieces, brand=brand, sort=sort)
    except SchemaError as exc:
        raise ValidationError("pieces must be a number or 'all'") from exc
    return box.catalog.collection(query)


@router.get("/puzzles/filters")
def puzzle_filters(box: PieceOut = Depends(get_pieceout)) -> Dict[str, list]:
    return box.catalog.filter_options()


# ---- puzzles ------------------------------------------------------------------
@router.post("/puzzles", response_model=Puzzle, status_code=status.HTTP_201_CREATED)
def create_puzzle(body: PuzzleCreate, box: PieceOut = Depends(get_pieceout)):
    draft = PuzzleDraft.model_validate(body.model_dump(exclude={"image_source"}))
    return box.catalog.add_puzzle(draft, image_source=body.image_source)


@router.get("/puzzles/{puzzle_id}", response_model=PuzzleDetail)
def get_puzzle(puzzle_id: int, box: PieceOut = Depends(get_pieceout)):
    return box.catalog.detail(puzzle_id)


@router.patch("/puzzles/{puzzle_id}", response_model=Puzzle)
def update_puzzle(puzzle_id: int, body: PuzzleUpdate, box: PieceOut = Depends(get_pieceout)):
    return box.catalog.edit_puzzle(puzzle_id, body, image_source=body.image_source)


@router.put("/puzzles/{puzzle_id}/image", response_model=Puzzle)
def attach_image(puzzle_id: int, body: ImageAttach, box: PieceOut = Depends(get_pieceout)):
    return box.catalog.edit_puzzle(puzzle_id, PuzzleEdit(), image_source=body.source)


@router.delete("/puzzles/{puzzle_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_puzzle(puzzle_id: int, box: PieceOut = Depends(get_pieceout)) -> Response:
    box.catalog.delete_puzzle(puzzle_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ---- times --------------------------------------------------------------------
@router.get("/puzzles/{puzzle_id}/times", response_model=List[TimeRecord])
def list_times(puzzle_id: int, box: PieceOut = Depends(get_pieceout)):
    box.store.require(Puzzle, puzzle_id)
    return box.catalog.times(puzzle_id)


@router.post("/puzzles/{puzzle_id}/times", response_model=TimeRecord, status_code=status.HTTP_201_CREATED)
def log_time(puzzle_id: int, body: TimeEntry, box: PieceOut = Depends(get_pieceout)):
    return box.catalog.log_manual_time(puzzle_id, body.hours, body.minutes, body.seconds)


@router.delete("/times/{record_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_time(record_id: int, box: PieceOut = Depends(get_pieceout)) -> Response:
    box.catalog.delete_time(record_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ---- lookup -------------------------------------------------------------------
@router.get("/lookup/barcode/{barcode}", response_model=PuzzleDraft)
def lookup_barcode(barcode: str, box: PieceOut = Depends(get_pieceout)):
    return box.catalog.draft_from_barcode(box.lookup, barcode)


@router.get("/lookup/search", response_model=PuzzleDraft)
def lookup_search(q: str = Query(..., min_length=1), box: PieceOut = Depends(get_pieceout)):
    draft = box.catalog.draft_from_search(box.lookup, q)
    if draft is None:
        raise HTTPException(status_code=404, detail="No product matched")
    return draft


# ---- settings -----------------------------------------------------------------
@router.post("/settings/migrate")
def run_migration(box: PieceOut = Depends(get_pieceout)) -> Dict[str, Any]:
    report = box.run_migration()
    return {"success": True, "message": report.message, **report.model_dump()}
