"""
Public surface for PieceOut.
Importing this module does **not** open a database; construct a
``RecordStore`` and call ``open(path)``, or start a ``PieceOut`` runtime.
"""

from .core.aggregator import TimeAggregator
from .core.catalog import Catalog, PuzzleDetail
from .core.collection import CollectionQuery, SortKey, derive
from .core.records import Puzzle, PuzzleDraft, PuzzleEdit, TimeRecord
from .persistence.evolver import SCHEMA_VERSION, EvolutionReport
from .persistence.store import RecordStore, Transaction
from .runtime import PieceOut

__all__ = [
    "Catalog",
    "CollectionQuery",
    "EvolutionReport",
    "PieceOut",
    "Puzzle",
    "PuzzleDetail",
    "PuzzleDraft",
    "PuzzleEdit",
    "RecordStore",
    "SCHEMA_VERSION",
    "SortKey",
    "TimeAggregator",
    "TimeRecord",
    "Transaction",
    "derive",
]
