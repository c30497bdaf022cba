"""
Exception taxonomy shared by the store, the catalog and the HTTP layer.
"""

from __future__ import annotations


class PieceOutError(Exception):
    """Base class for every error raised by PieceOut."""


class ValidationError(PieceOutError):
    """Missing or invalid user input. Nothing was written."""


class StoreError(PieceOutError):
    """The record store refused or failed an operation."""


class OutsideTransaction(StoreError):
    """A mutation was attempted without an active write scope."""


class RecordNotFound(StoreError, KeyError):
    """An expected record does not exist."""

    def __init__(self, kind: str, record_id: int):
        super().__init__(f"{kind} {record_id} not found")
        self.kind = kind
        self.record_id = record_id

    def __str__(self) -> str:  # KeyError quotes its message otherwise
        return f"{self.kind} {self.record_id} not found"


class ImageStorageError(PieceOutError, OSError):
    """Copying an image into app storage failed."""


class PermissionDenied(PieceOutError):
    """Access to the camera, library or a source file was refused."""

    settings_hint = "Enable access for PieceOut in your system settings and try again."


class ProductLookupError(PieceOutError, LookupError):
    """The external product search could not be reached or answered badly."""
