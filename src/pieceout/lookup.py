"""
External product search used to pre-fill the manual-entry form.

A lookup answers with at most one candidate. Candidates are never written to
the store directly; they become a ``PuzzleDraft`` the user confirms.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Protocol

import httpx
from pydantic import BaseModel, Field

from .core.records import PuzzleDraft
from .errors import ProductLookupError

logger = logging.getLogger(__name__)


class ProductCandidate(BaseModel):
    name: str | None = None
    brand: str | None = None
    piece_count: int | None = Field(default=None, alias="pieceCount")
    year: int | None = None
    description: str | None = None
    barcode: str | None = None

    model_config = {"populate_by_name": True}

    def to_draft(self) -> PuzzleDraft:
        return PuzzleDraft(
            name=self.name or "",
            brand=self.brand,
            pieces=self.piece_count,
            notes=self.description,
            barcode=self.barcode,
        )


class ProductLookup(Protocol):
    def by_barcode(self, barcode: str) -> ProductCandidate | None: ...

    def search(self, text: str) -> ProductCandidate | None: ...

    def close(self) -> None: ...


class HttpProductLookup:
    """
    JSON-over-HTTP product search.

        GET {base_url}/barcode/{code}
        GET {base_url}/search?q={text}

    ``404`` or an empty body means "no match"; a list answer yields its first
    entry. Transport failures raise ``ProductLookupError``.
    """

    def __init__(self, base_url: str, timeout: float = 10.0, client: httpx.Client | None = None):
        self.client = client or httpx.Client(base_url=base_url, timeout=timeout)

    def close(self) -> None:
        self.client.close()

    def _fetch(self, path: str, params: Dict[str, str] | None = None) -> ProductCandidate | None:
        try:
            response = self.client.get(path, params=params)
            if response.status_code == httpx.codes.NOT_FOUND:
                return None
            response.raise_for_status()
            payload: Any = response.json() if response.content else None
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("Product lookup %s failed: %s", path, exc)
            raise ProductLookupError(f"Failed to fetch puzzle information: {exc}") from exc

        if isinstance(payload, list):
            payload = payload[0] if payload else None
        if not payload:
            return None
        return ProductCandidate.model_validate(payload)

    def by_barcode(self, barcode: str) -> ProductCandidate | None:
        logger.info("Barcode lookup %s", barcode)
        candidate = self._fetch(f"/barcode/{barcode}")
        if candidate is not None and candidate.barcode is None:
            candidate = candidate.model_copy(update={"barcode": barcode})
        return candidate

    def search(self, text: str) -> ProductCandidate | None:
        text = text.strip()
        if not text:
            return None
        return self._fetch("/search", params={"q": text})


SAMPLE_PRODUCTS = (
    ProductCandidate(name="Harry Potter Hogwarts", brand="Ravensburger", piece_count=1000, barcode="9780747532743"),
    ProductCandidate(name="LEGO Star Wars", brand="LEGO", piece_count=500, barcode="0673419319881"),
    ProductCandidate(name="Ravensburger Puzzle", brand="Ravensburger", barcode="4005556150267"),
)


class SampleProductLookup:
    """Offline catalog of the development barcodes."""

    def __init__(self, products: tuple[ProductCandidate, ...] = SAMPLE_PRODUCTS):
        self.products = products

    def by_barcode(self, barcode: str) -> ProductCandidate | None:
        return next((p for p in self.products if p.barcode == barcode), None)

    def search(self, text: str) -> ProductCandidate | None:
        needle = text.strip().lower()
        if not needle:
            return None
        return next((p for p in self.products if needle in (p.name or "").lower()), None)

    def close(self) -> None:
        pass
