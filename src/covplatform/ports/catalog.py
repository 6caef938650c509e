# =============================
# FILE: src/covplatform/ports/catalog.py
# =============================
from __future__ import annotations

from typing import Any, Mapping, Optional, Protocol, Sequence, runtime_checkable

from ..contracts.assets import CatalogItem

SortDirection = str  # 'asc' | 'desc'


@runtime_checkable
class CatalogPort(Protocol):
    """Puerto de alto nivel sobre un catálogo espacio-temporal (STAC).
    Detrás del puerto, el origen puede ser una API STAC, un fixture, etc.
    """

    async def list_collections(self) -> Sequence[Mapping[str, Any]]:
        """`GET /collections` -> [{id, title, description}, ...]"""
        ...

    async def probe_item(self, collection_id: str) -> Optional[CatalogItem]:
        """Primer ítem de la colección sin filtro de fecha (`?limit=1`)."""
        ...

    async def search_one(
        self,
        collection_id: str,
        datetime_range: str,
        direction: SortDirection,
    ) -> Optional[CatalogItem]:
        """`POST /search` con `limit=1`, ordenado por datetime."""
        ...


__all__ = ["CatalogPort", "SortDirection"]
