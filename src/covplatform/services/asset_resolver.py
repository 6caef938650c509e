# src/covplatform/services/asset_resolver.py
from __future__ import annotations

"""
Resolución de assets por fecha contra un catálogo STAC, contracts-first.

Política temporal (prioridad direccional):
  1) ítem más reciente con datetime <= fin del día de la muestra
  2) si no hay, el primer ítem con datetime >= inicio del día
  3) si tampoco, NOT_FOUND (resultado legítimo, no error)

El servicio no conoce HTTP: todo va vía `CatalogPort`. Errores de red en la
resolución por fecha se propagan (la tarea los convierte en ExtractionError);
en el sondeo de capacidades cualquier falla (red o ítem malformado) se
degrada a "sin capacidad".
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Awaitable, Callable, Dict, List, Optional

from ..contracts.assets import (
    NO_ASSET_MESSAGE,
    NO_IMAGERY_MESSAGE,
    NOT_FOUND,
    AssetKind,
    AssetResolution,
    CatalogItem,
    ItemLookup,
    Unresolved,
    extract_asset_ref,
    find_asset,
    vector_columns,
)
from ..contracts.core import AssetCapability, Collection
from ..ports.catalog import CatalogPort
from .concurrency import run_bounded

logger = logging.getLogger(__name__)


def before_range(d: date) -> str:
    return f"../{d.isoformat()}T23:59:59Z"


def after_range(d: date) -> str:
    return f"{d.isoformat()}T00:00:00Z/.."


def capability_from_item(item: Optional[CatalogItem]) -> AssetCapability:
    if item is None:
        return AssetCapability()
    raster = find_asset(item, AssetKind.RASTER)
    vector = find_asset(item, AssetKind.VECTOR)
    cols = vector_columns(item, vector) if vector is not None else ()
    return AssetCapability(
        has_raster=raster is not None,
        has_vector=vector is not None,
        vector_columns=cols,
    )


def asset_for_item(item: ItemLookup, collection: Collection) -> AssetResolution:
    if item is NOT_FOUND or item is None:
        return Unresolved(reason="not_found", message=NO_IMAGERY_MESSAGE)
    ref = extract_asset_ref(item, fallback_columns=collection.capability.vector_columns)
    if ref is None:
        return Unresolved(reason="missing_asset", message=NO_ASSET_MESSAGE)
    return ref


@dataclass
class AssetResolver:
    catalog: CatalogPort
    probe_concurrency: int = 10

    # --------- resolución por fecha ---------
    async def resolve_item(self, collection_id: str, sample_date: date) -> ItemLookup:
        item = await self.catalog.search_one(collection_id, before_range(sample_date), "desc")
        if item is not None:
            return item
        item = await self.catalog.search_one(collection_id, after_range(sample_date), "asc")
        if item is not None:
            return item
        logger.debug("sin ítems para %s @ %s", collection_id, sample_date)
        return NOT_FOUND

    async def resolve_asset(self, collection: Collection, sample_date: date) -> AssetResolution:
        item = await self.resolve_item(collection.id, sample_date)
        return asset_for_item(item, collection)

    # --------- capacidades ---------
    async def probe_capability(self, collection_id: str) -> AssetCapability:
        try:
            item = await self.catalog.probe_item(collection_id)
            return capability_from_item(item)
        except Exception as e:  # ítem malformado o servicio caído: sin capacidad
            logger.warning("probe %s falló, se asume sin capacidad: %s", collection_id, e)
            return AssetCapability()

    async def list_collections(self) -> List[Collection]:
        """Colecciones con capacidad sondeada; primero las utilizables, luego por título."""
        raw = await self.catalog.list_collections()
        base = [
            Collection(id=str(c["id"]), title=c.get("title") or "", description=c.get("description") or "")
            for c in raw
            if c.get("id")
        ]

        async def _probe(col: Collection) -> Collection:
            cap = await self.probe_capability(col.id)
            return col.model_copy(update={"capability": cap})

        probed = await run_bounded(base, _probe, concurrency=self.probe_concurrency)
        return sorted(probed, key=lambda c: (not c.capability.usable, c.display_title.lower()))


@dataclass
class ResolutionCache:
    """
    Cache por corrida: clave `(colección, fecha)` -> ítem o NOT_FOUND.

    Guarda el *future* en curso, así tareas concurrentes con la misma clave
    comparten una sola consulta al catálogo. Los NOT_FOUND también se
    memorizan y no se invalidan durante la corrida.
    """
    _entries: Dict[str, "asyncio.Future[ItemLookup]"] = field(default_factory=dict)
    lookups: int = 0

    async def get_or_resolve(self, key: str, resolve: Callable[[], Awaitable[ItemLookup]]) -> ItemLookup:
        fut = self._entries.get(key)
        if fut is None:
            self.lookups += 1
            fut = asyncio.ensure_future(resolve())
            self._entries[key] = fut
        return await fut

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)


__all__ = [
    "AssetResolver",
    "ResolutionCache",
    "before_range",
    "after_range",
    "capability_from_item",
    "asset_for_item",
]
