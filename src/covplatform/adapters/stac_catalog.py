# =============================
# FILE: src/covplatform/adapters/stac_catalog.py
# =============================
from __future__ import annotations

import logging
from typing import Any, List, Mapping, Optional, Sequence

from ..contracts.assets import CatalogItem
from ..ports.catalog import CatalogPort
from .http_base import AsyncHttpAdapter

logger = logging.getLogger(__name__)


def _first_feature(data: Any) -> Optional[CatalogItem]:
    if not isinstance(data, Mapping):
        return None
    features = data.get("features") or []
    if not features:
        return None
    return CatalogItem.from_json(features[0])


class StacCatalog(AsyncHttpAdapter, CatalogPort):
    """Adapter de catálogo sobre una **API STAC** (pgSTAC / stac-fastapi).

    Usage:
        async with StacCatalog("https://stac.example.org") as cat:
            cols = await cat.list_collections()
            item = await cat.search_one("sst", "../2024-03-05T23:59:59Z", "desc")
    """
    service_name = "STAC catalog"

    async def list_collections(self) -> Sequence[Mapping[str, Any]]:
        data = await self._json("GET", "/collections")
        cols: List[Mapping[str, Any]] = list((data or {}).get("collections") or [])
        logger.debug("catalog: %d colecciones", len(cols))
        return cols

    async def probe_item(self, collection_id: str) -> Optional[CatalogItem]:
        data = await self._json("GET", f"/collections/{collection_id}/items", params={"limit": 1})
        return _first_feature(data)

    async def search_one(self, collection_id: str, datetime_range: str, direction: str) -> Optional[CatalogItem]:
        body = {
            "collections": [collection_id],
            "datetime": datetime_range,
            "sortby": [{"field": "datetime", "direction": direction}],
            "limit": 1,
        }
        data = await self._json("POST", "/search", json=body)
        return _first_feature(data)


__all__ = ["StacCatalog"]
