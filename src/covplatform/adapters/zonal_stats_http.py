# src/covplatform/adapters/zonal_stats_http.py
from __future__ import annotations

from typing import Any, Dict, Mapping, Sequence

from ..ports.zonal_stats import LonLat, ZonalStatsPort
from .http_base import AsyncHttpAdapter


def _aoi(point: LonLat, radius_m: float) -> Dict[str, Any]:
    lon, lat = point
    return {"type": "Point", "coordinates": [lon, lat], "radius": radius_m}


class ZonalStatsHttp(AsyncHttpAdapter, ZonalStatsPort):
    """Cliente del servicio de estadísticas zonales (raster COG / vector GeoParquet)."""
    service_name = "Zonal stats"

    async def raster_stats(self, point: LonLat, radius_m: float, stats: Sequence[str], url: str) -> Mapping[str, Any]:
        body = {
            "aoi": _aoi(point, radius_m),
            "stats": list(stats),
            "url": url,
            # estadísticas aproximadas
            "approx_stats": True,
        }
        return await self._json("POST", "/zonal-stats/raster", json=body) or {}

    async def vector_stats(
        self, point: LonLat, radius_m: float, stats: Sequence[str], url: str, columns: Sequence[str]
    ) -> Mapping[str, Any]:
        body = {
            "aoi": _aoi(point, radius_m),
            "stats": list(stats),
            "url": url,
            "columns": list(columns),
        }
        return await self._json("POST", "/zonal-stats/vector", json=body) or {}


__all__ = ["ZonalStatsHttp"]
