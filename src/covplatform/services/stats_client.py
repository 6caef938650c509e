# src/covplatform/services/stats_client.py
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, List, Mapping, Sequence

import numpy as np

from ..contracts.assets import AssetKind, AssetRef
from ..contracts.core import DEFAULT_VECTOR_STATS, RASTER_ONLY_STATS, StatResult, StatValue
from ..ports.zonal_stats import LonLat, ZonalStatsPort


def vector_stats_for(stats: Sequence[str]) -> List[str]:
    """Quita estadísticas sólo-raster; si no queda nada usa mean/min/max."""
    kept = [s for s in stats if s not in RASTER_ONLY_STATS]
    return kept or list(DEFAULT_VECTOR_STATS)


def coerce_stat_value(v: Any) -> StatValue:
    """Enteros quedan enteros (`count: 12` -> 12); NaN, bool y texto -> None."""
    if isinstance(v, bool) or v is None:
        return None
    if isinstance(v, (int, np.integer)):
        return int(v)
    if isinstance(v, (float, np.floating)):
        f = float(v)
        return None if math.isnan(f) else f
    return None


def normalize_stat_result(raw: Mapping[str, Any]) -> StatResult:
    """`{clave: {stat: valor}}`; entradas que no son mapas se descartan."""
    out: StatResult = {}
    for key, stats in (raw or {}).items():
        if not isinstance(stats, Mapping):
            continue
        out[str(key)] = {str(name): coerce_stat_value(val) for name, val in stats.items()}
    return out


@dataclass
class StatsClient:
    port: ZonalStatsPort

    async def get_zonal_stats(
        self,
        point: LonLat,
        radius_m: float,
        stats: Sequence[str],
        asset: AssetRef,
    ) -> StatResult:
        if asset.kind is AssetKind.VECTOR:
            raw = await self.port.vector_stats(point, radius_m, vector_stats_for(stats), asset.url, asset.columns)
        else:
            raw = await self.port.raster_stats(point, radius_m, list(stats), asset.url)
        return normalize_stat_result(raw)


__all__ = ["StatsClient", "vector_stats_for", "coerce_stat_value", "normalize_stat_result"]
