# src/covplatform/ports/zonal_stats.py
from __future__ import annotations

from typing import Any, Mapping, Protocol, Sequence, Tuple, runtime_checkable

LonLat = Tuple[float, float]


@runtime_checkable
class ZonalStatsPort(Protocol):
    """
    Servicio de estadísticas zonales. Devuelve el JSON crudo
    `{<clave>: {<stat>: valor}}`; la normalización es del servicio.
    """
    async def raster_stats(self, point: LonLat, radius_m: float, stats: Sequence[str], url: str) -> Mapping[str, Any]: ...
    async def vector_stats(
        self, point: LonLat, radius_m: float, stats: Sequence[str], url: str, columns: Sequence[str]
    ) -> Mapping[str, Any]: ...

__all__ = ["ZonalStatsPort", "LonLat"]
