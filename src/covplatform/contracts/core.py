# src/covplatform/contracts/core.py
from __future__ import annotations

from datetime import date
from typing import Dict, List, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

# -------------------------
# Estadísticas
# -------------------------
KNOWN_STATS: Tuple[str, ...] = (
    "mean", "median", "std", "min", "max", "sum", "count",
    "majority", "minority", "variety",
)

# Sin sentido para agregación punto-en-polígono sobre columnas vectoriales
RASTER_ONLY_STATS: frozenset[str] = frozenset({"majority", "minority", "variety", "unique", "histogram"})
DEFAULT_VECTOR_STATS: Tuple[str, ...] = ("mean", "min", "max")

# clave -> estadística -> valor (int si el servicio entregó entero; None si no entregó número)
StatValue = Optional[Union[int, float]]
StatResult = Dict[str, Dict[str, StatValue]]

# -------------------------
# Evento de muestreo (solo lectura)
# -------------------------
class ProtocolInfo(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")
    sample_unit_count: int = 0


class NamedRef(BaseModel):
    """Observador u organización (tag) tal como llega del origen."""
    model_config = ConfigDict(frozen=True, extra="ignore")
    name: str = ""

    @field_validator("name", mode="before")
    @classmethod
    def _none_to_empty(cls, v) -> str:
        return "" if v is None else str(v)


class SampleEvent(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    sample_event_id: str
    project_id: Optional[str] = None
    project_name: str = ""
    site_id: Optional[str] = None
    site_name: str = ""
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    country_id: Optional[str] = None
    country_name: Optional[str] = None
    reef_type: Optional[str] = None
    reef_zone: Optional[str] = None
    reef_exposure: Optional[str] = None
    management_id: Optional[str] = None
    management_name: Optional[str] = None
    sample_date: date
    protocols: Mapping[str, ProtocolInfo] = Field(default_factory=dict)
    observers: Tuple[NamedRef, ...] = ()
    project_tags: Tuple[NamedRef, ...] = ()

    @field_validator("sample_event_id", mode="before")
    @classmethod
    def _non_empty_id(cls, v) -> str:
        v2 = "" if v is None else str(v).strip()
        if not v2:
            raise ValueError("sample_event_id no puede ser vacío")
        return v2

    @field_validator("protocols", mode="before")
    @classmethod
    def _protocols(cls, v):
        # el origen a veces entrega null en lugar de {} (o null por protocolo)
        if not v:
            return {}
        return {k: (info or {}) for k, info in dict(v).items()}

    @field_validator("observers", "project_tags", mode="before")
    @classmethod
    def _none_to_tuple(cls, v):
        return () if v is None else v

    @property
    def point(self) -> Optional[Tuple[float, float]]:
        """(lon, lat) o None si el evento no está georreferenciado."""
        if self.latitude is None or self.longitude is None:
            return None
        return (float(self.longitude), float(self.latitude))

    def active_protocols(self) -> List[str]:
        return [name for name, info in self.protocols.items() if info.sample_unit_count > 0]

    def observer_names(self) -> List[str]:
        return [o.name for o in self.observers]

    def organization_names(self) -> List[str]:
        return [t.name for t in self.project_tags]

# -------------------------
# Colecciones
# -------------------------
class AssetCapability(BaseModel):
    """Clasificación best-effort a partir de un ítem representativo."""
    model_config = ConfigDict(frozen=True)
    has_raster: bool = False
    has_vector: bool = False
    vector_columns: Tuple[str, ...] = ()

    @property
    def usable(self) -> bool:
        return self.has_raster or self.has_vector


class Collection(BaseModel):
    model_config = ConfigDict(frozen=True)
    id: str
    title: str = ""
    description: str = ""
    capability: AssetCapability = AssetCapability()

    @field_validator("title", "description", mode="before")
    @classmethod
    def _none_to_empty(cls, v) -> str:
        return "" if v is None else str(v)

    @property
    def display_title(self) -> str:
        return self.title or self.id
