# src/covplatform/contracts/assets.py
from __future__ import annotations

"""
Ítems de catálogo (STAC) y clasificación de assets, puro dominio (sin HTTP).

La clasificación raster/vector es una tabla de reglas ordenada
`(matcher, AssetKind)`: la primera regla que calza decide el tipo.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, List, Mapping, Optional, Sequence, Tuple, Union


class AssetKind(str, Enum):
    RASTER = "raster"
    VECTOR = "vector"


# ---------- Ítem de catálogo ----------
@dataclass(frozen=True)
class CatalogAsset:
    key: str
    href: Optional[str] = None
    media_type: Optional[str] = None
    extra: Mapping[str, Any] = field(default_factory=dict)

    @staticmethod
    def from_json(key: str, data: Mapping[str, Any]) -> "CatalogAsset":
        extra = {k: v for k, v in data.items() if k not in ("href", "type")}
        return CatalogAsset(key=key, href=data.get("href") or None, media_type=data.get("type") or None, extra=extra)


@dataclass(frozen=True)
class CatalogItem:
    id: str
    collection: Optional[str] = None
    timestamp: Optional[datetime] = None
    assets: Tuple[CatalogAsset, ...] = ()
    properties: Mapping[str, Any] = field(default_factory=dict)

    @staticmethod
    def from_json(data: Mapping[str, Any]) -> "CatalogItem":
        props = data.get("properties") or {}
        raw_dt = props.get("datetime") or props.get("start_datetime")
        dt: Optional[datetime] = None
        if raw_dt:
            try:
                dt = datetime.fromisoformat(str(raw_dt).replace("Z", "+00:00"))
            except ValueError:
                dt = None
        assets = tuple(CatalogAsset.from_json(k, v or {}) for k, v in (data.get("assets") or {}).items())
        return CatalogItem(
            id=str(data.get("id", "")),
            collection=data.get("collection"),
            timestamp=dt,
            assets=assets,
            properties=props,
        )

    def asset(self, key: str) -> Optional[CatalogAsset]:
        for a in self.assets:
            if a.key == key:
                return a
        return None


class _NotFound:
    """Centinela: ningún ítem calza con la fecha (resultado esperado, no error)."""
    _instance: Optional["_NotFound"] = None

    def __new__(cls) -> "_NotFound":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "NOT_FOUND"

    def __bool__(self) -> bool:
        return False


NOT_FOUND = _NotFound()
ItemLookup = Union[CatalogItem, _NotFound]


# ---------- Referencias de asset ----------
@dataclass(frozen=True)
class AssetRef:
    kind: AssetKind
    url: str
    columns: Tuple[str, ...] = ()


NO_IMAGERY_MESSAGE = "No imagery found for this date"
NO_ASSET_MESSAGE = "No COG URL in item"


@dataclass(frozen=True)
class Unresolved:
    """NotFound / MissingAsset: se reportan por tarea, nunca se lanzan."""
    reason: str  # 'not_found' | 'missing_asset'
    message: str


AssetResolution = Union[AssetRef, Unresolved]


# ---------- Tabla de reglas ----------
AssetMatcher = Callable[[CatalogAsset], bool]

_RASTER_MEDIA_MARKERS = ("profile=cloud-optimized", "image/tiff", "geotiff")
_VECTOR_MEDIA_MARKERS = ("parquet",)


def _media_has(markers: Sequence[str]) -> AssetMatcher:
    def _m(a: CatalogAsset) -> bool:
        mt = (a.media_type or "").lower()
        return any(m in mt for m in markers)
    return _m


def _href_endswith(suffixes: Sequence[str]) -> AssetMatcher:
    def _m(a: CatalogAsset) -> bool:
        href = (a.href or "").lower().split("?", 1)[0]
        return href.endswith(tuple(suffixes))
    return _m


# Orden importa: MIME primero, extensión como fallback
ASSET_RULES: Tuple[Tuple[AssetMatcher, AssetKind], ...] = (
    (_media_has(_RASTER_MEDIA_MARKERS), AssetKind.RASTER),
    (_media_has(_VECTOR_MEDIA_MARKERS), AssetKind.VECTOR),
    (_href_endswith((".tif", ".tiff")), AssetKind.RASTER),
    (_href_endswith((".parquet",)), AssetKind.VECTOR),
)

PRIORITY_KEYS: Mapping[AssetKind, Tuple[str, ...]] = {
    AssetKind.RASTER: ("data", "cog", "image", "visual", "default"),
    AssetKind.VECTOR: ("data", "parquet", "geoparquet", "vector"),
}

_NUMERIC_TYPES = (
    "int", "uint", "float", "double", "decimal", "number", "integer", "numeric", "real",
)


def classify_asset(asset: CatalogAsset) -> Optional[AssetKind]:
    if not asset.href:
        return None
    for matcher, kind in ASSET_RULES:
        if matcher(asset):
            return kind
    return None


def find_asset(item: CatalogItem, kind: AssetKind) -> Optional[CatalogAsset]:
    """Claves conocidas en orden de prioridad; luego recorre todos los assets."""
    for key in PRIORITY_KEYS[kind]:
        a = item.asset(key)
        if a is not None and classify_asset(a) is kind:
            return a
    for a in item.assets:
        if classify_asset(a) is kind:
            return a
    return None


def _is_numeric_type(t: Any) -> bool:
    s = str(t or "").strip().lower()
    return any(s.startswith(p) for p in _NUMERIC_TYPES)


def _columns_from(meta: Mapping[str, Any]) -> Tuple[str, ...]:
    table_cols = meta.get("table:columns")
    if isinstance(table_cols, list) and table_cols:
        out: List[str] = []
        for c in table_cols:
            if isinstance(c, Mapping) and c.get("name") and _is_numeric_type(c.get("type")):
                out.append(str(c["name"]))
        return tuple(out)
    plain = meta.get("columns")
    if isinstance(plain, list):
        return tuple(str(c) for c in plain if c is not None and str(c).strip())
    return ()


def vector_columns(item: CatalogItem, asset: CatalogAsset) -> Tuple[str, ...]:
    """Columnas numéricas de `table:columns` (asset, luego ítem) o `columns` plano."""
    cols = _columns_from(asset.extra)
    if not cols:
        cols = _columns_from(item.properties)
    return cols


def extract_asset_ref(item: CatalogItem, fallback_columns: Sequence[str] = ()) -> Optional[AssetRef]:
    raster = find_asset(item, AssetKind.RASTER)
    if raster is not None and raster.href:
        return AssetRef(kind=AssetKind.RASTER, url=raster.href)
    vector = find_asset(item, AssetKind.VECTOR)
    if vector is not None and vector.href:
        cols = vector_columns(item, vector) or tuple(fallback_columns)
        if cols:
            return AssetRef(kind=AssetKind.VECTOR, url=vector.href, columns=cols)
    return None


__all__ = [
    "AssetKind", "CatalogAsset", "CatalogItem", "NOT_FOUND", "ItemLookup",
    "AssetRef", "Unresolved", "AssetResolution", "NO_IMAGERY_MESSAGE", "NO_ASSET_MESSAGE",
    "ASSET_RULES", "PRIORITY_KEYS", "classify_asset", "find_asset", "vector_columns",
    "extract_asset_ref",
]
