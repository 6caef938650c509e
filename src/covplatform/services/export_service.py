# src/covplatform/services/export_service.py
from __future__ import annotations

"""
Derivación de esquema y exportación (CSV resumen / XLSX por protocolo).

Columnas de covariables: una por colección x clave (banda/columna) x estadística,
`<título>_<clave>_<stat>` con espacios colapsados a `_`. Sin metadatos de claves
para una colección se usa `band_1`. El libro XLSX usa exactamente las mismas
columnas que el CSV.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from ..contracts.core import Collection, SampleEvent, StatValue
from ..contracts.errors import ConfigurationError
from ..contracts.extraction import ExtractionResults, ProgressSink
from ..contracts.tables import ProtocolFetch, ProtocolTable
from ..ports.exporters import Row, Sheet, TableExporterPort, TableReaderPort, WorkbookExporterPort
from ..ports.source import SampleEventSourcePort
from .concurrency import run_bounded
from .stats_client import coerce_stat_value

logger = logging.getLogger(__name__)

DEFAULT_KEY = "band_1"

EVENT_FIELDS: Tuple[str, ...] = (
    "sample_event_id", "project_id", "project_name", "site_id", "site_name",
    "latitude", "longitude", "country_id", "country_name",
    "reef_type", "reef_zone", "reef_exposure",
    "management_id", "management_name", "sample_date",
)
COMPUTED_FIELDS: Tuple[str, ...] = ("protocols", "observers", "organizations")

SHEET_NAME_MAX = 31
_SHEET_ILLEGAL_RE = re.compile(r"[\\/*?\[\]:]")
_WS_RE = re.compile(r"\s+")

BandKeys = Mapping[str, Sequence[str]]


# ----------------------
# Esquema
# ----------------------
def clean_name(s: str) -> str:
    return _WS_RE.sub("_", s)


def keys_for(collection: Collection, band_keys: Optional[BandKeys]) -> List[str]:
    keys = (band_keys or {}).get(collection.id)
    return sorted(keys) if keys else [DEFAULT_KEY]


@dataclass(frozen=True)
class CovariateColumn:
    header: str
    collection_id: str
    key: str
    stat: str


def covariate_columns(
    collections: Sequence[Collection],
    stats: Sequence[str],
    band_keys: Optional[BandKeys] = None,
) -> List[CovariateColumn]:
    cols: List[CovariateColumn] = []
    for col in collections:
        title = clean_name(col.display_title)
        for key in keys_for(col, band_keys):
            for stat in stats:
                cols.append(CovariateColumn(f"{title}_{clean_name(key)}_{stat}", col.id, key, stat))
    return cols


def covariate_values(
    event_id: str,
    columns: Sequence[CovariateColumn],
    results: Optional[ExtractionResults],
) -> List[StatValue]:
    """Valor numérico o None (nunca NaN ni texto)."""
    by_col = (results or {}).get(event_id) or {}
    out: List[StatValue] = []
    for c in columns:
        v = ((by_col.get(c.collection_id) or {}).get(c.key) or {}).get(c.stat)
        out.append(coerce_stat_value(v))
    return out


def _join(names: Iterable[str]) -> str:
    return ", ".join(names)


def event_row(event: SampleEvent) -> List[Any]:
    base = [getattr(event, f) for f in EVENT_FIELDS]
    base[EVENT_FIELDS.index("sample_date")] = event.sample_date.isoformat()
    computed = [
        _join(event.active_protocols()),
        _join(event.observer_names()),
        _join(event.organization_names()),
    ]
    return base + computed


# ----------------------
# CSV
# ----------------------
def csv_table(
    events: Sequence[SampleEvent],
    results: Optional[ExtractionResults],
    collections: Sequence[Collection],
    stats: Sequence[str],
    band_keys: Optional[BandKeys] = None,
) -> Tuple[List[str], List[Row]]:
    cov = covariate_columns(collections, stats, band_keys)
    headers = [*EVENT_FIELDS, *COMPUTED_FIELDS, *(c.header for c in cov)]
    rows: List[Row] = []
    for e in events:
        values = ["" if v is None else v for v in covariate_values(e.sample_event_id, cov, results)]
        rows.append(event_row(e) + values)
    return headers, rows


# ----------------------
# Workbook
# ----------------------
def sanitize_sheet_name(name: str, taken: Optional[Set[str]] = None) -> str:
    base = _SHEET_ILLEGAL_RE.sub("_", name)[:SHEET_NAME_MAX] or "Sheet"
    if taken is None or base.lower() not in taken:
        return base
    n = 2
    while True:
        suffix = f"_{n}"
        cand = base[: SHEET_NAME_MAX - len(suffix)] + suffix
        if cand.lower() not in taken:
            return cand
        n += 1


def required_fetches(events: Sequence[SampleEvent], known_protocols: Iterable[str]) -> List[ProtocolFetch]:
    """Pares (proyecto, protocolo) con datos en algún evento y endpoint conocido."""
    known = set(known_protocols)
    by_project: Dict[str, Dict[str, None]] = {}
    for e in events:
        if not e.project_id:
            continue
        protos = by_project.setdefault(e.project_id, {})
        for p in e.active_protocols():
            if p in known:
                protos[p] = None
    return [ProtocolFetch(project_id=pid, protocol=p) for pid, protos in by_project.items() for p in protos]


def workbook_sheets(
    tables: Mapping[str, ProtocolTable],
    results: Optional[ExtractionResults],
    collections: Sequence[Collection],
    stats: Sequence[str],
    selected_ids: Iterable[str],
    band_keys: Optional[BandKeys] = None,
) -> List[Sheet]:
    selected = set(selected_ids)
    cov = covariate_columns(collections, stats, band_keys)
    sheets: List[Sheet] = []
    taken: Set[str] = set()
    for protocol in sorted(tables):
        table = tables[protocol]
        rows = [r for r in table.rows if r.get("sample_event_id") in selected]
        if not rows:
            continue
        headers = [*table.headers, *(c.header for c in cov)]
        full_rows: List[Row] = [
            [r.get(h, "") for h in table.headers] + covariate_values(r["sample_event_id"], cov, results)
            for r in rows
        ]
        name = sanitize_sheet_name(protocol, taken)
        taken.add(name.lower())
        sheets.append((name, headers, full_rows))
    return sheets


@dataclass
class ExportService:
    csv_exporter: TableExporterPort
    workbook_exporter: WorkbookExporterPort
    reader: TableReaderPort
    known_protocols: Sequence[str] = field(default_factory=tuple)
    fetch_concurrency: int = 5

    def build_csv(
        self,
        events: Sequence[SampleEvent],
        results: Optional[ExtractionResults],
        collections: Sequence[Collection],
        stats: Sequence[str],
        band_keys: Optional[BandKeys] = None,
    ) -> str:
        headers, rows = csv_table(events, results, collections, stats, band_keys)
        return self.csv_exporter.render(headers, rows)

    def build_workbook(
        self,
        tables: Mapping[str, ProtocolTable],
        results: Optional[ExtractionResults],
        collections: Sequence[Collection],
        stats: Sequence[str],
        selected_ids: Iterable[str],
        band_keys: Optional[BandKeys] = None,
    ) -> bytes:
        sheets = workbook_sheets(tables, results, collections, stats, selected_ids, band_keys)
        if not sheets:
            raise ConfigurationError("No protocol data available for selected sample events")
        return self.workbook_exporter.render(sheets)

    async def fetch_protocol_tables(
        self,
        source: SampleEventSourcePort,
        fetches: Sequence[ProtocolFetch],
        progress: Optional[ProgressSink] = None,
    ) -> Dict[str, ProtocolTable]:
        """Descarga acotada; fallas se loguean y se omiten. Fusiona por protocolo.

        `progress(completadas, total)` tras cada descarga, exitosa o no.
        """
        total = len(fetches)
        done = 0

        def _on_done(_i: int, _table: Optional[ProtocolTable]) -> None:
            nonlocal done
            done += 1
            if progress is not None:
                progress(done, total)

        async def _fetch(f: ProtocolFetch) -> Optional[ProtocolTable]:
            try:
                text = await source.get_protocol_csv(f.project_id, f.protocol)
                return self.reader.parse(text)
            except Exception as e:  # una descarga fallida no aborta el libro
                logger.warning("no se pudo descargar %s del proyecto %s: %s", f.protocol, f.project_id, e)
                return None

        fetched = await run_bounded(fetches, _fetch, concurrency=self.fetch_concurrency, on_done=_on_done)
        merged: Dict[str, ProtocolTable] = {}
        for f, table in zip(fetches, fetched):
            if table is None:
                continue
            prev = merged.get(f.protocol)
            merged[f.protocol] = table if prev is None else prev.merged(table)
        return merged

    async def export_workbook(
        self,
        source: SampleEventSourcePort,
        events: Sequence[SampleEvent],
        results: Optional[ExtractionResults],
        collections: Sequence[Collection],
        stats: Sequence[str],
        band_keys: Optional[BandKeys] = None,
        progress: Optional[ProgressSink] = None,
    ) -> bytes:
        fetches = required_fetches(events, self.known_protocols)
        if not fetches:
            raise ConfigurationError("No protocol data available for selected sample events")
        logger.info("xlsx: %d descargas de protocolo", len(fetches))
        tables = await self.fetch_protocol_tables(source, fetches, progress=progress)
        if not tables:
            raise ConfigurationError("No protocol data could be fetched")
        selected = [e.sample_event_id for e in events]
        return self.build_workbook(tables, results, collections, stats, selected, band_keys)


__all__ = [
    "ExportService",
    "CovariateColumn",
    "covariate_columns",
    "covariate_values",
    "csv_table",
    "workbook_sheets",
    "required_fetches",
    "sanitize_sheet_name",
    "clean_name",
    "EVENT_FIELDS",
    "COMPUTED_FIELDS",
    "DEFAULT_KEY",
]
