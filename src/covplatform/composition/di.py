from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import yaml

from ..adapters.csv_exporter import CSVExporter
from ..adapters.csv_reader import PandasCsvReader
from ..adapters.mermaid_source import PROTOCOL_ENDPOINTS, MermaidSource
from ..adapters.stac_catalog import StacCatalog
from ..adapters.xlsx_exporter import XLSXExporter
from ..adapters.zonal_stats_http import ZonalStatsHttp
from ..config import Settings, get_settings
from ..services.asset_resolver import AssetResolver
from ..services.export_service import ExportService
from ..services.extraction_service import ExtractionService
from ..services.stats_client import StatsClient


def load_settings_from_yaml(path: Path) -> Settings:
    data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    return Settings(**data)


def build_settings(config_path: Optional[Path] = None) -> Settings:
    """YAML explícito si se entrega; si no, entorno (`COV_*`) y `.env`."""
    if config_path is not None:
        return load_settings_from_yaml(config_path.expanduser().resolve())
    return get_settings()


@dataclass
class Container:
    """Wiring de una sesión. Dueño de los clientes HTTP: cerrar con `aclose()`."""
    settings: Settings
    catalog: StacCatalog
    zonal_stats: ZonalStatsHttp
    source: Optional[MermaidSource]
    resolver: AssetResolver
    extraction: ExtractionService
    export: ExportService

    async def aclose(self) -> None:
        await self.catalog.aclose()
        await self.zonal_stats.aclose()
        if self.source is not None:
            await self.source.aclose()

    async def __aenter__(self) -> "Container":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()


def build_container(s: Settings) -> Container:
    catalog = StacCatalog(s.catalog_url, timeout=s.http_timeout_s)
    zonal = ZonalStatsHttp(s.zonal_stats_url, timeout=s.http_timeout_s)
    source = (
        MermaidSource(s.source_api_url, s.source_api_token, timeout=s.http_timeout_s)
        if s.source_api_token
        else None
    )
    resolver = AssetResolver(catalog=catalog, probe_concurrency=s.extraction_concurrency)
    extraction = ExtractionService(
        resolver=resolver,
        stats_client=StatsClient(port=zonal),
        radius_m=s.buffer_radius_m,
        concurrency=s.extraction_concurrency,
    )
    export = ExportService(
        csv_exporter=CSVExporter(),
        workbook_exporter=XLSXExporter(),
        reader=PandasCsvReader(),
        known_protocols=tuple(PROTOCOL_ENDPOINTS),
        fetch_concurrency=s.protocol_fetch_concurrency,
    )
    return Container(
        settings=s,
        catalog=catalog,
        zonal_stats=zonal,
        source=source,
        resolver=resolver,
        extraction=extraction,
        export=export,
    )
