# src/covplatform/cli.py
from __future__ import annotations

"""
CLI de extracción de covariables (contracts-first, minimal).

Comandos principales:
  - collections: lista colecciones del catálogo con su capacidad raster/vector.
  - extract: cruza eventos x colecciones, consulta estadísticas zonales y
    exporta CSV y/o XLSX.

Ejemplos rápidos:
  python -m covplatform.cli collections

  python -m covplatform.cli extract --events ./events.json \
      -c sst-daily -c reef-geomorphic -s mean -s max \
      --csv ./out/covariates.csv

  COV_SOURCE_API_TOKEN=... python -m covplatform.cli extract \
      --project 1f2e... --start 2023-01-01 -c sst-daily --xlsx ./out/cov.xlsx
"""

import argparse
import asyncio
import json
import logging
import sys
from datetime import date
from pathlib import Path
from typing import Any, List, Optional, Sequence

from .composition.di import Container, build_container, build_settings
from .contracts.core import Collection, SampleEvent
from .contracts.errors import ConfigurationError, CovariatesError
from .contracts.extraction import ExtractionError, ExtractionRun
from .services.aggregation import discovered_keys
from .services.extraction_service import progress_view
from .services.selection import filter_records, flatten_records, member_projects_only

logger = logging.getLogger("covplatform")

ERROR_PREVIEW = 5

# ----------------------
# Utilidades locales
# ----------------------

def _parse_date(s: Optional[str]) -> Optional[date]:
    if not s:
        return None
    try:
        return date.fromisoformat(s)
    except ValueError:
        raise ValueError(f"Fecha inválida (usa YYYY-MM-DD): {s}") from None


def _load_events_file(path: str | Path) -> List[SampleEvent]:
    """Acepta resúmenes de proyecto (`records`) o una lista plana de eventos."""
    with open(path, "r", encoding="utf-8") as f:
        obj: Any = json.load(f)
    if isinstance(obj, dict):
        obj = obj.get("results", [])
    if not isinstance(obj, list):
        raise ValueError("Formato de eventos no reconocido (se espera lista o {results: [...]})")
    if obj and isinstance(obj[0], dict) and "records" in obj[0]:
        return flatten_records(obj)
    return [SampleEvent.model_validate(r) for r in obj]


def _format_errors(errors: Sequence[ExtractionError], limit: int = ERROR_PREVIEW) -> List[str]:
    lines = [f"  - {e.site_name or e.sample_event_id} / {e.collection_name}: {e.message}" for e in errors[:limit]]
    if len(errors) > limit:
        lines.append(f"  ... and {len(errors) - limit} more")
    return lines


def _write(path: str, payload: str | bytes) -> Path:
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    if isinstance(payload, bytes):
        out.write_bytes(payload)
    else:
        out.write_text(payload, encoding="utf-8")
    return out


def _select_collections(available: Sequence[Collection], wanted: Sequence[str]) -> List[Collection]:
    by_id = {c.id: c for c in available}
    missing = [w for w in wanted if w not in by_id]
    if missing:
        raise ConfigurationError(f"Colecciones desconocidas: {missing}")
    # orden del llamador
    return [by_id[w] for w in dict.fromkeys(wanted)]


# ----------------------
# Comandos
# ----------------------

async def _collections(c: Container, args: argparse.Namespace) -> int:
    cols = await c.resolver.list_collections()
    for col in cols:
        cap = col.capability
        kinds = ",".join(k for k, on in (("raster", cap.has_raster), ("vector", cap.has_vector)) if on) or "-"
        print(f"{col.id}\t{kinds}\t{col.display_title}")
    return 0


async def _load_events(c: Container, args: argparse.Namespace) -> List[SampleEvent]:
    if args.events:
        events = _load_events_file(args.events)
    else:
        if c.source is None:
            raise ConfigurationError("Sin --events se requiere COV_SOURCE_API_TOKEN para consultar el origen")
        summaries = await c.source.list_project_summaries(
            on_progress=lambda n, total: logger.debug("eventos: %d de %d", n, total)
        )
        me = await c.source.get_me()
        events = flatten_records(member_projects_only(summaries, me))
    return filter_records(
        events,
        projects=args.project or (),
        countries=args.country or (),
        organizations=args.organization or (),
        start=_parse_date(args.start),
        end=_parse_date(args.end),
    )


async def _extract(c: Container, args: argparse.Namespace) -> int:
    events = await _load_events(c, args)
    stats = list(dict.fromkeys(args.stat)) if args.stat else list(c.settings.default_stats)
    collections = _select_collections(await c.resolver.list_collections(), args.collection)

    n_cols = len(collections)

    def _progress(done: int, total: int) -> None:
        p = progress_view(done, total, n_cols)
        if done % n_cols == 0 or done == total:
            logger.info("eventos %d/%d (%d/%d tareas)", p.events_completed, p.total_events, done, total)

    run: ExtractionRun = await c.extraction.run_extraction(events, collections, stats, progress=_progress)
    print(f"tareas: {run.completed}/{run.total_tasks} ({run.succeeded} ok, {run.failed} con error)")
    if run.errors:
        print("\n".join(_format_errors(run.errors)), file=sys.stderr)

    band_keys = discovered_keys(run.results)
    if args.csv:
        content = c.export.build_csv(events, run.results, collections, stats, band_keys)
        print(str(_write(args.csv, content)))
    if args.xlsx:
        if c.source is None:
            raise ConfigurationError("--xlsx requiere COV_SOURCE_API_TOKEN para descargar los protocolos")
        payload = await c.export.export_workbook(
            c.source, events, run.results, collections, stats, band_keys,
            progress=lambda done, total: logger.info("protocolos %d/%d", done, total),
        )
        print(str(_write(args.xlsx, payload)))
    return 0


async def _run(args: argparse.Namespace) -> int:
    s = build_settings(Path(args.config) if args.config else None)
    logging.basicConfig(level=s.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    async with build_container(s) as c:
        return await args.func(c, args)


# ----------------------
# Parser
# ----------------------

def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="covplatform", description="Extracción de covariables por evento de muestreo")
    p.add_argument("--config", help="settings.yaml (si no, entorno COV_* / .env)")
    sub = p.add_subparsers(dest="cmd", required=True)

    pc = sub.add_parser("collections", help="lista colecciones y su capacidad")
    pc.set_defaults(func=_collections)

    pe = sub.add_parser("extract", help="extrae covariables y exporta CSV/XLSX")
    pe.add_argument("--events", help="JSON con eventos (lista plana o resúmenes de proyecto)")
    pe.add_argument("--project", action="append", default=[], help="filtra por project_id (repetible)")
    pe.add_argument("--country", action="append", default=[], help="filtra por país (repetible)")
    pe.add_argument("--organization", action="append", default=[], help="filtra por organización (repetible)")
    pe.add_argument("--start", help="fecha mínima YYYY-MM-DD")
    pe.add_argument("--end", help="fecha máxima YYYY-MM-DD")
    pe.add_argument("-c", "--collection", action="append", required=True, help="id de colección (repetible)")
    pe.add_argument("-s", "--stat", action="append", default=[], help="estadística (repetible)")
    pe.add_argument("--csv", help="ruta de salida CSV")
    pe.add_argument("--xlsx", help="ruta de salida XLSX")
    pe.set_defaults(func=_extract)

    return p


def main(argv: list[str] | None = None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)
    parser = _build_parser()
    args = parser.parse_args(argv)
    try:
        return asyncio.run(_run(args))
    except KeyboardInterrupt:
        return 130
    except (CovariatesError, ValueError, OSError) as ex:
        print(f"[ERROR] {ex}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
