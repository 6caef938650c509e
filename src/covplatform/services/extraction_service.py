# src/covplatform/services/extraction_service.py
from __future__ import annotations

"""
Servicio de extracción de covariables (evento x colección), contracts-first.
Pipeline por tarea:
  CACHE (colección, fecha) → RESOLVE ítem → ASSET → ZONAL STATS → AGGREGATE

Una tarea fallida nunca aborta la corrida; cada tarea termina exactamente en
un éxito o en un ExtractionError. Sin reintentos.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from ..contracts.assets import Unresolved
from ..contracts.core import Collection, SampleEvent
from ..contracts.errors import ConfigurationError
from ..contracts.extraction import (
    ExtractionError,
    ExtractionProgress,
    ExtractionRun,
    ExtractionTask,
    ProgressSink,
    TaskOutcome,
)
from .aggregation import ResultAggregator
from .asset_resolver import AssetResolver, ResolutionCache, asset_for_item
from .concurrency import run_bounded
from .stats_client import StatsClient

logger = logging.getLogger(__name__)

NO_COORDINATES_MESSAGE = "Sample event has no coordinates"


def build_tasks(events: Sequence[SampleEvent], collections: Sequence[Collection]) -> List[ExtractionTask]:
    """Producto cruzado estable: eventos afuera, colecciones adentro."""
    return [ExtractionTask(event=e, collection=c) for e in events for c in collections]


@dataclass
class ExtractionService:
    resolver: AssetResolver
    stats_client: StatsClient
    radius_m: float = 1000.0
    concurrency: int = 10

    def _validate(self, events: Sequence[SampleEvent], collections: Sequence[Collection], stats: Sequence[str]) -> None:
        if not events:
            raise ConfigurationError("No sample events selected")
        if not collections:
            raise ConfigurationError("No collections selected")
        if not stats:
            raise ConfigurationError("No statistics selected")

    async def _process(self, task: ExtractionTask, stats: Sequence[str], cache: ResolutionCache) -> TaskOutcome:
        event, collection = task.event, task.collection
        try:
            point = event.point
            if point is None:
                return TaskOutcome(task=task, error=ExtractionError.for_task(task, NO_COORDINATES_MESSAGE))

            item = await cache.get_or_resolve(
                task.cache_key,
                lambda: self.resolver.resolve_item(collection.id, event.sample_date),
            )
            asset = asset_for_item(item, collection)
            if isinstance(asset, Unresolved):
                return TaskOutcome(task=task, error=ExtractionError.for_task(task, asset.message))

            result = await self.stats_client.get_zonal_stats(point, self.radius_m, stats, asset)
            return TaskOutcome(task=task, stats=result)
        except Exception as e:  # cualquier falla queda aislada en su tarea
            logger.debug("tarea %s/%s falló: %s", event.sample_event_id, collection.id, e)
            return TaskOutcome(task=task, error=ExtractionError.for_task(task, str(e) or type(e).__name__))

    async def run_extraction(
        self,
        events: Sequence[SampleEvent],
        collections: Sequence[Collection],
        stats: Sequence[str],
        progress: Optional[ProgressSink] = None,
    ) -> ExtractionRun:
        self._validate(events, collections, stats)
        stats = list(stats)
        tasks = build_tasks(events, collections)
        total = len(tasks)

        # estado exclusivo de esta corrida
        cache = ResolutionCache()
        agg = ResultAggregator()
        completed = 0

        def _on_done(_i: int, outcome: TaskOutcome) -> None:
            nonlocal completed
            agg.add(outcome)
            completed += 1
            if progress is not None:
                progress(completed, total)

        async def _handler(task: ExtractionTask) -> TaskOutcome:
            return await self._process(task, stats, cache)

        logger.info("extracción: %d eventos x %d colecciones = %d tareas",
                    len(events), len(collections), total)
        await run_bounded(tasks, _handler, concurrency=self.concurrency, on_done=_on_done)

        results, errors = agg.snapshot()
        run = ExtractionRun(results=results, errors=errors, total_tasks=total)
        logger.info("extracción terminada: %d ok, %d con error, %d consultas de catálogo",
                    run.succeeded, run.failed, cache.lookups)
        return run


def progress_view(completed: int, total: int, n_collections: int) -> ExtractionProgress:
    return ExtractionProgress(completed=completed, total=total, n_collections=n_collections)


__all__ = ["ExtractionService", "build_tasks", "progress_view", "NO_COORDINATES_MESSAGE"]
