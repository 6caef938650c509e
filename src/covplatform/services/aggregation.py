# src/covplatform/services/aggregation.py
from __future__ import annotations

from typing import Dict, List, Set, Tuple

from ..contracts.core import StatResult
from ..contracts.extraction import ExtractionError, ExtractionResults, TaskOutcome


class ResultAggregator:
    """Acumulación pura: éxitos anidados por evento/colección, errores en lista plana."""

    def __init__(self) -> None:
        self._results: ExtractionResults = {}
        self._errors: List[ExtractionError] = []

    def add_success(self, event_id: str, collection_id: str, stats: StatResult) -> None:
        self._results.setdefault(event_id, {})[collection_id] = stats

    def add_failure(self, error: ExtractionError) -> None:
        self._errors.append(error)

    def add(self, outcome: TaskOutcome) -> None:
        if outcome.error is not None:
            self.add_failure(outcome.error)
        else:
            t = outcome.task
            self.add_success(t.event.sample_event_id, t.collection.id, outcome.stats or {})

    @property
    def results(self) -> ExtractionResults:
        return self._results

    @property
    def errors(self) -> List[ExtractionError]:
        return self._errors

    def snapshot(self) -> Tuple[ExtractionResults, List[ExtractionError]]:
        return self._results, self._errors


def discovered_keys(results: ExtractionResults) -> Dict[str, List[str]]:
    """Por colección, claves de banda/columna vistas en todos los eventos (ordenadas)."""
    keys: Dict[str, Set[str]] = {}
    for by_col in results.values():
        for col_id, stat_result in by_col.items():
            keys.setdefault(col_id, set()).update(stat_result.keys())
    return {col_id: sorted(k) for col_id, k in keys.items()}


__all__ = ["ResultAggregator", "discovered_keys"]
