# src/covplatform/contracts/extraction.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from pydantic import BaseModel, ConfigDict

from .core import Collection, SampleEvent, StatResult

# evento -> colección -> StatResult
ExtractionResults = Dict[str, Dict[str, StatResult]]

# (completadas, total)
ProgressSink = Callable[[int, int], None]


@dataclass(frozen=True)
class ExtractionTask:
    """Par (evento, colección). Derivado; nunca se persiste."""
    event: SampleEvent
    collection: Collection

    @property
    def cache_key(self) -> str:
        return f"{self.collection.id}:{self.event.sample_date.isoformat()}"


class ExtractionError(BaseModel):
    model_config = ConfigDict(frozen=True)
    sample_event_id: str
    site_name: str = ""
    collection_id: str
    collection_name: str = ""
    message: str

    @classmethod
    def for_task(cls, task: ExtractionTask, message: str) -> "ExtractionError":
        return cls(
            sample_event_id=task.event.sample_event_id,
            site_name=task.event.site_name,
            collection_id=task.collection.id,
            collection_name=task.collection.display_title,
            message=message,
        )


@dataclass(frozen=True)
class TaskOutcome:
    """Exactamente uno de `stats` / `error` está presente."""
    task: ExtractionTask
    stats: Optional[StatResult] = None
    error: Optional[ExtractionError] = None

    def __post_init__(self):
        if (self.stats is None) == (self.error is None):
            raise ValueError("TaskOutcome requiere exactamente uno de stats/error")

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class ExtractionProgress:
    completed: int
    total: int
    n_collections: int

    @property
    def events_completed(self) -> int:
        # vale porque cada evento aporta exactamente |colecciones| tareas
        if self.n_collections <= 0:
            return 0
        return self.completed // self.n_collections

    @property
    def total_events(self) -> int:
        if self.n_collections <= 0:
            return 0
        return self.total // self.n_collections


@dataclass(frozen=True)
class ExtractionRun:
    results: ExtractionResults
    errors: List[ExtractionError] = field(default_factory=list)
    total_tasks: int = 0

    @property
    def failed(self) -> int:
        return len(self.errors)

    @property
    def succeeded(self) -> int:
        return sum(len(by_col) for by_col in self.results.values())

    @property
    def completed(self) -> int:
        return self.succeeded + self.failed


__all__ = [
    "ExtractionResults", "ProgressSink", "ExtractionTask", "ExtractionError",
    "TaskOutcome", "ExtractionProgress", "ExtractionRun",
]
