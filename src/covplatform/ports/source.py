# src/covplatform/ports/source.py
from __future__ import annotations

from typing import Any, Callable, Mapping, Optional, Protocol, Sequence, runtime_checkable

# (cargados, total)
LoadProgress = Callable[[int, int], None]


@runtime_checkable
class SampleEventSourcePort(Protocol):
    """
    Fuente de verdad de eventos de muestreo y de tablas de detalle por protocolo.
    La autenticación (bearer token) queda del lado del adapter.
    """
    async def get_me(self) -> Mapping[str, Any]: ...
    async def list_project_summaries(self, on_progress: Optional[LoadProgress] = None) -> Sequence[Mapping[str, Any]]: ...
    async def get_protocol_csv(self, project_id: str, protocol: str) -> str: ...

__all__ = ["SampleEventSourcePort", "LoadProgress"]
