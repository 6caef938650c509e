# src/covplatform/ports/exporters.py
from __future__ import annotations

from typing import Any, Protocol, Sequence, Tuple, runtime_checkable

from ..contracts.tables import ProtocolTable

Row = Sequence[Any]
Sheet = Tuple[str, Sequence[str], Sequence[Row]]


@runtime_checkable
class TableExporterPort(Protocol):
    """Serializa una tabla (cabecera + filas) a texto CSV."""
    def render(self, headers: Sequence[str], rows: Sequence[Row]) -> str: ...


@runtime_checkable
class WorkbookExporterPort(Protocol):
    """
    Serializa hojas `(nombre, cabecera, filas)` a bytes XLSX.
    Los nombres ya vienen saneados por el servicio.
    """
    def render(self, sheets: Sequence[Sheet]) -> bytes: ...


@runtime_checkable
class TableReaderPort(Protocol):
    """Lector pareado del CSV: todo como texto, vacíos como ''."""
    def parse(self, text: str) -> ProtocolTable: ...


__all__ = ["TableExporterPort", "WorkbookExporterPort", "TableReaderPort", "Row", "Sheet"]
