## `src/covplatform/adapters/csv_exporter.py`

from __future__ import annotations

from typing import Any, Sequence

from ..ports.exporters import Row, TableExporterPort

_NEEDS_QUOTES = (",", '"', "\n", "\r")


class CSVExporter(TableExporterPort):
    """Exporter CSV en memoria: UTF-8, separador LF, quoting mínimo.

    Convención:
      - `None` se escribe como celda vacía.
      - Un campo va entre comillas si trae coma, comilla, LF o CR
        (comillas internas duplicadas).
      - Las filas se escriben tal cual; el servicio ya decidió qué es vacío.
    Sin salto de línea final, igual que el CSV que se entrega al usuario.
    """
    def render(self, headers: Sequence[str], rows: Sequence[Row]) -> str:
        lines = [_line(headers)]
        lines.extend(_line(r) for r in rows)
        return "\n".join(lines)


def _line(values: Sequence[Any]) -> str:
    return ",".join(_escape(v) for v in values)


def _escape(v: Any) -> str:
    s = "" if v is None else str(v)
    if any(ch in s for ch in _NEEDS_QUOTES):
        return '"' + s.replace('"', '""') + '"'
    return s


__all__ = ["CSVExporter"]
