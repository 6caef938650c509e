# src/covplatform/adapters/xlsx_exporter.py
from __future__ import annotations

import io
from typing import Sequence

import pandas as pd

from ..ports.exporters import Sheet, WorkbookExporterPort


class XLSXExporter(WorkbookExporterPort):
    """Libro multi-hoja vía `pd.ExcelWriter(engine="openpyxl")`, en memoria."""

    engine: str = "openpyxl"

    def render(self, sheets: Sequence[Sheet]) -> bytes:
        if not sheets:
            raise ValueError("un libro XLSX requiere al menos una hoja")
        buf = io.BytesIO()
        with pd.ExcelWriter(buf, engine=self.engine) as writer:
            for name, headers, rows in sheets:
                df = pd.DataFrame([list(r) for r in rows], columns=list(headers))
                df.to_excel(writer, sheet_name=name, index=False)
        return buf.getvalue()


__all__ = ["XLSXExporter"]
