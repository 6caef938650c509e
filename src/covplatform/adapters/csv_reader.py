# src/covplatform/adapters/csv_reader.py
from __future__ import annotations

import io

import pandas as pd

from ..contracts.tables import ProtocolTable
from ..ports.exporters import TableReaderPort


class PandasCsvReader(TableReaderPort):
    """Lector CSV pareado: todo como texto, vacíos como '' (sin NaN)."""

    def parse(self, text: str) -> ProtocolTable:
        if not text or not text.strip():
            return ProtocolTable()
        try:
            df = pd.read_csv(
                io.StringIO(text),
                dtype=str,
                keep_default_na=False,
                skip_blank_lines=True,
            )
        except pd.errors.EmptyDataError:
            return ProtocolTable()
        headers = tuple(str(c) for c in df.columns)
        rows = df.to_dict(orient="records")
        return ProtocolTable(headers=headers, rows=[{str(k): str(v) for k, v in r.items()} for r in rows])


__all__ = ["PandasCsvReader"]
