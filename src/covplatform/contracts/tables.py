# src/covplatform/contracts/tables.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Tuple


@dataclass(frozen=True)
class ProtocolTable:
    """Tabla de detalle de un protocolo (texto tal cual lo entrega el origen)."""
    headers: Tuple[str, ...] = ()
    rows: List[Dict[str, str]] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.rows)

    def merged(self, other: "ProtocolTable") -> "ProtocolTable":
        # la cabecera de la primera tabla manda
        headers = self.headers or other.headers
        return ProtocolTable(headers=headers, rows=[*self.rows, *other.rows])


@dataclass(frozen=True)
class ProtocolFetch:
    project_id: str
    protocol: str


__all__ = ["ProtocolTable", "ProtocolFetch"]
