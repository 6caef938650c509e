# src/covplatform/contracts/errors.py
from __future__ import annotations

from typing import Optional


class CovariatesError(Exception):
    """Raíz de errores del pipeline."""


class ServiceFailure(CovariatesError):
    """Respuesta no-2xx o error de transporte de un servicio externo."""

    def __init__(self, service: str, status_code: Optional[int] = None, body: str = "", detail: str = ""):
        self.service = service
        self.status_code = status_code
        self.body = body
        if status_code is not None:
            msg = f"{service} failed ({status_code})"
        else:
            msg = f"{service} request failed"
        if body:
            msg = f"{msg}: {body}"
        elif detail:
            msg = f"{msg}: {detail}"
        super().__init__(msg)


class ConfigurationError(CovariatesError):
    """Falla de armado de una operación (selección vacía, sin protocolos, ...)."""


__all__ = ["CovariatesError", "ServiceFailure", "ConfigurationError"]
