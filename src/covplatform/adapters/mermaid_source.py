# src/covplatform/adapters/mermaid_source.py
from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Any, Callable, List, Mapping, Optional, Sequence, Union

import httpx

from ..contracts.errors import ConfigurationError
from ..ports.source import LoadProgress, SampleEventSourcePort
from .http_base import AsyncHttpAdapter

logger = logging.getLogger(__name__)

# protocolo -> endpoint de exportación CSV (y nombre legible)
PROTOCOL_ENDPOINTS: Mapping[str, Mapping[str, str]] = MappingProxyType({
    "beltfish": {"endpoint": "beltfishes", "display_name": "Belt Fish"},
    "benthiclit": {"endpoint": "benthiclits", "display_name": "Benthic LIT"},
    "benthicpit": {"endpoint": "benthicpits", "display_name": "Benthic PIT"},
    "benthicpqt": {"endpoint": "benthicpqts", "display_name": "Benthic PQT"},
    "bleachingqc": {"endpoint": "bleachingqcs", "display_name": "Bleaching"},
    "habitatcomplexity": {"endpoint": "habitatcomplexities", "display_name": "Habitat Complexity"},
})

PAGE_SIZE = 300

TokenProvider = Callable[[], str]


class MermaidSource(AsyncHttpAdapter, SampleEventSourcePort):
    """
    Adapter de la API de origen (MERMAID).

    El token se entrega ya resuelto (str) o como callable; la obtención del
    token (login, refresh) queda fuera de este paquete.
    """
    service_name = "Source API"

    def __init__(
        self,
        base_url: str,
        token: Union[str, TokenProvider, None],
        *,
        timeout: float = 60.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        super().__init__(base_url, timeout=timeout, client=client)
        self._token = token

    def _headers(self) -> Mapping[str, str]:
        token = self._token() if callable(self._token) else self._token
        if not token:
            raise ConfigurationError("Source API requiere un bearer token (COV_SOURCE_API_TOKEN)")
        return {"Authorization": f"Bearer {token}"}

    async def get_me(self) -> Mapping[str, Any]:
        return await self._json("GET", "/me/") or {}

    async def list_project_summaries(self, on_progress: Optional[LoadProgress] = None) -> Sequence[Mapping[str, Any]]:
        results: List[Mapping[str, Any]] = []
        next_url: Optional[str] = "/projectsummarysampleevents/"
        params: Optional[Mapping[str, Any]] = {"limit": PAGE_SIZE, "page": 1}

        while next_url:
            data = await self._json("GET", next_url, params=params) or {}
            results.extend(data.get("results") or [])
            if on_progress is not None:
                on_progress(len(results), int(data.get("count") or len(results)))
            # `next` ya trae limit/page en la query
            next_url = data.get("next") or None
            params = None

        logger.info("source: %d resúmenes de proyecto", len(results))
        return results

    async def get_protocol_csv(self, project_id: str, protocol: str) -> str:
        info = PROTOCOL_ENDPOINTS.get(protocol)
        if info is None:
            raise ConfigurationError(f"Unknown protocol: {protocol}")
        response = await self._request("GET", f"/projects/{project_id}/{info['endpoint']}/sampleevents/csv/")
        return response.text


__all__ = ["MermaidSource", "PROTOCOL_ENDPOINTS", "PAGE_SIZE"]
