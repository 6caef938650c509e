# src/covplatform/adapters/http_base.py
from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

import httpx

from ..contracts.errors import ServiceFailure

logger = logging.getLogger(__name__)

_BODY_PREVIEW = 500


class AsyncHttpAdapter:
    """
    Base mínima para adapters HTTP asíncronos.

    - Un `httpx.AsyncClient` perezoso por adapter (o inyectado, p.ej. en tests
      con `httpx.MockTransport`).
    - No-2xx y errores de transporte se traducen a `ServiceFailure`.
    """
    service_name: str = "service"

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 60.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                follow_redirects=True,
            )
            self._owns_client = True
        return self._client

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None and not self._client.is_closed:
            await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    def _url(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    def _headers(self) -> Mapping[str, str]:
        return {}

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        json: Any = None,
    ) -> httpx.Response:
        client = await self._get_client()
        url = self._url(path)
        try:
            response = await client.request(method, url, params=params, json=json, headers=dict(self._headers()))
        except httpx.TimeoutException as e:
            raise ServiceFailure(self.service_name, detail=f"timeout after {self.timeout}s") from e
        except httpx.RequestError as e:
            raise ServiceFailure(self.service_name, detail=str(e) or type(e).__name__) from e

        if response.status_code >= 300:
            body = (response.text or "").strip()[:_BODY_PREVIEW]
            logger.debug("%s %s -> %s", method, url, response.status_code)
            raise ServiceFailure(self.service_name, status_code=response.status_code, body=body)
        return response

    async def _json(self, method: str, path: str, **kw) -> Any:
        response = await self._request(method, path, **kw)
        try:
            return response.json()
        except ValueError as e:
            raise ServiceFailure(self.service_name, status_code=response.status_code,
                                 detail="invalid JSON response") from e


__all__ = ["AsyncHttpAdapter"]
