# src/covplatform/services/concurrency.py
from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, List, Optional, Sequence, TypeVar

T = TypeVar("T")
R = TypeVar("R")


async def run_bounded(
    items: Sequence[T],
    handler: Callable[[T], Awaitable[R]],
    *,
    concurrency: int,
    on_done: Optional[Callable[[int, R], None]] = None,
) -> List[R]:
    """
    Pool acotado de corrutinas sobre un cursor compartido.

    Cada worker toma el siguiente índice libre apenas termina el anterior
    (no espera a que drene un lote). Devuelve los resultados en el orden de
    `items`; `on_done(i, r)` se llama en orden de finalización.
    `handler` no debería lanzar: una excepción aborta el pool completo.
    """
    if concurrency < 1:
        raise ValueError("concurrency debe ser >= 1")
    items = list(items)
    results: List[Optional[R]] = [None] * len(items)
    cursor = 0

    async def _worker() -> None:
        nonlocal cursor
        while cursor < len(items):
            # un solo hilo de control: leer+avanzar el cursor es atómico entre awaits
            i = cursor
            cursor += 1
            r = await handler(items[i])
            results[i] = r
            if on_done is not None:
                on_done(i, r)

    n_workers = min(concurrency, len(items))
    if n_workers:
        await asyncio.gather(*(_worker() for _ in range(n_workers)))
    return results  # type: ignore[return-value]


__all__ = ["run_bounded"]
