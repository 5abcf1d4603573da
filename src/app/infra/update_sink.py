"""Fila limitada de updates compartilhada por webhook e long polling.

Produtores nunca bloqueiam: offer() devolve False quando a fila está cheia
e cada caminho de ingresso decide o que fazer (503 no webhook, descarte
com log no polling). O consumidor drena com get().
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from api.connectors.telegram.models import Update

DEFAULT_CAPACITY = 100


class UpdateSink:
    """Fila multi-produtor de Update com capacidade fixa."""

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError("capacity deve ser >= 1")
        self._capacity = capacity
        self._queue: asyncio.Queue[Update] = asyncio.Queue(maxsize=capacity)

    @property
    def capacity(self) -> int:
        return self._capacity

    def offer(self, update: Update) -> bool:
        """Enfileira sem bloquear. Retorna False se a fila estiver cheia."""
        try:
            self._queue.put_nowait(update)
        except asyncio.QueueFull:
            return False
        return True

    async def get(self) -> Update:
        """Aguarda e retorna o próximo update."""
        return await self._queue.get()

    def get_nowait(self) -> Update:
        """Retorna o próximo update ou levanta asyncio.QueueEmpty."""
        return self._queue.get_nowait()

    def qsize(self) -> int:
        return self._queue.qsize()

    def full(self) -> bool:
        return self._queue.full()

    def empty(self) -> bool:
        return self._queue.empty()
