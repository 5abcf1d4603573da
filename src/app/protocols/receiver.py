"""Contrato comum dos receptores de updates (webhook e polling)."""

from __future__ import annotations

from typing import Protocol


class UpdateReceiverProtocol(Protocol):
    """Ciclo de vida start/stop com sinal de saúde."""

    async def start(self) -> None: ...

    async def stop(self) -> None: ...

    def is_healthy(self) -> bool: ...
