"""Contrato da Bot API consumido pelo long polling.

Evita dependência direta de app para o cliente httpx da camada api.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from collections.abc import Sequence

    from api.connectors.telegram.models import Update


class BotApiProtocol(Protocol):
    """Chamadas usadas pelo LongPollingClient."""

    async def delete_webhook(self, drop_pending_updates: bool = False) -> None: ...

    async def request_updates(
        self,
        offset: int,
        timeout: int,
        limit: int,
        allowed_updates: Sequence[str] | None = None,
    ) -> bytes: ...

    def parse_updates(self, body: bytes) -> list[Update]: ...
