"""Fake in-memory da Bot API para testes deterministas."""

from __future__ import annotations

import asyncio
import json
from collections import deque

from api.connectors.telegram.bot_api import TelegramBotApiClient
from api.connectors.telegram.errors import TelegramTransportError


def updates_body(*update_ids: int) -> bytes:
    """Corpo de getUpdates com uma mensagem de texto por update_id."""
    result = [
        {
            "update_id": update_id,
            "message": {
                "message_id": update_id,
                "chat": {"id": 10, "type": "private"},
                "date": 0,
                "text": "hi",
            },
        }
        for update_id in update_ids
    ]
    return json.dumps({"ok": True, "result": result}).encode("utf-8")


class FakeBotApi:
    """Implementa o protocolo da Bot API sem IO.

    request_updates consome um roteiro (bytes ou exceção); esgotado,
    devolve lista vazia após uma espera curta, como um long poll sem updates.
    """

    parse_updates = staticmethod(TelegramBotApiClient.parse_updates)

    def __init__(
        self,
        script: list[bytes | Exception] | None = None,
        *,
        fail_always: bool = False,
    ) -> None:
        self.script: deque[bytes | Exception] = deque(script or [])
        self.fail_always = fail_always
        self.offsets: list[int] = []
        self.set_webhook_calls: list[dict[str, object]] = []
        self.delete_webhook_calls = 0
        self.delete_webhook_error: Exception | None = None
        self.delete_webhook_delay = 0.0
        self.set_webhook_error: Exception | None = None
        self.closed = False

    async def set_webhook(self, url, *, secret_token="", allowed_updates=None) -> None:
        self.set_webhook_calls.append(
            {"url": url, "secret_token": secret_token, "allowed_updates": allowed_updates}
        )
        if self.set_webhook_error is not None:
            raise self.set_webhook_error

    async def delete_webhook(self, drop_pending_updates: bool = False) -> None:
        self.delete_webhook_calls += 1
        if self.delete_webhook_delay:
            await asyncio.sleep(self.delete_webhook_delay)
        if self.delete_webhook_error is not None:
            raise self.delete_webhook_error

    async def request_updates(self, offset, timeout, limit, allowed_updates=None) -> bytes:
        self.offsets.append(offset)
        if self.fail_always:
            raise TelegramTransportError("get_updates_failed: ConnectError")
        await asyncio.sleep(0.001)
        if not self.script:
            return updates_body()
        item = self.script.popleft()
        if isinstance(item, Exception):
            raise item
        return item

    async def aclose(self) -> None:
        self.closed = True
