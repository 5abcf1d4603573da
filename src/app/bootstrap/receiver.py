"""Fachada do receiver: escolhe webhook ou long polling pela configuração.

Uso:
    receiver = TelegramReceiver(get_telegram_settings())
    await receiver.start()
    update = await receiver.updates.get()
    ...
    await receiver.aclose()
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from api.connectors.telegram.bot_api import TelegramBotApiClient
from api.routes.telegram.webhook import TelegramWebhookHandler
from app.infra.update_sink import UpdateSink
from app.services.long_polling import LongPollingClient
from utils.errors import ConfigurationError

if TYPE_CHECKING:
    from config.settings.telegram import TelegramSettings

logger = logging.getLogger(__name__)


class TelegramReceiver:
    """Compõe sink, Bot API e o caminho de ingresso configurado.

    Args:
        settings: Configuração validada na construção.
        sink: Fila de updates (default: UpdateSink(updates_queue_size)).
        bot_api: Cliente da Bot API (default: criado sob demanda).

    Raises:
        ConfigurationError: settings.validate() retornou erros.
    """

    def __init__(
        self,
        settings: TelegramSettings,
        *,
        sink: UpdateSink | None = None,
        bot_api: TelegramBotApiClient | None = None,
    ) -> None:
        errors = settings.validate()
        if errors:
            raise ConfigurationError(errors)

        self._settings = settings
        self._sink = sink or UpdateSink(settings.updates_queue_size)
        self._bot_api = bot_api
        self._owns_bot_api = bot_api is None
        self._webhook_handler: TelegramWebhookHandler | None = None
        self._polling: LongPollingClient | None = None

    def __repr__(self) -> str:
        return f"TelegramReceiver(mode={self.mode!r}, queue_size={self._sink.capacity})"

    @property
    def settings(self) -> TelegramSettings:
        return self._settings

    @property
    def mode(self) -> str:
        return self._settings.mode

    @property
    def updates(self) -> UpdateSink:
        """Fila de onde o consumidor lê os updates."""
        return self._sink

    @property
    def bot_api(self) -> TelegramBotApiClient:
        if self._bot_api is None:
            self._bot_api = TelegramBotApiClient(self._settings.bot_token)
        return self._bot_api

    @property
    def webhook_handler(self) -> TelegramWebhookHandler:
        return self._ensure_webhook_handler()

    @property
    def polling_client(self) -> LongPollingClient | None:
        return self._polling

    async def start(self) -> None:
        """Inicia o caminho de ingresso do modo configurado.

        Raises:
            PollingAlreadyRunningError: Polling já em execução.
            TelegramClientError: Falha em deleteWebhook/setWebhook.
        """
        if self._settings.is_polling:
            if self._polling is None:
                self._polling = LongPollingClient.from_settings(
                    self._settings, self.bot_api, self._sink
                )
            await self._polling.start()
        else:
            self._ensure_webhook_handler()
            if self._settings.webhook_url:
                await self.bot_api.set_webhook(
                    self._settings.webhook_url,
                    secret_token=self._settings.webhook_secret,
                    allowed_updates=self._settings.allowed_updates,
                )

        logger.info(
            "telegram_receiver_started",
            extra={"mode": self.mode, "queue_size": self._sink.capacity},
        )

    async def stop(self, timeout: float | None = None) -> None:
        """Para o long polling (se ativo). Idempotente."""
        if self._polling is not None:
            await self._polling.stop(timeout=timeout)
        logger.info("telegram_receiver_stopped", extra={"mode": self.mode})

    def _ensure_webhook_handler(self) -> TelegramWebhookHandler:
        if self._webhook_handler is None:
            self._webhook_handler = TelegramWebhookHandler.from_settings(
                self._settings, self._sink
            )
        return self._webhook_handler

    def is_healthy(self) -> bool:
        """Webhook está sempre saudável; polling depende do loop."""
        if not self._settings.is_polling:
            return True
        return self._polling is not None and self._polling.is_healthy()

    async def aclose(self, timeout: float | None = None) -> None:
        """Para o receiver e fecha o cliente HTTP criado por ele."""
        await self.stop(timeout=timeout)
        if self._owns_bot_api and self._bot_api is not None:
            await self._bot_api.aclose()
