"""Cliente HTTP da Telegram Bot API.

Cobre as chamadas usadas pelo receiver:
- getUpdates (long polling): rede + status separados da decodificação,
  para que apenas a parte de transporte passe pelo circuit breaker
- setWebhook / deleteWebhook / getWebhookInfo (registro do webhook)

O token do bot é SecretStr e nunca aparece em logs.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

import httpx
from pydantic import SecretStr

from api.connectors.telegram.errors import (
    PayloadDecodeError,
    TelegramApiError,
    TelegramTransportError,
)
from api.connectors.telegram.models import (
    ApiResponse,
    WebhookInfo,
    decode_api_response,
    decode_updates_response,
    parse_webhook_info,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from api.connectors.telegram.models import Update

logger = logging.getLogger(__name__)

TELEGRAM_API_BASE_URL = "https://api.telegram.org"

# Margem de rede além da janela de long polling do servidor
POLLING_NETWORK_MARGIN_SECONDS = 10.0
CONNECT_TIMEOUT_SECONDS = 10.0

# Default da plataforma para setWebhook
DEFAULT_MAX_CONNECTIONS = 40


class TelegramBotApiClient:
    """Cliente assíncrono (httpx) para a Bot API."""

    def __init__(
        self,
        bot_token: SecretStr | str,
        http_client: httpx.AsyncClient | None = None,
        base_url: str = TELEGRAM_API_BASE_URL,
        timeout_seconds: float = 30.0,
    ) -> None:
        self._token = bot_token if isinstance(bot_token, SecretStr) else SecretStr(bot_token)
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout_seconds, connect=CONNECT_TIMEOUT_SECONDS)
        )
        self._base_url = base_url.rstrip("/")
        self._timeout_seconds = timeout_seconds

    def __repr__(self) -> str:
        return f"TelegramBotApiClient(base_url={self._base_url!r}, bot_token={self._token!r})"

    def _method_url(self, method: str) -> str:
        return f"{self._base_url}/bot{self._token.get_secret_value()}/{method}"

    async def aclose(self) -> None:
        """Fecha o cliente httpx quando criado por esta instância."""
        if self._owns_client:
            await self._http.aclose()

    async def set_webhook(
        self,
        url: str,
        secret_token: str = "",
        max_connections: int = DEFAULT_MAX_CONNECTIONS,
        allowed_updates: Sequence[str] | None = None,
        drop_pending_updates: bool = False,
    ) -> None:
        """Registra a URL pública do webhook na plataforma."""
        payload: dict[str, Any] = {"url": url, "max_connections": max_connections}
        if secret_token:
            payload["secret_token"] = secret_token
        if allowed_updates:
            payload["allowed_updates"] = list(allowed_updates)
        if drop_pending_updates:
            payload["drop_pending_updates"] = True

        await self._call("setWebhook", payload)
        logger.info("telegram_webhook_registered", extra={"max_connections": max_connections})

    async def delete_webhook(self, drop_pending_updates: bool = False) -> None:
        """Remove o webhook registrado (pré-requisito do long polling)."""
        payload: dict[str, Any] = {}
        if drop_pending_updates:
            payload["drop_pending_updates"] = True

        await self._call("deleteWebhook", payload)
        logger.info(
            "telegram_webhook_deleted",
            extra={"drop_pending_updates": drop_pending_updates},
        )

    async def get_webhook_info(self) -> WebhookInfo:
        """Consulta o estado atual do webhook (diagnóstico)."""
        envelope = await self._call("getWebhookInfo", None)
        result = envelope.result if isinstance(envelope.result, dict) else None
        return parse_webhook_info(result)

    async def request_updates(
        self,
        offset: int,
        timeout: int,
        limit: int,
        allowed_updates: Sequence[str] | None = None,
    ) -> bytes:
        """Executa getUpdates e retorna o corpo bruto da resposta 200.

        Somente rede e status; a decodificação fica em parse_updates().

        Raises:
            TelegramTransportError: Falha de rede/timeout ou status sem envelope.
            TelegramApiError: Status não-200 com envelope de erro da plataforma.
        """
        params: dict[str, Any] = {"offset": offset, "timeout": timeout, "limit": limit}
        if allowed_updates:
            params["allowed_updates"] = json.dumps(list(allowed_updates))

        request_timeout = httpx.Timeout(
            timeout + POLLING_NETWORK_MARGIN_SECONDS,
            connect=CONNECT_TIMEOUT_SECONDS,
        )
        try:
            response = await self._http.get(
                self._method_url("getUpdates"),
                params=params,
                timeout=request_timeout,
            )
        except httpx.HTTPError as exc:
            raise TelegramTransportError(f"get_updates_failed: {type(exc).__name__}") from exc

        if response.status_code != httpx.codes.OK:
            raise _error_from_response(response)
        return response.content

    @staticmethod
    def parse_updates(body: bytes) -> list[Update]:
        """Decodifica o envelope de getUpdates.

        Raises:
            PayloadDecodeError: Corpo malformado.
            TelegramApiError: Envelope com ok=false.
        """
        envelope = decode_updates_response(body)
        if not envelope.ok:
            raise _api_error(envelope)
        return list(envelope.result or ())

    async def _call(self, method: str, payload: dict[str, Any] | None) -> ApiResponse:
        try:
            if payload is None:
                response = await self._http.get(self._method_url(method))
            else:
                response = await self._http.post(self._method_url(method), json=payload)
        except httpx.HTTPError as exc:
            logger.warning(
                "telegram_api_request_failed",
                extra={"method": method, "error_type": type(exc).__name__},
            )
            raise TelegramTransportError(f"{method}_failed: {type(exc).__name__}") from exc

        try:
            envelope = decode_api_response(response.content)
        except PayloadDecodeError:
            if not response.is_success:
                raise TelegramTransportError(
                    f"{method}_unexpected_status",
                    status_code=response.status_code,
                ) from None
            raise

        if not envelope.ok:
            error = _api_error(envelope, fallback_code=response.status_code)
            logger.warning(
                "telegram_api_error",
                extra={"method": method, "error_code": error.code},
            )
            raise error
        return envelope


def _api_error(envelope: ApiResponse, fallback_code: int | None = None) -> TelegramApiError:
    retry_after = envelope.parameters.retry_after if envelope.parameters else None
    return TelegramApiError(
        code=envelope.error_code or fallback_code,
        description=envelope.description,
        retry_after=retry_after,
    )


def _error_from_response(response: httpx.Response) -> TelegramApiError | TelegramTransportError:
    try:
        envelope = decode_api_response(response.content)
    except PayloadDecodeError:
        return TelegramTransportError(
            f"unexpected_status_code: {response.status_code}",
            status_code=response.status_code,
        )
    return _api_error(envelope, fallback_code=response.status_code)
