"""Endpoint de webhook do Telegram.

Endpoint:
- /webhook/telegram: recebimento de updates (apenas POST é aceito; os
  demais métodos chegam ao handler e recebem 405)

Fluxo por request:
1. Admissão (token bucket): sem token = 429, sem passar pelo breaker
2. Via circuit breaker (aberto = 500 sem ler o corpo):
   a. Host permitido (403)
   b. Secret token em tempo constante (401)
   c. Método POST (405)
   d. Corpo lido em buffer do pool com teto de bytes (413) e prazo de leitura (400)
   e. Decodificação do Update (400)
   f. Entrega ao sink sem bloquear; fila cheia = 503
3. Sucesso = 200 com corpo vazio

Nenhuma falha é re-tentada aqui: a plataforma reentrega em respostas não-2xx.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from fastapi import APIRouter, Request, Response, status
from starlette.requests import ClientDisconnect

from api.connectors.telegram.errors import (
    CLIENT_ERROR_KINDS,
    PayloadDecodeError,
    WebhookErrorKind,
    WebhookIngressError,
)
from api.connectors.telegram.models import decode_update
from api.connectors.telegram.security import (
    SECRET_TOKEN_HEADER,
    verify_host,
    verify_secret_token,
)
from app.infra.resilience import BufferPool, CircuitBreaker, CircuitOpenError, TokenBucket
from app.observability import correlation_id_from_headers, correlation_scope

if TYPE_CHECKING:
    from api.connectors.telegram.models import Update
    from app.infra.update_sink import UpdateSink
    from config.settings.telegram import TelegramSettings

logger = logging.getLogger(__name__)

WEBHOOK_PATH = "/webhook/telegram"
WEBHOOK_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"]

BREAKER_NAME = "telegram_webhook"
DEFAULT_MAX_BODY_SIZE = 1024 * 1024


def _is_client_rejection(exc: Exception) -> bool:
    """Rejeições causadas pelo chamador não contam como falha do breaker."""
    return isinstance(exc, WebhookIngressError) and exc.kind in CLIENT_ERROR_KINDS


class TelegramWebhookHandler:
    """Pipeline de ingresso do webhook.

    Limiter, breaker e pool são criados uma vez por handler e
    compartilhados por todos os requests concorrentes.
    """

    def __init__(
        self,
        sink: UpdateSink,
        *,
        secret_token: str = "",
        allowed_domain: str = "",
        rate_limiter: TokenBucket | None = None,
        breaker: CircuitBreaker | None = None,
        buffer_pool: BufferPool | None = None,
        max_body_size: int = DEFAULT_MAX_BODY_SIZE,
        read_timeout: float | None = None,
    ) -> None:
        if max_body_size < 1:
            raise ValueError("max_body_size deve ser >= 1")
        self._sink = sink
        self._secret_token = secret_token
        self._allowed_domain = allowed_domain
        self._max_body_size = max_body_size
        self._read_timeout = read_timeout
        self._rate_limiter = rate_limiter or TokenBucket(rate_per_second=10.0, burst=20)
        self._breaker = breaker or CircuitBreaker(
            name=BREAKER_NAME,
            max_requests=5,
            interval=120.0,
            timeout=60.0,
            is_successful=_is_client_rejection,
        )
        self._buffer_pool = buffer_pool or BufferPool(max_body_size)

    @classmethod
    def from_settings(cls, settings: TelegramSettings, sink: UpdateSink) -> TelegramWebhookHandler:
        return cls(
            sink,
            secret_token=settings.webhook_secret,
            allowed_domain=settings.allowed_domain,
            rate_limiter=TokenBucket(
                rate_per_second=settings.rate_limit_requests,
                burst=settings.rate_limit_burst,
            ),
            breaker=CircuitBreaker(
                name=BREAKER_NAME,
                max_requests=settings.breaker_max_requests,
                interval=settings.breaker_interval,
                timeout=settings.breaker_timeout,
                is_successful=_is_client_rejection,
            ),
            buffer_pool=BufferPool(settings.max_body_size),
            max_body_size=settings.max_body_size,
            read_timeout=settings.server_read_timeout,
        )

    @property
    def breaker(self) -> CircuitBreaker:
        return self._breaker

    @property
    def buffer_pool(self) -> BufferPool:
        return self._buffer_pool

    async def handle(self, request: Request) -> Response:
        """Processa um request de webhook e retorna a resposta HTTP."""
        with correlation_scope(correlation_id_from_headers(request.headers)):
            if not self._rate_limiter.allow():
                return _reject(WebhookIngressError(WebhookErrorKind.ADMISSION_REJECTED))

            try:
                update = await self._breaker.call(lambda: self._process(request))
            except CircuitOpenError:
                return _reject(WebhookIngressError(WebhookErrorKind.CIRCUIT_OPEN))
            except WebhookIngressError as exc:
                return _reject(exc)
            except Exception:
                logger.exception("telegram_webhook_unexpected_error")
                return Response(
                    content="internal server error",
                    media_type="text/plain",
                    status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                )

            logger.info(
                "telegram_update_received",
                extra={"update_id": update.update_id, "update_kind": update.kind},
            )
            return Response(status_code=status.HTTP_200_OK)

    async def _process(self, request: Request) -> Update:
        if not verify_host(request.headers.get("host"), self._allowed_domain):
            raise WebhookIngressError(WebhookErrorKind.FORBIDDEN)
        if not verify_secret_token(request.headers.get(SECRET_TOKEN_HEADER), self._secret_token):
            raise WebhookIngressError(WebhookErrorKind.UNAUTHORIZED)
        if request.method != "POST":
            raise WebhookIngressError(WebhookErrorKind.METHOD_NOT_ALLOWED)

        body = await self._read_body(request)
        try:
            update = decode_update(body)
        except PayloadDecodeError as exc:
            raise WebhookIngressError(WebhookErrorKind.PAYLOAD_INVALID, str(exc)) from exc

        if not self._sink.offer(update):
            raise WebhookIngressError(WebhookErrorKind.SINK_SATURATED)
        return update

    async def _read_body(self, request: Request) -> bytes:
        declared = request.headers.get("content-length")
        if declared is not None:
            try:
                declared_size = int(declared)
            except ValueError as exc:
                raise WebhookIngressError(
                    WebhookErrorKind.PAYLOAD_INVALID, "invalid content-length"
                ) from exc
            if declared_size > self._max_body_size:
                raise WebhookIngressError(WebhookErrorKind.PAYLOAD_TOO_LARGE)

        with self._buffer_pool.acquire() as buffer:
            size = 0
            try:
                async with asyncio.timeout(self._read_timeout):
                    async for chunk in request.stream():
                        end = size + len(chunk)
                        if end > self._max_body_size:
                            raise WebhookIngressError(WebhookErrorKind.PAYLOAD_TOO_LARGE)
                        buffer[size:end] = chunk
                        size = end
            except ClientDisconnect as exc:
                raise WebhookIngressError(
                    WebhookErrorKind.PAYLOAD_INVALID, "client disconnected"
                ) from exc
            except TimeoutError as exc:
                raise WebhookIngressError(
                    WebhookErrorKind.PAYLOAD_INVALID, "body read timeout"
                ) from exc
            return bytes(buffer[:size])


def _reject(exc: WebhookIngressError) -> Response:
    log = logger.warning if exc.status_code >= 500 or exc.status_code == 429 else logger.info
    log(
        "telegram_webhook_rejected",
        extra={
            "reason": exc.kind.name.lower(),
            "status_code": exc.status_code,
            "detail": exc.detail,
        },
    )
    return Response(
        content=exc.kind.value,
        media_type="text/plain",
        status_code=exc.status_code,
    )


def create_telegram_router(handler: TelegramWebhookHandler) -> APIRouter:
    """Cria o router do webhook ligado a um handler já construído."""
    router = APIRouter()

    async def receive_webhook(request: Request) -> Response:
        return await handler.handle(request)

    router.add_api_route(
        WEBHOOK_PATH,
        receive_webhook,
        methods=WEBHOOK_METHODS,
        response_model=None,
        name="telegram_webhook",
    )
    return router
