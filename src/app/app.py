"""Entrypoint do receiver de updates do Telegram.

Expõe a aplicação ASGI (FastAPI) por factory, para que as settings sejam
lidas só na inicialização do servidor.

Uso (produção):
    python -m app.app

Uso (uvicorn direto):
    uvicorn app.app:create_app --factory --host 0.0.0.0 --port 8443

Shutdown:
    1. /health e /ready passam a responder 503
    2. Espera drain_delay_seconds (balanceador para de rotear)
    3. Para o receiver com teto de shutdown_timeout_seconds
"""

from __future__ import annotations

import asyncio
import ssl
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

from fastapi import FastAPI

from api.routes import create_api_router
from app.bootstrap import create_receiver, initialize_app
from config.logging import get_logger
from config.settings import get_base_settings, get_telegram_settings

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from app.bootstrap import TelegramReceiver
    from config.settings import TelegramSettings

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Gerencia ciclo de vida do receiver.

    Startup:
    - Inicia polling ou registra o webhook (falha fecha os clientes e aborta o boot)

    Shutdown:
    - Sinaliza shutdown para os health checks, aguarda o drain
    - Para o receiver e fecha o cliente HTTP
    """
    receiver: TelegramReceiver = app.state.receiver
    settings = receiver.settings
    app.state.shutting_down = False

    logger.info("app_starting", extra={"mode": receiver.mode})
    try:
        await receiver.start()
    except BaseException:
        logger.exception("app_start_failed", extra={"mode": receiver.mode})
        await receiver.aclose(timeout=settings.shutdown_timeout_seconds)
        raise

    try:
        yield
    finally:
        app.state.shutting_down = True
        logger.info(
            "app_shutting_down",
            extra={"drain_delay_seconds": settings.drain_delay_seconds},
        )
        if settings.drain_delay_seconds > 0:
            await asyncio.sleep(settings.drain_delay_seconds)

        await receiver.aclose(timeout=settings.shutdown_timeout_seconds)
        logger.info("app_stopped", extra={"mode": receiver.mode})


def create_app(receiver: TelegramReceiver | None = None) -> FastAPI:
    """Cria e configura a aplicação FastAPI.

    Args:
        receiver: Receiver já construído. None = inicializa logging e
            constrói a partir das settings de ambiente.
    """
    if receiver is None:
        initialize_app()
        receiver = create_receiver()

    fastapi_app = FastAPI(
        title="Telegram Receiver",
        description="Recebimento de updates do Telegram via webhook ou long polling",
        version="1.0.0",
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    fastapi_app.state.receiver = receiver
    fastapi_app.state.shutting_down = False
    fastapi_app.state.service_name = get_base_settings().service_name

    webhook_handler = None if receiver.settings.is_polling else receiver.webhook_handler
    fastapi_app.include_router(create_api_router(webhook_handler))

    logger.info("app_configured", extra={"mode": receiver.mode})
    return fastapi_app


def server_options(settings: TelegramSettings) -> dict[str, Any]:
    """Opções do uvicorn derivadas das settings.

    Keep-alive, teto de headers e shutdown gracioso limitam a vida de cada
    conexão; o prazo de leitura do corpo fica no handler do webhook.
    Com TLS, PROTOCOL_TLS_SERVER impõe TLS 1.2 como versão mínima.
    """
    options: dict[str, Any] = {
        "host": "0.0.0.0",
        "port": settings.webhook_port,
        # Logging já configurado pelo bootstrap
        "log_config": None,
        "timeout_keep_alive": max(1, int(settings.server_idle_timeout)),
        "timeout_graceful_shutdown": int(settings.shutdown_timeout_seconds),
        "h11_max_incomplete_event_size": settings.server_max_header_bytes,
    }
    if settings.tls_enabled:
        options.update(
            ssl_certfile=settings.tls_cert_path,
            ssl_keyfile=settings.tls_key_path,
            ssl_version=ssl.PROTOCOL_TLS_SERVER,
            ssl_ciphers=settings.tls_ciphers,
        )
    return options


def main() -> None:
    """Entrypoint para execução direta."""
    import uvicorn

    uvicorn.run(
        "app.app:create_app",
        factory=True,
        **server_options(get_telegram_settings()),
    )


if __name__ == "__main__":
    main()
