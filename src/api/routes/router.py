"""Agregador de rotas: health checks e webhook do Telegram.

Uso:
    from api.routes import create_api_router

    app = FastAPI()
    app.include_router(create_api_router(webhook_handler))
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter

from api.routes.health.router import router as health_router
from api.routes.telegram.webhook import create_telegram_router

if TYPE_CHECKING:
    from api.routes.telegram.webhook import TelegramWebhookHandler


def create_api_router(webhook_handler: TelegramWebhookHandler | None = None) -> APIRouter:
    """Cria router principal.

    Args:
        webhook_handler: Handler do webhook. None (modo polling) não
            registra a rota do webhook.
    """
    api_router = APIRouter()

    # Health checks (sem prefixo para /health e /ready na raiz)
    api_router.include_router(health_router, tags=["health"])

    if webhook_handler is not None:
        api_router.include_router(create_telegram_router(webhook_handler), tags=["telegram"])

    return api_router
