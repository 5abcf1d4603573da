"""Bootstrap da aplicação: inicialização e wiring.

Composition root: configura logging, valida settings e constrói o
TelegramReceiver com as implementações concretas.

Uso:
    from app.bootstrap import create_receiver, initialize_app

    initialize_app()
    receiver = create_receiver()
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from app.bootstrap.receiver import TelegramReceiver
from app.observability import get_correlation_id
from config.logging import configure_logging
from config.settings import get_base_settings, get_telegram_settings
from utils.errors import ConfigurationError

if TYPE_CHECKING:
    from config.settings import TelegramSettings

logger = logging.getLogger(__name__)


def initialize_app(settings: TelegramSettings | None = None) -> None:
    """Configura logging estruturado JSON com correlation_id.

    Deve ser chamada uma vez no início do serviço.
    """
    base = get_base_settings()
    telegram = settings or get_telegram_settings()

    configure_logging(
        level=base.effective_log_level,
        service_name=base.service_name,
        correlation_id_getter=get_correlation_id,
        log_file_path=telegram.log_file_path or None,
    )


def validate_runtime_settings(settings: TelegramSettings | None = None) -> None:
    """Valida settings obrigatórias no startup (falha rápido).

    Raises:
        ConfigurationError: Lista de problemas encontrados.
    """
    base = get_base_settings()
    errors: list[str] = [f"base: {error}" for error in base.validate()]
    telegram = settings or get_telegram_settings()
    errors.extend(f"telegram: {error}" for error in telegram.validate())

    if not errors:
        logger.info(
            "settings_validated",
            extra={
                "component": "bootstrap",
                "result": "ok",
                "environment": base.environment,
                "mode": telegram.mode,
            },
        )
        return

    logger.warning(
        "settings_validation_failed",
        extra={
            "component": "bootstrap",
            "result": "failed",
            "environment": base.environment,
            "error_count": len(errors),
            "errors": errors,
        },
    )
    raise ConfigurationError(errors)


def create_receiver(settings: TelegramSettings | None = None) -> TelegramReceiver:
    """Valida settings e constrói o receiver."""
    telegram = settings or get_telegram_settings()
    validate_runtime_settings(telegram)
    return TelegramReceiver(telegram)


__all__ = [
    "TelegramReceiver",
    "create_receiver",
    "initialize_app",
    "validate_runtime_settings",
]
