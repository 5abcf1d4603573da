"""Agregador de settings do receiver.

Re-exporta as settings e funções de cada módulo.
"""

from __future__ import annotations

# Base settings
from config.settings.base import (
    DEFAULT_SERVICE_NAME,
    BaseSettings,
    Environment,
    get_base_settings,
)

# Telegram settings
from config.settings.telegram import (
    ReceiverMode,
    TelegramSettings,
    development_preset,
    get_telegram_settings,
    is_valid_bot_token,
    load_telegram_settings,
    production_preset,
)

__all__ = [
    "DEFAULT_SERVICE_NAME",
    "BaseSettings",
    "Environment",
    "ReceiverMode",
    "TelegramSettings",
    "development_preset",
    "get_base_settings",
    "get_telegram_settings",
    "is_valid_bot_token",
    "load_telegram_settings",
    "production_preset",
]
