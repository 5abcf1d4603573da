"""Conector Telegram: contrato da Bot API, validação do webhook e cliente HTTP."""

from .bot_api import TELEGRAM_API_BASE_URL, TelegramBotApiClient
from .errors import (
    PayloadDecodeError,
    TelegramApiError,
    TelegramClientError,
    TelegramTransportError,
    WebhookErrorKind,
    WebhookIngressError,
    status_for,
)
from .models import (
    CallbackQuery,
    Chat,
    Message,
    Update,
    User,
    WebhookInfo,
    decode_update,
)
from .security import SECRET_TOKEN_HEADER, verify_host, verify_secret_token

__all__ = [
    "SECRET_TOKEN_HEADER",
    "TELEGRAM_API_BASE_URL",
    "CallbackQuery",
    "Chat",
    "Message",
    "PayloadDecodeError",
    "TelegramApiError",
    "TelegramBotApiClient",
    "TelegramClientError",
    "TelegramTransportError",
    "Update",
    "User",
    "WebhookErrorKind",
    "WebhookInfo",
    "WebhookIngressError",
    "decode_update",
    "status_for",
    "verify_host",
    "verify_secret_token",
]
