"""Erros do conector Telegram.

Dois grupos:
- WebhookIngressError: falhas do webhook, cada uma com um kind fechado
  mapeado 1:1 para status HTTP em status_for().
- TelegramClientError: falhas das chamadas de saída à Bot API.
"""

from __future__ import annotations

from enum import Enum


class WebhookErrorKind(str, Enum):
    """Tipos fechados de falha do webhook."""

    ADMISSION_REJECTED = "rate limit exceeded"
    FORBIDDEN = "forbidden"
    UNAUTHORIZED = "unauthorized"
    METHOD_NOT_ALLOWED = "method not allowed"
    PAYLOAD_INVALID = "invalid payload"
    PAYLOAD_TOO_LARGE = "payload too large"
    SINK_SATURATED = "updates channel blocked"
    CIRCUIT_OPEN = "service unavailable"


_STATUS_BY_KIND: dict[WebhookErrorKind, int] = {
    WebhookErrorKind.ADMISSION_REJECTED: 429,
    WebhookErrorKind.FORBIDDEN: 403,
    WebhookErrorKind.UNAUTHORIZED: 401,
    WebhookErrorKind.METHOD_NOT_ALLOWED: 405,
    WebhookErrorKind.PAYLOAD_INVALID: 400,
    WebhookErrorKind.PAYLOAD_TOO_LARGE: 413,
    WebhookErrorKind.SINK_SATURATED: 503,
    WebhookErrorKind.CIRCUIT_OPEN: 500,
}

# Rejeições causadas pelo chamador (não indicam falha do serviço)
CLIENT_ERROR_KINDS = frozenset(
    {
        WebhookErrorKind.FORBIDDEN,
        WebhookErrorKind.UNAUTHORIZED,
        WebhookErrorKind.METHOD_NOT_ALLOWED,
        WebhookErrorKind.PAYLOAD_INVALID,
        WebhookErrorKind.PAYLOAD_TOO_LARGE,
    }
)


def status_for(kind: WebhookErrorKind) -> int:
    """Retorna o status HTTP de um kind de erro do webhook."""
    return _STATUS_BY_KIND[kind]


class WebhookIngressError(Exception):
    """Falha no processamento de um request de webhook."""

    def __init__(self, kind: WebhookErrorKind, detail: str | None = None) -> None:
        self.kind = kind
        self.detail = detail
        message = kind.value if not detail else f"{kind.value}: {detail}"
        super().__init__(message)

    @property
    def status_code(self) -> int:
        return status_for(self.kind)


class PayloadDecodeError(ValueError):
    """Documento JSON inválido para o contrato da Bot API."""


class TelegramClientError(Exception):
    """Erro base das chamadas de saída à Bot API."""


class TelegramTransportError(TelegramClientError):
    """Falha de rede, timeout ou status HTTP inesperado sem corpo estruturado."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class TelegramApiError(TelegramClientError):
    """Erro estruturado retornado pela Bot API (ok=false).

    Attributes:
        code: error_code numérico da plataforma.
        description: Descrição retornada pela plataforma.
        retry_after: Segundos sugeridos pela plataforma (429), se houver.
    """

    def __init__(
        self,
        code: int | None,
        description: str | None,
        retry_after: int | None = None,
    ) -> None:
        self.code = code
        self.description = description or ""
        self.retry_after = retry_after
        super().__init__(f"telegram api error {code}: {self.description}")

    @property
    def is_retryable(self) -> bool:
        """Rate limit e erros de servidor são transitórios."""
        return self.code is not None and (self.code == 429 or self.code >= 500)
