"""Validação de host e secret token do webhook Telegram."""

from __future__ import annotations

import hmac

# Header enviado pela plataforma quando setWebhook recebe secret_token
SECRET_TOKEN_HEADER = "X-Telegram-Bot-Api-Secret-Token"


def verify_secret_token(received: str | None, expected: str | None) -> bool:
    """Compara o secret recebido com o configurado em tempo constante.

    Args:
        received: Valor do header X-Telegram-Bot-Api-Secret-Token.
        expected: Secret configurado. Vazio desativa a verificação.

    Returns:
        True se a verificação estiver desativada ou os valores coincidirem.
    """
    if not expected:
        return True
    return hmac.compare_digest(
        (received or "").encode("utf-8"),
        expected.encode("utf-8"),
    )


def verify_host(host_header: str | None, allowed_domain: str | None) -> bool:
    """Confere o header Host contra o domínio permitido.

    Aceita o host com ou sem sufixo de porta. Domínio vazio desativa.
    """
    if not allowed_domain:
        return True
    if not host_header:
        return False

    host = host_header.strip().lower()
    allowed = allowed_domain.strip().lower()
    if host == allowed:
        return True

    hostname, sep, port = host.rpartition(":")
    return bool(sep) and port.isdigit() and hostname == allowed
