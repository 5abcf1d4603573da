"""Settings específicas de Telegram.

Configurações do receiver (webhook e long polling) via Bot API.

Precedência: overrides explícitos > env (TELEGRAM_*) > arquivo YAML > defaults.
O YAML usa os nomes dos campos em snake_case, num único nível:

    mode: polling
    polling_timeout: 30
    allowed_updates: [message, callback_query]
"""

from __future__ import annotations

import dataclasses
import os
import re
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import SecretStr

from utils.errors import ConfigurationError

ReceiverMode = Literal["webhook", "polling"]

VALID_MODES: frozenset[str] = frozenset({"webhook", "polling"})

# <id numérico>:<segredo com 35+ caracteres>
_BOT_TOKEN_PATTERN = re.compile(r"^\d+:[A-Za-z0-9_-]{35,}$")

# Limites impostos pela plataforma em getUpdates
MAX_POLLING_TIMEOUT = 60
MAX_POLLING_LIMIT = 100

# Suites AEAD com forward secrecy (TLS 1.2); TLS 1.3 usa as suites do OpenSSL
DEFAULT_TLS_CIPHERS = "ECDHE+AESGCM:ECDHE+CHACHA20"
DEFAULT_MAX_HEADER_BYTES = 1024 * 1024


def is_valid_bot_token(token: str) -> bool:
    """Confere o formato <digits>:<35+ caracteres [A-Za-z0-9_-]>."""
    return bool(_BOT_TOKEN_PATTERN.match(token))


@dataclass(frozen=True)
class TelegramSettings:
    """Configurações do receiver Telegram.

    Attributes:
        bot_token: Token do bot (obtido via @BotFather), nunca logado
        mode: webhook | polling
        webhook_port: Porta do servidor HTTPS
        webhook_secret: Secret esperado em X-Telegram-Bot-Api-Secret-Token
        webhook_url: URL pública registrada via setWebhook (opcional)
        allowed_domain: Host aceito no webhook (vazio = qualquer)
        tls_cert_path / tls_key_path: Certificado TLS do servidor
        tls_ciphers: Suites aceitas (piso TLS 1.2 via PROTOCOL_TLS_SERVER)
        server_read_timeout: Prazo para ler o corpo de um request (s)
        server_idle_timeout: Keep-alive de conexões ociosas (s)
        server_max_header_bytes: Teto dos headers de um request
        polling_*: Parâmetros de getUpdates e teto de erros consecutivos
        retry_*: Backoff exponencial do long polling
        rate_limit_*: Token bucket do webhook
        max_body_size: Teto do corpo de request do webhook (bytes)
        breaker_*: Circuit breaker (trials em half-open, janela, cool-down)
        drain_delay_seconds: Espera entre sinalizar shutdown e parar
        shutdown_timeout_seconds: Teto da parada graciosa
        updates_queue_size: Capacidade da fila de updates
        log_file_path: Arquivo de log opcional (além do stdout)
    """

    # Credenciais
    bot_token: SecretStr = field(default_factory=lambda: SecretStr(""))
    mode: ReceiverMode = "webhook"

    # Webhook
    webhook_port: int = 8443
    webhook_secret: str = ""
    webhook_url: str = ""
    allowed_domain: str = ""
    tls_cert_path: str = ""
    tls_key_path: str = ""
    tls_ciphers: str = DEFAULT_TLS_CIPHERS

    # Servidor HTTP
    server_read_timeout: float = 10.0
    server_idle_timeout: float = 120.0
    server_max_header_bytes: int = DEFAULT_MAX_HEADER_BYTES

    # Long polling
    polling_timeout: int = 30
    polling_limit: int = 100
    polling_max_errors: int = 10
    polling_delete_webhook: bool = False
    allowed_updates: tuple[str, ...] = ()

    # Retry
    retry_initial_delay: float = 1.0
    retry_max_delay: float = 60.0
    retry_backoff_factor: float = 2.0

    # Admissão
    rate_limit_requests: float = 10.0
    rate_limit_burst: int = 20
    max_body_size: int = 1024 * 1024  # 1MB

    # Circuit breaker
    breaker_max_requests: int = 5
    breaker_interval: float = 120.0
    breaker_timeout: float = 60.0

    # Shutdown
    drain_delay_seconds: float = 5.0
    shutdown_timeout_seconds: float = 15.0

    updates_queue_size: int = 100
    log_file_path: str = ""

    @property
    def is_polling(self) -> bool:
        return self.mode == "polling"

    @property
    def tls_enabled(self) -> bool:
        return bool(self.tls_cert_path and self.tls_key_path)

    def validate(self) -> list[str]:
        """Valida configurações do receiver.

        Returns:
            Lista de erros de validação (vazia = tudo OK).
        """
        errors: list[str] = []

        token = self.bot_token.get_secret_value()
        if not token:
            errors.append("TELEGRAM_BOT_TOKEN não configurado")
        elif not is_valid_bot_token(token):
            errors.append("TELEGRAM_BOT_TOKEN com formato inválido (esperado 123456789:ABC...)")

        if self.mode not in VALID_MODES:
            errors.append("TELEGRAM_MODE deve ser 'webhook' ou 'polling'")

        if not 0 <= self.polling_timeout <= MAX_POLLING_TIMEOUT:
            errors.append(f"TELEGRAM_POLLING_TIMEOUT deve estar entre 0 e {MAX_POLLING_TIMEOUT}")
        if not 1 <= self.polling_limit <= MAX_POLLING_LIMIT:
            errors.append(f"TELEGRAM_POLLING_LIMIT deve estar entre 1 e {MAX_POLLING_LIMIT}")
        if self.polling_max_errors < 0:
            errors.append("TELEGRAM_POLLING_MAX_ERRORS deve ser >= 0")

        if not 1 <= self.webhook_port <= 65535:
            errors.append("TELEGRAM_WEBHOOK_PORT deve estar entre 1 e 65535")
        if self.webhook_url and not self.webhook_url.startswith("https://"):
            errors.append("TELEGRAM_WEBHOOK_URL deve usar https")
        if bool(self.tls_cert_path) != bool(self.tls_key_path):
            errors.append("TELEGRAM_TLS_CERT_PATH e TELEGRAM_TLS_KEY_PATH devem ser definidos juntos")
        if self.server_read_timeout <= 0 or self.server_idle_timeout <= 0:
            errors.append(
                "TELEGRAM_SERVER_READ_TIMEOUT e TELEGRAM_SERVER_IDLE_TIMEOUT devem ser > 0"
            )
        if self.server_max_header_bytes < 1:
            errors.append("TELEGRAM_SERVER_MAX_HEADER_BYTES deve ser > 0")

        if self.retry_initial_delay <= 0 or self.retry_max_delay <= 0:
            errors.append("TELEGRAM_RETRY_INITIAL_DELAY/MAX_DELAY devem ser > 0")
        elif self.retry_max_delay < self.retry_initial_delay:
            errors.append("TELEGRAM_RETRY_MAX_DELAY deve ser >= TELEGRAM_RETRY_INITIAL_DELAY")
        if self.retry_backoff_factor < 1:
            errors.append("TELEGRAM_RETRY_BACKOFF_FACTOR deve ser >= 1")

        if self.rate_limit_requests <= 0:
            errors.append("TELEGRAM_RATE_LIMIT_REQUESTS deve ser > 0")
        if self.rate_limit_burst < 1:
            errors.append("TELEGRAM_RATE_LIMIT_BURST deve ser >= 1")
        if self.max_body_size < 1:
            errors.append("TELEGRAM_MAX_BODY_SIZE deve ser > 0")
        if self.updates_queue_size < 1:
            errors.append("TELEGRAM_UPDATES_QUEUE_SIZE deve ser >= 1")

        if self.breaker_max_requests < 1:
            errors.append("TELEGRAM_BREAKER_MAX_REQUESTS deve ser >= 1")
        if self.breaker_interval < 0 or self.breaker_timeout <= 0:
            errors.append("TELEGRAM_BREAKER_INTERVAL deve ser >= 0 e TELEGRAM_BREAKER_TIMEOUT > 0")

        if self.drain_delay_seconds < 0 or self.shutdown_timeout_seconds <= 0:
            errors.append("TELEGRAM_DRAIN_DELAY deve ser >= 0 e TELEGRAM_SHUTDOWN_TIMEOUT > 0")

        return errors


def production_preset(settings: TelegramSettings) -> TelegramSettings:
    """Cópia ajustada para produção (retries mais espaçados, drain maior)."""
    return dataclasses.replace(
        settings,
        polling_max_errors=10,
        retry_initial_delay=2.0,
        retry_max_delay=60.0,
        breaker_max_requests=5,
        drain_delay_seconds=10.0,
        shutdown_timeout_seconds=30.0,
    )


def development_preset(settings: TelegramSettings) -> TelegramSettings:
    """Cópia ajustada para desenvolvimento (falha rápido, shutdown curto)."""
    return dataclasses.replace(
        settings,
        polling_max_errors=3,
        retry_initial_delay=0.5,
        retry_max_delay=5.0,
        breaker_max_requests=2,
        drain_delay_seconds=1.0,
        shutdown_timeout_seconds=5.0,
    )


# Variáveis de ambiente por campo
_ENV_VARS: dict[str, str] = {
    f.name: f"TELEGRAM_{f.name.upper()}" for f in dataclasses.fields(TelegramSettings)
}
_ENV_VARS["drain_delay_seconds"] = "TELEGRAM_DRAIN_DELAY"
_ENV_VARS["shutdown_timeout_seconds"] = "TELEGRAM_SHUTDOWN_TIMEOUT"


def _to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("true", "1", "yes")


def _to_tuple(value: Any) -> tuple[str, ...]:
    if isinstance(value, (list, tuple)):
        items = [str(item) for item in value]
    else:
        items = str(value).split(",")
    return tuple(item.strip() for item in items if item and item.strip())


def _to_secret(value: Any) -> SecretStr:
    if isinstance(value, SecretStr):
        return value
    return SecretStr(str(value).strip())


_COERCERS: dict[str, Any] = {
    "bot_token": _to_secret,
    "mode": lambda value: str(value).strip().lower(),
    "polling_delete_webhook": _to_bool,
    "allowed_updates": _to_tuple,
}


def _to_int(value: Any) -> int:
    # bool é subclasse de int; float só se for inteiro (30.0, não 30.7)
    if isinstance(value, bool):
        raise TypeError("bool")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError("non-integral")
        return int(value)
    if isinstance(value, str):
        return int(value.strip())
    raise TypeError(type(value).__name__)


def _to_float(value: Any) -> float:
    if isinstance(value, bool):
        raise TypeError("bool")
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        return float(value.strip())
    raise TypeError(type(value).__name__)


def _to_str(value: Any) -> str:
    if not isinstance(value, str):
        raise TypeError(type(value).__name__)
    return value


_SCALAR_COERCERS: dict[type, Any] = {int: _to_int, float: _to_float, str: _to_str}


def _coerce(name: str, value: Any) -> Any:
    coercer = _COERCERS.get(name)
    if coercer is None:
        default = getattr(TelegramSettings(), name)
        coercer = _SCALAR_COERCERS[type(default)]
    try:
        return coercer(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError([f"{_ENV_VARS[name]} inválido: {type(exc).__name__}"]) from exc


def _load_yaml(config_path: str | Path) -> dict[str, Any]:
    """Lê o arquivo YAML; arquivo inexistente equivale a vazio."""
    path = Path(config_path)
    if not path.exists():
        return {}
    try:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        raise ConfigurationError([f"arquivo de configuração inválido: {path.name}"]) from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError([f"arquivo de configuração deve ser um mapeamento: {path.name}"])

    known = set(_ENV_VARS)
    return {key: value for key, value in data.items() if key in known}


def _load_env() -> dict[str, str]:
    values: dict[str, str] = {}
    for name, env_var in _ENV_VARS.items():
        raw = os.getenv(env_var)
        if raw is not None and raw != "":
            values[name] = raw
    return values


def load_telegram_settings(
    config_path: str | Path | None = None,
    **overrides: Any,
) -> TelegramSettings:
    """Carrega TelegramSettings combinando YAML, env e overrides.

    Args:
        config_path: Arquivo YAML opcional (ignorado se não existir).
        **overrides: Valores explícitos por nome de campo (maior prioridade).

    Raises:
        ConfigurationError: YAML inválido, valor não conversível ou campo
            desconhecido em overrides.
    """
    unknown = sorted(set(overrides) - set(_ENV_VARS))
    if unknown:
        raise ConfigurationError([f"campo desconhecido: {name}" for name in unknown])

    values: dict[str, Any] = {}
    if config_path:
        values.update(_load_yaml(config_path))
    values.update(_load_env())
    values.update(overrides)

    return TelegramSettings(**{name: _coerce(name, value) for name, value in values.items()})


def _load_from_env() -> TelegramSettings:
    """Carrega TelegramSettings a partir de TELEGRAM_CONFIG_FILE e env."""
    return load_telegram_settings(os.getenv("TELEGRAM_CONFIG_FILE") or None)


@lru_cache(maxsize=1)
def get_telegram_settings() -> TelegramSettings:
    """Retorna instância cacheada de TelegramSettings."""
    return _load_from_env()
