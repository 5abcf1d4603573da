"""Configuração centralizada de logging.

Logging estruturado JSON com:
- Campos obrigatórios (correlation_id, service, level, logger, message)
- Saída em stdout e, opcionalmente, num arquivo de log
- Níveis configuráveis por ambiente

Uso:
    from config.logging import configure_logging, get_logger

    # Na inicialização do serviço (app/bootstrap/)
    configure_logging(level="INFO", service_name="telegram-receiver")

    # Em qualquer módulo
    logger = get_logger(__name__)
    logger.info("update_forwarded", extra={"update_id": 42})

Nunca logar payloads de updates nem o token do bot.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING

from config.logging.filters import CorrelationIdFilter
from config.logging.formatters import create_json_formatter

if TYPE_CHECKING:
    from collections.abc import Callable

# Níveis de log válidos
VALID_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})

# Nome padrão do serviço
DEFAULT_SERVICE_NAME = "telegram-receiver"

# Diretórios de sistema onde o arquivo de log não pode ser criado
_PROTECTED_LOG_ROOTS = ("/etc", "/bin", "/sbin", "/usr", "/var/log", "/root", "/home")

_LOG_FILE_MODE = 0o600
_LOG_DIR_MODE = 0o700


def validate_log_file_path(path: str) -> Path:
    """Valida o caminho do arquivo de log.

    Raises:
        ValueError: Caminho com '..' ou dentro de diretório de sistema.
    """
    if ".." in Path(path).parts:
        raise ValueError("log_file_path: path traversal não permitido")

    normalized = os.path.normpath(path)
    for root in _PROTECTED_LOG_ROOTS:
        if normalized == root or normalized.startswith(root + "/"):
            raise ValueError(f"log_file_path: diretório de sistema não permitido ({root})")
    return Path(normalized)


def _create_file_handler(path: str) -> logging.FileHandler:
    log_path = validate_log_file_path(path)
    log_path.parent.mkdir(mode=_LOG_DIR_MODE, parents=True, exist_ok=True)
    handler = logging.FileHandler(log_path, mode="a", encoding="utf-8")
    os.chmod(log_path, _LOG_FILE_MODE)
    return handler


def configure_logging(
    level: str = "INFO",
    service_name: str = DEFAULT_SERVICE_NAME,
    correlation_id_getter: Callable[[], str] | None = None,
    log_file_path: str | None = None,
) -> None:
    """Configura logging JSON estruturado para o serviço.

    Deve ser chamada uma vez na inicialização do serviço (app/bootstrap/).

    Args:
        level: Nível de log (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        service_name: Nome do serviço para identificação nos logs.
        correlation_id_getter: Função opcional que retorna o correlation_id
            do contexto atual (ex: de ContextVar).
        log_file_path: Arquivo adicional de log (diretórios criados se preciso).

    Raises:
        ValueError: Nível de log ou caminho de arquivo inválido.
    """
    level_upper = level.upper()
    if level_upper not in VALID_LOG_LEVELS:
        raise ValueError(
            f"Nível de log inválido: {level}. "
            f"Válidos: {', '.join(sorted(VALID_LOG_LEVELS))}"
        )

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file_path:
        handlers.append(_create_file_handler(log_file_path))

    formatter = create_json_formatter()
    correlation_filter = CorrelationIdFilter(service_name, correlation_id_getter)
    for handler in handlers:
        handler.setLevel(level_upper)
        handler.setFormatter(formatter)
        handler.addFilter(correlation_filter)

    root = logging.getLogger()
    root.setLevel(level_upper)
    # Substituir handlers existentes para evitar duplicação
    for previous in root.handlers:
        if previous not in handlers:
            previous.close()
    root.handlers = handlers


def get_logger(name: str) -> logging.Logger:
    """Retorna logger para o módulo especificado.

    O filter injeta automaticamente service e correlation_id.
    """
    return logging.getLogger(name)
