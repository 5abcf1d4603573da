"""Configuração de logging estruturado.

Uso:
    from config.logging import configure_logging, get_logger

    # Na inicialização (bootstrap)
    configure_logging(level="INFO", service_name="telegram-receiver")

    # Em qualquer módulo
    logger = get_logger(__name__)
    logger.info("update_forwarded", extra={"update_id": 42})

Campos obrigatórios em todo log: correlation_id, service, level, logger,
message, asctime.
"""

from config.logging.config import (
    DEFAULT_SERVICE_NAME,
    configure_logging,
    get_logger,
    validate_log_file_path,
)
from config.logging.filters import CorrelationIdFilter
from config.logging.formatters import (
    FIELD_RENAME_MAP,
    REQUIRED_LOG_FIELDS,
    create_json_formatter,
)

__all__ = [
    "DEFAULT_SERVICE_NAME",
    "FIELD_RENAME_MAP",
    "REQUIRED_LOG_FIELDS",
    "CorrelationIdFilter",
    "configure_logging",
    "create_json_formatter",
    "get_logger",
    "validate_log_file_path",
]
