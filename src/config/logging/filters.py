"""Filters de logging para injeção de contexto.

Campos injetados:
- correlation_id: ID do request de webhook ou do ciclo de polling
- service: Nome do serviço (ex: telegram-receiver)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable


class CorrelationIdFilter(logging.Filter):
    """Injeta correlation_id e service em cada record de log.

    Importante: nunca adicionar payloads de updates ou tokens nos logs.

    Args:
        service_name: Nome do serviço para identificação nos logs.
        correlation_id_getter: Função que retorna o correlation_id atual.
            Se não fornecida, usa string vazia.
    """

    def __init__(
        self,
        service_name: str,
        correlation_id_getter: Callable[[], str] | None = None,
    ) -> None:
        super().__init__()
        self._service_name = service_name
        self._get_correlation_id = correlation_id_getter or (lambda: "")

    def filter(self, record: logging.LogRecord) -> bool:
        # correlation_id passado via `extra` tem precedência
        existing = getattr(record, "correlation_id", None)
        record.correlation_id = existing or self._get_correlation_id()
        record.service = self._service_name
        return True
