"""correlation_id por request/loop, propagado aos logs via ContextVar.

O webhook usa o header x-correlation-id (ou um UUID novo); o loop de
long polling abre um escopo próprio por ciclo de getUpdates.
"""

from __future__ import annotations

import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping

CORRELATION_ID_HEADER = "x-correlation-id"

# Máximo aceito do header; valores maiores são substituídos
_MAX_HEADER_LENGTH = 128

_correlation_id: ContextVar[str] = ContextVar("correlation_id", default="")


def get_correlation_id() -> str:
    """correlation_id do contexto atual (vazio fora de um escopo)."""
    return _correlation_id.get()


def generate_correlation_id() -> str:
    return str(uuid.uuid4())


def correlation_id_from_headers(headers: Mapping[str, str]) -> str:
    """Extrai o correlation_id do request ou gera um novo.

    Valores vazios, longos demais ou com caracteres de controle são
    descartados para não poluir os logs.
    """
    value = (headers.get(CORRELATION_ID_HEADER) or "").strip()
    if not value or len(value) > _MAX_HEADER_LENGTH or not value.isprintable():
        return generate_correlation_id()
    return value


@contextmanager
def correlation_scope(correlation_id: str | None = None) -> Iterator[str]:
    """Define o correlation_id dentro do bloco e restaura o anterior ao sair."""
    value = correlation_id or generate_correlation_id()
    token = _correlation_id.set(value)
    try:
        yield value
    finally:
        _correlation_id.reset(token)
