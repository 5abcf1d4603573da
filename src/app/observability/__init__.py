"""Observabilidade: correlation_id para logs estruturados.

Uso:
    from app.observability import correlation_scope, get_correlation_id
"""

from app.observability.correlation import (
    CORRELATION_ID_HEADER,
    correlation_id_from_headers,
    correlation_scope,
    generate_correlation_id,
    get_correlation_id,
)

__all__ = [
    "CORRELATION_ID_HEADER",
    "correlation_id_from_headers",
    "correlation_scope",
    "generate_correlation_id",
    "get_correlation_id",
]
