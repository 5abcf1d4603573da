"""Primitivas de resiliência: admissão, circuit breaker, backoff e buffers."""

from .backoff import JITTER_RATIO, base_backoff, compute_backoff
from .buffer_pool import BufferPool
from .circuit_breaker import (
    CircuitBreaker,
    CircuitOpenError,
    CircuitState,
    Counts,
    TooManyRequestsError,
    default_ready_to_trip,
)
from .rate_limiter import TokenBucket

__all__ = [
    "JITTER_RATIO",
    "BufferPool",
    "CircuitBreaker",
    "CircuitOpenError",
    "CircuitState",
    "Counts",
    "TokenBucket",
    "TooManyRequestsError",
    "base_backoff",
    "compute_backoff",
    "default_ready_to_trip",
]
