"""Backoff exponencial com jitter criptográfico.

O jitter (0-25% do atraso base) vem de secrets.SystemRandom para evitar
sincronização de retries entre muitas instâncias.
"""

from __future__ import annotations

import secrets
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable

JITTER_RATIO = 0.25

_system_random = secrets.SystemRandom()


def _crypto_jitter(upper: float) -> float:
    return _system_random.uniform(0.0, upper)


def base_backoff(
    attempt: int,
    initial_delay: float,
    max_delay: float,
    backoff_factor: float,
) -> float:
    """Atraso sem jitter: min(max_delay, initial * factor^(attempt-1))."""
    exponent = max(attempt, 1) - 1
    try:
        delay = initial_delay * (backoff_factor**exponent)
    except OverflowError:
        return max_delay
    return min(max_delay, delay)


def compute_backoff(
    attempt: int,
    initial_delay: float,
    max_delay: float,
    backoff_factor: float,
    jitter_source: Callable[[float], float] | None = None,
) -> float:
    """Atraso com jitter aditivo em [0, 25% do base).

    Args:
        attempt: Número de erros consecutivos (>= 1).
        initial_delay: Atraso do primeiro retry (s).
        max_delay: Teto do atraso base (s).
        backoff_factor: Multiplicador por tentativa.
        jitter_source: Recebe o limite superior e devolve o jitter.

    Returns:
        Atraso em segundos, nunca acima de max_delay * 1.25.
    """
    delay = base_backoff(attempt, initial_delay, max_delay, backoff_factor)
    jitter_range = delay * JITTER_RATIO
    if jitter_range <= 0:
        return delay

    jitter = (jitter_source or _crypto_jitter)(jitter_range)
    return delay + min(max(jitter, 0.0), jitter_range)
