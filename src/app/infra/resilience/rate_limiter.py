"""Controle de admissão por token bucket.

Permite rajadas até `burst` e depois impõe a taxa sustentada
`rate_per_second`. Seguro para uso concorrente.
"""

from __future__ import annotations

import threading
import time
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable


class TokenBucket:
    """Token bucket com refill contínuo.

    Args:
        rate_per_second: Tokens repostos por segundo.
        burst: Capacidade máxima do bucket (começa cheio).
        clock: Relógio monotônico (injetável em testes).
    """

    def __init__(
        self,
        rate_per_second: float,
        burst: int,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if rate_per_second < 0:
            raise ValueError("rate_per_second deve ser >= 0")
        if burst < 1:
            raise ValueError("burst deve ser >= 1")

        self.rate_per_second = rate_per_second
        self.burst = burst
        self._clock = clock
        self._tokens = float(burst)
        self._last_refill = clock()
        self._lock = threading.Lock()

    def _refill(self) -> None:
        now = self._clock()
        elapsed = max(0.0, now - self._last_refill)
        self._tokens = min(float(self.burst), self._tokens + elapsed * self.rate_per_second)
        self._last_refill = now

    def allow(self) -> bool:
        """Consome um token se disponível; nunca bloqueia."""
        with self._lock:
            self._refill()
            if self._tokens < 1.0:
                return False
            self._tokens -= 1.0
            return True

    @property
    def available(self) -> float:
        with self._lock:
            self._refill()
            return self._tokens
