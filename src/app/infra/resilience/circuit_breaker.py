"""Circuit breaker (CLOSED / OPEN / HALF_OPEN) para unidades de trabalho async.

Semântica:
- CLOSED: contagens zeradas a cada `interval` segundos (0 = nunca).
  Uma falha avalia `ready_to_trip`; verdadeiro abre o circuito.
- OPEN: chamadas falham rápido com CircuitOpenError até `timeout`
  segundos passarem; então HALF_OPEN.
- HALF_OPEN: no máximo `max_requests` chamadas de teste. `max_requests`
  sucessos consecutivos fecham; qualquer falha reabre.

Resultados de uma geração anterior (estado mudou durante a chamada)
são descartados.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, replace
from enum import Enum
from typing import TYPE_CHECKING, TypeVar

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_TIMEOUT_SECONDS = 60.0
MIN_TRIP_REQUESTS = 3
TRIP_FAILURE_RATIO = 0.6


class CircuitState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


@dataclass
class Counts:
    """Contagens da geração corrente do breaker."""

    requests: int = 0
    total_successes: int = 0
    total_failures: int = 0
    consecutive_successes: int = 0
    consecutive_failures: int = 0

    def on_request(self) -> None:
        self.requests += 1

    def on_success(self) -> None:
        self.total_successes += 1
        self.consecutive_successes += 1
        self.consecutive_failures = 0

    def on_failure(self) -> None:
        self.total_failures += 1
        self.consecutive_failures += 1
        self.consecutive_successes = 0

    def clear(self) -> None:
        self.requests = 0
        self.total_successes = 0
        self.total_failures = 0
        self.consecutive_successes = 0
        self.consecutive_failures = 0


def default_ready_to_trip(counts: Counts) -> bool:
    """Abre com pelo menos 3 requests e 60% ou mais de falhas."""
    if counts.requests < MIN_TRIP_REQUESTS:
        return False
    return counts.total_failures / counts.requests >= TRIP_FAILURE_RATIO


class CircuitOpenError(Exception):
    """Chamada rejeitada sem execução: circuito aberto."""

    def __init__(self, name: str, message: str = "circuit breaker is open") -> None:
        self.name = name
        super().__init__(f"{name}: {message}")


class TooManyRequestsError(CircuitOpenError):
    """Limite de chamadas de teste em HALF_OPEN atingido."""

    def __init__(self, name: str) -> None:
        super().__init__(name, "too many requests in half-open state")


class CircuitBreaker:
    """Circuit breaker thread-safe com janela de contagem rolante.

    Args:
        name: Nome para logs.
        max_requests: Chamadas de teste admitidas em HALF_OPEN (min 1).
        interval: Período (s) de limpeza das contagens em CLOSED.
        timeout: Tempo (s) em OPEN antes de ir para HALF_OPEN.
        ready_to_trip: Política de abertura sobre as contagens.
        is_successful: Classifica uma exceção como não-falha.
        on_state_change: Callback (name, from_state, to_state).
        clock: Relógio monotônico (injetável em testes).
    """

    def __init__(
        self,
        name: str,
        max_requests: int = 1,
        interval: float = 0.0,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        ready_to_trip: Callable[[Counts], bool] | None = None,
        is_successful: Callable[[Exception], bool] | None = None,
        on_state_change: Callable[[str, CircuitState, CircuitState], None] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.name = name
        self.max_requests = max(1, max_requests)
        self.interval = max(0.0, interval)
        self.timeout = timeout if timeout > 0 else DEFAULT_TIMEOUT_SECONDS
        self._ready_to_trip = ready_to_trip or default_ready_to_trip
        self._is_successful = is_successful or (lambda exc: False)
        self._on_state_change = on_state_change
        self._clock = clock

        self._lock = threading.RLock()
        self._state = CircuitState.CLOSED
        self._generation = 0
        self._counts = Counts()
        self._expiry = 0.0
        self._new_generation(clock())

    @property
    def state(self) -> CircuitState:
        with self._lock:
            state, _ = self._current_state(self._clock())
            return state

    @property
    def counts(self) -> Counts:
        with self._lock:
            self._current_state(self._clock())
            return replace(self._counts)

    async def call(self, func: Callable[[], Awaitable[T]]) -> T:
        """Executa `func()` protegido pelo breaker.

        Raises:
            CircuitOpenError: Circuito aberto (ou limite de HALF_OPEN).
            Exception: Qualquer erro de `func`, repassado após contabilizar.
        """
        generation = self._before_request()
        try:
            result = await func()
        except Exception as exc:
            self._after_request(generation, self._is_successful(exc))
            raise
        except BaseException:
            # Cancelamento conta como falha para não prender slots de HALF_OPEN
            self._after_request(generation, False)
            raise
        self._after_request(generation, True)
        return result

    def _before_request(self) -> int:
        with self._lock:
            state, generation = self._current_state(self._clock())
            if state is CircuitState.OPEN:
                raise CircuitOpenError(self.name)
            if state is CircuitState.HALF_OPEN and self._counts.requests >= self.max_requests:
                raise TooManyRequestsError(self.name)
            self._counts.on_request()
            return generation

    def _after_request(self, before: int, success: bool) -> None:
        with self._lock:
            now = self._clock()
            state, generation = self._current_state(now)
            if generation != before:
                return
            if success:
                self._on_success(state, now)
            else:
                self._on_failure(state, now)

    def _on_success(self, state: CircuitState, now: float) -> None:
        self._counts.on_success()
        if (
            state is CircuitState.HALF_OPEN
            and self._counts.consecutive_successes >= self.max_requests
        ):
            self._set_state(CircuitState.CLOSED, now)

    def _on_failure(self, state: CircuitState, now: float) -> None:
        if state is CircuitState.CLOSED:
            self._counts.on_failure()
            if self._ready_to_trip(replace(self._counts)):
                self._set_state(CircuitState.OPEN, now)
        elif state is CircuitState.HALF_OPEN:
            self._set_state(CircuitState.OPEN, now)

    def _current_state(self, now: float) -> tuple[CircuitState, int]:
        if self._state is CircuitState.CLOSED:
            if self._expiry and self._expiry <= now:
                self._new_generation(now)
        elif self._state is CircuitState.OPEN and self._expiry <= now:
            self._set_state(CircuitState.HALF_OPEN, now)
        return self._state, self._generation

    def _set_state(self, state: CircuitState, now: float) -> None:
        if self._state is state:
            return
        previous = self._state
        self._state = state
        self._new_generation(now)

        logger.info(
            "circuit_breaker_state_changed",
            extra={
                "breaker": self.name,
                "state_from": previous.value,
                "state_to": state.value,
            },
        )
        if self._on_state_change is not None:
            self._on_state_change(self.name, previous, state)

    def _new_generation(self, now: float) -> None:
        self._generation += 1
        self._counts.clear()
        if self._state is CircuitState.CLOSED:
            self._expiry = now + self.interval if self.interval > 0 else 0.0
        elif self._state is CircuitState.OPEN:
            self._expiry = now + self.timeout
        else:
            self._expiry = 0.0
