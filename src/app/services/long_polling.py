"""Cliente de long polling (getUpdates) da Telegram Bot API.

Ciclo de vida: Idle --start()--> Running --stop() ou erro fatal--> Idle.

Loop:
1. getUpdates(offset) via circuit breaker (somente rede + status)
2. Decodificação fora do breaker
3. Sucesso: zera erros consecutivos; para cada update avança o offset
   e entrega ao sink sem bloquear (fila cheia = descarte com log)
4. Falha: incrementa erros; atinge max_errors = encerra; senão aguarda
   backoff com jitter, interrompível por stop()

Uma chamada em andamento não é interrompida por stop(); o loop sai no
próximo ponto de verificação.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import TYPE_CHECKING

from api.connectors.telegram.errors import (
    PayloadDecodeError,
    TelegramApiError,
    TelegramClientError,
    TelegramTransportError,
)
from app.infra.resilience import CircuitBreaker, CircuitOpenError, compute_backoff
from app.observability import correlation_scope
from utils.errors import PollingAlreadyRunningError

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from api.connectors.telegram.models import Update
    from app.infra.update_sink import UpdateSink
    from app.protocols import BotApiProtocol
    from config.settings.telegram import TelegramSettings

logger = logging.getLogger(__name__)

BREAKER_NAME = "telegram_long_polling"


class LongPollingClient:
    """Busca updates continuamente e os entrega ao UpdateSink.

    Args:
        bot_api: Cliente da Bot API (request_updates/parse_updates).
        sink: Fila de destino dos updates.
        timeout: Janela de long polling no servidor (s).
        limit: Máximo de updates por chamada (1-100).
        max_errors: Erros consecutivos que encerram o loop (0 = sem limite).
        allowed_updates: Tipos de update solicitados (vazio = padrão da plataforma).
        delete_webhook_on_start: Remove webhook registrado antes de iniciar.
        retry_initial_delay: Atraso do primeiro retry (s).
        retry_max_delay: Teto do atraso de retry (s).
        retry_backoff_factor: Multiplicador por erro consecutivo.
        breaker: Circuit breaker já construído (senão um novo com breaker_*).
        jitter_source: Fonte de jitter (injetável em testes).
    """

    def __init__(
        self,
        bot_api: BotApiProtocol,
        sink: UpdateSink,
        *,
        timeout: int = 30,
        limit: int = 100,
        max_errors: int = 10,
        allowed_updates: Sequence[str] | None = None,
        delete_webhook_on_start: bool = False,
        retry_initial_delay: float = 1.0,
        retry_max_delay: float = 60.0,
        retry_backoff_factor: float = 2.0,
        breaker: CircuitBreaker | None = None,
        breaker_max_requests: int = 5,
        breaker_interval: float = 120.0,
        breaker_timeout: float = 60.0,
        jitter_source: Callable[[float], float] | None = None,
    ) -> None:
        self._bot_api = bot_api
        self._sink = sink
        self._timeout = timeout
        self._limit = limit
        self._max_errors = max_errors
        self._allowed_updates = tuple(allowed_updates or ())
        self._delete_webhook_on_start = delete_webhook_on_start
        self._retry_initial_delay = retry_initial_delay
        self._retry_max_delay = retry_max_delay
        self._retry_backoff_factor = retry_backoff_factor
        self._jitter_source = jitter_source
        self._breaker = breaker or CircuitBreaker(
            name=BREAKER_NAME,
            max_requests=breaker_max_requests,
            interval=breaker_interval,
            timeout=breaker_timeout,
        )

        # Campos lidos fora da task do loop
        self._lock = threading.Lock()
        self._running = False
        self._starting = False
        self._stop_requested = False
        self._offset = 0
        self._consecutive_errors = 0
        self._task: asyncio.Task[None] | None = None
        self._stop_event: asyncio.Event | None = None

    @classmethod
    def from_settings(
        cls,
        settings: TelegramSettings,
        bot_api: BotApiProtocol,
        sink: UpdateSink,
    ) -> LongPollingClient:
        return cls(
            bot_api,
            sink,
            timeout=settings.polling_timeout,
            limit=settings.polling_limit,
            max_errors=settings.polling_max_errors,
            allowed_updates=settings.allowed_updates,
            delete_webhook_on_start=settings.polling_delete_webhook,
            retry_initial_delay=settings.retry_initial_delay,
            retry_max_delay=settings.retry_max_delay,
            retry_backoff_factor=settings.retry_backoff_factor,
            breaker_max_requests=settings.breaker_max_requests,
            breaker_interval=settings.breaker_interval,
            breaker_timeout=settings.breaker_timeout,
        )

    @property
    def running(self) -> bool:
        with self._lock:
            return self._running

    @property
    def offset(self) -> int:
        """Próximo update_id esperado."""
        with self._lock:
            return self._offset

    @property
    def consecutive_errors(self) -> int:
        with self._lock:
            return self._consecutive_errors

    @property
    def breaker(self) -> CircuitBreaker:
        return self._breaker

    def is_healthy(self) -> bool:
        """Running e abaixo do teto de erros consecutivos."""
        with self._lock:
            if not self._running:
                return False
            return self._max_errors == 0 or self._consecutive_errors < self._max_errors

    async def start(self) -> None:
        """Inicia o loop em background e retorna imediatamente.

        Raises:
            PollingAlreadyRunningError: Loop já em execução.
            TelegramClientError: Falha ao remover o webhook (cliente fica Idle).
        """
        with self._lock:
            if self._running or self._starting or self._loop_alive():
                raise PollingAlreadyRunningError("long polling is already running")
            self._starting = True
            self._stop_requested = False

        try:
            if self._delete_webhook_on_start:
                await self._bot_api.delete_webhook()
        except BaseException:
            with self._lock:
                self._starting = False
                self._stop_requested = False
            raise

        stop_event = asyncio.Event()
        with self._lock:
            self._starting = False
            if self._stop_requested:
                # stop() chegou durante o deleteWebhook: permanece Idle
                self._stop_requested = False
                logger.info("long_polling_start_cancelled", extra={"offset": self._offset})
                return
            self._running = True
            self._consecutive_errors = 0
            self._stop_event = stop_event
            self._task = asyncio.create_task(
                self._run(stop_event),
                name="telegram-long-polling",
            )

        logger.info(
            "long_polling_started",
            extra={
                "offset": self.offset,
                "polling_timeout": self._timeout,
                "limit": self._limit,
                "max_errors": self._max_errors,
            },
        )

    async def stop(self, timeout: float | None = None) -> None:
        """Para o loop e aguarda sua saída. Idempotente.

        Chamadas concorrentes ou repetidas retornam depois que o loop saiu.
        Chamada durante start() faz a inicialização terminar sem criar o loop.

        Args:
            timeout: Espera máxima (s); esgotada, a task é cancelada.
        """
        with self._lock:
            self._running = False
            if self._starting:
                self._stop_requested = True
            task = self._task
            stop_event = self._stop_event

        if stop_event is not None:
            stop_event.set()
        if task is None or task is asyncio.current_task():
            return

        _, pending = await asyncio.wait({task}, timeout=timeout)
        if pending:
            logger.warning("long_polling_stop_timeout", extra={"timeout_seconds": timeout})
            task.cancel()
            await asyncio.wait({task})

    def _loop_alive(self) -> bool:
        return self._task is not None and not self._task.done()

    async def _run(self, stop_event: asyncio.Event) -> None:
        try:
            while not stop_event.is_set():
                with correlation_scope():
                    try:
                        await self._poll_once()
                        continue
                    except CircuitOpenError:
                        logger.warning(
                            "long_polling_circuit_open",
                            extra={"breaker_state": self._breaker.state.value},
                        )
                    except (TelegramClientError, PayloadDecodeError) as exc:
                        logger.warning(
                            "long_polling_request_failed",
                            extra={
                                "error_type": type(exc).__name__,
                                "status_code": _status_code(exc),
                                "retryable": _is_retryable(exc),
                            },
                        )
                    except Exception:
                        logger.exception("long_polling_unexpected_error")

                    if not await self._handle_failure(stop_event):
                        break
        finally:
            with self._lock:
                self._running = False
            logger.info(
                "long_polling_stopped",
                extra={"offset": self.offset, "consecutive_errors": self.consecutive_errors},
            )

    async def _poll_once(self) -> None:
        offset = self.offset
        body = await self._breaker.call(
            lambda: self._bot_api.request_updates(
                offset,
                self._timeout,
                self._limit,
                self._allowed_updates,
            )
        )
        updates = self._bot_api.parse_updates(body)

        with self._lock:
            self._consecutive_errors = 0

        for update in updates:
            self._deliver(update)

    def _deliver(self, update: Update) -> None:
        # Offset avança antes da entrega: update descartado não é repetido
        with self._lock:
            self._offset = max(self._offset, update.update_id + 1)
            offset = self._offset

        if not self._sink.offer(update):
            logger.warning(
                "long_polling_update_dropped",
                extra={"update_id": update.update_id, "offset": offset},
            )

    async def _handle_failure(self, stop_event: asyncio.Event) -> bool:
        """Contabiliza a falha e aguarda o backoff. False encerra o loop."""
        with self._lock:
            self._consecutive_errors += 1
            errors = self._consecutive_errors

        if self._max_errors > 0 and errors >= self._max_errors:
            logger.error(
                "long_polling_max_errors_reached",
                extra={"consecutive_errors": errors, "max_errors": self._max_errors},
            )
            return False

        delay = compute_backoff(
            errors,
            self._retry_initial_delay,
            self._retry_max_delay,
            self._retry_backoff_factor,
            jitter_source=self._jitter_source,
        )
        logger.info(
            "long_polling_retry_scheduled",
            extra={"consecutive_errors": errors, "retry_delay_seconds": round(delay, 3)},
        )
        try:
            await asyncio.wait_for(stop_event.wait(), timeout=delay)
        except TimeoutError:
            pass
        return True


def _status_code(exc: Exception) -> int | None:
    if isinstance(exc, TelegramApiError):
        return exc.code
    if isinstance(exc, TelegramTransportError):
        return exc.status_code
    return None


def _is_retryable(exc: Exception) -> bool:
    if isinstance(exc, TelegramApiError):
        return exc.is_retryable
    return isinstance(exc, TelegramTransportError)
