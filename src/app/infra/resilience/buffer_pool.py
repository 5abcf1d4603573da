"""Pool de buffers reutilizáveis para leitura de corpos de request."""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator


class BufferPool:
    """Buffers de tamanho fixo com aquisição/liberação escopada.

    Args:
        buffer_size: Tamanho de cada buffer em bytes.
        max_idle: Máximo de buffers ociosos retidos no pool.
    """

    def __init__(self, buffer_size: int, max_idle: int = 32) -> None:
        if buffer_size < 1:
            raise ValueError("buffer_size deve ser >= 1")
        self.buffer_size = buffer_size
        self.max_idle = max_idle
        self._idle: list[bytearray] = []
        self._lock = threading.Lock()
        self._in_use = 0

    @contextmanager
    def acquire(self) -> Iterator[bytearray]:
        """Empresta um buffer; devolve ao pool em qualquer caminho de saída."""
        with self._lock:
            buffer = self._idle.pop() if self._idle else bytearray(self.buffer_size)
            self._in_use += 1
        try:
            yield buffer
        finally:
            self._release(buffer)

    def _release(self, buffer: bytearray) -> None:
        with self._lock:
            self._in_use -= 1
            if len(buffer) == self.buffer_size and len(self._idle) < self.max_idle:
                self._idle.append(buffer)

    @property
    def idle_count(self) -> int:
        with self._lock:
            return len(self._idle)

    @property
    def in_use(self) -> int:
        with self._lock:
            return self._in_use
