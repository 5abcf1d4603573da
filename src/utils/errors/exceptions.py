"""Exceções síncronas compartilhadas entre camadas."""

from __future__ import annotations


class ConfigurationError(ValueError):
    """Configuração inválida detectada na construção de um componente.

    Attributes:
        errors: Lista de problemas encontrados (mensagens sem segredos).
    """

    def __init__(self, errors: list[str]) -> None:
        self.errors = list(errors)
        super().__init__("; ".join(self.errors) or "invalid_configuration")


class PollingAlreadyRunningError(RuntimeError):
    """start() chamado com o long polling já em execução."""
