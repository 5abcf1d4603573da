"""Exceções utilitárias compartilhadas."""

from .exceptions import ConfigurationError, PollingAlreadyRunningError

__all__ = [
    "ConfigurationError",
    "PollingAlreadyRunningError",
]
