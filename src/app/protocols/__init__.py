"""Protocolos e contratos do core da aplicação."""

from .bot_api import BotApiProtocol
from .receiver import UpdateReceiverProtocol

__all__ = [
    "BotApiProtocol",
    "UpdateReceiverProtocol",
]
