"""Connectors por canal: adapters de borda para APIs externas.

Estrutura:
- telegram/: Telegram Bot API (webhook + long polling)
"""

__all__: list[str] = []
