"""Serviços de aplicação.

Loops e orquestração do receiver. Implementações concretas de IO
ficam em api/connectors/ e app/infra/.
"""

from app.services.long_polling import LongPollingClient

__all__ = [
    "LongPollingClient",
]
