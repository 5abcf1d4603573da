"""App: ciclo de vida do receiver, resiliência e composição.

Subpastas:
- bootstrap/: composition root (logging, validação, TelegramReceiver)
- services/: long polling
- infra/: resiliência (rate limit, circuit breaker, backoff, buffers) e fila de updates
- protocols/: contratos/interfaces
- observability/: correlation_id para logs estruturados

Padrão: app executa; api adapta; config configura; utils apoia.
"""
