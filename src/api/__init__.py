"""API: camada de borda do receiver.

Responsabilidades:
- Receber updates do Telegram via webhook
- Validar host, secret token e limites do corpo
- Decodificar payloads em modelos tipados
- Falar com a Bot API (getUpdates, setWebhook, deleteWebhook)

Subpastas:
- connectors/: cliente HTTP, modelos e erros da Bot API
- routes/: endpoints HTTP (webhook, health)

NÃO PODE conter: loop de polling, composição do receiver, políticas de retry.
"""
