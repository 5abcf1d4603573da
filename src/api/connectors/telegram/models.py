"""Modelos tipados da Telegram Bot API (contrato externo).

Espelham https://core.telegram.org/bots/api#update. Campos desconhecidos
são ignorados; instâncias são imutáveis depois de construídas.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from api.connectors.telegram.errors import PayloadDecodeError

# Tipos de update suportados (payloads mutuamente exclusivos)
UPDATE_PAYLOAD_FIELDS: tuple[str, ...] = ("message", "edited_message", "callback_query")


class TelegramModel(BaseModel):
    """Base comum: imutável, tolerante a campos extras, aceita alias."""

    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)


class User(TelegramModel):
    id: int
    is_bot: bool = False
    first_name: str
    last_name: str | None = None
    username: str | None = None
    language_code: str | None = None


class Chat(TelegramModel):
    id: int
    type: str
    title: str | None = None
    username: str | None = None
    first_name: str | None = None
    last_name: str | None = None


class MessageEntity(TelegramModel):
    type: str
    offset: int
    length: int
    url: str | None = None
    user: User | None = None
    language: str | None = None


class PhotoSize(TelegramModel):
    file_id: str
    file_unique_id: str
    width: int
    height: int
    file_size: int | None = None


class Document(TelegramModel):
    file_id: str
    file_unique_id: str
    thumbnail: PhotoSize | None = None
    file_name: str | None = None
    mime_type: str | None = None
    file_size: int | None = None


class Contact(TelegramModel):
    phone_number: str
    first_name: str
    last_name: str | None = None
    user_id: int | None = None
    vcard: str | None = None


class Location(TelegramModel):
    longitude: float
    latitude: float


class Message(TelegramModel):
    """Mensagem Telegram (também usada para edited_message)."""

    message_id: int
    from_user: User | None = Field(default=None, alias="from")
    chat: Chat
    date: int
    text: str | None = None
    reply_to_message: Message | None = None
    entities: tuple[MessageEntity, ...] | None = None
    photo: tuple[PhotoSize, ...] | None = None
    document: Document | None = None
    caption: str | None = None
    caption_entities: tuple[MessageEntity, ...] | None = None
    contact: Contact | None = None
    location: Location | None = None


class CallbackQuery(TelegramModel):
    """Callback de botão inline."""

    id: str
    from_user: User = Field(alias="from")
    message: Message | None = None
    inline_message_id: str | None = None
    chat_instance: str
    data: str | None = None


class Update(TelegramModel):
    """Evento entregue pela plataforma, identificado por update_id crescente.

    No máximo um payload (message, edited_message, callback_query) é
    preenchido. Updates de tipos não suportados chegam sem payload.
    """

    update_id: int
    message: Message | None = None
    edited_message: Message | None = None
    callback_query: CallbackQuery | None = None

    @model_validator(mode="after")
    def _single_payload(self) -> Update:
        populated = [name for name in UPDATE_PAYLOAD_FIELDS if getattr(self, name) is not None]
        if len(populated) > 1:
            raise ValueError(f"multiple_payloads: {', '.join(populated)}")
        return self

    @property
    def id(self) -> int:
        return self.update_id

    @property
    def kind(self) -> str | None:
        """Nome do payload preenchido (ou None para tipos não suportados)."""
        for name in UPDATE_PAYLOAD_FIELDS:
            if getattr(self, name) is not None:
                return name
        return None

    def to_json(self) -> bytes:
        """Serializa no formato da Bot API (aliases, sem campos nulos)."""
        return self.model_dump_json(by_alias=True, exclude_none=True).encode("utf-8")


class ResponseParameters(TelegramModel):
    retry_after: int | None = None
    migrate_to_chat_id: int | None = None


class ApiResponse(TelegramModel):
    """Envelope genérico de resposta da Bot API."""

    ok: bool
    result: Any = None
    error_code: int | None = None
    description: str | None = None
    parameters: ResponseParameters | None = None


class GetUpdatesResponse(ApiResponse):
    result: tuple[Update, ...] | None = None


class WebhookInfo(TelegramModel):
    """Estado atual do webhook registrado (getWebhookInfo)."""

    url: str = ""
    has_custom_certificate: bool = False
    pending_update_count: int = 0
    ip_address: str | None = None
    last_error_date: int | None = None
    last_error_message: str | None = None
    last_synchronization_error_date: int | None = None
    max_connections: int | None = None
    allowed_updates: tuple[str, ...] | None = None


def decode_update(raw: bytes | bytearray | memoryview) -> Update:
    """Decodifica um documento JSON em Update.

    Raises:
        PayloadDecodeError: JSON malformado, tipos inválidos, documento que
            não é objeto ou mais de um payload preenchido.
    """
    try:
        return Update.model_validate_json(bytes(raw))
    except ValidationError as exc:
        raise PayloadDecodeError("invalid_update_payload") from exc


def decode_updates_response(raw: bytes) -> GetUpdatesResponse:
    """Decodifica o envelope de getUpdates."""
    try:
        return GetUpdatesResponse.model_validate_json(raw)
    except ValidationError as exc:
        raise PayloadDecodeError("invalid_get_updates_response") from exc


def decode_api_response(raw: bytes) -> ApiResponse:
    """Decodifica o envelope genérico de resposta."""
    try:
        return ApiResponse.model_validate_json(raw)
    except ValidationError as exc:
        raise PayloadDecodeError("invalid_api_response") from exc


def parse_webhook_info(result: dict[str, Any] | None) -> WebhookInfo:
    try:
        return WebhookInfo.model_validate(result or {})
    except ValidationError as exc:
        raise PayloadDecodeError("invalid_webhook_info") from exc
