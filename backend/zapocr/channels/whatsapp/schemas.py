"""Esquemas Pydantic para payloads de WhatsApp Cloud API."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

MessageType = Literal["text", "image", "document", "status", "other"]

DEFAULT_SENDER_NAME = "Contato"


class InboundEvent(BaseModel):
    """Mensaje entrante normalizado a partir del envelope de Meta."""

    sender_id: str
    sender_name: str = DEFAULT_SENDER_NAME
    message_type: MessageType
    raw_type: str | None = Field(default=None, description="Tipo original reportado por Meta.")
    message_id: str | None = None
    text_body: str | None = None
    media_id: str | None = None
    media_mime_type: str | None = None

    @property
    def is_media(self) -> bool:
        return self.message_type in {"image", "document"}


class StatusNotice(BaseModel):
    """Notificación de estado (sent, delivered, read, failed) de un mensaje saliente."""

    status: str | None = None
    message_id: str | None = None
    recipient_id: str | None = None


class MediaMeta(BaseModel):
    """Metadata de un archivo multimedia devuelta por Graph API.

    La URL es firmada y de vida corta: sólo se usa dentro del request actual.
    """

    url: str
    mime_type: str = ""
    sha256: str | None = None
    file_size: int | None = None

    @property
    def is_image(self) -> bool:
        return self.mime_type.startswith("image/")


class ForwardRecord(BaseModel):
    """Registro enviado al webhook de logging (planilla).

    Se serializa con las claves históricas `from`, `name`, `text`, `mediaUrl`,
    `mediaId` y `ts` que espera el Apps Script de la planilla.
    """

    model_config = ConfigDict(populate_by_name=True)

    sender_id: str = Field(serialization_alias="from")
    sender_name: str = Field(serialization_alias="name")
    recognized_text: str = Field(default="", serialization_alias="text")
    media_url: str = Field(default="", serialization_alias="mediaUrl")
    media_id: str = Field(default="", serialization_alias="mediaId")
    timestamp_ms: int = Field(serialization_alias="ts")

    def to_payload(self) -> dict[str, str | int]:
        return self.model_dump(by_alias=True)
