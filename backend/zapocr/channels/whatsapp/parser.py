"""Decodificador del envelope de webhooks de WhatsApp Cloud API.

El envelope llega como `entry[0].changes[0].value.{messages,statuses,contacts}`
y cualquiera de esos niveles puede faltar. Un nivel ausente produce
`NoMessage`; un nivel presente con un tipo inesperado produce
`MalformedEventError`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .schemas import DEFAULT_SENDER_NAME, InboundEvent, MessageType, StatusNotice

_KNOWN_TYPES: dict[str, MessageType] = {
    "text": "text",
    "image": "image",
    "document": "document",
}


class MalformedEventError(ValueError):
    """El envelope recibido no respeta la estructura esperada."""


@dataclass(slots=True, frozen=True)
class MessageReceived:
    event: InboundEvent


@dataclass(slots=True, frozen=True)
class StatusReceived:
    notice: StatusNotice


@dataclass(slots=True, frozen=True)
class NoMessage:
    """Envelope válido sin mensaje ni estado (ej. cambios de plantilla)."""


ParsedEvent = MessageReceived | StatusReceived | NoMessage


def _object(container: dict[str, Any], key: str) -> dict[str, Any] | None:
    value = container.get(key)
    if value is None:
        return None
    if not isinstance(value, dict):
        raise MalformedEventError(f"'{key}' debe ser un objeto")
    return value


def _first(container: dict[str, Any], key: str) -> dict[str, Any] | None:
    value = container.get(key)
    if value is None:
        return None
    if not isinstance(value, list):
        raise MalformedEventError(f"'{key}' debe ser una lista")
    if not value:
        return None
    head = value[0]
    if not isinstance(head, dict):
        raise MalformedEventError(f"'{key}[0]' debe ser un objeto")
    return head


def _text(container: dict[str, Any] | None, key: str) -> str | None:
    if container is None:
        return None
    value = container.get(key)
    if value is None:
        return None
    if isinstance(value, (str, int)):
        return str(value)
    raise MalformedEventError(f"'{key}' debe ser texto")


def _sender_name(value: dict[str, Any]) -> str:
    contact = _first(value, "contacts")
    profile = _object(contact, "profile") if contact else None
    return _text(profile, "name") or DEFAULT_SENDER_NAME


def _decode_message(message: dict[str, Any], sender_name: str) -> InboundEvent:
    sender_id = _text(message, "from")
    if not sender_id:
        raise MalformedEventError("El mensaje no incluye 'from'")

    raw_type = _text(message, "type") or ""
    message_type = _KNOWN_TYPES.get(raw_type, "other")

    text_body: str | None = None
    media_id: str | None = None
    media_mime: str | None = None

    if message_type == "text":
        text_body = _text(_object(message, "text"), "body") or ""
    elif message_type in {"image", "document"}:
        media = _object(message, raw_type)
        media_id = _text(media, "id")
        media_mime = _text(media, "mime_type")
        if not media_id:
            raise MalformedEventError(f"El mensaje de tipo {raw_type} no incluye id de media")

    return InboundEvent(
        sender_id=sender_id,
        sender_name=sender_name,
        message_type=message_type,
        raw_type=raw_type or None,
        message_id=_text(message, "id"),
        text_body=text_body,
        media_id=media_id,
        media_mime_type=media_mime,
    )


def parse_event(payload: Any) -> ParsedEvent:
    """Convierte el cuerpo JSON del webhook en una variante de `ParsedEvent`."""
    if not isinstance(payload, dict):
        raise MalformedEventError("El cuerpo del webhook debe ser un objeto JSON")

    entry = _first(payload, "entry")
    change = _first(entry, "changes") if entry else None
    value = _object(change, "value") if change else None
    if value is None:
        return NoMessage()

    status = _first(value, "statuses")
    if status is not None:
        return StatusReceived(
            StatusNotice(
                status=_text(status, "status"),
                message_id=_text(status, "id"),
                recipient_id=_text(status, "recipient_id"),
            )
        )

    message = _first(value, "messages")
    if message is None:
        return NoMessage()

    return MessageReceived(_decode_message(message, _sender_name(value)))
