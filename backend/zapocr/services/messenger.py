"""Envío de mensajes salientes por WhatsApp Cloud API."""

from __future__ import annotations

from typing import Any

import httpx

from zapocr.core.config import Settings
from zapocr.core.logging import get_logger
from zapocr.core.security import mask_secret

logger = get_logger(__name__)


def _error_detail(exc: httpx.HTTPError) -> Any:
    if isinstance(exc, httpx.HTTPStatusError):
        try:
            return exc.response.json()
        except ValueError:
            return exc.response.text
    return str(exc)


class OutboundMessenger:
    """Publica mensajes en `/{phone_number_id}/messages`.

    Ningún fallo de envío se propaga: el handler del webhook nunca debe caer
    porque una respuesta no pudo entregarse.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = f"{settings.graph_api_base.rstrip('/')}/{settings.phone_number_id}/messages"
        self._token = settings.whatsapp_token
        self._timeout = settings.graph_timeout_seconds
        self._transport = transport

    async def _post(self, payload: dict[str, Any]) -> None:
        headers = {"Authorization": f"Bearer {self._token or ''}"}
        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            response = await client.post(self._url, json=payload, headers=headers)
            response.raise_for_status()

    async def send_text(self, recipient_id: str, body: str) -> None:
        payload = {
            "messaging_product": "whatsapp",
            "to": recipient_id,
            "type": "text",
            "text": {"body": body},
        }
        try:
            await self._post(payload)
        except httpx.HTTPError as exc:
            logger.error(
                "whatsapp.send_failed",
                extra={
                    "to": recipient_id,
                    "error": _error_detail(exc),
                    "token": mask_secret(self._token),
                },
            )

    async def mark_as_read(self, message_id: str) -> None:
        """Marca el mensaje entrante como leído (best effort)."""
        payload = {
            "messaging_product": "whatsapp",
            "status": "read",
            "message_id": message_id,
        }
        try:
            await self._post(payload)
        except httpx.HTTPError as exc:
            logger.warning(
                "whatsapp.mark_read_failed",
                extra={"message_id": message_id, "error": _error_detail(exc)},
            )
