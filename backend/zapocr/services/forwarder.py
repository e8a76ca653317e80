"""Reenvío best effort de eventos procesados a un webhook externo (planilla)."""

from __future__ import annotations

import httpx

from zapocr.channels.whatsapp.schemas import ForwardRecord
from zapocr.core.config import Settings
from zapocr.core.logging import get_logger

logger = get_logger(__name__)


class EventForwarder:
    """Publica `ForwardRecord` como JSON; sin URL configurada no hace nada."""

    def __init__(
        self,
        settings: Settings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = settings.sheets_webhook_url
        self._timeout = settings.forward_timeout_seconds
        self._transport = transport

    async def forward(self, record: ForwardRecord) -> None:
        if not self._url:
            return
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout,
                transport=self._transport,
                follow_redirects=True,
            ) as client:
                response = await client.post(self._url, json=record.to_payload())
                response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.error(
                "forward.failed",
                extra={"sender_id": record.sender_id, "media_id": record.media_id, "error": str(exc)},
            )
