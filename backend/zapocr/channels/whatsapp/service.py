"""Despacho de eventos entrantes de WhatsApp hacia media, OCR, respuesta y reenvío."""

from __future__ import annotations

import logging
import time
from typing import Any

from zapocr.core.config import Settings
from zapocr.core.logging import get_logger, log_event
from zapocr.core.security import tokens_match
from zapocr.services.forwarder import EventForwarder
from zapocr.services.media import (
    DownloadError,
    MediaResolver,
    MetadataFetchError,
    UnsupportedMediaError,
)
from zapocr.services.messenger import OutboundMessenger
from zapocr.services.ocr import OcrClient

from .parser import MalformedEventError, MessageReceived, StatusReceived, parse_event
from .schemas import ForwardRecord, InboundEvent, MediaMeta

logger = get_logger("zapocr.channels.whatsapp")

SUBSCRIBE_MODE = "subscribe"
ELLIPSIS = "…"

MSG_META_FAILED = "Não consegui baixar a imagem. Pode reenviar como *Foto/Imagem*?"
MSG_NOT_IMAGE = "Esse arquivo não parece ser uma imagem. Envie como *Foto/Imagem*."
MSG_DOWNLOAD_FAILED = "Não consegui baixar a imagem. Tente enviar novamente."
MSG_NO_TEXT = "Não consegui identificar texto. Pode enviar um print mais nítido?"
MSG_UNSUPPORTED = "Tipo de mensagem não suportado. Envie uma *Foto/Imagem*."


class ChallengeRejectedError(Exception):
    """La verificación de suscripción del webhook no coincide."""


def verify_challenge(
    mode: str | None, token: str | None, challenge: str | None, expected_token: str | None
) -> str:
    """Devuelve `challenge` sólo si `mode == "subscribe"` y el token coincide."""
    if mode != SUBSCRIBE_MODE or not tokens_match(token, expected_token):
        raise ChallengeRejectedError("Webhook verification failed")
    return challenge or ""


def build_preview(text: str, limit: int) -> str:
    """Recorta el texto para la respuesta al usuario, agregando `…` si excede `limit`."""
    if len(text) <= limit:
        return text
    return text[:limit] + ELLIPSIS


def text_ack(name: str, body: str) -> str:
    return f"Olá, {name}! 👋 Recebi sua mensagem: “{body}”."


def ocr_reply(preview: str) -> str:
    return f"🧾 *Texto reconhecido:*\n\n{preview}"


def _now_ms() -> int:
    return int(time.time() * 1000)


class WebhookDispatcher:
    """Enruta cada entrega del webhook según el tipo de mensaje."""

    def __init__(
        self,
        settings: Settings,
        *,
        resolver: MediaResolver,
        ocr: OcrClient,
        messenger: OutboundMessenger,
        forwarder: EventForwarder,
    ) -> None:
        self.settings = settings
        self.resolver = resolver
        self.ocr = ocr
        self.messenger = messenger
        self.forwarder = forwarder

    def verify_challenge(self, mode: str | None, token: str | None, challenge: str | None) -> str:
        result = verify_challenge(mode, token, challenge, self.settings.verify_token)
        log_event(logger, "whatsapp.webhook_verified")
        return result

    async def dispatch(self, raw_event: Any) -> None:
        """Procesa una entrega completa; nunca propaga excepciones."""
        try:
            parsed = parse_event(raw_event)
        except MalformedEventError as exc:
            log_event(logger, "whatsapp.malformed_event", level=logging.WARNING, error=str(exc))
            return

        if isinstance(parsed, StatusReceived):
            log_event(
                logger,
                "whatsapp.status",
                status=parsed.notice.status,
                message_id=parsed.notice.message_id,
            )
            return
        if not isinstance(parsed, MessageReceived):
            return

        event = parsed.event
        log_event(
            logger,
            "whatsapp.message_received",
            sender_id=event.sender_id,
            message_type=event.raw_type,
        )
        try:
            await self._handle_message(event)
        except Exception:
            logger.exception(
                "whatsapp.dispatch_failed",
                extra={"sender_id": event.sender_id, "message_type": event.raw_type},
            )

    async def _handle_message(self, event: InboundEvent) -> None:
        if self.settings.mark_messages_read and event.message_id:
            await self.messenger.mark_as_read(event.message_id)

        if event.message_type == "text":
            body = event.text_body or ""
            await self.messenger.send_text(event.sender_id, text_ack(event.sender_name, body))
            await self.forwarder.forward(self._record(event, recognized_text=body))
            return

        if event.is_media:
            await self._handle_media(event)
            return

        await self.messenger.send_text(event.sender_id, MSG_UNSUPPORTED)

    async def _handle_media(self, event: InboundEvent) -> None:
        media_id = event.media_id or ""
        declared = event.media_mime_type
        if declared and not declared.startswith("image/"):
            log_event(logger, "whatsapp.media_unsupported", media_id=media_id, mime_type=declared)
            await self.messenger.send_text(event.sender_id, MSG_NOT_IMAGE)
            return

        try:
            meta = await self.resolver.resolve_meta(media_id)
        except MetadataFetchError as exc:
            logger.error(
                "whatsapp.media_meta_failed", extra={"media_id": media_id, "error": str(exc)}
            )
            await self.messenger.send_text(event.sender_id, MSG_META_FAILED)
            return

        try:
            self._ensure_image(meta)
        except UnsupportedMediaError as exc:
            log_event(
                logger, "whatsapp.media_unsupported", media_id=media_id, mime_type=exc.mime_type
            )
            await self.messenger.send_text(event.sender_id, MSG_NOT_IMAGE)
            return

        if self.settings.ocr_submission_mode == "url":
            text = await self.ocr.recognize_url(meta.url)
        else:
            try:
                payload = await self.resolver.download(meta)
            except DownloadError as exc:
                logger.error(
                    "whatsapp.media_download_failed",
                    extra={"media_id": media_id, "error": str(exc)},
                )
                await self.messenger.send_text(event.sender_id, MSG_DOWNLOAD_FAILED)
                return
            text = await self.ocr.recognize(payload, meta.mime_type)

        if text:
            preview = build_preview(text, self.settings.reply_preview_limit)
            await self.messenger.send_text(event.sender_id, ocr_reply(preview))
        else:
            await self.messenger.send_text(event.sender_id, MSG_NO_TEXT)

        await self.forwarder.forward(
            self._record(event, recognized_text=text, media_id=media_id, media_url=meta.url)
        )

    @staticmethod
    def _ensure_image(meta: MediaMeta) -> None:
        if not meta.is_image:
            raise UnsupportedMediaError(meta.mime_type)

    @staticmethod
    def _record(
        event: InboundEvent,
        *,
        recognized_text: str,
        media_id: str = "",
        media_url: str = "",
    ) -> ForwardRecord:
        return ForwardRecord(
            sender_id=event.sender_id,
            sender_name=event.sender_name,
            recognized_text=recognized_text,
            media_id=media_id,
            media_url=media_url,
            timestamp_ms=_now_ms(),
        )


def build_dispatcher(settings: Settings) -> WebhookDispatcher:
    """Construye el dispatcher con los clientes HTTP reales."""
    return WebhookDispatcher(
        settings,
        resolver=MediaResolver(settings),
        ocr=OcrClient(settings),
        messenger=OutboundMessenger(settings),
        forwarder=EventForwarder(settings),
    )
