"""Dependencias reutilizables para rutas de WhatsApp."""

from fastapi import Header, HTTPException, Query, Request, status

from zapocr.core.config import Settings
from zapocr.core.logging import get_logger
from zapocr.core.security import SIGNATURE_HEADER, SignatureError, tokens_match, verify_signature

from .service import WebhookDispatcher

logger = get_logger("zapocr.channels.whatsapp")


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_dispatcher(request: Request) -> WebhookDispatcher:
    return request.app.state.dispatcher


async def verify_meta_signature(
    request: Request,
    signature: str | None = Header(default=None, alias=SIGNATURE_HEADER),
) -> None:
    """Valida `X-Hub-Signature-256` sobre el cuerpo bruto cuando hay app secret.

    Sin `app_secret` configurado la validación se omite por completo.
    """
    settings = get_settings(request)
    if not settings.app_secret:
        return
    payload = await request.body()
    try:
        verify_signature(settings.app_secret, payload, signature)
    except SignatureError as exc:
        logger.warning("whatsapp.signature_rejected", extra={"error": str(exc)})
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid signature") from exc


async def verify_static_token(
    request: Request,
    x_webhook_token: str | None = Header(default=None),
    token: str | None = Query(default=None),
) -> None:
    """Exige el token estático opcional en header o query string."""
    expected = get_settings(request).webhook_static_token
    if not expected:
        return
    if tokens_match(x_webhook_token, expected) or tokens_match(token, expected):
        return
    logger.warning("whatsapp.static_token_rejected")
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
