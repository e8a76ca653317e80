"""Endpoints del canal WhatsApp (Cloud API)."""

import json

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Request, status
from fastapi.responses import PlainTextResponse

from zapocr.core.logging import get_logger

from .deps import get_dispatcher, verify_meta_signature, verify_static_token
from .service import ChallengeRejectedError, WebhookDispatcher

logger = get_logger("zapocr.channels.whatsapp")

router = APIRouter(prefix="/webhook", tags=["whatsapp"])


@router.get("", response_class=PlainTextResponse, summary="Verificación de suscripción de Meta")
def verify_webhook(
    mode: str | None = Query(default=None, alias="hub.mode"),
    token: str | None = Query(default=None, alias="hub.verify_token"),
    challenge: str | None = Query(default=None, alias="hub.challenge"),
    dispatcher: WebhookDispatcher = Depends(get_dispatcher),
) -> str:
    """Devuelve el challenge en texto plano o 403 si el token no coincide."""
    try:
        return dispatcher.verify_challenge(mode, token, challenge)
    except ChallengeRejectedError as exc:
        logger.warning("whatsapp.verification_rejected", extra={"mode": mode})
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden") from exc


@router.post(
    "",
    summary="Webhook de recepción WhatsApp",
    dependencies=[Depends(verify_static_token), Depends(verify_meta_signature)],
)
async def receive_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    dispatcher: WebhookDispatcher = Depends(get_dispatcher),
) -> dict[str, str]:
    """Confirma la entrega a Meta con 200 aunque el procesamiento posterior falle."""
    body = await request.body()
    try:
        payload = json.loads(body) if body else {}
    except ValueError:
        logger.warning("whatsapp.invalid_json", extra={"payload_size": len(body)})
        return {"status": "ignored"}

    if dispatcher.settings.ack_before_processing:
        background_tasks.add_task(dispatcher.dispatch, payload)
    else:
        await dispatcher.dispatch(payload)
    return {"status": "accepted"}
