"""Punto de entrada principal para la aplicación FastAPI."""

import logging
from pathlib import Path

import uvicorn
from fastapi import FastAPI

from zapocr.api.routes.health import router as health_router
from zapocr.channels.whatsapp.router import router as whatsapp_router
from zapocr.channels.whatsapp.service import WebhookDispatcher, build_dispatcher
from zapocr.core.config import Settings, get_settings
from zapocr.core.logging import configure_logging, get_logger, resolve_log_level
from zapocr.core.middleware import RequestLoggingMiddleware
from zapocr.core.security import mask_secret


def _configure_logging(settings: Settings) -> None:
    default_log_level = logging.DEBUG if settings.environment != "production" else logging.INFO
    per_logger_files: dict[str, str] = {}
    if settings.log_file_path:
        log_dir = Path(settings.log_file_path).parent
        per_logger_files = {
            "zapocr.request": str(log_dir / "request.log"),
            "zapocr.channels.whatsapp": str(log_dir / "whatsapp.log"),
        }
    configure_logging(
        level=resolve_log_level(settings.log_level, default=default_log_level),
        log_file=settings.log_file_path,
        per_logger_files=per_logger_files,
    )


def create_app(
    settings: Settings | None = None,
    *,
    dispatcher: WebhookDispatcher | None = None,
) -> FastAPI:
    """Crea y configura la instancia de FastAPI.

    `settings` se construye una sola vez y se comparte con todos los componentes
    a través de `app.state`.
    """
    settings = settings or get_settings()
    _configure_logging(settings)

    app = FastAPI(title="zapocr", version="0.1.0")
    app.state.settings = settings
    app.state.dispatcher = dispatcher or build_dispatcher(settings)

    app.add_middleware(
        RequestLoggingMiddleware,
        level=resolve_log_level(settings.request_log_level),
        skip_prefixes=settings.request_log_skip_prefixes,
    )

    app.include_router(health_router)
    app.include_router(whatsapp_router)

    log = get_logger("zapocr")
    log.info(
        "app.configured",
        extra={
            "environment": settings.environment,
            "phone_number_id": settings.phone_number_id,
            "whatsapp_token": mask_secret(settings.whatsapp_token),
            "ocr_submission_mode": settings.ocr_submission_mode,
            "signature_check": bool(settings.app_secret),
            "forwarding": bool(settings.sheets_webhook_url),
        },
    )
    if not settings.verify_token:
        log.warning("app.verify_token_missing")

    return app


app = create_app()


def run() -> None:  # pragma: no cover - arranque del servidor
    """Levanta uvicorn en el puerto configurado."""
    settings = get_settings()
    uvicorn.run("zapocr.main:app", host="0.0.0.0", port=settings.port, log_config=None)


if __name__ == "__main__":  # pragma: no cover
    run()
