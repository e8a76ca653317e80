"""Configuración central basada en variables de entorno."""

from functools import lru_cache
from typing import Literal

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Valores globales leídos desde `.env` o el entorno.

    Se construye una sola vez en `create_app()` y se entrega explícitamente a
    cada componente. Los nombres sin prefijo (`VERIFY_TOKEN`, `WHATSAPP_TOKEN`,
    ...) se aceptan como alias para mantener compatibilidad con despliegues previos.
    """

    environment: str = "development"
    log_level: str | None = Field(
        default=None,
        description="Nivel de logging global (ej. debug, info, warning). Cuando no se define, usa un valor por ambiente.",
    )
    request_log_level: str = Field(
        default="info",
        description=(
            "Nivel mínimo para registrar solicitudes en middleware. "
            "Valores más altos (warning/error) reducen registros de peticiones exitosas."
        ),
    )
    request_log_skip_prefixes: tuple[str, ...] = Field(
        default=("/health", "/favicon", "/docs", "/openapi"),
        description="Prefijos de ruta para los que no se registrarán eventos de request.started/completed.",
    )
    log_file_path: str | None = None

    verify_token: str | None = Field(
        default=None,
        validation_alias=AliasChoices("ZAPOCR_VERIFY_TOKEN", "VERIFY_TOKEN"),
    )
    whatsapp_token: str | None = Field(
        default=None,
        validation_alias=AliasChoices("ZAPOCR_WHATSAPP_TOKEN", "WHATSAPP_TOKEN"),
    )
    phone_number_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("ZAPOCR_PHONE_NUMBER_ID", "PHONE_NUMBER_ID"),
    )
    ocr_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("ZAPOCR_OCR_API_KEY", "OCR_API_KEY"),
    )
    sheets_webhook_url: str | None = Field(
        default=None,
        validation_alias=AliasChoices("ZAPOCR_SHEETS_WEBHOOK", "SHEETS_WEBHOOK"),
        description="Webhook JSON (ej. Apps Script de Google Sheets) que recibe cada evento procesado.",
    )
    app_secret: str | None = Field(
        default=None,
        validation_alias=AliasChoices("ZAPOCR_APP_SECRET", "APP_SECRET"),
        description="Secreto de la app de Meta. Cuando se define, se exige X-Hub-Signature-256 en cada POST.",
    )
    webhook_static_token: str | None = Field(
        default=None,
        description="Token fijo opcional que debe venir en X-Webhook-Token o en ?token=.",
    )
    port: int = Field(default=3000, validation_alias=AliasChoices("ZAPOCR_PORT", "PORT"))

    graph_api_base: str = "https://graph.facebook.com/v21.0"
    ocr_api_url: str = "https://api.ocr.space/parse/image"
    ocr_language: str = "por"
    ocr_engine: str = "2"
    ocr_submission_mode: Literal["base64", "url"] = Field(
        default="base64",
        description="`base64` descarga la imagen y la envía embebida; `url` pasa la URL firmada al proveedor.",
    )

    graph_timeout_seconds: float = 15.0
    download_timeout_seconds: float = 25.0
    ocr_timeout_seconds: float = 60.0
    forward_timeout_seconds: float = 15.0

    reply_preview_limit: int = Field(
        default=3000,
        description="Máximo de caracteres del texto reconocido que se devuelven al remitente.",
    )
    ack_before_processing: bool = Field(
        default=True,
        description="Responde 200 a Meta antes de ejecutar OCR y reenvíos en segundo plano.",
    )
    mark_messages_read: bool = True

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="ZAPOCR_",
        extra="allow",
        populate_by_name=True,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Retorna la configuración del proceso, construida una única vez."""
    return Settings()
