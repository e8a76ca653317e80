"""Cliente para el servicio OCR.space."""

from __future__ import annotations

import base64
from typing import Any

import httpx

from zapocr.core.config import Settings
from zapocr.core.logging import get_logger

logger = get_logger(__name__)


class OcrError(Exception):
    """Fallo de transporte o de procesamiento reportado por el proveedor OCR."""


def build_data_uri(payload: bytes, mime_type: str) -> str:
    encoded = base64.b64encode(payload).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"


def _error_message(data: dict[str, Any]) -> str:
    message = data.get("ErrorMessage") or data.get("ErrorDetails") or "sin detalle"
    if isinstance(message, list):
        return "; ".join(str(item) for item in message)
    return str(message)


class OcrClient:
    """Envía imágenes al endpoint síncrono `/parse/image`.

    `parse_image`/`parse_url` levantan `OcrError`; `recognize`/`recognize_url`
    degradan cualquier fallo a cadena vacía, igual que "sin texto".
    """

    def __init__(
        self,
        settings: Settings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = settings.ocr_api_url
        self._api_key = settings.ocr_api_key
        self._language = settings.ocr_language
        self._engine = settings.ocr_engine
        self._timeout = settings.ocr_timeout_seconds
        self._transport = transport

    def _form(self, **source: str) -> dict[str, str]:
        return {
            **source,
            "language": self._language,
            "isTable": "true",
            "scale": "true",
            "OCREngine": self._engine,
        }

    async def _submit(self, form: dict[str, str]) -> str:
        if not self._api_key:
            raise OcrError("OCR API key is not configured")

        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(
                    self._url, data=form, headers={"apikey": self._api_key}
                )
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as exc:
            raise OcrError(f"OCR respondió {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            raise OcrError(f"Fallo de red al invocar OCR: {exc}") from exc
        except ValueError as exc:
            raise OcrError("Respuesta OCR no es JSON") from exc

        if not isinstance(data, dict):
            raise OcrError("Respuesta OCR inesperada")
        if data.get("IsErroredOnProcessing"):
            raise OcrError(_error_message(data))

        results = data.get("ParsedResults") or []
        if not isinstance(results, list):
            raise OcrError("ParsedResults inesperado en la respuesta OCR")
        first = results[0] if results and isinstance(results[0], dict) else {}
        text = str(first.get("ParsedText") or "").strip()
        logger.info("ocr.parsed", extra={"length": len(text)})
        return text

    async def parse_image(self, payload: bytes, mime_type: str) -> str:
        return await self._submit(self._form(base64Image=build_data_uri(payload, mime_type)))

    async def parse_url(self, url: str) -> str:
        return await self._submit(self._form(url=url))

    async def recognize(self, payload: bytes, mime_type: str) -> str:
        """Retorna el texto reconocido o `""` si no hubo texto o el OCR falló."""
        try:
            return await self.parse_image(payload, mime_type)
        except OcrError as exc:
            logger.error("ocr.failed", extra={"error": str(exc), "mime_type": mime_type})
            return ""

    async def recognize_url(self, url: str) -> str:
        try:
            return await self.parse_url(url)
        except OcrError as exc:
            logger.error("ocr.failed", extra={"error": str(exc), "source": "url"})
            return ""
