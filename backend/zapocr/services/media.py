"""Resolución y descarga de archivos multimedia vía Graph API."""

from __future__ import annotations

import httpx
from pydantic import ValidationError

from zapocr.channels.whatsapp.schemas import MediaMeta
from zapocr.core.config import Settings
from zapocr.core.logging import get_logger

logger = get_logger(__name__)

_META_FIELDS = "url,mime_type,sha256,file_size"


class MediaError(Exception):
    """Error base al resolver o descargar media."""


class MetadataFetchError(MediaError):
    """No fue posible obtener la URL firmada del archivo."""


class DownloadError(MediaError):
    """La descarga de la URL firmada falló."""


class UnsupportedMediaError(MediaError):
    """El archivo no es una imagen; se informa al usuario en lugar de reintentar."""

    def __init__(self, mime_type: str) -> None:
        super().__init__(f"Unsupported media type: {mime_type or 'desconocido'}")
        self.mime_type = mime_type


class MediaResolver:
    """Convierte un media id opaco en bytes descargados."""

    def __init__(
        self,
        settings: Settings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = settings.graph_api_base.rstrip("/")
        self._token = settings.whatsapp_token
        self._meta_timeout = settings.graph_timeout_seconds
        self._download_timeout = settings.download_timeout_seconds
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._token or ''}"}

    async def resolve_meta(self, media_id: str) -> MediaMeta:
        """Consulta `GET /{media_id}` y retorna URL firmada + MIME."""
        url = f"{self._base_url}/{media_id}"
        try:
            async with httpx.AsyncClient(
                timeout=self._meta_timeout, transport=self._transport
            ) as client:
                response = await client.get(
                    url, params={"fields": _META_FIELDS}, headers=self._headers()
                )
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as exc:
            raise MetadataFetchError(
                f"Graph API respondió {exc.response.status_code} para media {media_id}"
            ) from exc
        except httpx.HTTPError as exc:
            raise MetadataFetchError(f"Fallo de red al consultar media {media_id}: {exc}") from exc
        except ValueError as exc:
            raise MetadataFetchError(f"Respuesta no JSON para media {media_id}") from exc

        if not isinstance(data, dict) or not data.get("url"):
            raise MetadataFetchError(f"La respuesta de media {media_id} no incluye url")

        try:
            return MediaMeta(
                url=str(data["url"]),
                mime_type=str(data.get("mime_type") or ""),
                sha256=data.get("sha256"),
                file_size=data.get("file_size"),
            )
        except ValidationError as exc:
            raise MetadataFetchError(f"Metadata inválida para media {media_id}: {exc}") from exc

    async def download(self, meta: MediaMeta) -> bytes:
        """Descarga la URL firmada como binario usando el bearer token."""
        try:
            async with httpx.AsyncClient(
                timeout=self._download_timeout,
                transport=self._transport,
                follow_redirects=True,
            ) as client:
                response = await client.get(meta.url, headers=self._headers())
                response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise DownloadError(f"Descarga respondió {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            raise DownloadError(f"Fallo de red en la descarga: {exc}") from exc

        content = response.content
        logger.info(
            "media.downloaded",
            extra={"mime_type": meta.mime_type, "bytes": len(content)},
        )
        return content
