"""Fixtures compartidas para las pruebas."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from zapocr.channels.whatsapp.schemas import ForwardRecord, MediaMeta
from zapocr.channels.whatsapp.service import WebhookDispatcher
from zapocr.core.config import Settings
from zapocr.main import create_app
from zapocr.services.media import DownloadError, MetadataFetchError

VERIFY_TOKEN = "verify-me"


@dataclass
class FakeMessenger:
    sent: list[tuple[str, str]] = field(default_factory=list)
    read: list[str] = field(default_factory=list)

    async def send_text(self, recipient_id: str, body: str) -> None:
        self.sent.append((recipient_id, body))

    async def mark_as_read(self, message_id: str) -> None:
        self.read.append(message_id)


@dataclass
class FakeForwarder:
    records: list[ForwardRecord] = field(default_factory=list)

    async def forward(self, record: ForwardRecord) -> None:
        self.records.append(record)


@dataclass
class FakeResolver:
    meta: MediaMeta | None = None
    payload: bytes = b"\x89PNG"
    fail_meta: bool = False
    fail_download: bool = False
    downloads: int = 0

    async def resolve_meta(self, media_id: str) -> MediaMeta:
        if self.fail_meta or self.meta is None:
            raise MetadataFetchError(f"no meta for {media_id}")
        return self.meta

    async def download(self, meta: MediaMeta) -> bytes:
        self.downloads += 1
        if self.fail_download:
            raise DownloadError("boom")
        return self.payload


@dataclass
class FakeOcr:
    text: str = ""
    calls: list[tuple[Any, ...]] = field(default_factory=list)

    async def recognize(self, payload: bytes, mime_type: str) -> str:
        self.calls.append((payload, mime_type))
        return self.text

    async def recognize_url(self, url: str) -> str:
        self.calls.append((url,))
        return self.text


def make_settings(**overrides: Any) -> Settings:
    values: dict[str, Any] = {
        "verify_token": VERIFY_TOKEN,
        "whatsapp_token": "wa-token",
        "phone_number_id": "PNID",
        "ocr_api_key": "ocr-key",
        "sheets_webhook_url": "https://sheets.example/hook",
        "app_secret": None,
        "webhook_static_token": None,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def make_envelope(
    message: dict[str, Any] | None = None,
    *,
    status: dict[str, Any] | None = None,
    name: str | None = "Maria",
) -> dict[str, Any]:
    value: dict[str, Any] = {"messaging_product": "whatsapp"}
    if name is not None:
        value["contacts"] = [{"profile": {"name": name}, "wa_id": "5511999999999"}]
    if message is not None:
        value["messages"] = [message]
    if status is not None:
        value["statuses"] = [status]
    return {
        "object": "whatsapp_business_account",
        "entry": [{"id": "WABA", "changes": [{"field": "messages", "value": value}]}],
    }


@pytest.fixture(name="settings")
def fixture_settings() -> Settings:
    return make_settings()


@pytest.fixture(name="messenger")
def fixture_messenger() -> FakeMessenger:
    return FakeMessenger()


@pytest.fixture(name="forwarder")
def fixture_forwarder() -> FakeForwarder:
    return FakeForwarder()


@pytest.fixture(name="resolver")
def fixture_resolver() -> FakeResolver:
    return FakeResolver(meta=MediaMeta(url="https://x/media", mime_type="image/png"))


@pytest.fixture(name="ocr")
def fixture_ocr() -> FakeOcr:
    return FakeOcr()


@pytest.fixture(name="dispatcher")
def fixture_dispatcher(
    settings: Settings,
    resolver: FakeResolver,
    ocr: FakeOcr,
    messenger: FakeMessenger,
    forwarder: FakeForwarder,
) -> WebhookDispatcher:
    return WebhookDispatcher(
        settings,
        resolver=resolver,
        ocr=ocr,
        messenger=messenger,
        forwarder=forwarder,
    )


@pytest.fixture(name="app")
def fixture_app(settings: Settings, dispatcher: WebhookDispatcher) -> FastAPI:
    return create_app(settings, dispatcher=dispatcher)


@pytest.fixture(name="async_client")
async def fixture_async_client(app: FastAPI) -> AsyncClient:
    """Retorna un cliente asíncrono contra la app utilizando ASGITransport."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
