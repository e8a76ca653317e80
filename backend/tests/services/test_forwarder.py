"""Pruebas del reenvío a la planilla."""

import json

import httpx

from conftest import make_settings
from zapocr.channels.whatsapp.schemas import ForwardRecord
from zapocr.services.forwarder import EventForwarder

RECORD = ForwardRecord(
    sender_id="551100",
    sender_name="Maria",
    recognized_text="TOTAL",
    media_id="MID1",
    media_url="https://x/media",
    timestamp_ms=1_700_000_000_000,
)


async def test_forward_posts_legacy_keys() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"ok": True})

    forwarder = EventForwarder(make_settings(), transport=httpx.MockTransport(handler))
    await forwarder.forward(RECORD)

    assert str(seen[0].url) == "https://sheets.example/hook"
    assert json.loads(seen[0].content) == {
        "from": "551100",
        "name": "Maria",
        "text": "TOTAL",
        "mediaUrl": "https://x/media",
        "mediaId": "MID1",
        "ts": 1_700_000_000_000,
    }


async def test_forward_is_noop_without_url() -> None:
    def handler(_request: httpx.Request) -> httpx.Response:
        raise AssertionError("no debe llamarse")

    forwarder = EventForwarder(
        make_settings(sheets_webhook_url=None), transport=httpx.MockTransport(handler)
    )

    await forwarder.forward(RECORD)


async def test_forward_swallows_errors() -> None:
    forwarder = EventForwarder(
        make_settings(), transport=httpx.MockTransport(lambda _request: httpx.Response(500))
    )
    await forwarder.forward(RECORD)
