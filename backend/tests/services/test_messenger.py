"""Pruebas del envío de mensajes salientes."""

import json

import httpx

from conftest import make_settings
from zapocr.services.messenger import OutboundMessenger


async def test_send_text_posts_payload() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"messages": [{"id": "wamid.out"}]})

    messenger = OutboundMessenger(make_settings(), transport=httpx.MockTransport(handler))
    await messenger.send_text("551100", "olá")

    request = seen[0]
    assert request.url == "https://graph.facebook.com/v21.0/PNID/messages"
    assert request.headers["authorization"] == "Bearer wa-token"
    assert json.loads(request.content) == {
        "messaging_product": "whatsapp",
        "to": "551100",
        "type": "text",
        "text": {"body": "olá"},
    }


async def test_send_text_swallows_errors() -> None:
    def handler(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"error": {"message": "invalid recipient"}})

    messenger = OutboundMessenger(make_settings(), transport=httpx.MockTransport(handler))

    assert await messenger.send_text("bad", "x") is None


async def test_mark_as_read_payload_and_failures() -> None:
    bodies: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(json.loads(request.content))
        raise httpx.ConnectError("down", request=request)

    messenger = OutboundMessenger(make_settings(), transport=httpx.MockTransport(handler))
    await messenger.mark_as_read("wamid.1")

    assert bodies == [{"messaging_product": "whatsapp", "status": "read", "message_id": "wamid.1"}]
