import json

import httpx
import pytest

from conftest import whatsapp_client
from tienda.core.errors import ConfigurationError, UpstreamError, ValidationError
from tienda.services.whatsapp_service import build_chat_url, sanitize_phone, send_whatsapp_message


def test_sanitize_phone():
    assert sanitize_phone("+54 9 (351) 555-0000") == "5493515550000"
    assert sanitize_phone(5493515550000) == "5493515550000"


def test_build_chat_url_encodes_text():
    assert build_chat_url("+54 351", "Hola & chau") == "https://wa.me/54351?text=Hola%20%26%20chau"


async def test_send_message():
    sent = []

    def handler(request):
        sent.append(request)
        return httpx.Response(200, json={"messages": [{"id": "wamid.1"}]})

    result = await send_whatsapp_message(whatsapp_client(handler), "+54 9 351 555-0000", "Hola")

    assert result == {"ok": True, "data": {"messages": [{"id": "wamid.1"}]}}
    assert str(sent[0].url) == "https://graph.facebook.com/v18.0/12345/messages"
    assert sent[0].headers["Authorization"] == "Bearer WA-TOKEN"
    assert json.loads(sent[0].content) == {
        "messaging_product": "whatsapp",
        "to": "5493515550000",
        "type": "text",
        "text": {"body": "Hola"},
    }


@pytest.mark.parametrize("to,text", [(None, "Hola"), ("", "Hola"), ("123", None), ("123", "")])
async def test_missing_fields(to, text):
    with pytest.raises(ValidationError) as excinfo:
        await send_whatsapp_message(whatsapp_client(lambda r: httpx.Response(200, json={})), to, text)
    assert excinfo.value.message == "Missing to or text"


async def test_number_without_digits():
    with pytest.raises(ValidationError):
        await send_whatsapp_message(whatsapp_client(lambda r: httpx.Response(200, json={})), "abc", "Hola")


async def test_not_configured():
    with pytest.raises(ConfigurationError):
        await send_whatsapp_message(None, "123", "Hola")


async def test_provider_rejection_is_upstream_error():
    attempts = []

    def handler(request):
        attempts.append(request)
        return httpx.Response(400, json={"error": {"message": "Invalid parameter"}})

    with pytest.raises(UpstreamError) as excinfo:
        await send_whatsapp_message(whatsapp_client(handler, max_retries=2), "123", "Hola")

    assert len(attempts) == 1
    assert excinfo.value.status_code == 502
    assert excinfo.value.to_dict() == {
        "error": "WhatsApp API error",
        "details": {"error": {"message": "Invalid parameter"}},
    }


async def test_network_failure_after_retries():
    attempts = []

    def handler(request):
        attempts.append(request)
        raise httpx.ReadTimeout("slow", request=request)

    with pytest.raises(UpstreamError) as excinfo:
        await send_whatsapp_message(whatsapp_client(handler, max_retries=2), "123", "Hola")

    assert len(attempts) == 3
    assert excinfo.value.retryable is True
