# tienda/services/whatsapp_service.py
import logging
import re
from typing import Any, Dict, Optional, Union
from urllib.parse import quote

import httpx

from tienda.core.config import Settings
from tienda.core.errors import ConfigurationError, UpstreamError, ValidationError
from tienda.services.http_client import request_with_retries, response_json

logger = logging.getLogger(__name__)


def sanitize_phone(number: str) -> str:
    # Quita espacios, guiones, "+" y cualquier otro carácter que no sea dígito
    return re.sub(r"\D", "", str(number))


def build_chat_url(number: str, text: str) -> str:
    return f"https://wa.me/{sanitize_phone(number)}?text={quote(text)}"


class WhatsAppClient:
    def __init__(
        self,
        token: str,
        phone_id: str,
        base_url: str = "https://graph.facebook.com/v18.0",
        timeout: float = 10.0,
        max_retries: int = 2,
        backoff: float = 0.5,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.token = token
        self.phone_id = phone_id
        self.base_url = base_url
        self.timeout = timeout
        self.max_retries = max_retries
        self.backoff = backoff
        self.transport = transport

    @classmethod
    def from_settings(cls, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None) -> Optional["WhatsAppClient"]:
        if not settings.whatsapp_token or not settings.whatsapp_phone_id:
            return None
        return cls(
            settings.whatsapp_token,
            settings.whatsapp_phone_id,
            base_url=settings.whatsapp_api_base_url,
            timeout=settings.http_timeout_seconds,
            max_retries=settings.http_max_retries,
            backoff=settings.http_retry_backoff_seconds,
            transport=transport,
        )

    async def send_text(self, to: str, text: str) -> Any:
        payload = {
            "messaging_product": "whatsapp",
            "to": to,
            "type": "text",
            "text": {"body": text},
        }
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            response = await request_with_retries(
                client,
                "POST",
                f"{self.base_url}/{self.phone_id}/messages",
                max_retries=self.max_retries,
                backoff=self.backoff,
                json=payload,
                headers={"Authorization": f"Bearer {self.token}"},
            )
        data = response_json(response)
        if response.is_error:
            logger.error("WhatsApp API error: %s", data)
            raise UpstreamError(
                "WhatsApp API error",
                provider_status=response.status_code,
                payload=data,
                details={"details": data},
            )
        return data


async def send_whatsapp_message(messenger: Optional[WhatsAppClient], to: Union[str, int, None], text: Optional[str]) -> Dict[str, Any]:
    if not to or not text:
        raise ValidationError("Missing to or text")
    if messenger is None:
        raise ConfigurationError("WhatsApp Cloud API not configured")

    to_number = sanitize_phone(to)
    if not to_number:
        raise ValidationError("Invalid phone number")

    data = await messenger.send_text(to_number, text)
    logger.info("Mensaje de WhatsApp enviado a %s", to_number)
    return {"ok": True, "data": data}
