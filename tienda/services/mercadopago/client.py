# tienda/services/mercadopago/client.py
import hashlib
import hmac
import logging
from typing import Any, Dict, Optional

import httpx

from tienda.core.config import Settings
from tienda.core.errors import UpstreamError
from tienda.services.http_client import request_with_retries, response_json

logger = logging.getLogger(__name__)


class MercadoPagoClient:
    """Cliente mínimo de la API REST de Mercado Pago (preferencias y pagos)."""

    def __init__(
        self,
        access_token: str,
        base_url: str = "https://api.mercadopago.com",
        timeout: float = 10.0,
        max_retries: int = 2,
        backoff: float = 0.5,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.access_token = access_token
        self.base_url = base_url
        self.timeout = timeout
        self.max_retries = max_retries
        self.backoff = backoff
        self.transport = transport

    @classmethod
    def from_settings(cls, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None) -> Optional["MercadoPagoClient"]:
        if not settings.mp_access_token:
            return None
        return cls(
            settings.mp_access_token,
            base_url=settings.mp_api_base_url,
            timeout=settings.http_timeout_seconds,
            max_retries=settings.http_max_retries,
            backoff=settings.http_retry_backoff_seconds,
            transport=transport,
        )

    def _get_api_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self.transport,
            headers={"Authorization": f"Bearer {self.access_token}"},
        )

    async def _call(self, method: str, path: str, **kwargs: Any) -> Dict[str, Any]:
        async with self._get_api_client() as client:
            response = await request_with_retries(
                client, method, path, max_retries=self.max_retries, backoff=self.backoff, **kwargs
            )
        data = response_json(response)
        if response.is_error:
            message = data.get("message") if isinstance(data, dict) else None
            logger.error("Mercado Pago %s %s -> %s: %s", method, path, response.status_code, data)
            raise UpstreamError(
                message or f"Mercado Pago respondió {response.status_code}",
                provider_status=response.status_code,
                payload=data,
            )
        return data

    async def create_preference(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        headers = {}
        if payload.get("external_reference"):
            # Reintentar no debe crear dos preferencias para la misma orden
            headers["X-Idempotency-Key"] = f"preference-{payload['external_reference']}"
        return await self._call("POST", "/checkout/preferences", json=payload, headers=headers)

    async def get_payment(self, payment_id: str) -> Dict[str, Any]:
        return await self._call("GET", f"/v1/payments/{payment_id}")


def verify_webhook_signature(
    secret: str,
    signature_header: Optional[str],
    request_id: Optional[str],
    data_id: Optional[str],
) -> bool:
    """
    Verifica el header ``x-signature`` (``ts=...,v1=...``) de una notificación.

    El manifiesto firmado es ``id:<data.id>;request-id:<x-request-id>;ts:<ts>;``
    y la firma es HMAC-SHA256 en hexadecimal con la clave secreta del webhook.
    """
    if not signature_header:
        return False
    parts = {}
    for chunk in signature_header.split(","):
        key, _, value = chunk.strip().partition("=")
        parts[key] = value
    ts, received = parts.get("ts"), parts.get("v1")
    if not ts or not received:
        return False

    manifest = ""
    if data_id:
        manifest += f"id:{data_id.lower()};"
    if request_id:
        manifest += f"request-id:{request_id};"
    manifest += f"ts:{ts};"
    expected = hmac.new(secret.encode(), manifest.encode(), hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected, received)
