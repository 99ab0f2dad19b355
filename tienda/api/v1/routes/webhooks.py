import logging
from typing import Optional, Tuple

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from tienda.api.deps import get_payment_gateway, get_store
from tienda.core.config import settings
from tienda.core.errors import ConfigurationError, NotFoundError, ValidationError
from tienda.db.store import DocumentStore
from tienda.services.mercadopago.client import MercadoPagoClient, verify_webhook_signature
from tienda.services.payment_service import reconcile_payment

logger = logging.getLogger(__name__)

router = APIRouter()


async def _notification_params(request: Request) -> Tuple[Optional[str], Optional[str]]:
    params = request.query_params
    notification_type = params.get("type") or params.get("topic")
    payment_id = params.get("data.id") or params.get("id")
    if notification_type and payment_id:
        return notification_type, payment_id

    # Algunas notificaciones traen los datos sólo en el cuerpo JSON
    try:
        body = await request.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        notification_type = notification_type or body.get("type") or body.get("topic")
        data = body.get("data")
        if not payment_id and isinstance(data, dict) and data.get("id") is not None:
            payment_id = str(data["id"])
    return notification_type, payment_id


# ============================ #
# 🔹 Webhook de Mercado Pago: concilia el pago con la orden
# ============================ #
@router.post("/mercadopago")
async def mercadopago_webhook(
    request: Request,
    store: DocumentStore = Depends(get_store),
    gateway: Optional[MercadoPagoClient] = Depends(get_payment_gateway),
):
    try:
        notification_type, payment_id = await _notification_params(request)

        if settings.mp_webhook_secret and not verify_webhook_signature(
            settings.mp_webhook_secret,
            request.headers.get("x-signature"),
            request.headers.get("x-request-id"),
            payment_id,
        ):
            logger.warning("Firma inválida en notificación de Mercado Pago (id=%s)", payment_id)
            return JSONResponse(status_code=401, content={"error": "Invalid signature"})

        return await reconcile_payment(store, gateway, notification_type, payment_id)
    except (ConfigurationError, ValidationError, NotFoundError):
        raise
    except Exception:
        # Cualquier otro error responde 500 para que Mercado Pago reintente
        logger.exception("mercadopago webhook error")
        return JSONResponse(status_code=500, content={"error": "Server error"})
