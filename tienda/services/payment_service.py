# tienda/services/payment_service.py
"""
Integración con Mercado Pago: creación de preferencias y conciliación de pagos.

La conciliación se ejecuta como una saga corta. Primero se guarda el estado de
la orden (lo autoritativo). Después, sólo con el pago aprobado, se descuenta el
stock línea por línea con un registro idempotente y se vacía el carrito del
comprador. Reentregar la misma notificación no descuenta dos veces.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

from tienda.core.config import Settings
from tienda.core.errors import (
    ConfigurationError,
    NotFoundError,
    TiendaError,
    UpstreamError,
    ValidationError,
)
from tienda.db.store import ORDERS, DocumentStore
from tienda.models.order import OrderStatus
from tienda.models.payment import PreferenceRequest
from tienda.services.mercadopago.client import MercadoPagoClient
from tienda.services.order_service import (
    apply_order_stock,
    can_transition,
    clear_cart_best_effort,
    get_order,
)

logger = logging.getLogger(__name__)

DEFAULT_SITE_URL = "http://localhost:3000"
WEBHOOK_PATH = "/api/webhooks/mercadopago"

PAYMENT_STATUS_MAP = {
    "approved": OrderStatus.ACEPTADO,
    "rejected": OrderStatus.RECHAZADO,
}


def map_payment_status(payment_status: Optional[str]) -> OrderStatus:
    # Cualquier estado no mapeado (pending, in_process, ...) sigue pendiente
    return PAYMENT_STATUS_MAP.get(payment_status or "", OrderStatus.PENDIENTE)


def resolve_site_url(settings: Settings, headers: Mapping[str, str]) -> str:
    """SITE_URL, luego NEXT_PUBLIC_SITE_URL, luego x-forwarded-proto + host, luego localhost."""
    if settings.site_url:
        return settings.site_url.rstrip("/")
    if settings.next_public_site_url:
        return settings.next_public_site_url.rstrip("/")
    forwarded_proto = (headers.get("x-forwarded-proto") or "").split(",")[0].strip()
    host = headers.get("host")
    if forwarded_proto and host:
        return f"{forwarded_proto}://{host}"
    return DEFAULT_SITE_URL


def validate_preference_request(request: PreferenceRequest) -> None:
    if (
        not request.orderId
        or not request.userId
        or not request.items
        or not request.total
        or request.total <= 0
    ):
        raise ValidationError("Invalid payload")


def build_preference_payload(request: PreferenceRequest, site_url: str, currency_id: str) -> Dict[str, Any]:
    order_id = request.orderId
    return {
        "items": [
            {
                "title": item.title,
                "quantity": int(item.quantity),
                "unit_price": float(item.unit_price),
                "currency_id": currency_id,
                "picture_url": item.picture_url,
            }
            for item in request.items
        ],
        "payer": {"email": request.userEmail, "name": request.userName},
        "back_urls": {
            "success": f"{site_url}/checkout/success?orderId={order_id}",
            "failure": f"{site_url}/checkout/failure?orderId={order_id}",
            "pending": f"{site_url}/checkout/pending?orderId={order_id}",
        },
        "auto_return": "approved",
        "notification_url": f"{site_url}{WEBHOOK_PATH}",
        "external_reference": order_id,
    }


async def create_preference(
    store: DocumentStore,
    gateway: Optional[MercadoPagoClient],
    request: PreferenceRequest,
    site_url: str,
    currency_id: str = "ARS",
) -> Dict[str, Any]:
    validate_preference_request(request)
    if gateway is None:
        raise ConfigurationError("Mercado Pago not configured")

    payload = build_preference_payload(request, site_url, currency_id)
    try:
        preference = await gateway.create_preference(payload)
    except UpstreamError as e:
        logger.error("MercadoPago Preference.create error: %s (status %s)", e.message, e.provider_status)
        raise TiendaError("MP Preference error", {"message": e.message, "status": e.provider_status}) from e

    init_point = preference.get("init_point") or preference.get("sandbox_init_point")
    preference_id = preference.get("id")

    try:
        await store.update(
            ORDERS,
            request.orderId,
            {
                "preferenceId": preference_id,
                "externalReference": request.orderId,
                "updatedAt": datetime.now(timezone.utc),
            },
        )
    except Exception:
        logger.warning("No se pudo guardar la preferencia en la orden %s", request.orderId, exc_info=True)

    logger.info("Preferencia %s creada para la orden %s", preference_id, request.orderId)
    return {"init_point": init_point, "id": preference_id, "orderId": request.orderId}


async def reconcile_payment(
    store: DocumentStore,
    gateway: Optional[MercadoPagoClient],
    notification_type: Optional[str],
    payment_id: Optional[str],
) -> Dict[str, Any]:
    if gateway is None:
        raise ConfigurationError("MP not configured")

    if notification_type != "payment" or not payment_id:
        logger.info("Notificación ignorada: type=%s id=%s", notification_type, payment_id)
        return {"ok": True, "ignored": True}

    # La notificación no trae el estado; se consulta el pago al proveedor
    payment = await gateway.get_payment(str(payment_id))
    external_reference = payment.get("external_reference")
    payment_status = payment.get("status")

    if not external_reference:
        raise ValidationError("No external_reference")

    order = await get_order(store, str(external_reference))
    if order is None:
        raise NotFoundError("Order not found")

    new_status = map_payment_status(payment_status)
    paid_id = str(payment.get("id") or payment_id)

    fields: Dict[str, Any] = {
        "paymentId": paid_id,
        "paymentStatus": payment_status,
        "updatedAt": datetime.now(timezone.utc),
    }
    if can_transition(order.status, new_status):
        fields["status"] = new_status.value
    else:
        logger.warning(
            "Orden %s en estado %s: se ignora el paso a %s (pago %s)",
            order.id, order.status.value, new_status.value, paid_id,
        )
    await store.update(ORDERS, order.id, fields)

    if payment_status == "approved":
        if order.status == OrderStatus.RECHAZADO:
            logger.error("Pago %s aprobado para la orden rechazada %s; requiere revisión manual", paid_id, order.id)
            return {"ok": True}

        applied = await apply_order_stock(store, order, paid_id)
        if applied or order.status == OrderStatus.PENDIENTE:
            await clear_cart_best_effort(store, order.userId)
        logger.info("Pago %s aprobado para la orden %s (%s líneas descontadas)", paid_id, order.id, applied)

    return {"ok": True}
