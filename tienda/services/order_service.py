import logging
import uuid
from datetime import datetime, timezone
from typing import List, Optional

from tienda.core.config import settings
from tienda.core.errors import ValidationError
from tienda.db.store import ORDERS, DocumentStore
from tienda.models.cart import Cart
from tienda.models.order import (
    Order,
    OrderItem,
    OrderStatus,
    PaymentMethod,
    ShippingAddress,
    WhatsAppOrderResponse,
)
from tienda.services.cart_service import calculate_total, clear_cart, get_cart
from tienda.services.product_service import decrement_variation_stock
from tienda.services.whatsapp_service import build_chat_url

logger = logging.getLogger(__name__)

# pendiente -> aceptado -> enviado, pendiente -> rechazado (terminal)
ALLOWED_TRANSITIONS = {
    OrderStatus.PENDIENTE: {OrderStatus.ACEPTADO, OrderStatus.RECHAZADO},
    OrderStatus.ACEPTADO: {OrderStatus.ENVIADO},
    OrderStatus.RECHAZADO: set(),
    OrderStatus.ENVIADO: set(),
}


def can_transition(current: OrderStatus, new: OrderStatus) -> bool:
    return current == new or new in ALLOWED_TRANSITIONS[current]


def _order_from_document(document: dict) -> Order:
    return Order(**document)


# ✅ Crear una nueva orden a partir del carrito
async def create_order(
    store: DocumentStore,
    user_id: str,
    cart: Cart,
    shipping_address: ShippingAddress,
    user_email: Optional[str] = None,
    user_name: Optional[str] = None,
    payment_method: PaymentMethod = PaymentMethod.MERCADOPAGO,
) -> Order:
    if cart is None or not cart.items:
        raise ValidationError("El carrito está vacío")

    # Copia congelada: cambios posteriores del producto no afectan la orden
    items = [
        OrderItem(
            productId=item.productId,
            quantity=item.quantity,
            price=item.price,
            name=item.name,
            selectedColor=item.selectedColor,
            selectedSize=item.selectedSize,
            imageUrl=item.imageUrl,
        )
        for item in cart.items
    ]
    now = datetime.now(timezone.utc)
    order = Order(
        id=str(uuid.uuid4()),
        userId=user_id,
        items=items,
        total=calculate_total(items),
        status=OrderStatus.PENDIENTE,
        shippingAddress=shipping_address,
        createdAt=now,
        updatedAt=now,
        userEmail=user_email,
        userName=user_name,
        paymentMethod=payment_method,
    )
    document = order.model_dump(mode="json")
    document["createdAt"] = now
    document["updatedAt"] = now
    await store.insert(ORDERS, document, doc_id=order.id)
    logger.info("Orden %s creada para %s por %s", order.id, user_id, order.total)
    return order


# ✅ Obtener una orden específica por ID
async def get_order(store: DocumentStore, order_id: str) -> Optional[Order]:
    document = await store.get(ORDERS, order_id)
    return _order_from_document(document) if document else None


# ✅ Obtener todas las órdenes de un usuario
async def get_user_orders(store: DocumentStore, user_id: str) -> List[Order]:
    documents = await store.find(ORDERS, {"userId": user_id}, sort=[("createdAt", -1)])
    return [_order_from_document(d) for d in documents]


async def get_orders_by_status(store: DocumentStore, status: OrderStatus) -> List[Order]:
    documents = await store.find(ORDERS, {"status": OrderStatus(status).value}, sort=[("createdAt", -1)])
    return [_order_from_document(d) for d in documents]


async def get_all_orders(store: DocumentStore) -> List[Order]:
    documents = await store.find(ORDERS, sort=[("createdAt", -1)])
    return [_order_from_document(d) for d in documents]


async def update_order_status(store: DocumentStore, order_id: str, status: OrderStatus) -> bool:
    """Devuelve False si la orden no existe o la escritura falla; nunca lanza."""
    try:
        return await store.update(
            ORDERS,
            order_id,
            {"status": OrderStatus(status).value, "updatedAt": datetime.now(timezone.utc)},
        )
    except Exception:
        logger.exception("Error al actualizar estado de la orden %s", order_id)
        return False


async def delete_order(store: DocumentStore, order_id: str) -> bool:
    return await store.delete(ORDERS, order_id)


async def apply_order_stock(store: DocumentStore, order: Order, claim_id: str) -> int:
    """
    Descuenta el stock de cada línea una sola vez.

    Antes de descontar, la línea se reclama en ``stockApplied`` con una escritura
    condicional; si otra entrega ya la reclamó se saltea. Si el descuento falla se
    libera el reclamo y el error se propaga para que un reintento lo complete.
    Devuelve la cantidad de líneas descontadas en esta llamada.
    """
    applied = 0
    for index, item in enumerate(order.items):
        slot = f"stockApplied.{index}"
        claimed = await store.update_where(ORDERS, order.id, {slot: None}, {slot: claim_id})
        if not claimed:
            logger.info("Stock de la línea %s de la orden %s ya descontado", index, order.id)
            continue
        try:
            await decrement_variation_stock(store, item.productId, item.selectedColor, item.quantity)
        except Exception:
            await store.update_where(ORDERS, order.id, {slot: claim_id}, {slot: None})
            raise
        applied += 1
    return applied


async def clear_cart_best_effort(store: DocumentStore, user_id: str) -> None:
    if not user_id:
        return
    try:
        await clear_cart(store, user_id)
    except Exception:
        # El estado de la orden y el stock ya quedaron guardados
        logger.warning("No se pudo vaciar el carrito de %s", user_id, exc_info=True)


def format_order_summary(order: Order) -> str:
    lines = [f"Nuevo pedido #{order.id}"]
    if order.userName or order.userEmail:
        contact = order.userName or ""
        if order.userEmail:
            contact = f"{contact} ({order.userEmail})" if contact else order.userEmail
        lines.append(f"Cliente: {contact}")
    lines.append("")
    for item in order.items:
        detail = []
        if item.selectedColor:
            detail.append(f"Color: {item.selectedColor}")
        if item.selectedSize is not None:
            detail.append(f"Talle: {item.selectedSize}")
        suffix = f" ({', '.join(detail)})" if detail else ""
        lines.append(f"- {item.quantity} x {item.name or item.productId}{suffix}: ${item.price * item.quantity:.2f}")
    lines.append("")
    lines.append(f"Total: ${order.total:.2f}")
    address = order.shippingAddress
    lines.append(f"Envío: {address.street}, {address.city}, {address.state} (CP {address.zipCode})")
    return "\n".join(lines)


async def place_whatsapp_order(
    store: DocumentStore,
    user_id: str,
    shipping_address: ShippingAddress,
    user_email: Optional[str] = None,
    user_name: Optional[str] = None,
) -> WhatsAppOrderResponse:
    """Pedido a coordinar por WhatsApp: sin pasarela, el stock y el carrito se resuelven en el acto."""
    cart = await get_cart(store, user_id)
    order = await create_order(
        store, user_id, cart, shipping_address, user_email, user_name, PaymentMethod.WHATSAPP
    )
    await apply_order_stock(store, order, f"whatsapp:{order.id}")
    await clear_cart_best_effort(store, user_id)

    order = await get_order(store, order.id) or order
    summary = format_order_summary(order)
    url = build_chat_url(settings.admin_whatsapp_number, summary) if settings.admin_whatsapp_number else None
    return WhatsAppOrderResponse(order=order, summary=summary, whatsappUrl=url)
