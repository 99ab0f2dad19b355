from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from tienda.api.deps import get_store
from tienda.core.auth import get_current_admin, get_current_user
from tienda.core.errors import ConflictError
from tienda.db.store import DocumentStore
from tienda.models.order import (
    CheckoutRequest,
    Order,
    OrderStatus,
    UpdateStatusRequest,
    WhatsAppOrderResponse,
)
from tienda.models.user_models import UserResponse
from tienda.services.cart_service import get_cart
from tienda.services.order_service import (
    can_transition,
    create_order,
    delete_order,
    get_all_orders,
    get_order,
    get_orders_by_status,
    get_user_orders,
    place_whatsapp_order,
    update_order_status,
)

router = APIRouter()


# ✅ Crear una orden a partir del carrito (pago con Mercado Pago)
@router.post("/", response_model=Order, status_code=status.HTTP_201_CREATED)
async def checkout_endpoint(
    data: CheckoutRequest,
    current_user: UserResponse = Depends(get_current_user),
    store: DocumentStore = Depends(get_store),
):
    cart = await get_cart(store, current_user.id)
    return await create_order(
        store,
        current_user.id,
        cart,
        data.shippingAddress,
        data.userEmail or current_user.email,
        data.userName or current_user.displayName,
    )


# ✅ Pedido a coordinar por WhatsApp (sin pasarela de pago)
@router.post("/whatsapp", response_model=WhatsAppOrderResponse, status_code=status.HTTP_201_CREATED)
async def whatsapp_order_endpoint(
    data: CheckoutRequest,
    current_user: UserResponse = Depends(get_current_user),
    store: DocumentStore = Depends(get_store),
):
    return await place_whatsapp_order(
        store,
        current_user.id,
        data.shippingAddress,
        data.userEmail or current_user.email,
        data.userName or current_user.displayName,
    )


# ✅ Órdenes del usuario autenticado
@router.get("/mine", response_model=List[Order])
async def my_orders_endpoint(
    current_user: UserResponse = Depends(get_current_user),
    store: DocumentStore = Depends(get_store),
):
    return await get_user_orders(store, current_user.id)


# ✅ Todas las órdenes (opcionalmente por estado), sólo admin
@router.get("/", response_model=List[Order])
async def list_orders_endpoint(
    status_filter: Optional[OrderStatus] = Query(None, alias="status", description="Filtrar por estado"),
    current_admin: UserResponse = Depends(get_current_admin),
    store: DocumentStore = Depends(get_store),
):
    if status_filter:
        return await get_orders_by_status(store, status_filter)
    return await get_all_orders(store)


# ✅ Obtener una orden por ID (dueño o admin)
@router.get("/{order_id}", response_model=Order)
async def get_order_endpoint(
    order_id: str,
    current_user: UserResponse = Depends(get_current_user),
    store: DocumentStore = Depends(get_store),
):
    order = await get_order(store, order_id)
    if order is None or (order.userId != current_user.id and not current_user.isAdmin):
        raise HTTPException(status_code=404, detail="Orden no encontrada")
    return order


# ✅ Cambiar el estado (por ejemplo, marcar como enviado)
@router.patch("/{order_id}/status", response_model=Order)
async def update_status_endpoint(
    order_id: str,
    data: UpdateStatusRequest,
    current_admin: UserResponse = Depends(get_current_admin),
    store: DocumentStore = Depends(get_store),
):
    order = await get_order(store, order_id)
    if order is None:
        raise HTTPException(status_code=404, detail="Orden no encontrada")
    if not can_transition(order.status, data.status):
        raise ConflictError(f"No se puede pasar de {order.status.value} a {data.status.value}")
    if not await update_order_status(store, order_id, data.status):
        raise HTTPException(status_code=404, detail="Orden no encontrada")
    return await get_order(store, order_id)


@router.delete("/{order_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_order_endpoint(
    order_id: str,
    current_admin: UserResponse = Depends(get_current_admin),
    store: DocumentStore = Depends(get_store),
):
    if not await delete_order(store, order_id):
        raise HTTPException(status_code=404, detail="Orden no encontrada")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
