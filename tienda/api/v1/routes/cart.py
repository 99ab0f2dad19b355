from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status

from tienda.api.deps import get_store
from tienda.core.auth import get_current_user
from tienda.db.store import DocumentStore
from tienda.models.cart import AddToCartRequest, Cart, UpdateQuantityRequest
from tienda.models.product import Size
from tienda.models.user_models import UserResponse
from tienda.services.cart_service import (
    add_to_cart,
    clear_cart,
    get_cart,
    remove_from_cart,
    update_cart_item_quantity,
)

router = APIRouter()


def _or_empty(cart: Optional[Cart], user_id: str) -> Cart:
    # Sin documento el carrito está vacío
    return cart or Cart(userId=user_id)


@router.get("/", response_model=Cart)
async def get_cart_endpoint(
    current_user: UserResponse = Depends(get_current_user),
    store: DocumentStore = Depends(get_store),
):
    return _or_empty(await get_cart(store, current_user.id), current_user.id)


@router.post("/items", response_model=Cart)
async def add_item_endpoint(
    data: AddToCartRequest,
    current_user: UserResponse = Depends(get_current_user),
    store: DocumentStore = Depends(get_store),
):
    return await add_to_cart(store, current_user.id, data.product, data.quantity)


@router.patch("/items", response_model=Cart)
async def update_item_endpoint(
    data: UpdateQuantityRequest,
    current_user: UserResponse = Depends(get_current_user),
    store: DocumentStore = Depends(get_store),
):
    cart = await update_cart_item_quantity(
        store, current_user.id, data.productId, data.quantity, data.selectedColor, data.selectedSize
    )
    return _or_empty(cart, current_user.id)


@router.delete("/items/{product_id}", response_model=Cart)
async def remove_item_endpoint(
    product_id: str,
    color: Optional[str] = Query(None, description="Color de la línea a quitar"),
    size: Optional[Size] = Query(None, description="Talle de la línea a quitar"),
    current_user: UserResponse = Depends(get_current_user),
    store: DocumentStore = Depends(get_store),
):
    cart = await remove_from_cart(store, current_user.id, product_id, color, size)
    return _or_empty(cart, current_user.id)


@router.delete("/", status_code=status.HTTP_204_NO_CONTENT)
async def clear_cart_endpoint(
    current_user: UserResponse = Depends(get_current_user),
    store: DocumentStore = Depends(get_store),
):
    await clear_cart(store, current_user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
