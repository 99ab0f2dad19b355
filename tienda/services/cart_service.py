# tienda/services/cart_service.py
"""
Carrito de compras: un documento por usuario en la colección ``carts``.

Cada línea se identifica por (productId, selectedColor, selectedSize). El total
se recalcula en cada mutación. Las escrituras comparan ``version`` para no pisar
cambios concurrentes; ante un conflicto se relee y se reintenta.
"""
import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional

from tienda.core.config import settings
from tienda.core.errors import ConflictError, NotFoundError, ValidationError
from tienda.db.store import CARTS, DocumentStore
from tienda.models.cart import Cart, CartItem, ProductSelection, line_key
from tienda.models.product import Size

logger = logging.getLogger(__name__)

# Recibe el carrito actual (o None) y devuelve las nuevas líneas.
# Devolver None significa "no hay nada que escribir".
Mutation = Callable[[Optional[Cart]], Optional[List[CartItem]]]


def calculate_total(items: List[CartItem]) -> float:
    return round(sum(item.price * item.quantity for item in items), 2)


async def get_cart(store: DocumentStore, user_id: str) -> Optional[Cart]:
    data = await store.get(CARTS, user_id)
    if data is None:
        return None
    data.pop("id", None)
    cart = Cart(**data)
    # El total guardado no es fuente de verdad
    cart.total = calculate_total(cart.items)
    return cart


async def _write_cart(store: DocumentStore, user_id: str, current: Optional[Cart], items: List[CartItem]) -> Optional[Cart]:
    """Escribe las líneas nuevas si nadie modificó el carrito desde que se leyó.

    Devuelve el carrito escrito, None si quedó vacío y se borró, y lanza
    ConflictError si la versión leída ya no es la vigente.
    """
    if not items:
        if current is None:
            return None
        if await store.delete_where(CARTS, user_id, {"version": current.version}):
            return None
        raise ConflictError("El carrito cambió mientras se actualizaba")

    cart = Cart(
        userId=user_id,
        items=items,
        total=calculate_total(items),
        version=(current.version + 1) if current else 1,
        updatedAt=datetime.now(timezone.utc),
    )
    data = cart.model_dump()
    if current is None:
        written = await store.insert(CARTS, data, doc_id=user_id) is not None
    else:
        written = await store.replace_where(CARTS, user_id, {"version": current.version}, data)
    if not written:
        raise ConflictError("El carrito cambió mientras se actualizaba")
    return cart


async def _mutate_cart(store: DocumentStore, user_id: str, mutation: Mutation) -> Optional[Cart]:
    attempts = max(1, settings.cart_max_retries)
    for attempt in range(1, attempts + 1):
        current = await get_cart(store, user_id)
        items = mutation(current)
        if items is None:
            return current
        try:
            return await _write_cart(store, user_id, current, items)
        except ConflictError:
            logger.info("Conflicto de versión en el carrito de %s (intento %s/%s)", user_id, attempt, attempts)
    raise ConflictError("No se pudo actualizar el carrito, intentá de nuevo")


async def add_to_cart(store: DocumentStore, user_id: str, selection: ProductSelection, quantity: int) -> Cart:
    if quantity < 1:
        raise ValidationError("La cantidad debe ser al menos 1")

    key = line_key(selection.productId, selection.selectedColor, selection.selectedSize)

    def mutation(cart: Optional[Cart]) -> List[CartItem]:
        items = [item.model_copy() for item in cart.items] if cart else []
        for item in items:
            if item.key == key:
                item.quantity += quantity
                break
        else:
            items.append(
                CartItem(
                    productId=selection.productId,
                    selectedColor=selection.selectedColor,
                    selectedSize=selection.selectedSize,
                    quantity=quantity,
                    price=selection.price,
                    name=selection.name,
                    imageUrl=selection.imageUrl,
                )
            )
        return items

    return await _mutate_cart(store, user_id, mutation)


async def update_cart_item_quantity(
    store: DocumentStore,
    user_id: str,
    product_id: str,
    quantity: int,
    color: str,
    size: Size,
) -> Optional[Cart]:
    """Fija la cantidad de una línea. Con cantidad <= 0 la línea se elimina;
    si el carrito queda vacío se borra el documento (igual que remove_from_cart)."""
    key = line_key(product_id, color, size)

    def mutation(cart: Optional[Cart]) -> List[CartItem]:
        if cart is None:
            raise NotFoundError("Carrito no encontrado")
        if not any(item.key == key for item in cart.items):
            raise NotFoundError("Producto no encontrado en el carrito")
        if quantity <= 0:
            return [item for item in cart.items if item.key != key]
        items = [item.model_copy() for item in cart.items]
        for item in items:
            if item.key == key:
                item.quantity = quantity
        return items

    return await _mutate_cart(store, user_id, mutation)


async def remove_from_cart(
    store: DocumentStore,
    user_id: str,
    product_id: str,
    color: Optional[str] = None,
    size: Optional[Size] = None,
) -> Optional[Cart]:
    """Con color y talle quita esa línea; sin ellos quita todas las variantes del producto."""
    if (color is None) != (size is None):
        raise ValidationError("Indicá color y talle juntos, o ninguno")

    def matches(item: CartItem) -> bool:
        if color is None:
            return item.productId == product_id
        return item.key == line_key(product_id, color, size)

    def mutation(cart: Optional[Cart]) -> Optional[List[CartItem]]:
        if cart is None:
            raise NotFoundError("Carrito no encontrado")
        return [item for item in cart.items if not matches(item)]

    return await _mutate_cart(store, user_id, mutation)


async def clear_cart(store: DocumentStore, user_id: str) -> bool:
    return await store.delete(CARTS, user_id)
