# tienda/services/product_service.py
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from tienda.core.errors import NotFoundError
from tienda.db.store import PRODUCTS, DocumentStore
from tienda.models.product import ProductCreate, ProductOut, ProductUpdate

logger = logging.getLogger(__name__)


def product_serializer(product: Dict[str, Any]) -> ProductOut:
    return ProductOut(**product)


async def get_all_products(
    store: DocumentStore,
    category: Optional[str] = None,
    on_sale: Optional[bool] = None,
) -> List[ProductOut]:
    filters: Dict[str, Any] = {}
    if category:
        filters["category"] = category
    if on_sale is not None:
        filters["onSale"] = on_sale
    products = await store.find(PRODUCTS, filters, sort=[("createdAt", -1)])
    return [product_serializer(product) for product in products]


async def get_product(store: DocumentStore, product_id: str) -> Optional[ProductOut]:
    product = await store.get(PRODUCTS, product_id)
    if product:
        return product_serializer(product)
    return None


async def create_product(store: DocumentStore, product: ProductCreate) -> ProductOut:
    now = datetime.now(timezone.utc)
    product_dict = {**product.model_dump(), "createdAt": now, "updatedAt": now}
    product_id = await store.insert(PRODUCTS, product_dict)
    logger.info("Producto creado: %s (%s)", product_id, product.name)
    return product_serializer({**product_dict, "id": product_id})


async def update_product(store: DocumentStore, product_id: str, updated_product: ProductUpdate) -> ProductOut:
    """Actualiza sólo los campos enviados."""
    fields = updated_product.model_dump(exclude_unset=True)
    fields["updatedAt"] = datetime.now(timezone.utc)

    if not await store.update(PRODUCTS, product_id, fields):
        raise NotFoundError("Product not found")

    return product_serializer(await store.get(PRODUCTS, product_id))


async def delete_product(store: DocumentStore, product_id: str) -> None:
    if not await store.delete(PRODUCTS, product_id):
        raise NotFoundError("Product not found")


async def decrement_variation_stock(
    store: DocumentStore, product_id: str, color: Optional[str], quantity: int
) -> Optional[int]:
    """
    Descuenta ``quantity`` del stock de la variante ``color`` sin bajar de cero.

    La resta se hace en el propio almacén sobre esa única variante, así dos
    aprobaciones simultáneas no se pisan. Devuelve el stock resultante o None si
    el producto o la variante no existen.
    """
    if not product_id or color is None or quantity <= 0:
        return None
    new_stock = await store.decrement_in_array(
        PRODUCTS,
        product_id,
        array_field="variations",
        match_field="color",
        match_value=color,
        counter_field="stock",
        amount=quantity,
        fields={"updatedAt": datetime.now(timezone.utc)},
    )
    if new_stock is None:
        logger.warning("No se encontró la variante %s del producto %s para descontar stock", color, product_id)
    else:
        logger.info("Stock de %s/%s: %s (-%s)", product_id, color, new_stock, quantity)
    return new_stock
