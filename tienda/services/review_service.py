from datetime import datetime, timezone
from typing import List, Optional

from tienda.core.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from tienda.db.store import REVIEWS, DocumentStore
from tienda.models.order import OrderStatus
from tienda.models.review import Review, ReviewCreate, ReviewUpdate
from tienda.services.order_service import get_order


async def get_reviews_by_product(store: DocumentStore, product_id: str) -> List[Review]:
    reviews = await store.find(REVIEWS, {"productId": product_id}, sort=[("createdAt", -1)])
    return [Review(**review) for review in reviews]


async def get_review_by_user_and_product(store: DocumentStore, user_id: str, product_id: str) -> Optional[Review]:
    reviews = await store.find(REVIEWS, {"userId": user_id, "productId": product_id})
    return Review(**reviews[0]) if reviews else None


async def add_review(store: DocumentStore, user_id: str, user_name: str, review: ReviewCreate) -> Review:
    """Sólo quien recibió el producto (orden propia, enviada y que lo incluye) puede reseñarlo, una vez."""
    order = await get_order(store, review.orderId)
    if order is None or order.userId != user_id:
        raise AuthorizationError("La orden no pertenece al usuario")
    if order.status != OrderStatus.ENVIADO:
        raise AuthorizationError("Sólo se pueden reseñar productos de órdenes enviadas")
    if not any(item.productId == review.productId for item in order.items):
        raise AuthorizationError("El producto no forma parte de la orden")

    if await get_review_by_user_and_product(store, user_id, review.productId):
        raise ConflictError("Ya dejaste una reseña para este producto")

    now = datetime.now(timezone.utc)
    data = {
        **review.model_dump(),
        "userId": user_id,
        "userName": user_name or "",
        "createdAt": now,
        "updatedAt": now,
    }
    review_id = await store.insert(REVIEWS, data)
    return Review(id=review_id, **data)


async def update_review(store: DocumentStore, review_id: str, user_id: str, updates: ReviewUpdate) -> Review:
    current = await store.get(REVIEWS, review_id)
    if current is None:
        raise NotFoundError("Reseña no encontrada")
    if current["userId"] != user_id:
        raise AuthorizationError("No podés modificar esta reseña")

    fields = updates.model_dump(exclude_none=True)
    if not fields:
        raise ValidationError("No hay campos para actualizar")
    fields["updatedAt"] = datetime.now(timezone.utc)
    await store.update(REVIEWS, review_id, fields)
    return Review(**{**current, **fields})


async def delete_review(store: DocumentStore, review_id: str, user_id: str, is_admin: bool = False) -> None:
    current = await store.get(REVIEWS, review_id)
    if current is None:
        raise NotFoundError("Reseña no encontrada")
    if current["userId"] != user_id and not is_admin:
        raise AuthorizationError("No podés borrar esta reseña")
    await store.delete(REVIEWS, review_id)
