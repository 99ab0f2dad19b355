from typing import List

from tienda.core.errors import ConflictError, NotFoundError
from tienda.db.store import CATEGORIES, DocumentStore
from tienda.models.category import Category, CategoryCreate


async def get_categories(store: DocumentStore) -> List[Category]:
    categories = await store.find(CATEGORIES, sort=[("name", 1)])
    return [Category(**category) for category in categories]


async def add_category(store: DocumentStore, category: CategoryCreate) -> Category:
    name = category.name.strip()
    if await store.find(CATEGORIES, {"name": name}):
        raise ConflictError("La categoría ya existe")
    category_id = await store.insert(CATEGORIES, {"name": name})
    return Category(id=category_id, name=name)


async def delete_category(store: DocumentStore, name: str) -> None:
    matches = await store.find(CATEGORIES, {"name": name})
    if not matches:
        raise NotFoundError("Categoría no encontrada")
    for category in matches:
        await store.delete(CATEGORIES, category["id"])
