# tienda/api/v1/routes/categories.py
from typing import List

from fastapi import APIRouter, Depends, Response, status

from tienda.api.deps import get_store
from tienda.core.auth import get_current_admin
from tienda.db.store import DocumentStore
from tienda.models.category import Category, CategoryCreate
from tienda.models.user_models import UserResponse
from tienda.services.category_service import add_category, delete_category, get_categories

router = APIRouter()


@router.post("/", response_model=Category, status_code=status.HTTP_201_CREATED)
async def create_category_endpoint(
    category: CategoryCreate,
    current_admin: UserResponse = Depends(get_current_admin),
    store: DocumentStore = Depends(get_store),
):
    return await add_category(store, category)


@router.get("/", response_model=List[Category])
async def get_categories_endpoint(store: DocumentStore = Depends(get_store)):
    return await get_categories(store)


@router.delete("/{name}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_category_endpoint(
    name: str,
    current_admin: UserResponse = Depends(get_current_admin),
    store: DocumentStore = Depends(get_store),
):
    await delete_category(store, name)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
