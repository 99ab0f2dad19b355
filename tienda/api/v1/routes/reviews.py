from typing import List

from fastapi import APIRouter, Depends, Response, status

from tienda.api.deps import get_store
from tienda.core.auth import get_current_user
from tienda.db.store import DocumentStore
from tienda.models.review import Review, ReviewCreate, ReviewUpdate
from tienda.models.user_models import UserResponse
from tienda.services.review_service import (
    add_review,
    delete_review,
    get_reviews_by_product,
    update_review,
)

router = APIRouter()


@router.get("/product/{product_id}", response_model=List[Review])
async def product_reviews_endpoint(product_id: str, store: DocumentStore = Depends(get_store)):
    return await get_reviews_by_product(store, product_id)


@router.post("/", response_model=Review, status_code=status.HTTP_201_CREATED)
async def add_review_endpoint(
    review: ReviewCreate,
    current_user: UserResponse = Depends(get_current_user),
    store: DocumentStore = Depends(get_store),
):
    user_name = current_user.displayName or current_user.email or ""
    return await add_review(store, current_user.id, user_name, review)


@router.patch("/{review_id}", response_model=Review)
async def update_review_endpoint(
    review_id: str,
    updates: ReviewUpdate,
    current_user: UserResponse = Depends(get_current_user),
    store: DocumentStore = Depends(get_store),
):
    return await update_review(store, review_id, current_user.id, updates)


@router.delete("/{review_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_review_endpoint(
    review_id: str,
    current_user: UserResponse = Depends(get_current_user),
    store: DocumentStore = Depends(get_store),
):
    await delete_review(store, review_id, current_user.id, current_user.isAdmin)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
