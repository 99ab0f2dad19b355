# tienda/api/v1/routes/products.py
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from tienda.api.deps import get_store
from tienda.core.auth import get_current_admin
from tienda.db.store import DocumentStore
from tienda.models.product import ProductCreate, ProductOut, ProductUpdate
from tienda.models.user_models import UserResponse
from tienda.services.product_service import (
    create_product,
    delete_product,
    get_all_products,
    get_product,
    update_product,
)

router = APIRouter()


@router.get("/", response_model=List[ProductOut])
async def list_products(
    category: Optional[str] = Query(None),
    on_sale: Optional[bool] = Query(None, alias="onSale"),
    store: DocumentStore = Depends(get_store),
):
    return await get_all_products(store, category, on_sale)


@router.get("/{product_id}", response_model=ProductOut)
async def get_product_endpoint(product_id: str, store: DocumentStore = Depends(get_store)):
    product = await get_product(store, product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


@router.post("/", response_model=ProductOut, status_code=status.HTTP_201_CREATED)
async def add_product(
    product: ProductCreate,
    current_admin: UserResponse = Depends(get_current_admin),
    store: DocumentStore = Depends(get_store),
):
    return await create_product(store, product)


@router.patch("/{product_id}", response_model=ProductOut)
async def edit_product(
    product_id: str,
    product: ProductUpdate,
    current_admin: UserResponse = Depends(get_current_admin),
    store: DocumentStore = Depends(get_store),
):
    return await update_product(store, product_id, product)


@router.delete("/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_product(
    product_id: str,
    current_admin: UserResponse = Depends(get_current_admin),
    store: DocumentStore = Depends(get_store),
):
    await delete_product(store, product_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
