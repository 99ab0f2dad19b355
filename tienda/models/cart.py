from datetime import datetime
from typing import List, Optional, Tuple

from pydantic import BaseModel, Field

from tienda.models.product import Size


def line_key(product_id: str, color: str, size: Size) -> Tuple[str, str, str]:
    # 42 y "42" son el mismo talle
    return (product_id, color, str(size))


class ProductSelection(BaseModel):
    """Producto ya resuelto por el cliente: color, talle, precio unitario e imagen."""

    productId: str = Field(..., min_length=1)
    selectedColor: str = Field(..., min_length=1)
    selectedSize: Size
    price: float = Field(..., ge=0)
    name: str
    imageUrl: str = ""


class CartItem(BaseModel):
    productId: str
    selectedColor: str
    selectedSize: Size
    quantity: int = Field(..., ge=1)
    price: float
    name: str
    imageUrl: str = ""

    @property
    def key(self) -> Tuple[str, str, str]:
        return line_key(self.productId, self.selectedColor, self.selectedSize)


class Cart(BaseModel):
    userId: str
    items: List[CartItem] = []
    total: float = 0
    version: int = 0
    updatedAt: Optional[datetime] = None


class AddToCartRequest(BaseModel):
    product: ProductSelection
    quantity: int = Field(1, ge=1)


class UpdateQuantityRequest(BaseModel):
    productId: str
    selectedColor: str
    selectedSize: Size
    quantity: int
