from datetime import datetime
from typing import List, Optional, Union

from pydantic import BaseModel, Field, field_validator

# Los talles pueden ser numéricos (42, 38.5) o de texto ("M", "XL")
Size = Union[int, float, str]


class Variation(BaseModel):
    color: str = Field(..., min_length=1)
    tallesDisponibles: List[Size] = []
    images: List[str] = []
    stock: int = Field(0, ge=0)
    price: Optional[float] = Field(None, gt=0)  # Precio propio de la variante (opcional)


def _check_unique_colors(variations: Optional[List[Variation]]) -> Optional[List[Variation]]:
    if variations is None:
        return variations
    colors = [v.color for v in variations]
    if len(colors) != len(set(colors)):
        raise ValueError("Cada color debe aparecer una sola vez por producto")
    return variations


class ProductBase(BaseModel):
    name: str = Field(..., min_length=1)
    price: float = Field(..., gt=0)
    description: str = ""
    images: List[str] = []
    category: Optional[str] = None
    onSale: bool = False
    variations: List[Variation] = []

    @field_validator("variations")
    @classmethod
    def unique_colors(cls, v):
        return _check_unique_colors(v)


class ProductCreate(ProductBase):
    pass


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    price: Optional[float] = Field(None, gt=0)
    description: Optional[str] = None
    images: Optional[List[str]] = None
    category: Optional[str] = None
    onSale: Optional[bool] = None
    variations: Optional[List[Variation]] = None

    @field_validator("variations")
    @classmethod
    def unique_colors(cls, v):
        return _check_unique_colors(v)


class ProductOut(ProductBase):
    id: str
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None
