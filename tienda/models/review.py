from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class ReviewCreate(BaseModel):
    productId: str
    orderId: str  # Para asegurar que sólo se puede dejar review si se compró
    rating: int = Field(..., ge=1, le=5)
    comment: str = ""


class ReviewUpdate(BaseModel):
    rating: Optional[int] = Field(None, ge=1, le=5)
    comment: Optional[str] = None


class Review(BaseModel):
    id: str
    productId: str
    userId: str
    userName: str = ""
    rating: int = Field(..., ge=1, le=5)
    comment: str = ""
    orderId: str
    createdAt: datetime
    updatedAt: datetime
