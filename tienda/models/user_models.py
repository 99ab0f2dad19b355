from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


# Respuesta al cliente
class UserResponse(BaseModel):
    id: str
    email: Optional[str] = None
    displayName: Optional[str] = None
    photoURL: Optional[str] = None
    isAdmin: bool = False
    createdAt: datetime
    updatedAt: datetime


# Campos que el propio usuario puede modificar (nunca isAdmin)
class UpdateUser(BaseModel):
    displayName: Optional[str] = Field(None, max_length=100)
    photoURL: Optional[str] = None
