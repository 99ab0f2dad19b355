from typing import List, Optional, Union

from pydantic import BaseModel


class PreferenceItem(BaseModel):
    title: str
    quantity: int
    unit_price: float
    picture_url: Optional[str] = None


# Se valida a mano en create_preference para responder 400 "Invalid payload"
class PreferenceRequest(BaseModel):
    orderId: Optional[str] = None
    userId: Optional[str] = None
    userEmail: Optional[str] = None
    userName: Optional[str] = None
    items: Optional[List[PreferenceItem]] = None
    total: Optional[float] = None


class PreferenceResponse(BaseModel):
    init_point: Optional[str] = None
    id: Optional[str] = None
    orderId: str


class WhatsAppMessage(BaseModel):
    to: Optional[Union[str, int]] = None
    text: Optional[str] = None
