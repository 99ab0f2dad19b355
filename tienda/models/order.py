from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from tienda.models.product import Size


class OrderStatus(str, Enum):
    PENDIENTE = "pendiente"
    ACEPTADO = "aceptado"
    RECHAZADO = "rechazado"
    ENVIADO = "enviado"


class PaymentMethod(str, Enum):
    MERCADOPAGO = "mercadopago"
    WHATSAPP = "whatsapp"


# 📌 Dirección de envío
class ShippingAddress(BaseModel):
    street: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    state: str = Field(..., min_length=1)
    zipCode: str = Field(..., min_length=1)


# 📌 Línea de la orden, copiada del carrito al momento de comprar
class OrderItem(BaseModel):
    productId: str
    quantity: int
    price: float
    name: Optional[str] = None
    selectedColor: Optional[str] = None
    selectedSize: Optional[Size] = None
    imageUrl: Optional[str] = None


# 📌 Modelo de una orden
class Order(BaseModel):
    id: str
    userId: str
    items: List[OrderItem]
    total: float
    status: OrderStatus = OrderStatus.PENDIENTE
    shippingAddress: ShippingAddress
    createdAt: datetime
    updatedAt: datetime
    userEmail: Optional[str] = None
    userName: Optional[str] = None
    paymentMethod: PaymentMethod = PaymentMethod.MERCADOPAGO
    paymentId: Optional[str] = None
    paymentStatus: Optional[str] = None
    preferenceId: Optional[str] = None
    externalReference: Optional[str] = None
    # línea -> pago que ya descontó su stock
    stockApplied: Dict[str, Optional[str]] = {}


class CheckoutRequest(BaseModel):
    shippingAddress: ShippingAddress
    userEmail: Optional[str] = None
    userName: Optional[str] = None


class UpdateStatusRequest(BaseModel):
    status: OrderStatus


class WhatsAppOrderResponse(BaseModel):
    order: Order
    summary: str
    whatsappUrl: Optional[str] = None
