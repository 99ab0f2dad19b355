# tienda/api/deps.py
from typing import Optional

from tienda.core.config import settings
from tienda.db.database import store
from tienda.db.store import DocumentStore
from tienda.services.mercadopago.client import MercadoPagoClient
from tienda.services.whatsapp_service import WhatsAppClient


def get_store() -> DocumentStore:
    return store


def get_payment_gateway() -> Optional[MercadoPagoClient]:
    # None cuando falta MP_ACCESS_TOKEN: las rutas responden 501
    return MercadoPagoClient.from_settings(settings)


def get_messenger() -> Optional[WhatsAppClient]:
    return WhatsAppClient.from_settings(settings)
