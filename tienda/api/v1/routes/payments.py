import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request
from pydantic import ValidationError as PydanticValidationError

from tienda.api.deps import get_payment_gateway, get_store
from tienda.core.config import settings
from tienda.core.errors import ValidationError
from tienda.db.store import DocumentStore
from tienda.models.payment import PreferenceRequest, PreferenceResponse
from tienda.services.mercadopago.client import MercadoPagoClient
from tienda.services.payment_service import create_preference, resolve_site_url

logger = logging.getLogger(__name__)

router = APIRouter()


# ============================ #
# 🔹 Crear preferencia de pago (redirige al checkout de Mercado Pago)
# ============================ #
@router.post("/create-preference", response_model=PreferenceResponse)
async def create_preference_endpoint(
    request: Request,
    store: DocumentStore = Depends(get_store),
    gateway: Optional[MercadoPagoClient] = Depends(get_payment_gateway),
):
    try:
        body = await request.json()
        data = PreferenceRequest.model_validate(body)
    except (ValueError, PydanticValidationError) as e:
        logger.info("create-preference con payload inválido: %s", e)
        raise ValidationError("Invalid payload")

    site_url = resolve_site_url(settings, request.headers)
    return await create_preference(store, gateway, data, site_url, settings.currency_id)
