from typing import Optional

from fastapi import APIRouter, Depends, Request
from pydantic import ValidationError as PydanticValidationError

from tienda.api.deps import get_messenger
from tienda.core.errors import ValidationError
from tienda.models.payment import WhatsAppMessage
from tienda.services.whatsapp_service import WhatsAppClient, send_whatsapp_message

router = APIRouter()


# POST /api/whatsapp
# Body: { to: string, text: string }
@router.post("")
async def send_whatsapp_endpoint(request: Request, messenger: Optional[WhatsAppClient] = Depends(get_messenger)):
    try:
        message = WhatsAppMessage.model_validate(await request.json())
    except (ValueError, PydanticValidationError):
        raise ValidationError("Missing to or text")
    return await send_whatsapp_message(messenger, message.to, message.text)
