from datetime import datetime, timezone
from typing import Optional

from tienda.core.config import settings
from tienda.core.errors import NotFoundError, ValidationError
from tienda.db.store import USERS, DocumentStore
from tienda.models.user_models import UpdateUser, UserResponse


async def get_user(store: DocumentStore, user_id: str) -> Optional[UserResponse]:
    user = await store.get(USERS, user_id)
    return UserResponse(**user) if user else None


async def get_or_create_user(
    store: DocumentStore,
    user_id: str,
    email: Optional[str] = None,
    display_name: Optional[str] = None,
) -> UserResponse:
    """Devuelve el perfil del usuario, creándolo la primera vez que el proveedor de identidad lo presenta."""
    user = await get_user(store, user_id)
    if user:
        return user

    now = datetime.now(timezone.utc)
    new_user = {
        "email": email,
        "displayName": display_name,
        "photoURL": None,
        # El rol se guarda con el usuario; la lista sólo siembra el primer valor
        "isAdmin": bool(email) and email.lower() in settings.admin_email_list,
        "createdAt": now,
        "updatedAt": now,
    }
    # Si dos peticiones crean el perfil a la vez gana la primera
    await store.insert(USERS, new_user, doc_id=user_id)
    return await get_user(store, user_id)


async def update_user(store: DocumentStore, user_id: str, user_data: UpdateUser) -> UserResponse:
    # Diccionario para los campos a actualizar
    update_fields = user_data.model_dump(exclude_none=True)
    if not update_fields:
        raise ValidationError("No valid fields to update")
    update_fields["updatedAt"] = datetime.now(timezone.utc)

    if not await store.update(USERS, user_id, update_fields):
        raise NotFoundError("User not found")

    return await get_user(store, user_id)
