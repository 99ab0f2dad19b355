from fastapi import APIRouter, Depends

from tienda.api.deps import get_store
from tienda.core.auth import get_current_user
from tienda.db.store import DocumentStore
from tienda.models.user_models import UpdateUser, UserResponse
from tienda.services.user_services import update_user

router = APIRouter()


@router.get("/me", response_model=UserResponse)
async def get_me_endpoint(current_user: UserResponse = Depends(get_current_user)):
    """
    Perfil del usuario autenticado (se crea en el primer acceso).
    """
    return current_user


@router.patch("/me", response_model=UserResponse)
async def update_me_endpoint(
    user_data: UpdateUser,
    current_user: UserResponse = Depends(get_current_user),
    store: DocumentStore = Depends(get_store),
):
    """
    Endpoint para actualizar nombre visible y foto. El rol de administrador no se puede cambiar desde acá.
    """
    return await update_user(store, current_user.id, user_data)
