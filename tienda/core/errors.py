# tienda/core/errors.py
from typing import Any, Dict, Optional

from fastapi import Request
from fastapi.responses import JSONResponse


class TiendaError(Exception):
    """Error base de la tienda. Cada subclase fija el código HTTP con el que se expone."""

    status_code = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.message, **self.details}


class ValidationError(TiendaError):
    status_code = 400


class AuthorizationError(TiendaError):
    status_code = 403


class NotFoundError(TiendaError):
    status_code = 404


class ConflictError(TiendaError):
    status_code = 409


class ConfigurationError(TiendaError):
    status_code = 501


class UpstreamError(TiendaError):
    """El proveedor externo falló o rechazó la llamada."""

    status_code = 502

    def __init__(
        self,
        message: str,
        provider_status: Optional[int] = None,
        payload: Any = None,
        retryable: bool = False,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.provider_status = provider_status
        self.payload = payload
        self.retryable = retryable


async def tienda_error_handler(request: Request, exc: TiendaError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())
