# tienda/services/http_client.py
import asyncio
import logging
from typing import Any

import httpx

from tienda.core.errors import UpstreamError

logger = logging.getLogger(__name__)

# 429 y 5xx son transitorios; el resto de los 4xx es una respuesta definitiva
RETRYABLE_STATUS = {429, 500, 502, 503, 504}


async def request_with_retries(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    max_retries: int,
    backoff: float,
    **kwargs: Any,
) -> httpx.Response:
    """Hace la petición reintentando sólo ante fallas de red o respuestas transitorias.

    Devuelve la última respuesta obtenida (el llamador decide qué hacer con un
    estado no exitoso). Si la red falla en todos los intentos lanza UpstreamError.
    """
    attempt = 0
    while True:
        try:
            response = await client.request(method, url, **kwargs)
        except httpx.TransportError as e:
            if attempt >= max_retries:
                raise UpstreamError(f"Error de red contra {url}: {e}", retryable=True) from e
            logger.warning("Falla de red contra %s (intento %s): %s", url, attempt + 1, e)
        else:
            if response.status_code not in RETRYABLE_STATUS or attempt >= max_retries:
                return response
            logger.warning("Respuesta %s de %s, reintentando", response.status_code, url)
        attempt += 1
        await asyncio.sleep(backoff * (2 ** (attempt - 1)))


def response_json(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return {"raw": response.text}
