# tienda/db/store.py
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence, Tuple

PRODUCTS = "products"
CARTS = "carts"
ORDERS = "orders"
REVIEWS = "reviews"
CATEGORIES = "categories"
USERS = "users"

Document = Dict[str, Any]


class DocumentStore(ABC):
    """
    Almacén de documentos direccionados por id de texto, agrupados en colecciones.

    Los documentos se devuelven como diccionarios con la clave ``id``. Las
    ``conditions`` son igualdades sobre campos (admiten notación con puntos);
    ``None`` en una condición coincide con un campo nulo o ausente.
    """

    @abstractmethod
    async def get(self, collection: str, doc_id: str) -> Optional[Document]:
        ...

    @abstractmethod
    async def find(
        self,
        collection: str,
        filters: Optional[Dict[str, Any]] = None,
        sort: Optional[Sequence[Tuple[str, int]]] = None,
    ) -> List[Document]:
        ...

    @abstractmethod
    async def insert(self, collection: str, data: Document, doc_id: Optional[str] = None) -> Optional[str]:
        """Inserta un documento nuevo. Devuelve None si ya existe uno con ese id."""

    @abstractmethod
    async def set(self, collection: str, doc_id: str, data: Document) -> None:
        """Crea o reemplaza el documento completo."""

    @abstractmethod
    async def replace_where(self, collection: str, doc_id: str, conditions: Dict[str, Any], data: Document) -> bool:
        ...

    @abstractmethod
    async def update_where(self, collection: str, doc_id: str, conditions: Dict[str, Any], fields: Dict[str, Any]) -> bool:
        ...

    async def update(self, collection: str, doc_id: str, fields: Dict[str, Any]) -> bool:
        return await self.update_where(collection, doc_id, {}, fields)

    @abstractmethod
    async def delete_where(self, collection: str, doc_id: str, conditions: Dict[str, Any]) -> bool:
        ...

    async def delete(self, collection: str, doc_id: str) -> bool:
        return await self.delete_where(collection, doc_id, {})

    @abstractmethod
    async def decrement_in_array(
        self,
        collection: str,
        doc_id: str,
        array_field: str,
        match_field: str,
        match_value: Any,
        counter_field: str,
        amount: int,
        fields: Optional[Dict[str, Any]] = None,
    ) -> Optional[int]:
        """
        Resta ``amount`` al contador del primer elemento del arreglo cuyo
        ``match_field`` coincide, sin bajar de cero, en una sola operación
        atómica. Devuelve el nuevo valor, o None si no hay documento o elemento.
        """
