import copy
from collections import defaultdict
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

import httpx
import pytest
from fastapi.testclient import TestClient

from tienda.api.deps import get_messenger, get_payment_gateway, get_store
from tienda.core.auth import create_access_token
from tienda.db.store import PRODUCTS, USERS, DocumentStore
from tienda.main import app
from tienda.models.cart import ProductSelection
from tienda.services.mercadopago.client import MercadoPagoClient
from tienda.services.whatsapp_service import WhatsAppClient

_MISSING = object()


def _get_path(document: Dict[str, Any], path: str) -> Any:
    value: Any = document
    for part in path.split("."):
        if isinstance(value, dict) and part in value:
            value = value[part]
        elif isinstance(value, list) and part.isdigit() and int(part) < len(value):
            value = value[int(part)]
        else:
            return _MISSING
    return value


def _set_path(document: Dict[str, Any], path: str, value: Any) -> None:
    parts = path.split(".")
    target = document
    for part in parts[:-1]:
        target = target.setdefault(part, {})
    target[parts[-1]] = value


def _matches(document: Dict[str, Any], conditions: Dict[str, Any]) -> bool:
    for path, expected in conditions.items():
        value = _get_path(document, path)
        if expected is None:
            if value is not _MISSING and value is not None:
                return False
        elif value is _MISSING or value != expected:
            return False
    return True


class MemoryDocumentStore(DocumentStore):
    """Almacén en memoria con la misma semántica que MongoDocumentStore."""

    def __init__(self):
        self.collections: Dict[str, Dict[str, Dict[str, Any]]] = defaultdict(dict)

    def seed(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        self.collections[collection][doc_id] = copy.deepcopy(data)

    def raw(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        return self.collections[collection].get(doc_id)

    def _out(self, doc_id: str, document: Dict[str, Any]) -> Dict[str, Any]:
        return {**copy.deepcopy(document), "id": doc_id}

    async def get(self, collection, doc_id):
        document = self.collections[collection].get(doc_id)
        return self._out(doc_id, document) if document is not None else None

    async def find(self, collection, filters=None, sort: Optional[Sequence[Tuple[str, int]]] = None) -> List[Dict[str, Any]]:
        results = [
            self._out(doc_id, document)
            for doc_id, document in self.collections[collection].items()
            if _matches(document, filters or {})
        ]
        for field, direction in reversed(list(sort or [])):
            results.sort(key=lambda d: (d.get(field) is None, d.get(field)), reverse=direction < 0)
        return results

    async def insert(self, collection, data, doc_id=None):
        doc_id = doc_id or data.get("id") or f"{collection}-{len(self.collections[collection]) + 1}"
        if doc_id in self.collections[collection]:
            return None
        self.collections[collection][doc_id] = copy.deepcopy({k: v for k, v in data.items() if k != "id"})
        return doc_id

    async def set(self, collection, doc_id, data):
        self.collections[collection][doc_id] = copy.deepcopy({k: v for k, v in data.items() if k != "id"})

    async def replace_where(self, collection, doc_id, conditions, data):
        document = self.collections[collection].get(doc_id)
        if document is None or not _matches(document, conditions):
            return False
        await self.set(collection, doc_id, data)
        return True

    async def update_where(self, collection, doc_id, conditions, fields):
        document = self.collections[collection].get(doc_id)
        if document is None or not _matches(document, conditions):
            return False
        for path, value in fields.items():
            _set_path(document, path, copy.deepcopy(value))
        return True

    async def delete_where(self, collection, doc_id, conditions):
        document = self.collections[collection].get(doc_id)
        if document is None or not _matches(document, conditions):
            return False
        del self.collections[collection][doc_id]
        return True

    async def decrement_in_array(self, collection, doc_id, array_field, match_field, match_value, counter_field, amount, fields=None):
        document = self.collections[collection].get(doc_id)
        if document is None:
            return None
        for item in document.get(array_field) or []:
            if item.get(match_field) == match_value:
                item[counter_field] = max(0, (item.get(counter_field) or 0) - amount)
                for path, value in (fields or {}).items():
                    _set_path(document, path, value)
                return item[counter_field]
        return None


def mercadopago_client(handler, max_retries: int = 0) -> MercadoPagoClient:
    return MercadoPagoClient("TEST-TOKEN", max_retries=max_retries, backoff=0, transport=httpx.MockTransport(handler))


def whatsapp_client(handler, max_retries: int = 0) -> WhatsAppClient:
    return WhatsAppClient("WA-TOKEN", "12345", max_retries=max_retries, backoff=0, transport=httpx.MockTransport(handler))


def payment_handler(payments: Dict[str, Dict[str, Any]], calls: Optional[list] = None):
    """Simula GET /v1/payments/<id> devolviendo los pagos indicados."""

    def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(request)
        payment_id = request.url.path.rsplit("/", 1)[-1]
        if payment_id not in payments:
            return httpx.Response(404, json={"message": "Payment not found"})
        return httpx.Response(200, json={"id": int(payment_id), **payments[payment_id]})

    return handler


def selection(product_id="p1", color="red", size=42, price=1000.0, name="Zapatilla Urbana") -> ProductSelection:
    return ProductSelection(
        productId=product_id,
        selectedColor=color,
        selectedSize=size,
        price=price,
        name=name,
        imageUrl=f"https://img.example/{product_id}-{color}.jpg",
    )


def seed_product(store: MemoryDocumentStore, product_id="p1", variations=None, **extra) -> None:
    now = datetime.now(timezone.utc)
    store.seed(
        PRODUCTS,
        product_id,
        {
            "name": extra.pop("name", "Zapatilla Urbana"),
            "price": extra.pop("price", 1000.0),
            "description": "",
            "images": [],
            "category": extra.pop("category", "urbanas"),
            "onSale": extra.pop("onSale", False),
            "variations": variations
            if variations is not None
            else [
                {"color": "red", "tallesDisponibles": [40, 41, 42], "images": [], "stock": 5},
                {"color": "black", "tallesDisponibles": [42, 43], "images": [], "stock": 3},
            ],
            "createdAt": now,
            "updatedAt": now,
            **extra,
        },
    )


def variation_stock(store: MemoryDocumentStore, product_id: str, color: str) -> int:
    product = store.raw(PRODUCTS, product_id)
    return next(v["stock"] for v in product["variations"] if v["color"] == color)


def auth_headers(user_id="u1", email="cliente@example.com", name="Cliente") -> Dict[str, str]:
    token = create_access_token({"sub": user_id, "email": email, "name": name})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def store():
    return MemoryDocumentStore()


@pytest.fixture
def admin_headers(store):
    now = datetime.now(timezone.utc)
    store.seed(
        USERS,
        "admin1",
        {"email": "admin@example.com", "displayName": "Admin", "photoURL": None, "isAdmin": True, "createdAt": now, "updatedAt": now},
    )
    return auth_headers("admin1", "admin@example.com", "Admin")


@pytest.fixture
def overrides(store):
    """Dependencias reemplazables por cada test: store, pasarela y mensajería."""
    deps = {"gateway": None, "messenger": None}
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_payment_gateway] = lambda: deps["gateway"]
    app.dependency_overrides[get_messenger] = lambda: deps["messenger"]
    yield deps
    app.dependency_overrides.clear()


@pytest.fixture
def client(overrides):
    return TestClient(app)
