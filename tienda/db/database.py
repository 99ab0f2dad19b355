import logging
import uuid
from typing import Any, Dict, List, Optional, Sequence, Tuple

import certifi
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

# Importar las configuraciones desde config.py
from tienda.core.config import settings
from tienda.db.store import Document, DocumentStore

logger = logging.getLogger(__name__)


def _client_options(uri: str) -> Dict[str, Any]:
    # Los clusters de Atlas (mongodb+srv) necesitan el bundle de certificados
    if uri.startswith("mongodb+srv://"):
        return {"tlsCAFile": certifi.where()}
    return {}


client = AsyncIOMotorClient(settings.mongo_uri, **_client_options(settings.mongo_uri))
db = client[settings.mongo_db_name]


def document_serializer(document: Optional[Dict[str, Any]]) -> Optional[Document]:
    # Convierte `_id` en `id` para que los modelos no dependan de Mongo
    if document is None:
        return None
    document = dict(document)
    if "_id" in document:
        document["id"] = str(document.pop("_id"))
    return document


def _to_mongo(data: Document) -> Dict[str, Any]:
    return {k: v for k, v in data.items() if k != "id"}


class MongoDocumentStore(DocumentStore):
    def __init__(self, database: AsyncIOMotorDatabase):
        self.db = database

    async def get(self, collection: str, doc_id: str) -> Optional[Document]:
        return document_serializer(await self.db[collection].find_one({"_id": doc_id}))

    async def find(
        self,
        collection: str,
        filters: Optional[Dict[str, Any]] = None,
        sort: Optional[Sequence[Tuple[str, int]]] = None,
    ) -> List[Document]:
        cursor = self.db[collection].find(filters or {})
        if sort:
            cursor = cursor.sort(list(sort))
        return [document_serializer(doc) for doc in await cursor.to_list(None)]

    async def insert(self, collection: str, data: Document, doc_id: Optional[str] = None) -> Optional[str]:
        doc_id = doc_id or data.get("id") or uuid.uuid4().hex
        try:
            await self.db[collection].insert_one({**_to_mongo(data), "_id": doc_id})
        except DuplicateKeyError:
            return None
        return doc_id

    async def set(self, collection: str, doc_id: str, data: Document) -> None:
        await self.db[collection].replace_one({"_id": doc_id}, _to_mongo(data), upsert=True)

    async def replace_where(self, collection: str, doc_id: str, conditions: Dict[str, Any], data: Document) -> bool:
        result = await self.db[collection].replace_one({"_id": doc_id, **conditions}, _to_mongo(data))
        return result.matched_count == 1

    async def update_where(self, collection: str, doc_id: str, conditions: Dict[str, Any], fields: Dict[str, Any]) -> bool:
        result = await self.db[collection].update_one({"_id": doc_id, **conditions}, {"$set": fields})
        return result.matched_count == 1

    async def delete_where(self, collection: str, doc_id: str, conditions: Dict[str, Any]) -> bool:
        result = await self.db[collection].delete_one({"_id": doc_id, **conditions})
        return result.deleted_count == 1

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
        item_matches = {"$eq": [f"$$item.{match_field}", {"$literal": match_value}]}
        floored = {
            "$max": [0, {"$subtract": [{"$ifNull": [f"$$item.{counter_field}", 0]}, amount]}]
        }
        pipeline = [
            {
                "$set": {
                    array_field: {
                        "$map": {
                            "input": f"${array_field}",
                            "as": "item",
                            "in": {
                                "$cond": [
                                    item_matches,
                                    {"$mergeObjects": ["$$item", {counter_field: floored}]},
                                    "$$item",
                                ]
                            },
                        }
                    },
                    **{k: {"$literal": v} for k, v in (fields or {}).items()},
                }
            }
        ]
        updated = await self.db[collection].find_one_and_update(
            {"_id": doc_id, array_field: {"$elemMatch": {match_field: match_value}}},
            pipeline,
            return_document=ReturnDocument.AFTER,
        )
        if updated is None:
            return None
        for item in updated.get(array_field, []):
            if item.get(match_field) == match_value:
                return item.get(counter_field)
        return None


store = MongoDocumentStore(db)


async def connect_to_mongo():
    try:
        await client.server_info()
        logger.info("Conectado a MongoDB en %s", settings.mongo_db_name)
    except Exception as e:
        logger.error("Error conectándose a MongoDB: %s", e)


async def close_mongo_connection():
    client.close()
