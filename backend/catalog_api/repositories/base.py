"""
Базовый репозиторий поверх одной коллекции MongoDB.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ReturnDocument
from pymongo.collection import Collection

logger = logging.getLogger(__name__)


def parse_object_id(value: Any) -> Optional[ObjectId]:
    """Строка -> ObjectId, None если строка не похожа на id"""
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        return None


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Repository:
    """CRUD по одной коллекции. Все операции - над одним документом."""

    def __init__(self, collection: Collection):
        self.collection = collection

    def list(
        self,
        filter: Optional[Dict[str, Any]] = None,
        sort: Optional[Sequence[Tuple[str, int]]] = None,
        page: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> Tuple[List[dict], int]:
        filter = filter or {}
        cursor = self.collection.find(filter)
        if sort:
            cursor = cursor.sort(list(sort))
        if limit is not None:
            page = page or 1
            cursor = cursor.skip((page - 1) * limit).limit(limit)
        items = list(cursor)
        total = self.collection.count_documents(filter) if limit is not None else len(items)
        return items, total

    def get(self, id: Any) -> Optional[dict]:
        oid = parse_object_id(id)
        if oid is None:
            return None
        return self.collection.find_one({"_id": oid})

    def create(self, fields: Dict[str, Any]) -> dict:
        now = utcnow()
        doc = {**fields, "createdAt": now, "updatedAt": now}
        result = self.collection.insert_one(doc)
        doc["_id"] = result.inserted_id
        logger.debug("%s: создан документ %s", self.collection.name, result.inserted_id)
        return doc

    def update_partial(self, id: Any, fields: Dict[str, Any]) -> Optional[dict]:
        oid = parse_object_id(id)
        if oid is None:
            return None
        return self.collection.find_one_and_update(
            {"_id": oid},
            {"$set": {**fields, "updatedAt": utcnow()}},
            return_document=ReturnDocument.AFTER,
        )

    def replace(self, id: Any, fields: Dict[str, Any]) -> Optional[dict]:
        """Полная замена: createdAt сохраняется, остальное - из fields"""
        oid = parse_object_id(id)
        if oid is None:
            return None
        current = self.collection.find_one({"_id": oid})
        if current is None:
            return None
        replacement = {
            **self.preserved_on_replace(current),
            **fields,
            "createdAt": current.get("createdAt"),
            "updatedAt": utcnow(),
        }
        return self.collection.find_one_and_replace(
            {"_id": oid},
            replacement,
            return_document=ReturnDocument.AFTER,
        )

    def preserved_on_replace(self, current: dict) -> Dict[str, Any]:
        """Поля, которые переживают полную замену (кроме createdAt)"""
        return {}

    def delete(self, id: Any) -> Optional[dict]:
        oid = parse_object_id(id)
        if oid is None:
            return None
        return self.collection.find_one_and_delete({"_id": oid})
