"""Shared pymongo collection access used by the domain repositories."""

from __future__ import annotations

import logging
from typing import Any, Iterable

from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.collation import Collation

LOGGER = logging.getLogger(__name__)

# Case-insensitive, accent-exact comparison for whole-name lookups.
NAME_COLLATION = Collation(locale="en", strength=2)


class CollectionRepository:
    """Thin wrapper over one pymongo collection.

    Every method is blocking; services dispatch them through ``run_blocking``.
    """

    hidden_fields: tuple[str, ...] = ()

    def __init__(self, collection: Any) -> None:
        self._collection = collection

    @property
    def collection_name(self) -> str:
        return str(getattr(self._collection, "name", ""))

    def _projection(self, extra: Iterable[str] = ()) -> dict[str, int] | None:
        excluded = {field: 0 for field in (*self.hidden_fields, *extra)}
        return excluded or None

    def count(self, filters: dict[str, Any]) -> int:
        return int(self._collection.count_documents(filters))

    def find_page(
        self,
        filters: dict[str, Any],
        sort: dict[str, int],
        skip: int,
        limit: int,
    ) -> list[dict[str, Any]]:
        cursor = self._collection.find(filters, self._projection())
        cursor = cursor.sort(list(sort.items())).skip(skip).limit(limit)
        return list(cursor)

    def find_all(
        self, filters: dict[str, Any], *, sort: dict[str, int] | None = None
    ) -> list[dict[str, Any]]:
        cursor = self._collection.find(filters, self._projection())
        if sort:
            cursor = cursor.sort(list(sort.items()))
        return list(cursor)

    def aggregate(self, pipeline: list[dict[str, Any]]) -> list[dict[str, Any]]:
        return list(self._collection.aggregate(pipeline, allowDiskUse=True))

    def exists(self, filters: dict[str, Any]) -> bool:
        return self._collection.find_one(filters, {"_id": 1}) is not None

    def get(self, object_id: ObjectId) -> dict[str, Any] | None:
        return self._collection.find_one({"_id": object_id}, self._projection())

    def insert(self, doc: dict[str, Any]) -> dict[str, Any]:
        stored = dict(doc)
        result = self._collection.insert_one(stored)
        stored["_id"] = result.inserted_id
        LOGGER.info(
            "document_created",
            extra={
                "collection": self.collection_name,
                "entity_id": str(result.inserted_id),
            },
        )
        for field in self.hidden_fields:
            stored.pop(field, None)
        return stored

    def update(
        self, object_id: ObjectId, changes: dict[str, Any]
    ) -> dict[str, Any] | None:
        if not changes:
            return self.get(object_id)
        return self._collection.find_one_and_update(
            {"_id": object_id},
            {"$set": changes},
            projection=self._projection(),
            return_document=ReturnDocument.AFTER,
        )

    def delete(self, object_id: ObjectId) -> dict[str, Any] | None:
        deleted = self._collection.find_one_and_delete(
            {"_id": object_id}, projection=self._projection()
        )
        if deleted is not None:
            LOGGER.info(
                "document_deleted",
                extra={"collection": self.collection_name, "entity_id": str(object_id)},
            )
        return deleted
