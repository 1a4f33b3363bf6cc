from __future__ import annotations

import re
import threading
from copy import deepcopy
from functools import cmp_to_key
from typing import Any, Iterator

from bson import ObjectId

from tests.mongo_pipeline import apply_update, run_pipeline


class _InsertResult:
    def __init__(self, inserted_id: Any) -> None:
        self.inserted_id = inserted_id


def _value_matches(value: Any, condition: Any, *, fold_case: bool) -> bool:
    if isinstance(condition, re.Pattern):
        return isinstance(value, str) and condition.search(value) is not None
    if isinstance(condition, dict) and any(key.startswith("$") for key in condition):
        for op, arg in condition.items():
            if op == "$in":
                if not any(_value_matches(value, item, fold_case=fold_case) for item in arg):
                    return False
            elif op == "$nin":
                if any(_value_matches(value, item, fold_case=fold_case) for item in arg):
                    return False
            elif op == "$ne":
                if _value_matches(value, arg, fold_case=fold_case):
                    return False
            elif op == "$exists":
                if (value is not None) != bool(arg):
                    return False
            elif op == "$gte":
                if value is None or value < arg:
                    return False
            elif op == "$lt":
                if value is None or value >= arg:
                    return False
            else:
                raise NotImplementedError(op)
        return True
    if fold_case and isinstance(value, str) and isinstance(condition, str):
        return value.lower() == condition.lower()
    return value == condition


def matches(doc: dict[str, Any], filters: dict[str, Any], *, fold_case: bool = False) -> bool:
    for key, condition in (filters or {}).items():
        if key == "$and":
            if not all(matches(doc, part, fold_case=fold_case) for part in condition):
                return False
        elif key == "$or":
            if not any(matches(doc, part, fold_case=fold_case) for part in condition):
                return False
        elif not _value_matches(doc.get(key), condition, fold_case=fold_case):
            return False
    return True


def _project(doc: dict[str, Any], projection: dict[str, int] | None) -> dict[str, Any]:
    out = deepcopy(doc)
    if not projection:
        return out
    included = [field for field, flag in projection.items() if flag and field != "_id"]
    if included:
        picked = {field: out[field] for field in included if field in out}
        if projection.get("_id", 1) and "_id" in out:
            picked["_id"] = out["_id"]
        return picked
    for field, flag in projection.items():
        if not flag:
            out.pop(field, None)
    return out


def _compare(left: Any, right: Any) -> int:
    if left is None and right is None:
        return 0
    if left is None:
        return -1
    if right is None:
        return 1
    if isinstance(left, ObjectId) and isinstance(right, ObjectId):
        left, right = str(left), str(right)
    return (left > right) - (left < right)


class FakeCursor:
    def __init__(self, docs: list[dict[str, Any]]) -> None:
        self._docs = docs
        self.sort_spec: list[tuple[str, int]] = []

    def sort(self, spec: list[tuple[str, int]]) -> "FakeCursor":
        self.sort_spec = list(spec)

        def _cmp(a: dict[str, Any], b: dict[str, Any]) -> int:
            for field, direction in self.sort_spec:
                result = _compare(a.get(field), b.get(field))
                if result:
                    return result * direction
            return 0

        self._docs = sorted(self._docs, key=cmp_to_key(_cmp))
        return self

    def skip(self, count: int) -> "FakeCursor":
        self._docs = self._docs[count:]
        return self

    def limit(self, count: int) -> "FakeCursor":
        if count:
            self._docs = self._docs[:count]
        return self

    def __iter__(self) -> Iterator[dict[str, Any]]:
        return iter(self._docs)


class FakeCollection:
    """In-memory stand-in for the pymongo collection calls the repositories make."""

    def __init__(self, name: str = "fake", docs: list[dict[str, Any]] | None = None) -> None:
        self.name = name
        self.docs: list[dict[str, Any]] = []
        self.indexes: list[tuple[Any, dict[str, Any]]] = []
        self.pipelines: list[list[dict[str, Any]]] = []
        self.aggregate_results: list[list[dict[str, Any]]] = []
        for doc in docs or []:
            self.insert_one(dict(doc))

    def _select(self, filters: dict[str, Any], collation: Any = None) -> list[dict[str, Any]]:
        fold = collation is not None
        return [doc for doc in self.docs if matches(doc, filters, fold_case=fold)]

    def find(self, filters: dict[str, Any] | None = None, projection: Any = None) -> FakeCursor:
        return FakeCursor([_project(doc, projection) for doc in self._select(filters or {})])

    def find_one(
        self,
        filters: dict[str, Any] | None = None,
        projection: Any = None,
        collation: Any = None,
    ) -> dict[str, Any] | None:
        found = self._select(filters or {}, collation)
        return _project(found[0], projection) if found else None

    def count_documents(self, filters: dict[str, Any]) -> int:
        return len(self._select(filters))

    def insert_one(self, doc: dict[str, Any]) -> _InsertResult:
        doc.setdefault("_id", ObjectId())
        self.docs.append(deepcopy(doc))
        return _InsertResult(doc["_id"])

    def update_one(self, filters: dict[str, Any], update: dict[str, Any]) -> None:
        found = self._select(filters)
        if found:
            found[0].update(update.get("$set", {}))

    def find_one_and_update(
        self,
        filters: dict[str, Any],
        update: dict[str, Any],
        projection: Any = None,
        return_document: Any = None,
        upsert: bool = False,
    ) -> dict[str, Any] | None:
        found = self._select(filters)
        if not found:
            return None
        found[0].update(update.get("$set", {}))
        return _project(found[0], projection)

    def find_one_and_delete(
        self, filters: dict[str, Any], projection: Any = None
    ) -> dict[str, Any] | None:
        found = self._select(filters)
        if not found:
            return None
        self.docs.remove(found[0])
        return _project(found[0], projection)

    def aggregate(self, pipeline: list[dict[str, Any]], **_: Any) -> list[dict[str, Any]]:
        self.pipelines.append(pipeline)
        if self.aggregate_results:
            return self.aggregate_results.pop(0)
        return []

    def create_index(self, keys: Any, **kwargs: Any) -> str:
        self.indexes.append((keys, kwargs))
        return str(keys)


class FakeDatabase:
    def __init__(self) -> None:
        self.collections: dict[str, FakeCollection] = {}

    def _new_collection(self, name: str) -> FakeCollection:
        return FakeCollection(name)

    def __getitem__(self, name: str) -> FakeCollection:
        if name not in self.collections:
            self.collections[name] = self._new_collection(name)
        return self.collections[name]


class PipelineCollection(FakeCollection):
    """Collection whose ``aggregate`` executes the pipeline over its documents."""

    def __init__(self, name: str = "fake", database: Any = None) -> None:
        super().__init__(name)
        self.database = database

    def aggregate(self, pipeline: list[dict[str, Any]], **_: Any) -> list[dict[str, Any]]:
        self.pipelines.append(pipeline)
        return run_pipeline(self.docs, pipeline, database=self.database)


class PipelineDatabase(FakeDatabase):
    def _new_collection(self, name: str) -> FakeCollection:
        return PipelineCollection(name, database=self)


async def run_inline(fn: Any, *args: Any, **kwargs: Any) -> Any:
    return fn(*args, **kwargs)


class FakeCounters:
    """Counter collection applying each update pipeline atomically under a lock."""

    def __init__(self, seq: int | None = None, counter_id: str = "saleOrderLabel") -> None:
        self._lock = threading.Lock()
        self.docs: dict[str, dict[str, Any]] = {}
        if seq is not None:
            self.docs[counter_id] = {"_id": counter_id, "seq": seq}
        self.calls: list[dict[str, Any]] = []

    def find_one_and_update(
        self, filters: dict[str, Any], update: list[dict[str, Any]], **kwargs: Any
    ) -> dict[str, Any] | None:
        self.calls.append(kwargs)
        with self._lock:
            doc = self.docs.get(filters["_id"])
            if doc is None:
                if not kwargs.get("upsert"):
                    return None
                doc = self.docs.setdefault(filters["_id"], {"_id": filters["_id"]})
            return dict(apply_update(doc, update))
