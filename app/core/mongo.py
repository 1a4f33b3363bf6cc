"""MongoDB connection, collection names and document helpers."""

from __future__ import annotations

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from functools import partial
from typing import Any, Callable, TypeVar

import pymongo
from bson import ObjectId
from bson.errors import InvalidId
from pymongo.database import Database

from app.api.errors import ApiError, ApiErrorCode
from app.core.config import MongoConfig

LOGGER = logging.getLogger(__name__)

CLIENTS_COLLECTION = "clients"
USERS_COLLECTION = "usersdb"
ACTIVITIES_COLLECTION = "activity"
SALE_ORDERS_COLLECTION = "SaleOrders"
SALE_ORDER_DETAILS_COLLECTION = "SaleOrderDetails"
COUNTERS_COLLECTION = "counters"

T = TypeVar("T")

_STORE_EXECUTOR = ThreadPoolExecutor(max_workers=16, thread_name_prefix="mongo-io")


def connect_database(config: MongoConfig) -> Database:
    """Open a client, verify the server answers and return the database."""
    client: pymongo.MongoClient = pymongo.MongoClient(
        config.uri,
        serverSelectionTimeoutMS=config.server_selection_timeout_ms,
        tz_aware=True,
    )
    client.admin.command("ping")
    LOGGER.info("MongoDB connected: db=%s", config.database)
    return client[config.database]


async def run_blocking(fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    """Run a blocking store call on the store executor."""
    loop = asyncio.get_running_loop()
    call = partial(fn, *args, **kwargs)
    return await loop.run_in_executor(_STORE_EXECUTOR, call)


def parse_object_id(value: str, *, entity: str) -> ObjectId:
    """Parse a path id into ``ObjectId`` or raise a 400."""
    try:
        return ObjectId(str(value or "").strip())
    except (InvalidId, TypeError) as exc:
        raise ApiError(
            status_code=400,
            error_code=ApiErrorCode.INVALID_ID,
            message=f"Invalid {entity} id: {value}",
        ) from exc


def serialize_document(doc: dict[str, Any] | None) -> dict[str, Any] | None:
    """Return a JSON-friendly copy of a stored document."""
    if doc is None:
        return None
    out = dict(doc)
    if isinstance(out.get("_id"), ObjectId):
        out["_id"] = str(out["_id"])
    out.pop("__v", None)
    return out
