"""Versioned MongoDB index migrations for the CRM collections."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable

import pymongo

from app.core.logging import CORRELATION_ID_CTX
from app.core.mongo import (
    ACTIVITIES_COLLECTION,
    CLIENTS_COLLECTION,
    SALE_ORDER_DETAILS_COLLECTION,
    SALE_ORDERS_COLLECTION,
    USERS_COLLECTION,
)

LOGGER = logging.getLogger(__name__)

MIGRATIONS_COLLECTION = "schema_migrations"

MigrationFn = Callable[[Any], None]


def _migration_20260301_01_user_and_client_indexes(db: Any) -> None:
    db[USERS_COLLECTION].create_index("email", unique=True)
    db[CLIENTS_COLLECTION].create_index("externalId")
    db[CLIENTS_COLLECTION].create_index("name")
    db[CLIENTS_COLLECTION].create_index("createdAt")


def _migration_20260301_02_activity_indexes(db: Any) -> None:
    db[ACTIVITIES_COLLECTION].create_index(
        [("type", pymongo.ASCENDING), ("createdAt", pymongo.DESCENDING)]
    )
    db[ACTIVITIES_COLLECTION].create_index("clientId")
    db[ACTIVITIES_COLLECTION].create_index("userId")
    db[ACTIVITIES_COLLECTION].create_index("trackingId")


def _migration_20260301_03_order_indexes(db: Any) -> None:
    db[SALE_ORDERS_COLLECTION].create_index("OrderID")
    db[SALE_ORDERS_COLLECTION].create_index("ClientID")
    db[SALE_ORDERS_COLLECTION].create_index("TimeStamp")
    db[SALE_ORDER_DETAILS_COLLECTION].create_index("OrderID")


MIGRATIONS: list[tuple[str, MigrationFn]] = [
    ("20260301_01_user_and_client_indexes", _migration_20260301_01_user_and_client_indexes),
    ("20260301_02_activity_indexes", _migration_20260301_02_activity_indexes),
    ("20260301_03_order_indexes", _migration_20260301_03_order_indexes),
]


def apply_mongo_migrations(db: Any) -> list[str]:
    """Apply pending migrations once each and return the ids applied now."""
    migration_collection = db[MIGRATIONS_COLLECTION]
    migration_collection.create_index("migration_id", unique=True)

    applied: list[str] = []
    for migration_id, migration_fn in MIGRATIONS:
        if migration_collection.find_one({"migration_id": migration_id}):
            continue
        migration_fn(db)
        migration_collection.insert_one(
            {
                "migration_id": migration_id,
                "applied_at": datetime.now(timezone.utc),
                "correlation_id": CORRELATION_ID_CTX.get(),
            }
        )
        LOGGER.info("migration_applied: %s", migration_id)
        applied.append(migration_id)
    return applied
