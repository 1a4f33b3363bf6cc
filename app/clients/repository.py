"""MongoDB repository for the ``clients`` collection."""

from __future__ import annotations

import re
from typing import Any

from app.core.repository import NAME_COLLATION, CollectionRepository
from app.reporting.enrichment import client_display_name
from app.reporting.predicates import escape_pattern


class ClientRepository(CollectionRepository):
    """Clients; ``externalId`` is the join key used by activities and orders."""

    def find_client_by_external_id(self, external_id: str) -> dict[str, Any] | None:
        return self._collection.find_one({"externalId": str(external_id or "").strip()})

    def find_client_by_name(self, name: str) -> dict[str, Any] | None:
        return self._collection.find_one(
            {"name": str(name or "").strip()}, collation=NAME_COLLATION
        )

    def external_id_exists(self, external_id: str) -> bool:
        return self.exists({"externalId": external_id})

    def names_by_external_id(self, external_ids: list[str]) -> dict[str, str]:
        """Map externalId to client name; the first match wins for duplicates."""
        names: dict[str, str] = {}
        cursor = self._collection.find(
            {"externalId": {"$in": list(external_ids)}},
            {"_id": 0, "externalId": 1, "name": 1},
        )
        for client in cursor:
            key = str(client.get("externalId") or "").strip()
            if key and key not in names:
                names[key] = client_display_name(client, key)
        return names

    def list_names(self, q: str, limit: int) -> list[dict[str, Any]]:
        """Lightweight ``{_id, externalId, name}`` rows for pickers."""
        filters: dict[str, Any] = {}
        text = str(q or "").strip()
        if text:
            pattern = re.compile(escape_pattern(text), re.IGNORECASE)
            filters = {"$or": [{"name": pattern}, {"externalId": pattern}]}
        cursor = (
            self._collection.find(filters, {"externalId": 1, "name": 1})
            .sort([("name", 1), ("_id", 1)])
            .limit(limit)
        )
        return list(cursor)
