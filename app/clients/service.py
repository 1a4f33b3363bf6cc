"""Business logic for client endpoints."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable

from app.activities.models import ActivityType
from app.activities.service import ActivityService
from app.api.errors import ApiError, ApiErrorCode, not_found
from app.clients.models import (
    CLIENT_SEARCH_FIELDS,
    CLIENT_SORT_FIELDS,
    CONTACT_STATUSES,
    DEFAULT_CONTACT_STATUS,
    ClientCreateRequest,
    ClientStatusUpdateRequest,
    ClientUpdateRequest,
)
from app.clients.repository import ClientRepository
from app.core.config import ReportingConfig
from app.core.mongo import parse_object_id, serialize_document
from app.reporting.enrichment import JoinSpec, enrich_rows
from app.reporting.identifiers import resolve_user
from app.reporting.listing import ListQuery, paginate
from app.reporting.pagination import PageMeta, PageRequest, resolve_sort
from app.reporting.predicates import (
    combine,
    exact_filter,
    membership_filter,
    split_csv,
    state_filter,
    text_search,
)
from app.reporting.rollups import fold_counts, grouped_values_pipeline, ordered_breakdown
from app.reporting.tokens import allocate_unique, random_short_token
from app.users.repository import UserRepository

CLIENTS_DEFAULT_LIMIT = 20
CLIENTS_MAX_LIMIT = 100
CLIENT_NAMES_MAX_LIMIT = 100
SYSTEM_ACTOR = "system"


def _client_not_found(client_id: str) -> ApiError:
    return not_found(ApiErrorCode.CLIENT_NOT_FOUND, f"Client not found: {client_id}")


class ClientService:
    """Application service for client CRUD, listing and the status summary."""

    def __init__(
        self,
        *,
        repo: ClientRepository,
        users: UserRepository,
        activities: ActivityService,
        reporting: ReportingConfig,
        run_blocking: Callable[..., Awaitable[Any]],
        logger: logging.Logger,
    ) -> None:
        self._repo = repo
        self._users = users
        self._activities = activities
        self._reporting = reporting
        self._run_blocking = run_blocking
        self._logger = logger

    async def _with_owner_names(
        self, rows: list[dict[str, Any]]
    ) -> list[dict[str, Any]]:
        specs = [
            JoinSpec(
                field="ownedBy",
                resolve=self._users.display_names_by_email,
                target="ownerName",
            )
        ]
        enriched = await enrich_rows(rows, specs, run_blocking=self._run_blocking)
        return [serialize_document(row) for row in enriched]

    async def list_clients(
        self,
        *,
        page: Any,
        limit: Any,
        q: str = "",
        statuses: str = "",
        states: str = "",
        owned_by: str = "",
        sort_by: str = "",
        sort: str = "",
    ) -> tuple[list[dict[str, Any]], PageMeta]:
        """Return one page of clients with ``ownerName`` resolved after paging."""
        owner_filter = None
        if owned_by.strip():
            owner = await self._run_blocking(resolve_user, self._users, owned_by)
            owner_filter = exact_filter("ownedBy", [owner])
        query = ListQuery(
            filters=combine(
                text_search(q, CLIENT_SEARCH_FIELDS),
                membership_filter("contactStatus", split_csv(statuses)),
                state_filter("state", split_csv(states)),
                owner_filter,
            ),
            sort=resolve_sort(
                sort_by, sort, allowed=CLIENT_SORT_FIELDS, default_field="createdAt"
            ),
            page=PageRequest.from_query(
                page,
                limit,
                default_limit=CLIENTS_DEFAULT_LIMIT,
                max_limit=CLIENTS_MAX_LIMIT,
            ),
        )
        rows, meta = await paginate(self._repo, query, run_blocking=self._run_blocking)
        return await self._with_owner_names(rows), meta

    async def list_names(self, *, q: str = "", limit: Any = None) -> list[dict[str, Any]]:
        page = PageRequest.from_query(
            1,
            limit,
            default_limit=CLIENT_NAMES_MAX_LIMIT,
            max_limit=CLIENT_NAMES_MAX_LIMIT,
        )
        rows = await self._run_blocking(self._repo.list_names, q, page.per_page)
        return [
            {
                "id": str(row.get("_id")),
                "externalId": row.get("externalId"),
                "name": row.get("name"),
            }
            for row in rows
        ]

    async def status_summary(self) -> dict[str, Any]:
        """Contact status breakdown in canonical order."""
        grouped = await self._run_blocking(
            self._repo.aggregate, grouped_values_pipeline("contactStatus")
        )
        buckets = fold_counts(
            ((row.get("_id"), row.get("count", 0)) for row in grouped),
            CONTACT_STATUSES,
        )
        return {
            "total": sum(buckets.values()),
            "byStatus": ordered_breakdown(buckets, CONTACT_STATUSES, key="status"),
            "generatedAt": datetime.now(timezone.utc).isoformat(),
        }

    async def list_client_activities(
        self, token: str, **kwargs: Any
    ) -> tuple[list[dict[str, Any]], PageMeta]:
        return await self._activities.list_client_activities(token, **kwargs)

    async def get_client(self, client_id: str) -> dict[str, Any]:
        oid = parse_object_id(client_id, entity="client")
        client = await self._run_blocking(self._repo.get, oid)
        if client is None:
            raise _client_not_found(client_id)
        enriched = await self._with_owner_names([client])
        return enriched[0]

    async def _allocate_external_id(self) -> str:
        return await self._run_blocking(
            allocate_unique,
            random_short_token,
            self._repo.external_id_exists,
            attempts=self._reporting.unique_token_attempts,
            entity="externalId",
        )

    async def create_client(
        self, req: ClientCreateRequest, *, principal: str = ""
    ) -> dict[str, Any]:
        """Store a client and log a ``created`` activity for it."""
        payload = req.model_dump(mode="json", exclude_none=True)
        if payload.get("ownedBy"):
            payload["ownedBy"] = await self._run_blocking(
                resolve_user, self._users, payload["ownedBy"]
            )
        if not str(payload.get("externalId") or "").strip():
            payload["externalId"] = await self._allocate_external_id()
        payload.setdefault("contactStatus", DEFAULT_CONTACT_STATUS)
        payload["createdAt"] = datetime.now(timezone.utc)
        stored = await self._run_blocking(self._repo.insert, payload)

        actor = principal.strip().lower() or payload.get("ownedBy") or SYSTEM_ACTOR
        await self._activities.record(
            client_key=payload["externalId"],
            user_key=actor,
            type_=ActivityType.CREATED,
            description=f"Client {payload['name']} created",
        )
        enriched = await self._with_owner_names([stored])
        return enriched[0]

    async def update_client(
        self, client_id: str, req: ClientUpdateRequest
    ) -> dict[str, Any]:
        oid = parse_object_id(client_id, entity="client")
        changes = req.model_dump(mode="json", exclude_unset=True, exclude_none=True)
        if changes.get("ownedBy"):
            changes["ownedBy"] = await self._run_blocking(
                resolve_user, self._users, changes["ownedBy"]
            )
        updated = await self._run_blocking(self._repo.update, oid, changes)
        if updated is None:
            raise _client_not_found(client_id)
        enriched = await self._with_owner_names([updated])
        return enriched[0]

    async def update_status(
        self,
        client_id: str,
        req: ClientStatusUpdateRequest,
        *,
        principal: str = "",
    ) -> dict[str, Any]:
        """Change ``contactStatus`` and log the transition as an activity."""
        oid = parse_object_id(client_id, entity="client")
        current = await self._run_blocking(self._repo.get, oid)
        if current is None:
            raise _client_not_found(client_id)

        if req.userId:
            actor = await self._run_blocking(resolve_user, self._users, req.userId)
        else:
            actor = principal.strip().lower() or SYSTEM_ACTOR

        previous = str(current.get("contactStatus") or "").strip() or "Uncategorized"
        updated = await self._run_blocking(
            self._repo.update, oid, {"contactStatus": req.contactStatus}
        )
        if updated is None:
            raise _client_not_found(client_id)

        external_id = str(current.get("externalId") or "").strip()
        if not external_id:
            self._logger.warning(
                "status_change_not_logged",
                extra={"collection": self._repo.collection_name, "entity_id": client_id},
            )
        elif previous != req.contactStatus:
            await self._activities.record(
                client_key=external_id,
                user_key=actor,
                type_=ActivityType.STATUS_CHANGED,
                description=f"Status changed from {previous} to {req.contactStatus}",
            )
        enriched = await self._with_owner_names([updated])
        return enriched[0]

    async def delete_client(self, client_id: str) -> dict[str, Any]:
        """Delete one client; its activities and orders are left in place."""
        oid = parse_object_id(client_id, entity="client")
        deleted = await self._run_blocking(self._repo.delete, oid)
        if deleted is None:
            raise _client_not_found(client_id)
        return serialize_document(deleted)
