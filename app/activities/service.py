"""Business logic for the activity log: listing, summary and writes."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable

from app.activities.models import (
    ACTIVITY_SEARCH_FIELDS,
    ACTIVITY_SORT_FIELDS,
    ActivityCreateRequest,
    ActivityType,
    ActivityUpdateRequest,
)
from app.activities.repository import ActivityRepository
from app.api.errors import ApiErrorCode, not_found, validation_error
from app.clients.repository import ClientRepository
from app.core.config import ReportingConfig
from app.core.mongo import parse_object_id, serialize_document
from app.reporting.dates import DateWindow, reporting_zone, resolve_window
from app.reporting.enrichment import JoinSpec, enrich_rows
from app.reporting.identifiers import resolve_client, resolve_user
from app.reporting.listing import ListQuery, paginate
from app.reporting.pagination import PageMeta, PageRequest, resolve_sort
from app.reporting.predicates import (
    activity_type_filter,
    combine,
    split_csv,
    text_search,
)
from app.reporting.rollups import activity_type_counts_pipeline, fold_activity_summary
from app.reporting.tokens import allocate_unique, random_short_token
from app.users.repository import UserRepository

ACTIVITIES_DEFAULT_LIMIT = 20
ACTIVITIES_MAX_LIMIT = 100


class ActivityService:
    """Application service for activity endpoints."""

    def __init__(
        self,
        *,
        repo: ActivityRepository,
        clients: ClientRepository,
        users: UserRepository,
        reporting: ReportingConfig,
        run_blocking: Callable[..., Awaitable[Any]],
        logger: logging.Logger,
    ) -> None:
        self._repo = repo
        self._clients = clients
        self._users = users
        self._reporting = reporting
        self._zone = reporting_zone(reporting.timezone)
        self._run_blocking = run_blocking
        self._logger = logger

    def _filters(
        self, q: str, type_: str, client_key: str | None = None
    ) -> dict[str, Any]:
        return combine(
            {"clientId": client_key} if client_key is not None else None,
            text_search(q, ACTIVITY_SEARCH_FIELDS),
            activity_type_filter("type", split_csv(type_)),
        )

    def _window(self, date_range: str, from_: str, to: str) -> DateWindow | None:
        return resolve_window(date_range, from_, to, tz=self._zone)

    async def _enrich(self, rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
        # activities shadow userId/clientId with display names in place
        specs = [
            JoinSpec(field="userId", resolve=self._users.display_names_by_email),
            JoinSpec(field="clientId", resolve=self._clients.names_by_external_id),
        ]
        enriched = await enrich_rows(rows, specs, run_blocking=self._run_blocking)
        return [serialize_document(row) for row in enriched]

    async def list_activities(
        self,
        *,
        page: Any,
        limit: Any,
        q: str = "",
        type_: str = "",
        date_range: str = "",
        from_: str = "",
        to: str = "",
        sort_by: str = "",
        sort: str = "",
        client_key: str | None = None,
    ) -> tuple[list[dict[str, Any]], PageMeta]:
        """Return one page of activities, enriched after paging."""
        query = ListQuery(
            filters=self._filters(q, type_, client_key),
            sort=resolve_sort(
                sort_by, sort, allowed=ACTIVITY_SORT_FIELDS, default_field="createdAt"
            ),
            page=PageRequest.from_query(
                page,
                limit,
                default_limit=ACTIVITIES_DEFAULT_LIMIT,
                max_limit=ACTIVITIES_MAX_LIMIT,
            ),
            date_field="createdAt",
            window=self._window(date_range, from_, to),
            timezone=self._reporting.timezone,
        )
        rows, meta = await paginate(self._repo, query, run_blocking=self._run_blocking)
        return await self._enrich(rows), meta

    async def list_client_activities(
        self, token: str, **kwargs: Any
    ) -> tuple[list[dict[str, Any]], PageMeta]:
        """Activities of one client; ``token`` is a name or an externalId."""
        client_key = await self._run_blocking(resolve_client, self._clients, token)
        return await self.list_activities(client_key=client_key, **kwargs)

    async def summary(
        self,
        *,
        q: str = "",
        type_: str = "",
        date_range: str = "",
        from_: str = "",
        to: str = "",
    ) -> dict[str, int]:
        """Total, calls, emails and texts under the same filters as the list."""
        pipeline = activity_type_counts_pipeline(
            self._filters(q, type_),
            self._window(date_range, from_, to),
            tz=self._reporting.timezone,
        )
        grouped = await self._run_blocking(self._repo.aggregate, pipeline)
        return fold_activity_summary(
            (row.get("_id"), row.get("count", 0)) for row in grouped
        )

    async def get_activity(self, activity_id: str) -> dict[str, Any]:
        oid = parse_object_id(activity_id, entity="activity")
        activity = await self._run_blocking(self._repo.get, oid)
        if activity is None:
            raise not_found(
                ApiErrorCode.ACTIVITY_NOT_FOUND, f"Activity not found: {activity_id}"
            )
        enriched = await self._enrich([activity])
        return enriched[0]

    async def _allocate_tracking_id(self) -> str:
        return await self._run_blocking(
            allocate_unique,
            random_short_token,
            self._repo.tracking_id_exists,
            attempts=self._reporting.unique_token_attempts,
            entity="trackingId",
        )

    async def record(
        self,
        *,
        client_key: str,
        user_key: str,
        type_: ActivityType,
        description: str,
    ) -> dict[str, Any]:
        """Persist an activity whose references are already canonical."""
        doc = {
            "clientId": client_key,
            "userId": user_key,
            "trackingId": await self._allocate_tracking_id(),
            "type": str(type_),
            "description": description[:500],
            "createdAt": datetime.now(timezone.utc),
        }
        stored = await self._run_blocking(self._repo.insert, doc)
        return serialize_document(stored)

    async def create_activity(
        self, req: ActivityCreateRequest, *, principal: str = ""
    ) -> dict[str, Any]:
        """Resolve references, allocate a trackingId and store the activity."""
        user_token = req.userId or principal
        if not user_token:
            raise validation_error("userId is required")
        client_key = await self._run_blocking(
            resolve_client, self._clients, req.clientId
        )
        user_key = await self._run_blocking(resolve_user, self._users, user_token)
        return await self.record(
            client_key=client_key,
            user_key=user_key,
            type_=req.type,
            description=req.description,
        )

    async def update_activity(
        self, activity_id: str, req: ActivityUpdateRequest
    ) -> dict[str, Any]:
        oid = parse_object_id(activity_id, entity="activity")
        changes = req.model_dump(mode="json", exclude_unset=True, exclude_none=True)
        if "clientId" in changes:
            changes["clientId"] = await self._run_blocking(
                resolve_client, self._clients, changes["clientId"]
            )
        if "userId" in changes:
            changes["userId"] = await self._run_blocking(
                resolve_user, self._users, changes["userId"]
            )
        updated = await self._run_blocking(self._repo.update, oid, changes)
        if updated is None:
            raise not_found(
                ApiErrorCode.ACTIVITY_NOT_FOUND, f"Activity not found: {activity_id}"
            )
        return serialize_document(updated)

    async def delete_activity(self, activity_id: str) -> dict[str, Any]:
        oid = parse_object_id(activity_id, entity="activity")
        deleted = await self._run_blocking(self._repo.delete, oid)
        if deleted is None:
            raise not_found(
                ApiErrorCode.ACTIVITY_NOT_FOUND, f"Activity not found: {activity_id}"
            )
        return serialize_document(deleted)
