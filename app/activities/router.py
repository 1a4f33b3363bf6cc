"""FastAPI router for activity endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Query, Request

from app.activities.models import ActivityCreateRequest, ActivityUpdateRequest
from app.activities.service import ActivityService
from app.api.contracts import (
    ActivitySummaryResponse,
    ApiErrorResponse,
    ItemEnvelope,
    PageEnvelope,
)
from app.auth.middleware import current_principal


def create_activities_router(service: ActivityService) -> APIRouter:
    """Build the ``/api/activities`` router."""
    router = APIRouter(prefix="/api/activities", tags=["activities"])

    @router.get("/lists", responses={400: {"model": ApiErrorResponse}})
    async def list_activities(
        page: str | None = Query(default=None),
        limit: str | None = Query(default=None),
        q: str = Query(default=""),
        type_: str = Query(default="", alias="type"),
        date_range: str = Query(default="", alias="dateRange"),
        from_: str = Query(default="", alias="from"),
        to: str = Query(default=""),
        sort_by: str = Query(default="", alias="sortBy"),
        sort: str = Query(default="desc"),
    ) -> PageEnvelope:
        """List activities with synonym-aware type filter and date window."""
        rows, meta = await service.list_activities(
            page=page,
            limit=limit,
            q=q,
            type_=type_,
            date_range=date_range,
            from_=from_,
            to=to,
            sort_by=sort_by,
            sort=sort,
        )
        return PageEnvelope.build(
            message="Activities retrieved successfully", rows=rows, meta=meta
        )

    @router.get("/summary", responses={400: {"model": ApiErrorResponse}})
    async def activities_summary(
        q: str = Query(default=""),
        type_: str = Query(default="", alias="type"),
        date_range: str = Query(default="", alias="dateRange"),
        from_: str = Query(default="", alias="from"),
        to: str = Query(default=""),
    ) -> ActivitySummaryResponse:
        """Counters for calls, emails and texts."""
        summary = await service.summary(
            q=q, type_=type_, date_range=date_range, from_=from_, to=to
        )
        return ActivitySummaryResponse(
            total=summary["total"],
            total_calls=summary["totalCalls"],
            total_emails=summary["totalEmails"],
            total_texts=summary["totalTexts"],
        )

    @router.get(
        "/lists/{activity_id}",
        responses={400: {"model": ApiErrorResponse}, 404: {"model": ApiErrorResponse}},
    )
    async def get_activity(activity_id: str) -> ItemEnvelope:
        activity = await service.get_activity(activity_id)
        return ItemEnvelope(message="Activity retrieved successfully", data=activity)

    @router.post(
        "/",
        status_code=201,
        responses={
            400: {"model": ApiErrorResponse},
            404: {"model": ApiErrorResponse},
            500: {"model": ApiErrorResponse},
        },
    )
    async def create_activity(
        req: ActivityCreateRequest, request: Request
    ) -> ItemEnvelope:
        """Log an activity; references may be names or canonical keys."""
        activity = await service.create_activity(
            req, principal=current_principal(request)
        )
        return ItemEnvelope(message="Activity created successfully", data=activity)

    @router.put(
        "/update/{activity_id}",
        responses={400: {"model": ApiErrorResponse}, 404: {"model": ApiErrorResponse}},
    )
    async def update_activity(
        activity_id: str, req: ActivityUpdateRequest
    ) -> ItemEnvelope:
        activity = await service.update_activity(activity_id, req)
        return ItemEnvelope(message="Activity updated successfully", data=activity)

    @router.delete(
        "/delete/{activity_id}",
        responses={400: {"model": ApiErrorResponse}, 404: {"model": ApiErrorResponse}},
    )
    async def delete_activity(activity_id: str) -> ItemEnvelope:
        activity = await service.delete_activity(activity_id)
        return ItemEnvelope(message="Activity deleted successfully", data=activity)

    return router
