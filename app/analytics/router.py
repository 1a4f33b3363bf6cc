"""FastAPI router for the overview dashboard reports."""

from __future__ import annotations

from fastapi import APIRouter

from app.analytics.service import AnalyticsService
from app.api.contracts import ApiErrorResponse, ItemEnvelope, ListEnvelope


def create_overview_router(service: AnalyticsService) -> APIRouter:
    """Build the ``/api/overview`` router."""
    router = APIRouter(prefix="/api/overview", tags=["overview"])

    @router.get("/")
    async def overview() -> ItemEnvelope:
        """Totals and current-month counts for users, clients and activities."""
        data = await service.overview()
        return ItemEnvelope(message="Overview Fetched Successfully", data=data)

    @router.get("/clients")
    async def monthly_new_clients() -> ListEnvelope:
        rows, meta = await service.monthly_new_clients()
        return ListEnvelope(
            message="Monthly new clients (last 12 months)", data=rows, meta=meta
        )

    @router.get("/top-users")
    async def top_users() -> ListEnvelope:
        rows = await service.top_users()
        return ListEnvelope(
            message="Top users by activity", data=rows, meta={"limit": len(rows)}
        )

    @router.get("/contact-status-breakdown")
    async def contact_status_breakdown() -> ListEnvelope:
        rows, meta = await service.client_breakdown("contact-status")
        return ListEnvelope(message="Contact status breakdown", data=rows, meta=meta)

    @router.get("/company-type-breakdown")
    async def company_type_breakdown() -> ListEnvelope:
        rows, meta = await service.client_breakdown("company-type")
        return ListEnvelope(message="Company type breakdown", data=rows, meta=meta)

    @router.get("/contact-type-breakdown")
    async def contact_type_breakdown() -> ListEnvelope:
        rows, meta = await service.client_breakdown("contact-type")
        return ListEnvelope(message="Contact type breakdown", data=rows, meta=meta)

    @router.get(
        "/client-orders-stats/{token}",
        responses={404: {"model": ApiErrorResponse}},
    )
    async def client_orders_stats(token: str) -> ItemEnvelope:
        """Order count, revenue and status mix for one client."""
        stats = await service.client_order_stats(token)
        return ItemEnvelope(message="Client order stats retrieved", data=stats)

    return router
