"""Dashboard reports over users, clients, activities and orders."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Any, Awaitable, Callable, Sequence

from app.activities.repository import ActivityRepository
from app.clients.models import COMPANY_TYPES, CONTACT_STATUSES, CONTACT_TYPES
from app.clients.repository import ClientRepository
from app.core.config import ReportingConfig
from app.reporting.dates import (
    DateWindow,
    current_month_window,
    reporting_zone,
    shift_months,
    trailing_month_starts,
)
from app.reporting.enrichment import user_display_name
from app.reporting.identifiers import resolve_client
from app.reporting.rollups import (
    client_order_stats,
    entity_totals_pipeline,
    fill_month_buckets,
    first_row_counts,
    fold_counts,
    group_details_by_order,
    grouped_values_pipeline,
    monthly_counts_pipeline,
    ranked_breakdown,
    top_users_pipeline,
)
from app.sales.models import ORDER_STATUSES
from app.sales.repository import SaleOrderDetailRepository, SaleOrderRepository
from app.users.repository import UserRepository

TOP_USERS_LIMIT = 5
MONTHLY_BUCKETS = 12

CLIENT_BREAKDOWNS: dict[str, tuple[str, Sequence[str]]] = {
    "contact-status": ("contactStatus", CONTACT_STATUSES),
    "company-type": ("companyType", COMPANY_TYPES),
    "contact-type": ("contactType", CONTACT_TYPES),
}


class AnalyticsService:
    """Read-only reports for the overview dashboard."""

    def __init__(
        self,
        *,
        users: UserRepository,
        clients: ClientRepository,
        activities: ActivityRepository,
        orders: SaleOrderRepository,
        details: SaleOrderDetailRepository,
        reporting: ReportingConfig,
        run_blocking: Callable[..., Awaitable[Any]],
        logger: logging.Logger,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._users = users
        self._clients = clients
        self._activities = activities
        self._orders = orders
        self._details = details
        self._reporting = reporting
        self._zone = reporting_zone(reporting.timezone)
        self._run_blocking = run_blocking
        self._logger = logger
        self._clock = clock or (lambda: datetime.now(self._zone))

    def _now(self) -> datetime:
        return self._clock().astimezone(self._zone)

    async def overview(self) -> dict[str, Any]:
        """All-time and current-month totals from six concurrent aggregates."""
        month = current_month_window(self._now())
        tz = self._reporting.timezone
        (
            user_totals,
            client_totals,
            activity_totals,
            user_month,
            client_month,
            activity_month,
        ) = await asyncio.gather(
            self._run_blocking(
                self._users.aggregate,
                entity_totals_pipeline(None, count_active=True, tz=tz),
            ),
            self._run_blocking(self._clients.aggregate, entity_totals_pipeline(None, tz=tz)),
            self._run_blocking(
                self._activities.aggregate, entity_totals_pipeline(None, tz=tz)
            ),
            self._run_blocking(
                self._users.aggregate,
                entity_totals_pipeline(month, count_active=True, tz=tz),
            ),
            self._run_blocking(
                self._clients.aggregate, entity_totals_pipeline(month, tz=tz)
            ),
            self._run_blocking(
                self._activities.aggregate, entity_totals_pipeline(month, tz=tz)
            ),
        )
        users_all = first_row_counts(user_totals, "count", "active")
        users_month = first_row_counts(user_month, "count", "active")
        return {
            "totals": {
                "totalUsers": users_all["count"],
                "activeUsers": users_all["active"],
                "totalClients": first_row_counts(client_totals, "count")["count"],
                "totalActivities": first_row_counts(activity_totals, "count")["count"],
            },
            "thisMonth": {
                "monthlyUsers": users_month["count"],
                "monthlyActiveUsers": users_month["active"],
                "monthlyClients": first_row_counts(client_month, "count")["count"],
                "monthlyActivities": first_row_counts(activity_month, "count")["count"],
                "monthStart": month.start.isoformat(),
                "monthEndExclusive": month.end.isoformat(),
            },
        }

    async def monthly_new_clients(self) -> tuple[list[dict[str, Any]], dict[str, Any]]:
        """New clients per month for the trailing twelve months, oldest first."""
        starts = trailing_month_starts(self._now(), MONTHLY_BUCKETS)
        window = DateWindow(start=starts[0], end=shift_months(starts[-1], 1))
        grouped = await self._run_blocking(
            self._clients.aggregate,
            monthly_counts_pipeline(
                "createdAt", window, tz=self._reporting.timezone
            ),
        )
        counts = {
            str(row.get("_id")): int(row.get("count", 0))
            for row in grouped
            if row.get("_id")
        }
        rows = [
            {"month": key, "newClients": count}
            for key, count in fill_month_buckets(starts, counts)
        ]
        meta = {
            "rangeStart": window.start.isoformat(),
            "rangeEndExclusive": window.end.isoformat(),
            "buckets": len(rows),
        }
        return rows, meta

    async def top_users(self) -> list[dict[str, Any]]:
        """Most active users; profiles are looked up after truncation."""
        ranked = await self._run_blocking(
            self._activities.aggregate,
            top_users_pipeline(limit=TOP_USERS_LIMIT, tz=self._reporting.timezone),
        )
        emails = [str(row.get("_id") or "") for row in ranked]
        profiles = await self._run_blocking(self._users.find_by_emails, emails)
        rows = []
        for entry, email in zip(ranked, emails):
            user = profiles.get(email.lower())
            last = entry.get("lastActivityAt")
            rows.append(
                {
                    "email": email,
                    "name": user_display_name(user, email),
                    "role": (user or {}).get("role"),
                    "status": (user or {}).get("status"),
                    "activityCount": int(entry.get("activityCount", 0)),
                    "lastActivityAt": last.isoformat() if last is not None else None,
                }
            )
        return rows

    async def client_breakdown(
        self, name: str
    ) -> tuple[list[dict[str, Any]], dict[str, Any]]:
        """Ranked ``{label, count, pct}`` rows for one client categorical field."""
        field, canonical = CLIENT_BREAKDOWNS[name]
        grouped = await self._run_blocking(
            self._clients.aggregate, grouped_values_pipeline(field)
        )
        buckets = fold_counts(
            ((row.get("_id"), row.get("count", 0)) for row in grouped), canonical
        )
        rows = ranked_breakdown(buckets)
        return rows, {"totalClients": sum(buckets.values()), "groups": len(rows)}

    async def client_order_stats(self, token: str) -> dict[str, Any]:
        """Lifetime order statistics for a client given by name or externalId."""
        client_key = await self._run_blocking(resolve_client, self._clients, token)
        client, orders = await asyncio.gather(
            self._run_blocking(self._clients.find_client_by_external_id, client_key),
            self._run_blocking(self._orders.find_by_client, client_key),
        )
        order_ids = [
            str(order.get("OrderID") or "").strip()
            for order in orders
            if str(order.get("OrderID") or "").strip()
        ]
        details = await self._run_blocking(self._details.find_for_orders, order_ids)
        stats = client_order_stats(
            orders, group_details_by_order(details), ORDER_STATUSES, tz=self._zone
        )
        return {
            "externalId": client_key,
            "clientName": (client or {}).get("name"),
            **stats,
        }
