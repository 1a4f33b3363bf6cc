"""Business logic for sale orders and sale order line items."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable

from app.api.errors import ApiError, ApiErrorCode, not_found
from app.clients.repository import ClientRepository
from app.core.config import ReportingConfig
from app.core.mongo import CLIENTS_COLLECTION, parse_object_id, serialize_document
from app.reporting.dates import reporting_zone, resolve_window
from app.reporting.enrichment import JoinSpec, enrich_rows
from app.reporting.identifiers import resolve_client, resolve_user
from app.reporting.listing import ListQuery, paginate
from app.reporting.pagination import (
    PageMeta,
    PageRequest,
    build_page_meta,
    resolve_sort,
)
from app.reporting.predicates import combine, exact_filter, split_csv, text_search
from app.reporting.rollups import (
    fold_counts,
    group_details_by_order,
    grouped_values_pipeline,
    latest_order_per_client_pipeline,
    order_totals,
    ordered_breakdown,
    unpack_facet,
)
from app.reporting.tokens import LabelAllocator, allocate_unique, random_hex_token
from app.sales.models import (
    DETAIL_IMMUTABLE_FIELDS,
    DETAIL_SORT_FIELDS,
    ORDER_IMMUTABLE_FIELDS,
    ORDER_SEARCH_FIELDS,
    ORDER_SORT_FIELDS,
    ORDER_STATUSES,
    SaleOrderCreateRequest,
    SaleOrderDetailCreateRequest,
    SaleOrderDetailUpdateRequest,
    SaleOrderUpdateRequest,
)
from app.sales.repository import SaleOrderDetailRepository, SaleOrderRepository
from app.users.repository import UserRepository

ORDERS_DEFAULT_LIMIT = 100
ORDERS_MAX_LIMIT = 100
DETAILS_DEFAULT_LIMIT = 100
DETAILS_MAX_LIMIT = 100


def _order_not_found(order_ref: str) -> ApiError:
    return not_found(ApiErrorCode.ORDER_NOT_FOUND, f"Sale order not found: {order_ref}")


def _detail_not_found(detail_id: str) -> ApiError:
    return not_found(
        ApiErrorCode.ORDER_DETAIL_NOT_FOUND, f"Sale order detail not found: {detail_id}"
    )


class SaleOrderService:
    """Application service for sale order endpoints and order reports."""

    def __init__(
        self,
        *,
        repo: SaleOrderRepository,
        details: SaleOrderDetailRepository,
        clients: ClientRepository,
        users: UserRepository,
        labels: LabelAllocator,
        reporting: ReportingConfig,
        run_blocking: Callable[..., Awaitable[Any]],
        logger: logging.Logger,
    ) -> None:
        self._repo = repo
        self._details = details
        self._clients = clients
        self._users = users
        self._labels = labels
        self._reporting = reporting
        self._zone = reporting_zone(reporting.timezone)
        self._run_blocking = run_blocking
        self._logger = logger

    async def _enrich(
        self,
        rows: list[dict[str, Any]],
        details: list[dict[str, Any]] | None = None,
    ) -> list[dict[str, Any]]:
        """Attach client/rep display names and computed totals to a page.

        Passing ``details`` reuses line items the caller already loaded.
        """
        specs = [
            JoinSpec(
                field="ClientID",
                resolve=self._clients.names_by_external_id,
                target="clientName",
            ),
            JoinSpec(
                field="SalesRep",
                resolve=self._users.display_names_by_email,
                target="salesRepName",
            ),
        ]
        order_ids = [
            str(row.get("OrderID") or "").strip()
            for row in rows
            if str(row.get("OrderID") or "").strip()
        ]
        if details is None:
            enriched, details = await asyncio.gather(
                enrich_rows(rows, specs, run_blocking=self._run_blocking),
                self._run_blocking(self._details.find_for_orders, order_ids),
            )
        else:
            enriched = await enrich_rows(rows, specs, run_blocking=self._run_blocking)
        by_order = group_details_by_order(details)
        for row in enriched:
            lines = by_order.get(str(row.get("OrderID") or "").strip(), [])
            row.update(order_totals(row, lines))
        return [serialize_document(row) for row in enriched]

    async def list_orders(
        self,
        *,
        page: Any,
        limit: Any,
        q: str = "",
        statuses: str = "",
        date_range: str = "",
        from_: str = "",
        to: str = "",
        sort_by: str = "",
        sort: str = "",
        client_key: str | None = None,
    ) -> tuple[list[dict[str, Any]], PageMeta]:
        """Return one page of orders; names and totals are joined after paging."""
        query = ListQuery(
            filters=combine(
                {"ClientID": client_key} if client_key is not None else None,
                text_search(q, ORDER_SEARCH_FIELDS),
                exact_filter("OrderStatus", split_csv(statuses)),
            ),
            sort=resolve_sort(
                sort_by, sort, allowed=ORDER_SORT_FIELDS, default_field="TimeStamp"
            ),
            page=PageRequest.from_query(
                page,
                limit,
                default_limit=ORDERS_DEFAULT_LIMIT,
                max_limit=ORDERS_MAX_LIMIT,
            ),
            date_field="TimeStamp",
            window=resolve_window(date_range, from_, to, tz=self._zone),
            timezone=self._reporting.timezone,
        )
        rows, meta = await paginate(self._repo, query, run_blocking=self._run_blocking)
        return await self._enrich(rows), meta

    async def list_client_orders(
        self, token: str, **kwargs: Any
    ) -> tuple[list[dict[str, Any]], PageMeta]:
        client_key = await self._run_blocking(resolve_client, self._clients, token)
        return await self.list_orders(client_key=client_key, **kwargs)

    async def get_order(self, order_id: str) -> dict[str, Any]:
        """One order with its line items and computed totals."""
        oid = parse_object_id(order_id, entity="sale order")
        order = await self._run_blocking(self._repo.get, oid)
        if order is None:
            raise _order_not_found(order_id)
        key = str(order.get("OrderID") or "").strip()
        details = await self._run_blocking(
            self._details.find_for_orders, [key] if key else []
        )
        enriched = await self._enrich([order], details)
        result = enriched[0]
        result["details"] = [serialize_document(detail) for detail in details]
        return result

    async def latest_order_per_client(
        self, *, page: Any, limit: Any
    ) -> tuple[list[dict[str, Any]], PageMeta]:
        """The newest order of every client that still exists, newest first."""
        request = PageRequest.from_query(
            page, limit, default_limit=ORDERS_DEFAULT_LIMIT, max_limit=ORDERS_MAX_LIMIT
        )
        pipeline = latest_order_per_client_pipeline(
            clients_collection=CLIENTS_COLLECTION,
            skip=request.skip,
            limit=request.per_page,
            tz=self._reporting.timezone,
        )
        result = await self._run_blocking(self._repo.aggregate, pipeline)
        rows, total = unpack_facet(result)
        return await self._enrich(rows), build_page_meta(request, total)

    async def count_by_status(self) -> dict[str, Any]:
        grouped = await self._run_blocking(
            self._repo.aggregate, grouped_values_pipeline("OrderStatus")
        )
        buckets = fold_counts(
            ((row.get("_id"), row.get("count", 0)) for row in grouped), ORDER_STATUSES
        )
        return {
            "total": sum(buckets.values()),
            "byStatus": ordered_breakdown(buckets, ORDER_STATUSES, key="status"),
        }

    async def _allocate_order_id(self) -> str:
        return await self._run_blocking(
            allocate_unique,
            random_hex_token,
            self._repo.order_id_exists,
            attempts=self._reporting.unique_token_attempts,
            entity="OrderID",
        )

    async def create_order(self, req: SaleOrderCreateRequest) -> dict[str, Any]:
        """Resolve references, then allocate OrderID and Label and store the order."""
        payload = req.model_dump(mode="json")
        for field in ORDER_IMMUTABLE_FIELDS:
            payload.pop(field, None)
        client_key, rep_email = await asyncio.gather(
            self._run_blocking(resolve_client, self._clients, req.ClientID),
            self._run_blocking(resolve_user, self._users, req.SalesRep),
        )
        order_id = await self._allocate_order_id()
        label = await self._run_blocking(self._labels.next_label)
        now = datetime.now(timezone.utc)
        payload.update(
            OrderID=order_id,
            Label=label,
            ClientID=client_key,
            SalesRep=rep_email,
            TimeStamp=now,
            createdAt=now,
            updatedAt=now,
        )
        stored = await self._run_blocking(self._repo.insert, payload)
        self._logger.info(
            "sale_order_created",
            extra={"entity_id": order_id, "collection": self._repo.collection_name},
        )
        enriched = await self._enrich([stored])
        return enriched[0]

    async def update_order(
        self, order_id: str, req: SaleOrderUpdateRequest
    ) -> dict[str, Any]:
        oid = parse_object_id(order_id, entity="sale order")
        changes = req.model_dump(mode="json", exclude_unset=True, exclude_none=True)
        for field in ORDER_IMMUTABLE_FIELDS:
            changes.pop(field, None)
        if "ClientID" in changes:
            changes["ClientID"] = await self._run_blocking(
                resolve_client, self._clients, changes["ClientID"]
            )
        if "SalesRep" in changes:
            changes["SalesRep"] = await self._run_blocking(
                resolve_user, self._users, changes["SalesRep"]
            )
        changes["updatedAt"] = datetime.now(timezone.utc)
        updated = await self._run_blocking(self._repo.update, oid, changes)
        if updated is None:
            raise _order_not_found(order_id)
        enriched = await self._enrich([updated])
        return enriched[0]

    async def delete_order(self, order_id: str) -> dict[str, Any]:
        """Delete one order; its line items are left in place."""
        oid = parse_object_id(order_id, entity="sale order")
        deleted = await self._run_blocking(self._repo.delete, oid)
        if deleted is None:
            raise _order_not_found(order_id)
        return serialize_document(deleted)


class SaleOrderDetailService:
    """Application service for order line items."""

    def __init__(
        self,
        *,
        repo: SaleOrderDetailRepository,
        orders: SaleOrderRepository,
        reporting: ReportingConfig,
        run_blocking: Callable[..., Awaitable[Any]],
        logger: logging.Logger,
    ) -> None:
        self._repo = repo
        self._orders = orders
        self._reporting = reporting
        self._run_blocking = run_blocking
        self._logger = logger

    async def list_details(
        self,
        *,
        page: Any,
        limit: Any,
        order_id: str = "",
        sort_by: str = "",
        sort: str = "",
    ) -> tuple[list[dict[str, Any]], PageMeta]:
        key = order_id.strip()
        query = ListQuery(
            filters={"OrderID": key} if key else {},
            sort=resolve_sort(
                sort_by, sort, allowed=DETAIL_SORT_FIELDS, default_field="TimeStamp"
            ),
            page=PageRequest.from_query(
                page,
                limit,
                default_limit=DETAILS_DEFAULT_LIMIT,
                max_limit=DETAILS_MAX_LIMIT,
            ),
        )
        rows, meta = await paginate(self._repo, query, run_blocking=self._run_blocking)
        return [serialize_document(row) for row in rows], meta

    async def get_detail(self, detail_id: str) -> dict[str, Any]:
        oid = parse_object_id(detail_id, entity="sale order detail")
        detail = await self._run_blocking(self._repo.get, oid)
        if detail is None:
            raise _detail_not_found(detail_id)
        return serialize_document(detail)

    async def create_detail(self, req: SaleOrderDetailCreateRequest) -> dict[str, Any]:
        """Attach a line item to an existing order; RecordID is generated."""
        payload = req.model_dump(mode="json")
        payload.pop("RecordID", None)
        order = await self._run_blocking(self._orders.find_by_order_id, req.OrderID)
        if order is None:
            raise _order_not_found(req.OrderID)
        record_id = await self._run_blocking(
            allocate_unique,
            random_hex_token,
            self._repo.record_id_exists,
            attempts=self._reporting.unique_token_attempts,
            entity="RecordID",
        )
        now = datetime.now(timezone.utc)
        payload.update(
            RecordID=record_id,
            OrderID=str(order["OrderID"]),
            TimeStamp=now,
            createdAt=now,
            updatedAt=now,
        )
        stored = await self._run_blocking(self._repo.insert, payload)
        return serialize_document(stored)

    async def update_detail(
        self, detail_id: str, req: SaleOrderDetailUpdateRequest
    ) -> dict[str, Any]:
        oid = parse_object_id(detail_id, entity="sale order detail")
        changes = req.model_dump(mode="json", exclude_unset=True, exclude_none=True)
        for field in DETAIL_IMMUTABLE_FIELDS:
            changes.pop(field, None)
        changes["updatedAt"] = datetime.now(timezone.utc)
        updated = await self._run_blocking(self._repo.update, oid, changes)
        if updated is None:
            raise _detail_not_found(detail_id)
        return serialize_document(updated)

    async def delete_detail(self, detail_id: str) -> dict[str, Any]:
        oid = parse_object_id(detail_id, entity="sale order detail")
        deleted = await self._run_blocking(self._repo.delete, oid)
        if deleted is None:
            raise _detail_not_found(detail_id)
        return serialize_document(deleted)
