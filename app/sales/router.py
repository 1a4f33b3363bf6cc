"""FastAPI routers for sale orders and sale order details."""

from __future__ import annotations

from fastapi import APIRouter, Query

from app.api.contracts import ApiErrorResponse, ItemEnvelope, PageEnvelope
from app.sales.models import (
    SaleOrderCreateRequest,
    SaleOrderDetailCreateRequest,
    SaleOrderDetailUpdateRequest,
    SaleOrderUpdateRequest,
)
from app.sales.service import SaleOrderDetailService, SaleOrderService

_ERRORS = {400: {"model": ApiErrorResponse}, 404: {"model": ApiErrorResponse}}
_WRITE_ERRORS = {**_ERRORS, 500: {"model": ApiErrorResponse}}


def create_sales_router(service: SaleOrderService) -> APIRouter:
    """Build the ``/api/sales`` router."""
    router = APIRouter(prefix="/api/sales", tags=["sales"])

    @router.get("/lists", responses=_ERRORS)
    async def list_orders(
        page: str | None = Query(default=None),
        limit: str | None = Query(default=None),
        q: str = Query(default=""),
        statuses: str = Query(default=""),
        date_range: str = Query(default="", alias="dateRange"),
        from_: str = Query(default="", alias="from"),
        to: str = Query(default=""),
        sort_by: str = Query(default="", alias="sortBy"),
        sort: str = Query(default="desc"),
    ) -> PageEnvelope:
        """List orders with client/rep names and computed totals."""
        rows, meta = await service.list_orders(
            page=page,
            limit=limit,
            q=q,
            statuses=statuses,
            date_range=date_range,
            from_=from_,
            to=to,
            sort_by=sort_by,
            sort=sort,
        )
        return PageEnvelope.build(
            message="Sale orders retrieved successfully", rows=rows, meta=meta
        )

    @router.get("/lists/client/{token}", responses=_ERRORS)
    async def list_client_orders(
        token: str,
        page: str | None = Query(default=None),
        limit: str | None = Query(default=None),
        q: str = Query(default=""),
        statuses: str = Query(default=""),
        date_range: str = Query(default="", alias="dateRange"),
        from_: str = Query(default="", alias="from"),
        to: str = Query(default=""),
        sort_by: str = Query(default="", alias="sortBy"),
        sort: str = Query(default="desc"),
    ) -> PageEnvelope:
        """Orders of one client, addressed by name or externalId."""
        rows, meta = await service.list_client_orders(
            token,
            page=page,
            limit=limit,
            q=q,
            statuses=statuses,
            date_range=date_range,
            from_=from_,
            to=to,
            sort_by=sort_by,
            sort=sort,
        )
        return PageEnvelope.build(
            message="Client sale orders retrieved successfully", rows=rows, meta=meta
        )

    @router.get("/lists/{order_id}", responses=_ERRORS)
    async def get_order(order_id: str) -> ItemEnvelope:
        order = await service.get_order(order_id)
        return ItemEnvelope(message="Sale order retrieved successfully", data=order)

    @router.get("/latest-order-per-client")
    async def latest_order_per_client(
        page: str | None = Query(default=None),
        limit: str | None = Query(default=None),
    ) -> PageEnvelope:
        """One row per existing client: its most recent order."""
        rows, meta = await service.latest_order_per_client(page=page, limit=limit)
        return PageEnvelope.build(
            message="Latest orders retrieved successfully", rows=rows, meta=meta
        )

    @router.get("/orders-count-by-status")
    async def orders_count_by_status() -> ItemEnvelope:
        summary = await service.count_by_status()
        return ItemEnvelope(message="Order status counts retrieved", data=summary)

    @router.post("/", status_code=201, responses=_WRITE_ERRORS)
    async def create_order(req: SaleOrderCreateRequest) -> ItemEnvelope:
        """Create an order; OrderID and Label are assigned by the server."""
        order = await service.create_order(req)
        return ItemEnvelope(message="Sale order created successfully", data=order)

    @router.put("/update/{order_id}", responses=_ERRORS)
    async def update_order(order_id: str, req: SaleOrderUpdateRequest) -> ItemEnvelope:
        order = await service.update_order(order_id, req)
        return ItemEnvelope(message="Sale order updated successfully", data=order)

    @router.delete("/delete/{order_id}", responses=_ERRORS)
    async def delete_order(order_id: str) -> ItemEnvelope:
        order = await service.delete_order(order_id)
        return ItemEnvelope(message="Sale order deleted successfully", data=order)

    return router


def create_sale_order_details_router(service: SaleOrderDetailService) -> APIRouter:
    """Build the ``/api/sale-order-details`` router."""
    router = APIRouter(prefix="/api/sale-order-details", tags=["sale-order-details"])

    @router.get("/lists", responses=_ERRORS)
    async def list_details(
        page: str | None = Query(default=None),
        limit: str | None = Query(default=None),
        order_id: str = Query(default="", alias="orderId"),
        sort_by: str = Query(default="", alias="sortBy"),
        sort: str = Query(default="desc"),
    ) -> PageEnvelope:
        rows, meta = await service.list_details(
            page=page, limit=limit, order_id=order_id, sort_by=sort_by, sort=sort
        )
        return PageEnvelope.build(
            message="Sale order details retrieved successfully", rows=rows, meta=meta
        )

    @router.get("/lists/{detail_id}", responses=_ERRORS)
    async def get_detail(detail_id: str) -> ItemEnvelope:
        detail = await service.get_detail(detail_id)
        return ItemEnvelope(
            message="Sale order detail retrieved successfully", data=detail
        )

    @router.post("/", status_code=201, responses=_WRITE_ERRORS)
    async def create_detail(req: SaleOrderDetailCreateRequest) -> ItemEnvelope:
        """Add a line item to an existing order."""
        detail = await service.create_detail(req)
        return ItemEnvelope(message="Sale order detail created successfully", data=detail)

    @router.put("/update/{detail_id}", responses=_ERRORS)
    async def update_detail(
        detail_id: str, req: SaleOrderDetailUpdateRequest
    ) -> ItemEnvelope:
        detail = await service.update_detail(detail_id, req)
        return ItemEnvelope(message="Sale order detail updated successfully", data=detail)

    @router.delete("/delete/{detail_id}", responses=_ERRORS)
    async def delete_detail(detail_id: str) -> ItemEnvelope:
        detail = await service.delete_detail(detail_id)
        return ItemEnvelope(message="Sale order detail deleted successfully", data=detail)

    return router
