"""FastAPI router for client endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Query, Request

from app.api.contracts import (
    ApiErrorResponse,
    ItemEnvelope,
    ListEnvelope,
    PageEnvelope,
    StatusSummaryResponse,
)
from app.auth.middleware import current_principal
from app.clients.models import (
    ClientCreateRequest,
    ClientStatusUpdateRequest,
    ClientUpdateRequest,
)
from app.clients.service import ClientService

_NOT_FOUND = {400: {"model": ApiErrorResponse}, 404: {"model": ApiErrorResponse}}


class ClientsRouter:
    """Factory wrapper that builds the clients router from a service."""

    def __init__(self, service: ClientService) -> None:
        self._service = service

    def build(self) -> APIRouter:
        """Create and return the ``/api/clients`` router."""
        router = APIRouter(prefix="/api/clients", tags=["clients"])

        @router.get("/lists", responses=_NOT_FOUND)
        async def list_clients(
            page: str | None = Query(default=None),
            limit: str | None = Query(default=None),
            q: str = Query(default=""),
            statuses: str = Query(default=""),
            states: str = Query(default=""),
            owned_by: str = Query(default="", alias="ownedBy"),
            sort_by: str = Query(default="", alias="sortBy"),
            sort: str = Query(default="desc"),
        ) -> PageEnvelope:
            """List clients filtered by text, status, state and owner."""
            rows, meta = await self._service.list_clients(
                page=page,
                limit=limit,
                q=q,
                statuses=statuses,
                states=states,
                owned_by=owned_by,
                sort_by=sort_by,
                sort=sort,
            )
            return PageEnvelope.build(
                message="Clients retrieved successfully", rows=rows, meta=meta
            )

        @router.get("/lists/names")
        async def list_client_names(
            q: str = Query(default=""),
            limit: str | None = Query(default=None),
        ) -> ListEnvelope:
            """Id, externalId and name rows for pickers."""
            rows = await self._service.list_names(q=q, limit=limit)
            return ListEnvelope(message="Client names retrieved successfully", data=rows)

        @router.get("/lists/summary")
        async def clients_status_summary() -> StatusSummaryResponse:
            summary = await self._service.status_summary()
            return StatusSummaryResponse(
                total=summary["total"],
                by_status=summary["byStatus"],
                generated_at=summary["generatedAt"],
            )

        @router.get("/lists/activities/{token}", responses=_NOT_FOUND)
        async def list_client_activities(
            token: str,
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
            """Activities of one client, addressed by name or externalId."""
            rows, meta = await self._service.list_client_activities(
                token,
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
                message="Client activities retrieved successfully", rows=rows, meta=meta
            )

        @router.get("/lists/{client_id}", responses=_NOT_FOUND)
        async def get_client(client_id: str) -> ItemEnvelope:
            client = await self._service.get_client(client_id)
            return ItemEnvelope(message="Client retrieved successfully", data=client)

        @router.post(
            "/",
            status_code=201,
            responses={**_NOT_FOUND, 500: {"model": ApiErrorResponse}},
        )
        async def create_client(
            req: ClientCreateRequest, request: Request
        ) -> ItemEnvelope:
            """Create a client; ``externalId`` is generated when omitted."""
            client = await self._service.create_client(
                req, principal=current_principal(request)
            )
            return ItemEnvelope(message="Client created successfully", data=client)

        @router.put("/update/{client_id}", responses=_NOT_FOUND)
        async def update_client(client_id: str, req: ClientUpdateRequest) -> ItemEnvelope:
            client = await self._service.update_client(client_id, req)
            return ItemEnvelope(message="Client updated successfully", data=client)

        @router.put("/update-status/{client_id}", responses=_NOT_FOUND)
        async def update_client_status(
            client_id: str, req: ClientStatusUpdateRequest, request: Request
        ) -> ItemEnvelope:
            """Change contact status and log the transition."""
            client = await self._service.update_status(
                client_id, req, principal=current_principal(request)
            )
            return ItemEnvelope(
                message="Client status updated successfully", data=client
            )

        @router.delete("/delete/{client_id}", responses=_NOT_FOUND)
        async def delete_client(client_id: str) -> ItemEnvelope:
            client = await self._service.delete_client(client_id)
            return ItemEnvelope(message="Client deleted successfully", data=client)

        return router
