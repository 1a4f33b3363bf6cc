"""FastAPI router for user endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Query

from app.api.contracts import ApiErrorResponse, ItemEnvelope, PageEnvelope
from app.users.models import UserCreateRequest, UserUpdateRequest
from app.users.service import UserService


def create_users_router(service: UserService) -> APIRouter:
    """Build the ``/api/users`` router."""
    router = APIRouter(prefix="/api/users", tags=["users"])

    @router.get("/lists", responses={400: {"model": ApiErrorResponse}})
    async def list_users(
        page: str | None = Query(default=None),
        limit: str | None = Query(default=None),
        q: str = Query(default=""),
        role: str = Query(default=""),
        status: str = Query(default=""),
        sort_by: str = Query(default="", alias="sortBy"),
        sort: str = Query(default="desc"),
    ) -> PageEnvelope:
        """List users with search, role/status filters and pagination."""
        rows, meta = await service.list_users(
            page=page,
            limit=limit,
            q=q,
            role=role,
            status=status,
            sort_by=sort_by,
            sort=sort,
        )
        return PageEnvelope.build(
            message="Users retrieved successfully", rows=rows, meta=meta
        )

    @router.get(
        "/lists/{user_id}",
        responses={400: {"model": ApiErrorResponse}, 404: {"model": ApiErrorResponse}},
    )
    async def get_user(user_id: str) -> ItemEnvelope:
        user = await service.get_user(user_id)
        return ItemEnvelope(message="User retrieved successfully", data=user)

    @router.post(
        "/", status_code=201, responses={400: {"model": ApiErrorResponse}}
    )
    async def create_user(req: UserCreateRequest) -> ItemEnvelope:
        user = await service.create_user(req)
        return ItemEnvelope(message="User created successfully", data=user)

    @router.put(
        "/update/{user_id}",
        responses={400: {"model": ApiErrorResponse}, 404: {"model": ApiErrorResponse}},
    )
    async def update_user(user_id: str, req: UserUpdateRequest) -> ItemEnvelope:
        user = await service.update_user(user_id, req)
        return ItemEnvelope(message="User updated successfully", data=user)

    @router.delete(
        "/delete/{user_id}",
        responses={400: {"model": ApiErrorResponse}, 404: {"model": ApiErrorResponse}},
    )
    async def delete_user(user_id: str) -> ItemEnvelope:
        user = await service.delete_user(user_id)
        return ItemEnvelope(message="User deleted successfully", data=user)

    return router
