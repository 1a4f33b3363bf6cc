"""Business logic for user endpoints."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable

from pymongo.errors import DuplicateKeyError

from app.api.errors import ApiError, ApiErrorCode, not_found
from app.core.mongo import parse_object_id, serialize_document
from app.core.security import hash_password
from app.reporting.listing import ListQuery, paginate
from app.reporting.pagination import PageMeta, PageRequest, resolve_sort
from app.reporting.predicates import combine, exact_filter, split_csv, text_search
from app.users.models import (
    USER_SEARCH_FIELDS,
    USER_SORT_FIELDS,
    UserCreateRequest,
    UserUpdateRequest,
)
from app.users.repository import UserRepository

USERS_DEFAULT_LIMIT = 20
USERS_MAX_LIMIT = 20


def _email_taken(email: str) -> ApiError:
    return ApiError(
        status_code=400,
        error_code=ApiErrorCode.USER_EMAIL_TAKEN,
        message=f"Email already registered: {email}",
    )


class UserService:
    """Application service for user CRUD and listing."""

    def __init__(
        self,
        *,
        repo: UserRepository,
        run_blocking: Callable[..., Awaitable[Any]],
        logger: logging.Logger,
    ) -> None:
        self._repo = repo
        self._run_blocking = run_blocking
        self._logger = logger

    async def list_users(
        self,
        *,
        page: Any,
        limit: Any,
        q: str = "",
        role: str = "",
        status: str = "",
        sort_by: str = "",
        sort: str = "",
    ) -> tuple[list[dict[str, Any]], PageMeta]:
        """Return one page of users; passwords are never projected."""
        filters = combine(
            text_search(q, USER_SEARCH_FIELDS),
            exact_filter("role", split_csv(role)),
            exact_filter("status", split_csv(status)),
        )
        query = ListQuery(
            filters=filters,
            sort=resolve_sort(
                sort_by, sort, allowed=USER_SORT_FIELDS, default_field="createdAt"
            ),
            page=PageRequest.from_query(
                page, limit, default_limit=USERS_DEFAULT_LIMIT, max_limit=USERS_MAX_LIMIT
            ),
        )
        rows, meta = await paginate(self._repo, query, run_blocking=self._run_blocking)
        return [serialize_document(row) for row in rows], meta

    async def get_user(self, user_id: str) -> dict[str, Any]:
        oid = parse_object_id(user_id, entity="user")
        user = await self._run_blocking(self._repo.get, oid)
        if user is None:
            raise not_found(ApiErrorCode.USER_NOT_FOUND, f"User not found: {user_id}")
        return serialize_document(user)

    async def create_user(self, req: UserCreateRequest) -> dict[str, Any]:
        payload = req.model_dump(mode="json")
        email = payload["email"].lower()
        if await self._run_blocking(self._repo.email_taken, email):
            raise _email_taken(email)
        now = datetime.now(timezone.utc)
        payload.update(
            email=email,
            password=hash_password(req.password),
            createdAt=now,
            updatedAt=now,
        )
        # The unique email index still rejects a write that races the check above.
        try:
            stored = await self._run_blocking(self._repo.insert, payload)
        except DuplicateKeyError as exc:
            raise _email_taken(email) from exc
        return serialize_document(stored)

    async def update_user(self, user_id: str, req: UserUpdateRequest) -> dict[str, Any]:
        oid = parse_object_id(user_id, entity="user")
        changes = req.model_dump(mode="json", exclude_unset=True, exclude_none=True)
        if "email" in changes:
            changes["email"] = changes["email"].lower()
            if await self._run_blocking(
                self._repo.email_taken, changes["email"], exclude_id=oid
            ):
                raise _email_taken(changes["email"])
        if "password" in changes:
            changes["password"] = hash_password(changes["password"])
        changes["updatedAt"] = datetime.now(timezone.utc)
        try:
            updated = await self._run_blocking(self._repo.update, oid, changes)
        except DuplicateKeyError as exc:
            raise _email_taken(changes.get("email", "")) from exc
        if updated is None:
            raise not_found(ApiErrorCode.USER_NOT_FOUND, f"User not found: {user_id}")
        return serialize_document(updated)

    async def delete_user(self, user_id: str) -> dict[str, Any]:
        oid = parse_object_id(user_id, entity="user")
        deleted = await self._run_blocking(self._repo.delete, oid)
        if deleted is None:
            raise not_found(ApiErrorCode.USER_NOT_FOUND, f"User not found: {user_id}")
        self._logger.info("user_deleted", extra={"entity_id": user_id})
        return serialize_document(deleted)
