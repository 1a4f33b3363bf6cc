"""Resolve loosely typed client/user references to their canonical keys."""

from __future__ import annotations

from typing import Any, Protocol

from app.api.errors import ApiErrorCode, not_found


class ClientDirectory(Protocol):
    """Lookups needed to resolve a client token to its externalId."""

    def find_client_by_external_id(self, external_id: str) -> dict[str, Any] | None:
        """Exact externalId match."""

    def find_client_by_name(self, name: str) -> dict[str, Any] | None:
        """Whole-name match, case-insensitive but accent-exact."""


class UserDirectory(Protocol):
    """Lookups needed to resolve a user token to its email."""

    def find_user_by_email(self, email: str) -> dict[str, Any] | None:
        """Exact (lower-cased) email match."""

    def find_user_by_name(self, name: str) -> dict[str, Any] | None:
        """Whole-name match, case-insensitive but accent-exact."""


def resolve_client(directory: ClientDirectory, token: Any) -> str:
    """Return the externalId for an externalId or a client name."""
    value = str(token or "").strip()
    if not value:
        raise not_found(ApiErrorCode.CLIENT_NOT_FOUND, "Client reference is empty")

    client = directory.find_client_by_external_id(value)
    if client is None:
        client = directory.find_client_by_name(value)
    external_id = str((client or {}).get("externalId") or "").strip()
    if not external_id:
        raise not_found(ApiErrorCode.CLIENT_NOT_FOUND, f"Client not found: {value}")
    return external_id


def resolve_user(directory: UserDirectory, token: Any) -> str:
    """Return the email for an email address or a user display name."""
    value = str(token or "").strip()
    if not value:
        raise not_found(ApiErrorCode.USER_NOT_FOUND, "User reference is empty")

    user = directory.find_user_by_email(value.lower())
    if user is None:
        user = directory.find_user_by_name(value)
    email = str((user or {}).get("email") or "").strip().lower()
    if not email:
        raise not_found(ApiErrorCode.USER_NOT_FOUND, f"User not found: {value}")
    return email
