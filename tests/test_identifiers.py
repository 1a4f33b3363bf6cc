from __future__ import annotations

import pytest

from app.api.errors import ApiError, ApiErrorCode
from app.clients.repository import ClientRepository
from app.reporting.identifiers import resolve_client, resolve_user
from app.users.repository import UserRepository
from tests.fake_mongo import FakeCollection


def _clients() -> ClientRepository:
    return ClientRepository(
        FakeCollection(
            "clients",
            [
                {"externalId": "AB12XYZ", "name": "Acme Corp"},
                {"externalId": "ZZ99QQQ", "name": "Beta LLC"},
            ],
        )
    )


def _users() -> UserRepository:
    return UserRepository(
        FakeCollection(
            "usersdb",
            [{"email": "jane@example.com", "name": "Jane Doe", "password": "x"}],
        )
    )


@pytest.mark.parametrize("token", ["AB12XYZ", "Acme Corp", "acme corp", "  Acme Corp "])
def test_resolve_client_by_external_id_or_name(token: str) -> None:
    assert resolve_client(_clients(), token) == "AB12XYZ"


@pytest.mark.parametrize("token", ["Nonexistent", "", None, "Acme"])
def test_resolve_client_unknown_is_not_found(token: object) -> None:
    with pytest.raises(ApiError) as exc_info:
        resolve_client(_clients(), token)

    assert exc_info.value.status_code == 404
    assert exc_info.value.detail["error_code"] == ApiErrorCode.CLIENT_NOT_FOUND


@pytest.mark.parametrize("token", ["jane@example.com", "JANE@example.com", "Jane Doe"])
def test_resolve_user_by_email_or_name(token: str) -> None:
    assert resolve_user(_users(), token) == "jane@example.com"


def test_resolve_user_unknown_is_not_found() -> None:
    with pytest.raises(ApiError) as exc_info:
        resolve_user(_users(), "ghost@example.com")

    assert exc_info.value.detail["error_code"] == ApiErrorCode.USER_NOT_FOUND
