from __future__ import annotations

import asyncio
import json
from typing import Any

import pytest
from starlette.requests import Request
from starlette.responses import Response

from app.auth.middleware import create_auth_middleware, current_principal, extract_bearer_token
from app.auth.service import AuthService
from app.core.security import hash_password
from app.users.repository import UserRepository
from tests.app_settings import make_config
from tests.fake_mongo import FakeCollection


def _service(enabled: bool = True) -> AuthService:
    users = FakeCollection(
        "usersdb",
        [{"email": "jane@example.com", "status": "active", "password": hash_password("pw1234")}],
    )
    return AuthService(UserRepository(users), make_config(auth_enabled=enabled).auth)


def _request(path: str, method: str = "GET", token: str = "") -> Request:
    headers = [(b"authorization", f"Bearer {token}".encode())] if token else []
    scope: dict[str, Any] = {
        "type": "http",
        "method": method,
        "path": path,
        "headers": headers,
        "query_string": b"",
    }
    return Request(scope)


def _run(service: AuthService, request: Request) -> tuple[Response, list[Request]]:
    seen: list[Request] = []

    async def call_next(inner: Request) -> Response:
        seen.append(inner)
        return Response("ok")

    response = asyncio.run(create_auth_middleware(service)(request, call_next))
    return response, seen


@pytest.mark.parametrize(
    ("header", "expected"),
    [("Bearer abc", "abc"), ("bearer  abc ", "abc"), ("Basic abc", ""), (None, ""), ("Bearer", "")],
)
def test_extract_bearer_token(header: str | None, expected: str) -> None:
    assert extract_bearer_token(header) == expected


@pytest.mark.parametrize(
    ("path", "method"),
    [("/api/health", "GET"), ("/api/auth/login/", "POST"), ("/docs", "GET"), ("/api/clients/lists", "OPTIONS")],
)
def test_public_paths_pass_without_token(path: str, method: str) -> None:
    response, seen = _run(_service(), _request(path, method))

    assert response.status_code == 200
    assert len(seen) == 1


def test_missing_token_is_rejected() -> None:
    response, seen = _run(_service(), _request("/api/clients/lists"))

    assert response.status_code == 401
    assert json.loads(response.body)["error_code"] == "AUTH_MISSING_TOKEN"
    assert seen == []


def test_invalid_token_is_rejected() -> None:
    response, _ = _run(_service(), _request("/api/clients/lists", token="a.b.c"))

    assert response.status_code == 401
    assert json.loads(response.body)["error_code"] == "AUTH_TOKEN_INVALID"


def test_valid_token_attaches_principal() -> None:
    service = _service()
    token = service.login("jane@example.com", "pw1234").token

    response, seen = _run(service, _request("/api/clients/lists", token=token))

    assert response.status_code == 200
    assert current_principal(seen[0]) == "jane@example.com"


def test_disabled_auth_lets_everything_through() -> None:
    response, seen = _run(_service(enabled=False), _request("/api/clients/lists"))

    assert response.status_code == 200
    assert current_principal(seen[0]) == ""
