from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

import pytest
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from pymongo.errors import PyMongoError, ServerSelectionTimeoutError
from starlette.requests import Request
from starlette.responses import Response

from app.api.http_setup import (
    error_response,
    register_exception_handlers,
    register_http_middleware,
)
from tests.app_settings import make_config

LOGGER = logging.getLogger(__name__)


@pytest.fixture
def app() -> FastAPI:
    app = FastAPI()
    register_http_middleware(app, config=make_config(request_max_bytes=8), logger=LOGGER)
    register_exception_handlers(app, logger=LOGGER)
    return app


def _request(path: str, method: str = "GET", **headers: str) -> Request:
    scope: dict[str, Any] = {
        "type": "http",
        "method": method,
        "path": path,
        "query_string": b"",
        "headers": [(k.replace("_", "-").encode(), v.encode()) for k, v in headers.items()],
    }
    return Request(scope)


async def _ok(_: Request) -> Response:
    return Response("ok")


def _middleware(app: FastAPI, name: str):
    for item in app.user_middleware:
        dispatch = item.kwargs.get("dispatch")
        if getattr(dispatch, "__name__", "") == name:
            return dispatch
    raise AssertionError(f"middleware {name} not registered")


def _handle(app: FastAPI, exc_type: type, exc: Exception, path: str = "/api/x") -> tuple[int, dict[str, Any]]:
    response = asyncio.run(app.exception_handlers[exc_type](_request(path), exc))
    return response.status_code, json.loads(response.body)


def test_error_response_builds_failure_envelope() -> None:
    response = error_response(404, "CLIENT_NOT_FOUND", "Client not found: x")

    assert response.status_code == 404
    assert json.loads(response.body) == {
        "success": False,
        "error_code": "CLIENT_NOT_FOUND",
        "message": "Client not found: x",
    }


def test_logging_middleware_echoes_request_id_and_sets_headers(app: FastAPI) -> None:
    dispatch = _middleware(app, "request_logging_middleware")

    response = asyncio.run(dispatch(_request("/api/health", x_request_id="req-123"), _ok))

    assert response.headers["X-Request-ID"] == "req-123"
    assert response.headers["Referrer-Policy"] == "no-referrer"
    assert response.headers["X-Content-Type-Options"] == "nosniff"


def test_logging_middleware_generates_request_id(app: FastAPI) -> None:
    dispatch = _middleware(app, "request_logging_middleware")

    response = asyncio.run(dispatch(_request("/api/health"), _ok))

    assert len(response.headers["X-Request-ID"]) == 32


def test_size_limit_rejects_declared_oversized_body(app: FastAPI) -> None:
    dispatch = _middleware(app, "request_size_limit_middleware")

    response = asyncio.run(dispatch(_request("/api/clients", "POST", content_length="20"), _ok))

    assert response.status_code == 413
    assert json.loads(response.body)["error_code"] == "REQUEST_TOO_LARGE"


def test_size_limit_ignores_garbage_content_length(app: FastAPI) -> None:
    dispatch = _middleware(app, "request_size_limit_middleware")

    response = asyncio.run(dispatch(_request("/api/clients", "POST", content_length="abc"), _ok))

    assert response.status_code == 200


def test_http_exception_keeps_structured_detail(app: FastAPI) -> None:
    exc = HTTPException(404, detail={"error_code": "CLIENT_NOT_FOUND", "message": "missing"})

    status, body = _handle(app, HTTPException, exc)

    assert status == 404
    assert body == {"success": False, "error_code": "CLIENT_NOT_FOUND", "message": "missing"}


def test_validation_errors_become_400_with_field_summary(app: FastAPI) -> None:
    exc = RequestValidationError(
        [{"loc": ("body", "name"), "msg": "Field required", "type": "missing"}]
    )

    status, body = _handle(app, RequestValidationError, exc)

    assert status == 400
    assert body["error_code"] == "VALIDATION_ERROR"
    assert body["message"] == "name: Field required"


def test_store_errors_hide_driver_message(app: FastAPI) -> None:
    status, body = _handle(app, PyMongoError, ServerSelectionTimeoutError("no servers"))

    assert status == 500
    assert body["error_code"] == "STORE_ERROR"
    assert "no servers" not in body["message"]


def test_unexpected_errors_map_to_internal_server_error(app: FastAPI) -> None:
    status, body = _handle(app, Exception, RuntimeError("boom"))

    assert status == 500
    assert body["error_code"] == "INTERNAL_SERVER_ERROR"
