from __future__ import annotations

from fastapi import FastAPI
from fastapi.routing import APIRoute

from tests.app_settings import make_config
from tests.fake_mongo import FakeDatabase
from web_api import create_app


def _app() -> FastAPI:
    return create_app(make_config(), FakeDatabase())


def test_health_endpoint_contract_function() -> None:
    app = _app()
    route = next(
        (
            candidate
            for candidate in app.routes
            if isinstance(candidate, APIRoute) and candidate.path == "/api/health"
        ),
        None,
    )

    assert route is not None
    payload = route.endpoint()
    assert payload.model_dump() == {"status": "ok"}


def test_create_app_applies_migrations() -> None:
    db = FakeDatabase()

    create_app(make_config(), db)

    assert db["schema_migrations"].docs


def test_openapi_lists_every_resource() -> None:
    paths = _app().openapi()["paths"]

    for path in (
        "/api/auth/login",
        "/api/users/lists",
        "/api/clients/lists",
        "/api/clients/lists/summary",
        "/api/clients/lists/activities/{token}",
        "/api/activities/lists",
        "/api/activities/summary",
        "/api/sales/lists",
        "/api/sales/latest-order-per-client",
        "/api/sales/orders-count-by-status",
        "/api/sale-order-details/lists",
        "/api/overview/",
        "/api/overview/client-orders-stats/{token}",
    ):
        assert path in paths, path


def test_openapi_contains_error_contract_for_not_found() -> None:
    schema = _app().openapi()
    client_get = schema["paths"]["/api/clients/lists/{client_id}"]["get"]

    assert client_get["responses"]["404"]["content"]["application/json"]["schema"][
        "$ref"
    ].endswith("ApiErrorResponse")


def test_openapi_envelopes_use_camel_case() -> None:
    schema = _app().openapi()
    page = schema["components"]["schemas"]["PageEnvelope"]["properties"]

    assert {"perPage", "totalPages", "hasPrev", "hasNext"} <= set(page)
    login = schema["paths"]["/api/auth/login"]["post"]
    assert login["responses"]["401"]["content"]["application/json"]["schema"][
        "$ref"
    ].endswith("ApiErrorResponse")
