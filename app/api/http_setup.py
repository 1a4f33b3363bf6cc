"""Request middleware and the error envelope handlers shared by every router."""

from __future__ import annotations

import uuid
from typing import Any

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pymongo.errors import PyMongoError

from app.api.contracts import ApiErrorResponse
from app.api.errors import ApiErrorCode, to_error_payload
from app.core.config import AppConfig
from app.core.logging import set_correlation_id

RESPONSE_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "Referrer-Policy": "no-referrer",
}


def error_response(status_code: int, error_code: str, message: str) -> JSONResponse:
    """``{success: false, error_code, message}`` with the given status."""
    body = ApiErrorResponse(error_code=error_code, message=message)
    return JSONResponse(status_code=status_code, content=body.model_dump())


def _request_context(request: Request, status_code: int) -> dict[str, Any]:
    return {
        "path": request.url.path,
        "method": request.method,
        "status_code": status_code,
    }


def _describe_validation_error(exc: RequestValidationError) -> str:
    """Flatten pydantic errors into one readable line."""
    parts: list[str] = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ()) if item != "body")
        message = str(error.get("msg") or "invalid value")
        parts.append(f"{location}: {message}" if location else message)
    return "; ".join(parts) or "Invalid request"


def _declared_length(request: Request) -> int:
    try:
        return int(request.headers.get("content-length") or 0)
    except ValueError:
        return 0


def register_http_middleware(app: FastAPI, *, config: AppConfig, logger: Any) -> None:
    """Body size cap, correlation ids and access logging."""
    max_bytes = config.security.request_max_bytes

    @app.middleware("http")
    async def request_size_limit_middleware(request: Request, call_next):
        if _declared_length(request) > max_bytes:
            return error_response(
                413,
                ApiErrorCode.REQUEST_TOO_LARGE,
                f"Request body exceeds {max_bytes} bytes",
            )
        return await call_next(request)

    @app.middleware("http")
    async def request_logging_middleware(request: Request, call_next):
        correlation_id = (
            request.headers.get("x-request-id")
            or request.headers.get("x-correlation-id")
            or uuid.uuid4().hex
        )
        set_correlation_id(correlation_id)
        response = await call_next(request)
        response.headers["X-Request-ID"] = correlation_id
        response.headers.update(RESPONSE_HEADERS)
        logger.info(
            "request_completed",
            extra=_request_context(request, response.status_code),
        )
        return response


def register_exception_handlers(app: FastAPI, *, logger: Any) -> None:
    """Map every failure onto the error envelope."""

    @app.exception_handler(HTTPException)
    async def handle_http_exception(
        request: Request, exc: HTTPException
    ) -> JSONResponse:
        payload = to_error_payload(exc.detail, exc.status_code)
        logger.warning(
            "http_exception", extra=_request_context(request, exc.status_code)
        )
        return error_response(exc.status_code, payload["error_code"], payload["message"])

    @app.exception_handler(RequestValidationError)
    async def handle_validation_exception(
        request: Request,
        exc: RequestValidationError,
    ) -> JSONResponse:
        logger.warning("validation_exception", extra=_request_context(request, 400))
        return error_response(
            400, ApiErrorCode.VALIDATION_ERROR, _describe_validation_error(exc)
        )

    @app.exception_handler(PyMongoError)
    async def handle_store_exception(
        request: Request,
        exc: PyMongoError,
    ) -> JSONResponse:
        logger.exception("store_exception", extra=_request_context(request, 500))
        return error_response(500, ApiErrorCode.STORE_ERROR, "Database operation failed")

    @app.exception_handler(Exception)
    async def handle_unexpected_exception(
        request: Request,
        exc: Exception,
    ) -> JSONResponse:
        logger.exception(
            "unexpected_exception", extra=_request_context(request, 500)
        )
        return error_response(
            500,
            ApiErrorCode.INTERNAL_SERVER_ERROR,
            str(exc) or "Internal server error",
        )
