"""Error codes and the exception type every service raises."""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from fastapi import HTTPException


class ApiErrorCode(StrEnum):
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_ID = "INVALID_ID"
    AUTH_MISSING_TOKEN = "AUTH_MISSING_TOKEN"
    AUTH_INVALID_CREDENTIALS = "AUTH_INVALID_CREDENTIALS"
    AUTH_ACCOUNT_INACTIVE = "AUTH_ACCOUNT_INACTIVE"
    AUTH_TOKEN_INVALID = "AUTH_TOKEN_INVALID"
    CLIENT_NOT_FOUND = "CLIENT_NOT_FOUND"
    USER_NOT_FOUND = "USER_NOT_FOUND"
    USER_EMAIL_TAKEN = "USER_EMAIL_TAKEN"
    ACTIVITY_NOT_FOUND = "ACTIVITY_NOT_FOUND"
    ORDER_NOT_FOUND = "ORDER_NOT_FOUND"
    ORDER_DETAIL_NOT_FOUND = "ORDER_DETAIL_NOT_FOUND"
    ALLOCATION_EXHAUSTED = "ALLOCATION_EXHAUSTED"
    STORE_ERROR = "STORE_ERROR"
    REQUEST_TOO_LARGE = "REQUEST_TOO_LARGE"
    INTERNAL_SERVER_ERROR = "INTERNAL_SERVER_ERROR"


class ApiError(HTTPException):
    """``HTTPException`` whose detail is always ``{error_code, message}``."""

    def __init__(
        self, *, status_code: int, error_code: ApiErrorCode, message: str
    ) -> None:
        detail = {"error_code": str(error_code), "message": message}
        super().__init__(status_code=status_code, detail=detail)


def not_found(error_code: ApiErrorCode, message: str) -> ApiError:
    return ApiError(status_code=404, error_code=error_code, message=message)


def validation_error(message: str) -> ApiError:
    return ApiError(
        status_code=400, error_code=ApiErrorCode.VALIDATION_ERROR, message=message
    )


def to_error_payload(detail: Any, status_code: int) -> dict[str, Any]:
    """Coerce any ``HTTPException.detail`` into the failure envelope.

    Starlette raises plain-string details (404 for unknown routes, 405), so
    those get a synthetic ``HTTP_<status>`` code.
    """
    fallback_code = f"HTTP_{status_code}"
    if not isinstance(detail, dict):
        return {
            "success": False,
            "error_code": fallback_code,
            "message": str(detail or "HTTP error"),
        }
    return {
        "success": False,
        "error_code": str(detail.get("error_code") or fallback_code),
        "message": str(detail.get("message") or detail.get("detail") or "HTTP error"),
    }
