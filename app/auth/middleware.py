"""Bearer token gate for the ``/api`` surface."""

from __future__ import annotations

from typing import Callable

from fastapi import HTTPException, Request

from app.api.errors import ApiErrorCode, to_error_payload
from app.api.http_setup import error_response
from app.auth.service import AuthService

PUBLIC_PATHS = frozenset({"/api/health", "/api/auth/login"})


def extract_bearer_token(authorization: str | None) -> str:
    """Token from an ``Authorization: Bearer <token>`` value, else ``""``."""
    parts = (authorization or "").strip().split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return ""
    return parts[1].strip()


def current_principal(request: Request) -> str:
    """Email of the verified caller, or ``""`` when auth is off."""
    user = getattr(request.state, "user", None) or {}
    return str(user.get("email") or "").strip().lower()


def _is_exempt(request: Request) -> bool:
    if request.method == "OPTIONS":
        return True
    path = request.url.path.rstrip("/") or "/"
    return not path.startswith("/api/") or path in PUBLIC_PATHS


def create_auth_middleware(service: AuthService) -> Callable:
    """Middleware that verifies the bearer token and stores its claims on ``request.state.user``."""

    async def auth_middleware(request: Request, call_next: Callable):
        if not service.enabled or _is_exempt(request):
            return await call_next(request)

        token = extract_bearer_token(request.headers.get("authorization"))
        if not token:
            return error_response(
                401, ApiErrorCode.AUTH_MISSING_TOKEN, "Missing bearer token"
            )
        try:
            request.state.user = service.verify_access_token(token)
        except HTTPException as exc:
            payload = to_error_payload(exc.detail, exc.status_code)
            return error_response(
                exc.status_code, payload["error_code"], payload["message"]
            )
        return await call_next(request)

    return auth_middleware
