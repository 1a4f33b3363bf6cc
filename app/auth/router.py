"""``/api/auth`` login and session introspection."""

from __future__ import annotations

from fastapi import APIRouter, Header

from app.api.contracts import ApiErrorResponse, AuthMeResponse, AuthSessionResponse
from app.api.errors import ApiError, ApiErrorCode
from app.auth.middleware import extract_bearer_token
from app.auth.models import LoginRequest
from app.auth.service import AuthService

_UNAUTHORIZED = {401: {"model": ApiErrorResponse}}


def create_auth_router(service: AuthService) -> APIRouter:
    router = APIRouter(prefix="/api/auth", tags=["auth"])

    @router.post(
        "/login",
        response_model=AuthSessionResponse,
        responses={**_UNAUTHORIZED, 403: {"model": ApiErrorResponse}},
    )
    def login(req: LoginRequest) -> AuthSessionResponse:
        """Exchange email and password for a bearer token."""
        session = service.login(req.email, req.password)
        return AuthSessionResponse(
            message="Login successful",
            token=session.token,
            token_type=session.token_type,
            expires_in=session.expires_in,
            data=session.user,
        )

    @router.get("/me", response_model=AuthMeResponse, responses=_UNAUTHORIZED)
    def me(authorization: str | None = Header(default=None)) -> AuthMeResponse:
        token = extract_bearer_token(authorization)
        if not token:
            raise ApiError(
                status_code=401,
                error_code=ApiErrorCode.AUTH_MISSING_TOKEN,
                message="Missing bearer token",
            )
        return AuthMeResponse(user=service.verify_access_token(token))

    return router
