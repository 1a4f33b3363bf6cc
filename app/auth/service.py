"""Login against ``usersdb`` and access token verification."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from app.api.errors import ApiError, ApiErrorCode
from app.auth.models import AuthSession
from app.core.config import AuthConfig
from app.core.mongo import serialize_document
from app.core.security import (
    TokenError,
    build_signed_token,
    decode_signed_token,
    verify_password,
)
from app.users.repository import UserRepository

ACTIVE_STATUS = "active"
TOKEN_TYPE = "access"


def _unauthorized(error_code: ApiErrorCode, message: str) -> ApiError:
    return ApiError(status_code=401, error_code=error_code, message=message)


class AuthService:
    def __init__(self, users: UserRepository, config: AuthConfig) -> None:
        self._users = users
        self._config = config

    @property
    def enabled(self) -> bool:
        return self._config.enabled

    def _claims_for(self, user: dict[str, Any], issued_at: datetime) -> dict[str, Any]:
        iat = int(issued_at.timestamp())
        return {
            "iss": self._config.issuer,
            "type": TOKEN_TYPE,
            "sub": str(user["_id"]),
            "email": str(user.get("email") or "").lower(),
            "role": str(user.get("role") or ""),
            "iat": iat,
            "exp": iat + self._config.access_token_ttl_seconds,
        }

    def login(self, email: str, password: str) -> AuthSession:
        """Check credentials, stamp ``lastLogin`` and sign an access token.

        Unknown emails and wrong passwords are indistinguishable (401); a
        correct password on a non-active account is a 403.
        """
        user = self._users.find_credentials(email)
        stored_hash = str((user or {}).get("password") or "")
        if user is None or not verify_password(password, stored_hash):
            raise _unauthorized(
                ApiErrorCode.AUTH_INVALID_CREDENTIALS, "Invalid email or password"
            )
        if str(user.get("status") or "").strip().lower() != ACTIVE_STATUS:
            raise ApiError(
                status_code=403,
                error_code=ApiErrorCode.AUTH_ACCOUNT_INACTIVE,
                message="Account is not active",
            )

        now = datetime.now(timezone.utc)
        self._users.stamp_last_login(user["_id"], now)
        profile = {k: v for k, v in user.items() if k not in self._users.hidden_fields}
        profile["lastLogin"] = now
        return AuthSession(
            token=build_signed_token(self._claims_for(user, now), self._config.secret_key),
            expires_in=self._config.access_token_ttl_seconds,
            user=serialize_document(profile),
        )

    def verify_access_token(self, token: str) -> dict[str, str]:
        """Signature, expiry, issuer and type checks; returns the caller's claims."""
        try:
            claims = decode_signed_token(token, self._config.secret_key)
        except TokenError as exc:
            raise _unauthorized(ApiErrorCode.AUTH_TOKEN_INVALID, str(exc)) from exc

        expected = {"iss": self._config.issuer, "type": TOKEN_TYPE}
        for claim, value in expected.items():
            if str(claims.get(claim) or "") != value:
                raise _unauthorized(
                    ApiErrorCode.AUTH_TOKEN_INVALID, f"Invalid token {claim}"
                )
        return {
            "user_id": str(claims.get("sub") or ""),
            "email": str(claims.get("email") or ""),
            "role": str(claims.get("role") or ""),
            "expires_at": str(claims.get("exp") or ""),
        }
