from __future__ import annotations

import bcrypt
import pytest

from app.api.errors import ApiError, ApiErrorCode
from app.auth.service import AuthService
from app.core.config import AuthConfig
from app.core.security import build_signed_token, hash_password
from app.users.repository import UserRepository
from tests.fake_mongo import FakeCollection

CONFIG = AuthConfig(
    enabled=True,
    secret_key="test-secret",
    access_token_ttl_seconds=300,
    issuer="rebelx-test",
)


def _build_service() -> tuple[AuthService, FakeCollection]:
    users = FakeCollection(
        "usersdb",
        [
            {
                "email": "admin@local",
                "name": "Admin",
                "role": "admin",
                "status": "active",
                "password": hash_password("admin123"),
            },
            {
                "email": "legacy@local",
                "name": "Legacy",
                "role": "sales",
                "status": "Active",
                "password": bcrypt.hashpw(b"old-pass", bcrypt.gensalt(rounds=4)).decode(),
            },
            {
                "email": "gone@local",
                "name": "Gone",
                "role": "sales",
                "status": "inactive",
                "password": hash_password("gone123"),
            },
        ],
    )
    return AuthService(UserRepository(users), CONFIG), users


def test_auth_service_login_and_verify_access_token() -> None:
    service, users = _build_service()

    session = service.login("Admin@Local", "admin123")
    claims = service.verify_access_token(session.token)

    assert claims["email"] == "admin@local"
    assert claims["role"] == "admin"
    assert session.token_type == "bearer"
    assert session.expires_in == 300
    assert "password" not in session.user
    assert session.user["lastLogin"]
    assert "lastLogin" in users.docs[0]


def test_auth_service_accepts_legacy_bcrypt_hashes() -> None:
    service, _ = _build_service()

    session = service.login("legacy@local", "old-pass")

    assert service.verify_access_token(session.token)["email"] == "legacy@local"


@pytest.mark.parametrize(
    ("email", "password"),
    [("admin@local", "bad"), ("nobody@local", "admin123"), ("legacy@local", "admin123")],
)
def test_auth_service_login_invalid_credentials_raises_api_error(
    email: str, password: str
) -> None:
    service, _ = _build_service()

    with pytest.raises(ApiError) as exc:
        service.login(email, password)

    assert exc.value.status_code == 401
    assert exc.value.detail["error_code"] == ApiErrorCode.AUTH_INVALID_CREDENTIALS


def test_auth_service_rejects_inactive_accounts() -> None:
    service, _ = _build_service()

    with pytest.raises(ApiError) as exc:
        service.login("gone@local", "gone123")

    assert exc.value.status_code == 403


@pytest.mark.parametrize(
    "payload",
    [
        {"iss": "someone-else", "type": "access", "sub": "1"},
        {"iss": "rebelx-test", "type": "refresh", "sub": "1"},
        {"iss": "rebelx-test", "type": "access", "sub": "1", "exp": 1},
    ],
)
def test_auth_service_rejects_untrusted_tokens(payload: dict[str, object]) -> None:
    service, _ = _build_service()
    token = build_signed_token(payload, CONFIG.secret_key)

    with pytest.raises(ApiError) as exc:
        service.verify_access_token(token)

    assert exc.value.detail["error_code"] == ApiErrorCode.AUTH_TOKEN_INVALID


def test_auth_service_rejects_foreign_signature() -> None:
    service, _ = _build_service()
    token = build_signed_token({"iss": "rebelx-test", "type": "access"}, "other-secret")

    with pytest.raises(ApiError):
        service.verify_access_token(token)
