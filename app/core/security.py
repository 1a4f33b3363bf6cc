"""Password hashing and bearer token signing."""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
import os
import time
from typing import Any

import bcrypt

PBKDF2_ALGORITHM = "pbkdf2_sha256"
PBKDF2_ROUNDS = 120_000
BCRYPT_PREFIXES = ("$2a$", "$2b$", "$2y$")


class TokenError(ValueError):
    """Raised when a bearer token cannot be trusted."""


def _b64url_encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode("utf-8").rstrip("=")


def _b64url_decode(value: str) -> bytes:
    padding = "=" * (-len(value) % 4)
    return base64.urlsafe_b64decode((value + padding).encode("utf-8"))


def _sign(signing_input: bytes, secret_key: str) -> bytes:
    return hmac.new(secret_key.encode("utf-8"), signing_input, hashlib.sha256).digest()


def hash_password(password: str) -> str:
    """Hash password using salted PBKDF2-HMAC-SHA256."""
    salt = os.urandom(16)
    derived = hashlib.pbkdf2_hmac(
        "sha256", password.encode("utf-8"), salt, PBKDF2_ROUNDS
    )
    return (
        f"{PBKDF2_ALGORITHM}${PBKDF2_ROUNDS}$"
        f"{_b64url_encode(salt)}${_b64url_encode(derived)}"
    )


def verify_password(password: str, stored_hash: str) -> bool:
    """Check a plain password against a stored PBKDF2 or legacy bcrypt hash."""
    if (stored_hash or "").startswith(BCRYPT_PREFIXES):
        try:
            return bcrypt.checkpw(password.encode("utf-8"), stored_hash.encode("utf-8"))
        except ValueError:
            return False
    try:
        algo, rounds_raw, salt_b64, digest_b64 = (stored_hash or "").split("$", 3)
        rounds = int(rounds_raw)
        salt = _b64url_decode(salt_b64)
        expected = _b64url_decode(digest_b64)
    except ValueError:
        return False
    if algo != PBKDF2_ALGORITHM:
        return False

    derived = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, rounds)
    return hmac.compare_digest(derived, expected)


def build_signed_token(payload: dict[str, Any], secret_key: str) -> str:
    """Create an HS256 token with the usual three dot-separated parts."""
    header = {"alg": "HS256", "typ": "JWT"}
    header_part = _b64url_encode(
        json.dumps(header, separators=(",", ":")).encode("utf-8")
    )
    payload_part = _b64url_encode(
        json.dumps(payload, separators=(",", ":")).encode("utf-8")
    )
    signature = _sign(f"{header_part}.{payload_part}".encode("utf-8"), secret_key)
    return f"{header_part}.{payload_part}.{_b64url_encode(signature)}"


def decode_signed_token(token: str, secret_key: str) -> dict[str, Any]:
    """Verify signature and expiry, raising ``TokenError`` on failure."""
    try:
        header_part, payload_part, signature_part = token.split(".", 2)
    except ValueError as exc:
        raise TokenError("Malformed token") from exc

    expected_sig = _sign(f"{header_part}.{payload_part}".encode("utf-8"), secret_key)
    try:
        got_sig = _b64url_decode(signature_part)
        payload = json.loads(_b64url_decode(payload_part).decode("utf-8"))
    except (ValueError, UnicodeDecodeError) as exc:
        raise TokenError("Invalid token payload") from exc
    if not hmac.compare_digest(expected_sig, got_sig):
        raise TokenError("Invalid token signature")
    if not isinstance(payload, dict):
        raise TokenError("Invalid token payload")

    exp = int(payload.get("exp") or 0)
    if exp and exp < int(time.time()):
        raise TokenError("Token expired")

    return payload
