"""Pydantic models for authentication domain."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    """Login request payload."""

    email: str = Field(min_length=3)
    password: str = Field(min_length=1)


class AuthSession(BaseModel):
    """Issued bearer token together with the signed-in user."""

    token: str
    token_type: str = "bearer"
    expires_in: int
    user: dict[str, Any]
