"""Pydantic models for the users domain."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class UserRole(StrEnum):
    ADMIN = "admin"
    MANAGER = "manager"
    EMPLOYEE = "employee"
    SALES_AGENT = "sales-agent"
    SHIPPING = "shipping"
    SALES = "sales"
    WAREHOUSE = "warehouse"
    SALES_EXECUTIVE = "sales-executive"


class UserStatus(StrEnum):
    ACTIVE = "active"
    INACTIVE = "inactive"


USER_SORT_FIELDS = frozenset(
    {
        "_id",
        "createdAt",
        "updatedAt",
        "name",
        "email",
        "role",
        "status",
        "department",
        "lastLogin",
    }
)
USER_SEARCH_FIELDS = ("name", "email", "phone", "role", "department")


class UserCreateRequest(BaseModel):
    """New user payload; the password is hashed before it is stored."""

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    name: str = Field(min_length=2, max_length=100)
    email: str = Field(min_length=3, pattern=EMAIL_PATTERN)
    password: str = Field(min_length=6)
    role: UserRole
    department: str = Field(default="", max_length=100)
    phone: str = ""
    hourlyRate: str = ""
    status: UserStatus = UserStatus.ACTIVE


class UserUpdateRequest(BaseModel):
    """Partial user update; only supplied fields change."""

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    name: str | None = Field(default=None, min_length=2, max_length=100)
    email: str | None = Field(default=None, min_length=3, pattern=EMAIL_PATTERN)
    password: str | None = Field(default=None, min_length=6)
    role: UserRole | None = None
    department: str | None = Field(default=None, max_length=100)
    phone: str | None = None
    hourlyRate: str | None = None
    status: UserStatus | None = None
