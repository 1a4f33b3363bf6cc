"""Pydantic API response models used in OpenAPI contracts."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.reporting.pagination import PageMeta


class _CamelModel(BaseModel):
    """Response model serialized with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ApiErrorResponse(BaseModel):
    """Stable error envelope for API responses."""

    success: bool = False
    error_code: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error message")


class HealthResponse(BaseModel):
    """Health check response payload."""

    status: Literal["ok"]


class PageEnvelope(_CamelModel):
    """Canonical envelope for every paginated list endpoint."""

    success: bool = True
    message: str
    data: list[dict[str, Any]]
    page: int
    per_page: int
    total: int
    total_pages: int
    has_prev: bool
    has_next: bool
    prev_page: int | None = None
    next_page: int | None = None

    @classmethod
    def build(
        cls, *, message: str, rows: list[dict[str, Any]], meta: PageMeta
    ) -> "PageEnvelope":
        """Wrap a page of rows with its pagination metadata."""
        return cls(
            message=message,
            data=rows,
            page=meta.page,
            per_page=meta.per_page,
            total=meta.total,
            total_pages=meta.total_pages,
            has_prev=meta.has_prev,
            has_next=meta.has_next,
            prev_page=meta.prev_page,
            next_page=meta.next_page,
        )


class ItemEnvelope(_CamelModel):
    """Single entity (or single report object) response."""

    success: bool = True
    message: str
    data: dict[str, Any] | None = None


class ListEnvelope(_CamelModel):
    """Non-paginated list response, for reports with fixed size."""

    success: bool = True
    message: str
    data: list[dict[str, Any]]
    meta: dict[str, Any] = Field(default_factory=dict)


class StatusSummaryResponse(_CamelModel):
    """Client contact status summary."""

    success: bool = True
    total: int
    by_status: list[dict[str, Any]]
    generated_at: str


class ActivitySummaryResponse(_CamelModel):
    """Activity counters folded by type synonyms."""

    success: bool = True
    total: int
    total_calls: int
    total_emails: int
    total_texts: int


class AuthSessionResponse(_CamelModel):
    """Login response with the issued bearer token."""

    success: bool = True
    message: str
    token: str
    token_type: str = "bearer"
    expires_in: int
    data: dict[str, Any]


class AuthMeResponse(BaseModel):
    """Current user endpoint response payload."""

    user: dict[str, str]
