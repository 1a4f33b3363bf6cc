"""Public API response contracts."""

from app.api.contracts.models import (
    ActivitySummaryResponse,
    ApiErrorResponse,
    AuthMeResponse,
    AuthSessionResponse,
    HealthResponse,
    ItemEnvelope,
    ListEnvelope,
    PageEnvelope,
    StatusSummaryResponse,
)

__all__ = [
    "ActivitySummaryResponse",
    "ApiErrorResponse",
    "AuthMeResponse",
    "AuthSessionResponse",
    "HealthResponse",
    "ItemEnvelope",
    "ListEnvelope",
    "PageEnvelope",
    "StatusSummaryResponse",
]
