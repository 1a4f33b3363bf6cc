"""Pydantic models for the activity log."""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ActivityType(StrEnum):
    CALL = "Call"
    EMAIL = "Email"
    TEXT = "Text"
    CALL_MADE = "call_made"
    STATUS_CHANGED = "status_changed"
    NOTE_ADDED = "note_added"
    EMAIL_SENT = "email_sent"
    MEETING_SCHEDULED = "meeting_scheduled"
    CREATED = "created"


ACTIVITY_SORT_FIELDS = frozenset(
    {"_id", "createdAt", "type", "trackingId", "clientId", "userId"}
)
ACTIVITY_SEARCH_FIELDS = ("description", "trackingId", "clientId", "userId", "type")


def _fold_activity_type(value: Any) -> Any:
    if value is None or isinstance(value, ActivityType):
        return value
    lowered = str(value).strip().lower()
    for member in ActivityType:
        if member.value.lower() == lowered:
            return member
    return value


class ActivityCreateRequest(BaseModel):
    """Activity payload; ``clientId``/``userId`` accept a name or a canonical key."""

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    clientId: str = Field(min_length=1)
    userId: str | None = None
    type: ActivityType
    description: str = Field(min_length=1, max_length=500)

    @field_validator("type", mode="before")
    @classmethod
    def fold_type(cls, value: Any) -> Any:
        return _fold_activity_type(value)


class ActivityUpdateRequest(BaseModel):
    """Corrective edit; ``trackingId`` is not editable."""

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    clientId: str | None = Field(default=None, min_length=1)
    userId: str | None = Field(default=None, min_length=1)
    type: ActivityType | None = None
    description: str | None = Field(default=None, min_length=1, max_length=500)

    @field_validator("type", mode="before")
    @classmethod
    def fold_type(cls, value: Any) -> Any:
        return _fold_activity_type(value)
