from __future__ import annotations

import asyncio
import logging
import re
from datetime import datetime, timezone

import pytest

from app.activities.models import ActivityCreateRequest, ActivityUpdateRequest
from app.activities.repository import ActivityRepository
from app.activities.service import ActivityService
from app.api.errors import ApiError, ApiErrorCode
from app.clients.repository import ClientRepository
from app.core.config import ReportingConfig
from app.users.repository import UserRepository
from tests.fake_mongo import FakeDatabase, run_inline

REPORTING = ReportingConfig(timezone="UTC", order_label_base=100, unique_token_attempts=5)


def _service(db: FakeDatabase) -> ActivityService:
    return ActivityService(
        repo=ActivityRepository(db["activity"]),
        clients=ClientRepository(db["clients"]),
        users=UserRepository(db["usersdb"]),
        reporting=REPORTING,
        run_blocking=run_inline,
        logger=logging.getLogger("test"),
    )


def _seeded() -> FakeDatabase:
    db = FakeDatabase()
    db["clients"].insert_one({"externalId": "AB12XYZ", "name": "Acme Corp"})
    db["usersdb"].insert_one({"email": "jane@example.com", "name": "Jane Doe"})
    created = datetime(2025, 1, 1, tzinfo=timezone.utc)
    for index, kind in enumerate(["phone_call", "Call", "email", "note_added"]):
        db["activity"].insert_one(
            {
                "clientId": "AB12XYZ",
                "userId": "jane@example.com",
                "trackingId": f"T{index}",
                "type": kind,
                "description": f"entry {index}",
                "createdAt": created.replace(day=index + 1),
            }
        )
    return db


def test_create_activity_resolves_names_and_allocates_tracking_id() -> None:
    db = _seeded()
    service = _service(db)

    created = asyncio.run(
        service.create_activity(
            ActivityCreateRequest(clientId="acme corp", type="call", description="Intro"),
            principal="Jane@Example.com",
        )
    )

    assert created["clientId"] == "AB12XYZ"
    assert created["userId"] == "jane@example.com"
    assert created["type"] == "Call"
    assert re.fullmatch(r"[A-Z0-9]{7}", created["trackingId"])
    assert len(db["activity"].docs) == 5


def test_create_activity_requires_a_user() -> None:
    service = _service(_seeded())

    with pytest.raises(ApiError) as exc_info:
        asyncio.run(
            service.create_activity(
                ActivityCreateRequest(clientId="AB12XYZ", type="Email", description="x")
            )
        )

    assert exc_info.value.status_code == 400


def test_create_activity_unknown_client_is_not_found() -> None:
    service = _service(_seeded())

    with pytest.raises(ApiError) as exc_info:
        asyncio.run(
            service.create_activity(
                ActivityCreateRequest(
                    clientId="Nonexistent", userId="Jane Doe", type="Text", description="x"
                )
            )
        )

    assert exc_info.value.detail["error_code"] == ApiErrorCode.CLIENT_NOT_FOUND


def test_list_activities_folds_call_synonyms_and_enriches_names() -> None:
    service = _service(_seeded())

    rows, meta = asyncio.run(service.list_activities(page=1, limit=10, type_="call"))

    assert meta.total == 2
    assert [row["trackingId"] for row in rows] == ["T1", "T0"]
    assert rows[0]["userId"] == "Jane Doe"
    assert rows[0]["clientId"] == "Acme Corp"


def test_list_client_activities_by_name() -> None:
    service = _service(_seeded())

    rows, meta = asyncio.run(
        service.list_client_activities("Acme Corp", page=1, limit=2, sort="asc")
    )

    assert meta.total == 4
    assert meta.has_next is True
    assert [row["trackingId"] for row in rows] == ["T0", "T1"]


def test_summary_folds_grouped_types() -> None:
    db = _seeded()
    db["activity"].aggregate_results = [
        [{"_id": "phone_call", "count": 2}, {"_id": "email", "count": 1}, {"_id": "sms", "count": 4}]
    ]

    summary = asyncio.run(_service(db).summary(date_range="this_month"))

    assert summary == {"total": 7, "totalCalls": 2, "totalEmails": 1, "totalTexts": 4}
    pipeline = db["activity"].pipelines[0]
    assert any("$addFields" in stage for stage in pipeline)


def test_update_activity_keeps_tracking_id() -> None:
    db = _seeded()
    service = _service(db)
    activity_id = str(db["activity"].docs[0]["_id"])

    updated = asyncio.run(
        service.update_activity(activity_id, ActivityUpdateRequest(description="edited"))
    )

    assert updated["description"] == "edited"
    assert updated["trackingId"] == "T0"


def test_delete_unknown_activity() -> None:
    service = _service(_seeded())

    with pytest.raises(ApiError) as exc_info:
        asyncio.run(service.delete_activity("64b7f0c2a1b2c3d4e5f60718"))

    assert exc_info.value.detail["error_code"] == ApiErrorCode.ACTIVITY_NOT_FOUND
