from __future__ import annotations

import re
from concurrent.futures import ThreadPoolExecutor

import pytest
from pymongo import ReturnDocument

from app.api.errors import ApiError, ApiErrorCode
from app.reporting.tokens import (
    LabelAllocator,
    allocate_unique,
    label_counter_update,
    random_hex_token,
    random_short_token,
)
from tests.fake_mongo import FakeCounters
from tests.mongo_pipeline import apply_update


def test_token_formats() -> None:
    assert re.fullmatch(r"[A-Z0-9]{7}", random_short_token())
    assert re.fullmatch(r"[0-9a-f]{8}", random_hex_token())


def test_allocate_unique_returns_first_free_token() -> None:
    drawn = iter(["AAA", "BBB", "CCC"])
    taken = {"AAA"}

    token = allocate_unique(lambda: next(drawn), taken.__contains__, attempts=5, entity="x")

    assert token == "BBB"


def test_allocate_unique_gives_up_after_attempts() -> None:
    calls: list[str] = []

    def generate() -> str:
        calls.append("X")
        return "X"

    with pytest.raises(ApiError) as exc_info:
        allocate_unique(generate, lambda _: True, attempts=5, entity="OrderID")

    assert len(calls) == 5
    assert exc_info.value.status_code == 500
    assert exc_info.value.detail["error_code"] == ApiErrorCode.ALLOCATION_EXHAUSTED
    assert "OrderID" in exc_info.value.detail["message"]


def test_label_counter_update_shape() -> None:
    assert label_counter_update(100) == [
        {"$set": {"seq": {"$add": [{"$max": [{"$ifNull": ["$seq", 100]}, 100]}, 1]}}}
    ]


def test_label_allocator_starts_above_base_when_counter_missing() -> None:
    counters = FakeCounters()
    allocator = LabelAllocator(counters, base=100)

    assert allocator.next_label() == "101"
    assert allocator.next_label() == "102"
    assert counters.calls[0]["upsert"] is True


def test_label_allocator_raises_stale_counter_to_base() -> None:
    allocator = LabelAllocator(FakeCounters(seq=3), base=100)

    assert allocator.next_label() == "101"


def test_concurrent_labels_are_distinct_and_increasing() -> None:
    counters = FakeCounters(seq=100)
    allocator = LabelAllocator(counters, base=100)

    with ThreadPoolExecutor(max_workers=8) as pool:
        labels = list(pool.map(lambda _: allocator.next_label(), range(40)))

    numbers = sorted(int(label) for label in labels)
    assert numbers == list(range(101, 141))
    assert counters.docs["saleOrderLabel"]["seq"] == 140
    assert all(call["return_document"] is ReturnDocument.AFTER for call in counters.calls)


@pytest.mark.parametrize(
    ("doc", "expected"),
    [
        ({"_id": "saleOrderLabel"}, 101),
        ({"_id": "saleOrderLabel", "seq": None}, 101),
        ({"_id": "saleOrderLabel", "seq": 7}, 101),
        ({"_id": "saleOrderLabel", "seq": 100}, 101),
        ({"_id": "saleOrderLabel", "seq": 250}, 251),
    ],
)
def test_label_counter_update_applies_floor_then_increments(
    doc: dict[str, object], expected: int
) -> None:
    updated = apply_update(doc, label_counter_update(100))

    assert updated == {"_id": "saleOrderLabel", "seq": expected}
