from __future__ import annotations

import asyncio

from app.reporting.enrichment import (
    JoinSpec,
    apply_display,
    collect_keys,
    enrich_rows,
    user_display_name,
)
from tests.fake_mongo import run_inline


def test_user_display_name_preference_order() -> None:
    assert user_display_name({"name": "Jane", "firstName": "J"}) == "Jane"
    assert user_display_name({"firstName": "Jane", "lastName": "Doe"}) == "Jane Doe"
    assert user_display_name({"email": "j@x.io"}) == "j@x.io"
    assert user_display_name(None, "fallback") == "fallback"


def test_collect_keys_distinct_first_seen() -> None:
    rows = [{"k": "b"}, {"k": " a "}, {"k": "b"}, {"k": None}, {}]

    assert collect_keys(rows, "k") == ["b", "a"]


def test_apply_display_keeps_raw_key_when_unresolved() -> None:
    rows = [{"userId": "Jane@X.io"}, {"userId": "ghost"}]

    apply_display(rows, "userId", {"jane@x.io": "Jane"})

    assert [row["userId"] for row in rows] == ["Jane", "ghost"]


def test_enrich_rows_batches_lookups_and_leaves_inputs_untouched() -> None:
    rows = [
        {"ClientID": "C1", "SalesRep": "a@x.io"},
        {"ClientID": "C1", "SalesRep": ""},
        {"ClientID": "C2", "SalesRep": "b@x.io"},
    ]
    calls: list[list[str]] = []

    def clients(keys: list[str]) -> dict[str, str]:
        calls.append(keys)
        return {"C1": "Acme"}

    def users(keys: list[str]) -> dict[str, str]:
        calls.append(keys)
        return {"a@x.io": "Ann"}

    enriched = asyncio.run(
        enrich_rows(
            rows,
            [
                JoinSpec("ClientID", clients, target="clientName"),
                JoinSpec("SalesRep", users, target="salesRepName"),
            ],
            run_blocking=run_inline,
        )
    )

    assert calls == [["C1", "C2"], ["a@x.io", "b@x.io"]]
    assert [row["clientName"] for row in enriched] == ["Acme", "Acme", "C2"]
    assert [row["salesRepName"] for row in enriched] == ["Ann", "", "b@x.io"]
    assert "clientName" not in rows[0]


def test_enrich_rows_skips_lookup_without_keys() -> None:
    def explode(keys: list[str]) -> dict[str, str]:
        raise AssertionError("lookup should not run")

    enriched = asyncio.run(
        enrich_rows([{"userId": ""}], [JoinSpec("userId", explode)], run_blocking=run_inline)
    )

    assert enriched == [{"userId": ""}]
