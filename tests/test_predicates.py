from __future__ import annotations

import re

from app.reporting.predicates import (
    activity_type_bucket,
    activity_type_filter,
    combine,
    exact_filter,
    expand_states,
    membership_filter,
    split_csv,
    state_filter,
    text_search,
)


def _matches(patterns: list[re.Pattern[str]], value: str) -> bool:
    return any(pattern.search(value) for pattern in patterns)


def test_split_csv_drops_blanks() -> None:
    assert split_csv(" a, ,b ,, c") == ["a", "b", "c"]
    assert split_csv(None) == []


def test_combine_collapses_empty_and_single_clauses() -> None:
    assert combine(None, {}) == {}
    assert combine({"a": 1}, None) == {"a": 1}
    assert combine({"a": 1}, {"b": 2}) == {"$and": [{"a": 1}, {"b": 2}]}


def test_text_search_blank_query_has_no_constraint() -> None:
    assert text_search("   ", ["name"]) is None


def test_text_search_ands_tokens_and_ors_fields() -> None:
    clause = text_search("acme phoenix", ["name", "city"])

    assert clause is not None
    first, second = clause["$and"]
    assert [list(item) for item in first["$or"]] == [["name"], ["city"]]
    assert first["$or"][0]["name"].search("ACME corp")
    assert second["$or"][1]["city"].search("Phoenix")


def test_text_search_escapes_metacharacters() -> None:
    clause = text_search("a.c(", ["name"])

    assert clause is not None
    pattern = clause["$or"][0]["name"]
    assert pattern.search("xa.c(y")
    assert not pattern.search("abc(")


def test_membership_filter_matches_exact_and_word_boundary() -> None:
    clause = membership_filter("contactStatus", ["closed won"])

    assert clause is not None
    patterns = clause["contactStatus"]["$in"]
    assert _matches(patterns, "  Closed Won ")
    assert _matches(patterns, "Closed won (2024)")
    assert not _matches(patterns, "Closed wonder")


def test_expand_states_adds_both_directions() -> None:
    assert expand_states(["Arizona", "tx", "Narnia"]) == [
        "Arizona",
        "AZ",
        "tx",
        "Texas",
        "Narnia",
    ]


def test_state_filter_matches_abbreviation_for_full_name() -> None:
    clause = state_filter("state", ["New York"])

    assert clause is not None
    assert _matches(clause["state"]["$in"], "NY")


def test_activity_type_bucket_folds_synonyms() -> None:
    assert activity_type_bucket("Phone_Call") == "call"
    assert activity_type_bucket("email_sent") == "email"
    assert activity_type_bucket("SMS") == "text"
    assert activity_type_bucket("note_added") == "note_added"


def test_activity_type_filter_includes_phone_call_for_call() -> None:
    clause = activity_type_filter("type", ["call"])

    assert clause is not None
    patterns = clause["type"]["$in"]
    assert len(patterns) == 1
    for value in ("call", "Call", "call_made", "phone", "phone_call"):
        assert _matches(patterns, value)
    assert not _matches(patterns, "callback")


def test_activity_type_filter_matches_unknown_types_literally() -> None:
    clause = activity_type_filter("type", ["status_changed", "a+b"])

    assert clause is not None
    patterns = clause["type"]["$in"]
    assert _matches(patterns, "Status_Changed")
    assert _matches(patterns, "a+b")
    assert not _matches(patterns, "aab")


def test_exact_filter_is_case_insensitive_whole_value() -> None:
    clause = exact_filter("role", ["Admin"])

    assert clause is not None
    patterns = clause["role"]["$in"]
    assert _matches(patterns, "admin")
    assert not _matches(patterns, "superadmin")
    assert exact_filter("role", ["", " "]) is None
