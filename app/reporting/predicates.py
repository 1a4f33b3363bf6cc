"""Build Mongo filter documents from free-text search and CSV filters.

Every piece of user text that ends up inside a regular expression is escaped
first, so a stray ``(`` or ``.*`` in a query string can neither break the
query nor widen it.
"""

from __future__ import annotations

import re
from typing import Any, Iterable, Pattern

ACTIVITY_TYPE_SYNONYMS: dict[str, frozenset[str]] = {
    "call": frozenset({"call", "call_made", "phone", "phone_call"}),
    "email": frozenset({"email", "email_sent", "mail"}),
    "text": frozenset({"text", "sms", "message", "im"}),
}

US_STATE_ABBREVIATIONS: dict[str, str] = {
    "ALABAMA": "AL",
    "ALASKA": "AK",
    "ARIZONA": "AZ",
    "ARKANSAS": "AR",
    "CALIFORNIA": "CA",
    "COLORADO": "CO",
    "CONNECTICUT": "CT",
    "DELAWARE": "DE",
    "DISTRICT OF COLUMBIA": "DC",
    "FLORIDA": "FL",
    "GEORGIA": "GA",
    "HAWAII": "HI",
    "IDAHO": "ID",
    "ILLINOIS": "IL",
    "INDIANA": "IN",
    "IOWA": "IA",
    "KANSAS": "KS",
    "KENTUCKY": "KY",
    "LOUISIANA": "LA",
    "MAINE": "ME",
    "MARYLAND": "MD",
    "MASSACHUSETTS": "MA",
    "MICHIGAN": "MI",
    "MINNESOTA": "MN",
    "MISSISSIPPI": "MS",
    "MISSOURI": "MO",
    "MONTANA": "MT",
    "NEBRASKA": "NE",
    "NEVADA": "NV",
    "NEW HAMPSHIRE": "NH",
    "NEW JERSEY": "NJ",
    "NEW MEXICO": "NM",
    "NEW YORK": "NY",
    "NORTH CAROLINA": "NC",
    "NORTH DAKOTA": "ND",
    "OHIO": "OH",
    "OKLAHOMA": "OK",
    "OREGON": "OR",
    "PENNSYLVANIA": "PA",
    "RHODE ISLAND": "RI",
    "SOUTH CAROLINA": "SC",
    "SOUTH DAKOTA": "SD",
    "TENNESSEE": "TN",
    "TEXAS": "TX",
    "UTAH": "UT",
    "VERMONT": "VT",
    "VIRGINIA": "VA",
    "WASHINGTON": "WA",
    "WEST VIRGINIA": "WV",
    "WISCONSIN": "WI",
    "WYOMING": "WY",
}
US_STATE_NAMES: dict[str, str] = {
    abbr: name.title() for name, abbr in US_STATE_ABBREVIATIONS.items()
}


def escape_pattern(text: str) -> str:
    """Escape regex metacharacters in user supplied text."""
    return re.escape(str(text))


def split_csv(value: str | None) -> list[str]:
    """Split a comma-separated query value, dropping blanks."""
    return [part.strip() for part in str(value or "").split(",") if part.strip()]


def combine(*clauses: dict[str, Any] | None) -> dict[str, Any]:
    """AND together the non-empty clauses into one filter document."""
    parts = [clause for clause in clauses if clause]
    if not parts:
        return {}
    if len(parts) == 1:
        return dict(parts[0])
    return {"$and": parts}


def text_search(q: str | None, fields: Iterable[str]) -> dict[str, Any] | None:
    """Every whitespace token must match at least one field (AND of ORs)."""
    tokens = str(q or "").split()
    if not tokens:
        return None
    field_list = list(fields)
    clauses = []
    for token in tokens:
        pattern = re.compile(escape_pattern(token), re.IGNORECASE)
        clauses.append({"$or": [{field: pattern} for field in field_list]})
    return clauses[0] if len(clauses) == 1 else {"$and": clauses}


def flexible_patterns(values: Iterable[str]) -> list[Pattern[str]]:
    """Exact (trim tolerant) or whole-word, case-insensitive patterns."""
    patterns: list[Pattern[str]] = []
    seen: set[str] = set()
    for value in values:
        token = str(value or "").strip()
        if not token or token.lower() in seen:
            continue
        seen.add(token.lower())
        escaped = escape_pattern(token)
        patterns.append(re.compile(rf"^\s*{escaped}\s*$", re.IGNORECASE))
        patterns.append(re.compile(rf"\b{escaped}\b", re.IGNORECASE))
    return patterns


def membership_filter(field: str, values: Iterable[str]) -> dict[str, Any] | None:
    """``field`` matches any of the flexible patterns built from ``values``."""
    patterns = flexible_patterns(values)
    if not patterns:
        return None
    return {field: {"$in": patterns}}


def expand_states(values: Iterable[str]) -> list[str]:
    """Add the abbreviation for full state names and the name for abbreviations."""
    expanded: list[str] = []
    for value in values:
        token = str(value or "").strip()
        if not token:
            continue
        expanded.append(token)
        upper = token.upper()
        if upper in US_STATE_ABBREVIATIONS:
            expanded.append(US_STATE_ABBREVIATIONS[upper])
        elif upper in US_STATE_NAMES:
            expanded.append(US_STATE_NAMES[upper])
    return expanded


def state_filter(field: str, values: Iterable[str]) -> dict[str, Any] | None:
    return membership_filter(field, expand_states(values))


def activity_type_bucket(value: str | None) -> str:
    """Fold a stored or requested activity type into its canonical bucket."""
    lowered = str(value or "").strip().lower()
    for bucket, synonyms in ACTIVITY_TYPE_SYNONYMS.items():
        if lowered in synonyms:
            return bucket
    return lowered


def activity_type_filter(
    field: str, values: Iterable[str]
) -> dict[str, Any] | None:
    """Match any requested type, folding known synonyms into one pattern."""
    patterns: list[Pattern[str]] = []
    seen: set[str] = set()
    for value in values:
        token = str(value or "").strip()
        if not token:
            continue
        bucket = activity_type_bucket(token)
        if bucket in seen:
            continue
        seen.add(bucket)
        synonyms = ACTIVITY_TYPE_SYNONYMS.get(bucket)
        if synonyms:
            alternatives = "|".join(escape_pattern(item) for item in sorted(synonyms))
            patterns.append(re.compile(rf"^(?:{alternatives})$", re.IGNORECASE))
        else:
            patterns.append(re.compile(rf"^{escape_pattern(token)}$", re.IGNORECASE))
    if not patterns:
        return None
    return {field: {"$in": patterns}}


def exact_filter(field: str, values: Iterable[str]) -> dict[str, Any] | None:
    """Case-insensitive whole-value match against any of ``values``."""
    patterns = [
        re.compile(rf"^\s*{escape_pattern(value.strip())}\s*$", re.IGNORECASE)
        for value in values
        if str(value or "").strip()
    ]
    if not patterns:
        return None
    return {field: {"$in": patterns}}
