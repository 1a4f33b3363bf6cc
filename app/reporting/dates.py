"""Date windows for list filters and tolerant parsing of stored dates.

Stored date fields are mixed: new rows hold BSON dates, legacy rows hold
strings such as ``9/9/2020`` or ``3/14/2023 10:05:00``. The Mongo expression
built by :func:`coerce_date_expr` and the Python twin :func:`parse_loose_date`
read both; a value that parses as neither becomes ``null`` and simply falls
out of any date-bounded match.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Any
from zoneinfo import ZoneInfo

from app.api.errors import validation_error

DATE_PRESETS = ("today", "this_month", "this_year", "prev_year")

_LEGACY_DATE_RE = re.compile(
    r"^(\d{1,2})/(\d{1,2})/(\d{4})(?:\s+(\d{1,2}):(\d{2})(?::(\d{2}))?)?$"
)
_DATE_ONLY_RE = re.compile(r"^(\d{4}-\d{2}-\d{2}|\d{1,2}/\d{1,2}/\d{4})$")
_LEGACY_HEAD_PATTERN = r"^\d{1,2}/\d{1,2}/\d{4}$"


@dataclass(frozen=True)
class DateWindow:
    """Half-open ``[start, end)`` window; either bound may be open."""

    start: datetime | None
    end: datetime | None

    def as_range(self) -> dict[str, datetime]:
        bounds: dict[str, datetime] = {}
        if self.start is not None:
            bounds["$gte"] = self.start
        if self.end is not None:
            bounds["$lt"] = self.end
        return bounds

    def contains(self, value: datetime) -> bool:
        if self.start is not None and value < self.start:
            return False
        if self.end is not None and value >= self.end:
            return False
        return True


def reporting_zone(name: str) -> ZoneInfo:
    return ZoneInfo(name or "UTC")


def _midnight(day: date, tz: ZoneInfo) -> datetime:
    return datetime.combine(day, time.min, tzinfo=tz)


def month_start(value: datetime) -> datetime:
    """First instant of the month containing ``value`` (same zone)."""
    return datetime(value.year, value.month, 1, tzinfo=value.tzinfo)


def shift_months(start: datetime, months: int) -> datetime:
    """Move a month start by ``months`` calendar months."""
    index = start.year * 12 + (start.month - 1) + months
    return datetime(index // 12, index % 12 + 1, 1, tzinfo=start.tzinfo)


def month_key(value: datetime) -> str:
    return f"{value.year:04d}-{value.month:02d}"


def trailing_month_starts(now: datetime, count: int = 12) -> list[datetime]:
    """Month starts for the ``count`` months ending at ``now``, oldest first."""
    current = month_start(now)
    return [shift_months(current, offset) for offset in range(1 - count, 1)]


def current_month_window(now: datetime) -> DateWindow:
    start = month_start(now)
    return DateWindow(start=start, end=shift_months(start, 1))


def preset_window(preset: str, *, now: datetime) -> DateWindow:
    """Resolve a named preset against ``now`` in ``now``'s zone."""
    tz = now.tzinfo
    if preset == "today":
        start = _midnight(now.date(), tz)
        return DateWindow(start=start, end=_midnight(now.date() + timedelta(days=1), tz))
    if preset == "this_month":
        return current_month_window(now)
    if preset == "this_year":
        return DateWindow(
            start=datetime(now.year, 1, 1, tzinfo=tz),
            end=datetime(now.year + 1, 1, 1, tzinfo=tz),
        )
    if preset == "prev_year":
        return DateWindow(
            start=datetime(now.year - 1, 1, 1, tzinfo=tz),
            end=datetime(now.year, 1, 1, tzinfo=tz),
        )
    raise validation_error(
        f"Unsupported dateRange '{preset}'. Allowed: {', '.join(DATE_PRESETS)}"
    )


def parse_loose_date(value: Any, *, tz: ZoneInfo) -> datetime | None:
    """Parse a BSON/ISO/``M/D/YYYY[ HH:MM[:SS]]`` value; ``None`` when unparseable.

    Naive values are read as wall time in ``tz``.
    """
    if isinstance(value, datetime):
        return value if value.tzinfo is not None else value.replace(tzinfo=tz)
    if isinstance(value, date):
        return _midnight(value, tz)
    text = str(value or "").strip()
    if not text:
        return None

    legacy = _LEGACY_DATE_RE.match(text)
    if legacy:
        month, day, year, hour, minute, second = legacy.groups()
        try:
            return datetime(
                int(year),
                int(month),
                int(day),
                int(hour or 0),
                int(minute or 0),
                int(second or 0),
                tzinfo=tz,
            )
        except ValueError:
            return None

    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return None
    return parsed if parsed.tzinfo is not None else parsed.replace(tzinfo=tz)


def resolve_window(
    preset: str | None,
    from_: str | None,
    to: str | None,
    *,
    tz: ZoneInfo,
    now: datetime | None = None,
) -> DateWindow | None:
    """Combine a preset with explicit bounds; ``None`` means no date filter.

    A parseable ``from``/``to`` overrides the matching preset bound on its
    own. A date-only ``to`` covers that whole day.
    """
    current = (now or datetime.now(tz)).astimezone(tz)
    start: datetime | None = None
    end: datetime | None = None

    name = (preset or "").strip()
    if name:
        window = preset_window(name, now=current)
        start, end = window.start, window.end

    explicit_start = parse_loose_date(from_, tz=tz) if from_ else None
    if explicit_start is not None:
        start = explicit_start

    explicit_end = parse_loose_date(to, tz=tz) if to else None
    if explicit_end is not None:
        if _DATE_ONLY_RE.match(str(to).strip()):
            explicit_end = _midnight(explicit_end.date() + timedelta(days=1), tz)
        end = explicit_end

    if start is None and end is None:
        return None
    return DateWindow(start=start, end=end)


def _int_part(array: Any, index: int, *, missing: int = 0) -> dict[str, Any]:
    return {
        "$convert": {
            "input": {"$arrayElemAt": [array, index]},
            "to": "int",
            "onError": -1,
            "onNull": missing,
        }
    }


def _between(var: str, low: int, high: int) -> dict[str, Any]:
    return {"$and": [{"$gte": [var, low]}, {"$lte": [var, high]}]}


def _legacy_date_expr(tz: str) -> dict[str, Any]:
    """``M/D/YYYY[ H:MM[:SS]]`` from ``$$pieces``; ``null`` for impossible dates.

    ``$dateFromParts`` aborts the whole aggregate on a year outside 1..9999
    and rolls overflowing days into the next month, so every part is range
    checked first and the day is compared after the build.
    """
    parsed = {
        "$dateFromParts": {
            "year": "$$year",
            "month": "$$month",
            "day": "$$day",
            "hour": "$$hour",
            "minute": "$$minute",
            "second": "$$second",
            "timezone": tz,
        }
    }
    return {
        "$let": {
            "vars": {
                "date": {"$split": [{"$arrayElemAt": ["$$pieces", 0]}, "/"]},
                "clock": {
                    "$split": [
                        {"$ifNull": [{"$arrayElemAt": ["$$pieces", 1]}, "0:00"]},
                        ":",
                    ]
                },
            },
            "in": {
                "$let": {
                    "vars": {
                        "year": _int_part("$$date", 2),
                        "month": _int_part("$$date", 0),
                        "day": _int_part("$$date", 1),
                        "hour": _int_part("$$clock", 0),
                        "minute": _int_part("$$clock", 1, missing=-1),
                        "second": _int_part("$$clock", 2),
                    },
                    "in": {
                        "$cond": [
                            {
                                "$and": [
                                    {"$lte": [{"$size": "$$pieces"}, 2]},
                                    {"$lte": [{"$size": "$$clock"}, 3]},
                                    _between("$$year", 1, 9999),
                                    _between("$$month", 1, 12),
                                    _between("$$day", 1, 31),
                                    _between("$$hour", 0, 23),
                                    _between("$$minute", 0, 59),
                                    _between("$$second", 0, 59),
                                ]
                            },
                            {
                                "$let": {
                                    "vars": {"parsed": parsed},
                                    "in": {
                                        "$cond": [
                                            {
                                                "$eq": [
                                                    {
                                                        "$dayOfMonth": {
                                                            "date": "$$parsed",
                                                            "timezone": tz,
                                                        }
                                                    },
                                                    "$$day",
                                                ]
                                            },
                                            "$$parsed",
                                            None,
                                        ]
                                    },
                                }
                            },
                            None,
                        ]
                    },
                }
            },
        }
    }


def coerce_date_expr(field: str, *, tz: str = "UTC") -> dict[str, Any]:
    """Aggregation expression turning ``field`` into a date or ``null``.

    Agrees with :func:`parse_loose_date`: a legacy string naming an
    impossible date is ``null`` rather than an error or a rolled-over date.
    """
    ref = f"${field}"
    converted = {
        "$convert": {"input": ref, "to": "date", "onError": None, "onNull": None}
    }
    pieces = {
        "$filter": {
            "input": {"$split": [{"$trim": {"input": ref}}, " "]},
            "cond": {"$ne": ["$$this", ""]},
        }
    }
    string_branch = {
        "$let": {
            "vars": {"pieces": pieces},
            "in": {
                "$cond": [
                    {
                        "$regexMatch": {
                            "input": {"$arrayElemAt": ["$$pieces", 0]},
                            "regex": _LEGACY_HEAD_PATTERN,
                        }
                    },
                    _legacy_date_expr(tz),
                    converted,
                ]
            },
        }
    }
    return {
        "$switch": {
            "branches": [
                {"case": {"$eq": [{"$type": ref}, "date"]}, "then": ref},
                {"case": {"$eq": [{"$type": ref}, "string"]}, "then": string_branch},
            ],
            "default": converted,
        }
    }


def window_stages(
    field: str,
    window: DateWindow | None,
    *,
    tz: str = "UTC",
    alias: str = "_ts",
) -> list[dict[str, Any]]:
    """``$addFields`` + ``$match`` stages bounding ``field`` by ``window``."""
    if window is None:
        return []
    return [
        {"$addFields": {alias: coerce_date_expr(field, tz=tz)}},
        {"$match": {alias: window.as_range()}},
    ]
