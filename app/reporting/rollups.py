"""Aggregate reports: breakdowns, monthly rollups, order totals and rankings.

Mongo does the grouping over raw values; folding into canonical buckets,
zero-fill and money arithmetic happen here in Python so they can be tested
without a server.
"""

from __future__ import annotations

import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Iterable, Sequence
from zoneinfo import ZoneInfo

from app.reporting.dates import (
    DateWindow,
    coerce_date_expr,
    month_key,
    parse_loose_date,
    window_stages,
)
from app.reporting.predicates import activity_type_bucket

UNCATEGORIZED = "Uncategorized"
OTHER = "Other"

_MONEY_NOISE_RE = re.compile(r"[^0-9.\-]")
_CENT = Decimal("0.01")


def grouped_values_pipeline(field: str) -> list[dict[str, Any]]:
    """Count documents per trimmed string value of ``field``."""
    return [
        {
            "$group": {
                "_id": {
                    "$trim": {
                        "input": {
                            "$convert": {
                                "input": f"${field}",
                                "to": "string",
                                "onError": "",
                                "onNull": "",
                            }
                        }
                    }
                },
                "count": {"$sum": 1},
            }
        }
    ]


def fold_counts(
    raw_counts: Iterable[tuple[Any, int]], canonical: Sequence[str]
) -> dict[str, int]:
    """Fold raw grouped values into canonical labels, case-insensitively.

    Empty values land in ``Uncategorized``, unknown values in ``Other``.
    """
    lookup = {label.strip().lower(): label for label in canonical}
    buckets: dict[str, int] = {label: 0 for label in canonical}
    buckets.setdefault(UNCATEGORIZED, 0)
    buckets.setdefault(OTHER, 0)
    for value, count in raw_counts:
        text = str(value or "").strip()
        if not text:
            label = UNCATEGORIZED
        else:
            label = lookup.get(text.lower(), OTHER)
        buckets[label] += int(count or 0)
    return buckets


def percent(count: int, total: int) -> int:
    """``round(count / total * 100)`` with half-up rounding; 0 when total is 0."""
    if total <= 0:
        return 0
    ratio = Decimal(count) * 100 / Decimal(total)
    return int(ratio.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def ordered_breakdown(
    buckets: dict[str, int], canonical: Sequence[str], *, key: str = "label"
) -> list[dict[str, Any]]:
    """Canonical order; buckets outside ``canonical`` appear only when non-zero."""
    total = sum(buckets.values())
    rows = []
    for label, count in buckets.items():
        if label not in canonical and count == 0:
            continue
        rows.append({key: label, "count": count, "pct": percent(count, total)})
    return rows


def ranked_breakdown(
    buckets: dict[str, int], *, key: str = "label"
) -> list[dict[str, Any]]:
    """Non-zero buckets sorted by count, largest first."""
    total = sum(buckets.values())
    rows = [
        {key: label, "count": count, "pct": percent(count, total)}
        for label, count in buckets.items()
        if count > 0
    ]
    rows.sort(key=lambda row: row["count"], reverse=True)
    return rows


def monthly_counts_pipeline(
    field: str, window: DateWindow, *, tz: str
) -> list[dict[str, Any]]:
    """Count documents per ``YYYY-MM`` of ``field`` inside ``window``."""
    return [
        *window_stages(field, window, tz=tz),
        {
            "$group": {
                "_id": {
                    "$dateToString": {"format": "%Y-%m", "date": "$_ts", "timezone": tz}
                },
                "count": {"$sum": 1},
            }
        },
    ]


def fill_month_buckets(
    month_starts: Sequence[Any], counts: dict[str, int]
) -> list[tuple[str, int]]:
    """One ``(YYYY-MM, count)`` per month start, zero when absent."""
    return [
        (month_key(start), int(counts.get(month_key(start), 0))) for start in month_starts
    ]


def parse_money(value: Any) -> Decimal | None:
    """Strip currency symbols and separators; ``None`` when nothing numeric remains."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, Decimal)):
        return Decimal(value)
    if isinstance(value, float):
        return Decimal(str(value))
    cleaned = _MONEY_NOISE_RE.sub("", str(value))
    if not cleaned or cleaned in {"-", ".", "-."}:
        return None
    try:
        return Decimal(cleaned)
    except InvalidOperation:
        return None


def money_or_zero(value: Any) -> Decimal:
    parsed = parse_money(value)
    return parsed if parsed is not None else Decimal(0)


def round_money(value: Decimal) -> float:
    return float(value.quantize(_CENT, rounding=ROUND_HALF_UP))


def line_value(detail: dict[str, Any]) -> Decimal:
    """``Total`` when parseable, else ``QtyShipped * Price``."""
    total = parse_money(detail.get("Total"))
    if total is not None:
        return total
    return money_or_zero(detail.get("QtyShipped")) * money_or_zero(detail.get("Price"))


def order_amounts(
    order: dict[str, Any], details: Iterable[dict[str, Any]]
) -> tuple[Decimal, Decimal]:
    """Unrounded ``(subtotal, grand_total)`` for an order and its line items."""
    subtotal = sum((line_value(detail) for detail in details), Decimal(0))
    grand_total = (
        subtotal
        + money_or_zero(order.get("ShippingCost"))
        + money_or_zero(order.get("Tax"))
        - money_or_zero(order.get("Discount"))
    )
    return subtotal, grand_total


def order_totals(
    order: dict[str, Any], details: Iterable[dict[str, Any]]
) -> dict[str, float]:
    subtotal, grand_total = order_amounts(order, details)
    return {"subtotal": round_money(subtotal), "grandTotal": round_money(grand_total)}


def group_details_by_order(
    details: Iterable[dict[str, Any]],
) -> dict[str, list[dict[str, Any]]]:
    grouped: dict[str, list[dict[str, Any]]] = {}
    for detail in details:
        order_id = str(detail.get("OrderID") or "").strip()
        if order_id:
            grouped.setdefault(order_id, []).append(detail)
    return grouped


def client_order_stats(
    orders: Sequence[dict[str, Any]],
    details_by_order: dict[str, list[dict[str, Any]]],
    status_labels: Sequence[str],
    *,
    tz: ZoneInfo,
) -> dict[str, Any]:
    """Lifetime order statistics for one client."""
    revenue = Decimal(0)
    stamped: list[tuple[Any, dict[str, Any]]] = []
    statuses: list[tuple[Any, int]] = []
    for order in orders:
        order_id = str(order.get("OrderID") or "").strip()
        _, grand_total = order_amounts(order, details_by_order.get(order_id, []))
        revenue += grand_total
        statuses.append((order.get("OrderStatus"), 1))
        timestamp = parse_loose_date(order.get("TimeStamp"), tz=tz)
        if timestamp is not None:
            stamped.append((timestamp, order))

    stamped.sort(key=lambda item: item[0])
    count = len(orders)
    average = revenue / count if count else Decimal(0)
    latest = stamped[-1] if stamped else None
    return {
        "orderCount": count,
        "lifetimeRevenue": round_money(revenue),
        "averageOrderValue": round_money(average),
        "firstOrderAt": stamped[0][0].isoformat() if stamped else None,
        "lastOrderAt": latest[0].isoformat() if latest else None,
        "latestOrderId": str(latest[1].get("OrderID") or "") if latest else None,
        "byStatus": ordered_breakdown(
            fold_counts(statuses, status_labels), status_labels, key="status"
        ),
    }


def top_users_pipeline(*, limit: int = 5, tz: str = "UTC") -> list[dict[str, Any]]:
    """Activity count per user key, most active first, ties to the most recent."""
    return [
        {
            "$addFields": {
                "_actor": {
                    "$toLower": {
                        "$trim": {
                            "input": {
                                "$convert": {
                                    "input": "$userId",
                                    "to": "string",
                                    "onError": "",
                                    "onNull": "",
                                }
                            }
                        }
                    }
                }
            }
        },
        {"$match": {"_actor": {"$ne": ""}}},
        {
            "$group": {
                "_id": "$_actor",
                "activityCount": {"$sum": 1},
                "lastActivityAt": {"$max": coerce_date_expr("createdAt", tz=tz)},
            }
        },
        {"$sort": {"activityCount": -1, "lastActivityAt": -1, "_id": 1}},
        {"$limit": limit},
    ]


def latest_order_per_client_pipeline(
    *,
    clients_collection: str,
    skip: int,
    limit: int,
    tz: str = "UTC",
) -> list[dict[str, Any]]:
    """Most recent order per ClientID that resolves to an existing client.

    Ties on timestamp fall to the highest ``_id``. The page window and the
    group count come back together from one ``$facet``.
    """
    return [
        {"$match": {"ClientID": {"$exists": True, "$nin": [None, ""]}}},
        {"$addFields": {"_ts": coerce_date_expr("TimeStamp", tz=tz)}},
        {"$sort": {"_ts": -1, "_id": -1}},
        {"$group": {"_id": "$ClientID", "order": {"$first": "$$ROOT"}}},
        {
            "$lookup": {
                "from": clients_collection,
                "let": {"clientKey": "$_id"},
                "pipeline": [
                    {"$match": {"$expr": {"$eq": ["$externalId", "$$clientKey"]}}},
                    {"$project": {"_id": 0, "name": 1}},
                    {"$limit": 1},
                ],
                "as": "client",
            }
        },
        {"$match": {"client.0": {"$exists": True}}},
        {
            "$replaceRoot": {
                "newRoot": {
                    "$mergeObjects": [
                        "$order",
                        {"clientName": {"$arrayElemAt": ["$client.name", 0]}},
                    ]
                }
            }
        },
        {"$sort": {"_ts": -1, "_id": -1}},
        {
            "$facet": {
                "rows": [{"$skip": skip}, {"$limit": limit}, {"$project": {"_ts": 0}}],
                "total": [{"$count": "count"}],
            }
        },
    ]


def unpack_facet(result: Sequence[dict[str, Any]]) -> tuple[list[dict[str, Any]], int]:
    """Split a ``{rows, total}`` facet result into rows and a count."""
    if not result:
        return [], 0
    facet = result[0]
    total_items = facet.get("total") or []
    total = int(total_items[0].get("count", 0)) if total_items else 0
    return list(facet.get("rows") or []), total


def activity_type_counts_pipeline(
    filters: dict[str, Any], window: DateWindow | None, *, tz: str = "UTC"
) -> list[dict[str, Any]]:
    """Count activities per lower-cased type inside the optional window."""
    return [
        {"$match": filters},
        *window_stages("createdAt", window, tz=tz),
        {
            "$group": {
                "_id": {
                    "$toLower": {
                        "$trim": {
                            "input": {
                                "$convert": {
                                    "input": "$type",
                                    "to": "string",
                                    "onError": "",
                                    "onNull": "",
                                }
                            }
                        }
                    }
                },
                "count": {"$sum": 1},
            }
        },
    ]


def fold_activity_summary(raw_counts: Iterable[tuple[Any, int]]) -> dict[str, int]:
    """Total plus call/email/text counters with synonyms folded together."""
    summary = {"total": 0, "totalCalls": 0, "totalEmails": 0, "totalTexts": 0}
    bucket_keys = {"call": "totalCalls", "email": "totalEmails", "text": "totalTexts"}
    for value, count in raw_counts:
        amount = int(count or 0)
        summary["total"] += amount
        key = bucket_keys.get(activity_type_bucket(value))
        if key:
            summary[key] += amount
    return summary


def entity_totals_pipeline(
    window: DateWindow | None,
    *,
    count_active: bool = False,
    tz: str = "UTC",
) -> list[dict[str, Any]]:
    """One ``{count[, active]}`` row; ``active`` compares ``status`` case-insensitively."""
    fields: dict[str, Any] = {"_id": None, "count": {"$sum": 1}}
    if count_active:
        fields["active"] = {
            "$sum": {
                "$cond": [
                    {
                        "$eq": [
                            {
                                "$toLower": {
                                    "$trim": {
                                        "input": {
                                            "$convert": {
                                                "input": "$status",
                                                "to": "string",
                                                "onError": "",
                                                "onNull": "",
                                            }
                                        }
                                    }
                                }
                            },
                            "active",
                        ]
                    },
                    1,
                    0,
                ]
            }
        }
    return [*window_stages("createdAt", window, tz=tz), {"$group": fields}]


def first_row_counts(result: Sequence[dict[str, Any]], *keys: str) -> dict[str, int]:
    """Counters from a single-group aggregate; zero when nothing matched."""
    row = result[0] if result else {}
    return {key: int(row.get(key, 0) or 0) for key in keys}
