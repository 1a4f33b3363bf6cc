"""Read-time display enrichment for rows that store foreign keys as strings."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Iterable


def user_display_name(user: dict[str, Any] | None, fallback: str = "") -> str:
    """``name``, then ``firstName lastName``, then ``email``, then ``fallback``."""
    if not user:
        return fallback
    name = str(user.get("name") or "").strip()
    if name:
        return name
    full = " ".join(
        part
        for part in (
            str(user.get("firstName") or "").strip(),
            str(user.get("lastName") or "").strip(),
        )
        if part
    )
    if full:
        return full
    email = str(user.get("email") or "").strip()
    return email or fallback


def client_display_name(client: dict[str, Any] | None, fallback: str = "") -> str:
    if not client:
        return fallback
    return str(client.get("name") or "").strip() or fallback


def collect_keys(rows: Iterable[dict[str, Any]], field: str) -> list[str]:
    """Distinct, non-empty string keys found in ``field``, first-seen order."""
    keys: list[str] = []
    seen: set[str] = set()
    for row in rows:
        key = str(row.get(field) or "").strip()
        if key and key not in seen:
            seen.add(key)
            keys.append(key)
    return keys


def apply_display(
    rows: list[dict[str, Any]],
    field: str,
    names: dict[str, str],
    *,
    target: str | None = None,
) -> None:
    """Write the display value for ``row[field]`` into ``row[target]``.

    Keys missing from ``names`` keep the raw stored value. Lookups fall back
    to the lower-cased key since emails are stored lower-cased.
    """
    out_field = target or field
    for row in rows:
        raw = row.get(field)
        key = str(raw or "").strip()
        if not key:
            row.setdefault(out_field, raw if out_field == field else "")
            continue
        row[out_field] = names.get(key) or names.get(key.lower()) or key


@dataclass(frozen=True)
class JoinSpec:
    """One foreign-key column to enrich.

    ``resolve`` takes the distinct keys of a page and returns a
    ``{key: display}`` mapping; it is a blocking store call.
    """

    field: str
    resolve: Callable[[list[str]], dict[str, str]]
    target: str | None = None


async def enrich_rows(
    rows: list[dict[str, Any]],
    specs: Iterable[JoinSpec],
    *,
    run_blocking: Callable[..., Awaitable[Any]],
) -> list[dict[str, Any]]:
    """Return copies of ``rows`` with every join applied; lookups run concurrently."""
    enriched = [dict(row) for row in rows]
    spec_list = list(specs)
    key_sets = [collect_keys(enriched, spec.field) for spec in spec_list]

    async def _lookup(spec: JoinSpec, keys: list[str]) -> dict[str, str]:
        if not keys:
            return {}
        return await run_blocking(spec.resolve, keys)

    results = await asyncio.gather(
        *(_lookup(spec, keys) for spec, keys in zip(spec_list, key_sets))
    )
    for spec, names in zip(spec_list, results):
        apply_display(enriched, spec.field, names, target=spec.target)
    return enriched
