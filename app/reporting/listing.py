"""Paginated list assembly: a count and a page window issued concurrently."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Protocol

from app.reporting.dates import DateWindow, window_stages
from app.reporting.pagination import PageMeta, PageRequest, SortSpec, build_page_meta

_WINDOW_ALIAS = "_ts"


class ListSource(Protocol):
    """Store operations a paginated list needs."""

    hidden_fields: tuple[str, ...]

    def count(self, filters: dict[str, Any]) -> int:
        """Count documents matching ``filters``."""

    def find_page(
        self,
        filters: dict[str, Any],
        sort: dict[str, int],
        skip: int,
        limit: int,
    ) -> list[dict[str, Any]]:
        """Return one sorted page of documents."""

    def aggregate(self, pipeline: list[dict[str, Any]]) -> list[dict[str, Any]]:
        """Run an aggregation pipeline."""


@dataclass(frozen=True)
class ListQuery:
    """Filter, sort, page and optional date window for one list request."""

    filters: dict[str, Any]
    sort: SortSpec
    page: PageRequest
    date_field: str = ""
    window: DateWindow | None = None
    timezone: str = "UTC"


def windowed_pipelines(
    query: ListQuery, hidden_fields: tuple[str, ...] = ()
) -> tuple[list[dict[str, Any]], list[dict[str, Any]]]:
    """``(count_pipeline, page_pipeline)`` for a date-bounded list.

    Sorting on the windowed field uses the coerced date so legacy string
    values order chronologically.
    """
    base = [
        {"$match": query.filters},
        *window_stages(
            query.date_field, query.window, tz=query.timezone, alias=_WINDOW_ALIAS
        ),
    ]
    sort = query.sort.as_mongo()
    if query.sort.field == query.date_field:
        sort = {_WINDOW_ALIAS: query.sort.direction, "_id": query.sort.direction}
    hidden = {name: 0 for name in (_WINDOW_ALIAS, *hidden_fields)}
    page_pipeline = [
        *base,
        {"$sort": sort},
        {"$skip": query.page.skip},
        {"$limit": query.page.per_page},
        {"$project": hidden},
    ]
    return [*base, {"$count": "count"}], page_pipeline


async def paginate(
    source: ListSource,
    query: ListQuery,
    *,
    run_blocking: Callable[..., Awaitable[Any]],
) -> tuple[list[dict[str, Any]], PageMeta]:
    """Return one page of rows with its metadata.

    Count and page run concurrently; no snapshot is shared between them.
    """
    if query.window is None:
        total, rows = await asyncio.gather(
            run_blocking(source.count, query.filters),
            run_blocking(
                source.find_page,
                query.filters,
                query.sort.as_mongo(),
                query.page.skip,
                query.page.per_page,
            ),
        )
    else:
        count_pipeline, page_pipeline = windowed_pipelines(query, source.hidden_fields)
        counted, rows = await asyncio.gather(
            run_blocking(source.aggregate, count_pipeline),
            run_blocking(source.aggregate, page_pipeline),
        )
        total = int(counted[0]["count"]) if counted else 0
    return list(rows), build_page_meta(query.page, total)
