"""Page/limit normalization, sort validation and pagination metadata."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any

from app.api.errors import validation_error

ASCENDING = 1
DESCENDING = -1


@dataclass(frozen=True)
class PageRequest:
    """Normalized page window: 1-based page and a clamped limit."""

    page: int
    per_page: int

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.per_page

    @classmethod
    def from_query(
        cls,
        page: Any,
        limit: Any,
        *,
        default_limit: int,
        max_limit: int,
    ) -> "PageRequest":
        """Parse raw query values; bad or non-positive values fall back to defaults."""
        parsed_page = _positive_int(page) or 1
        parsed_limit = _positive_int(limit) or default_limit
        return cls(page=parsed_page, per_page=min(parsed_limit, max_limit))


@dataclass(frozen=True)
class PageMeta:
    """Pagination metadata attached to every list response."""

    page: int
    per_page: int
    total: int
    total_pages: int
    has_prev: bool
    has_next: bool
    prev_page: int | None
    next_page: int | None


@dataclass(frozen=True)
class SortSpec:
    """Validated sort field and direction."""

    field: str
    direction: int

    def as_mongo(self) -> dict[str, int]:
        # _id keeps ordering stable when the sort key has ties
        if self.field == "_id":
            return {"_id": self.direction}
        return {self.field: self.direction, "_id": self.direction}


def _positive_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        parsed = int(str(value).strip())
    except ValueError:
        return None
    return parsed if parsed > 0 else None


def build_page_meta(request: PageRequest, total: int) -> PageMeta:
    """Compute totals and neighbour pages for a page request."""
    total = max(int(total), 0)
    total_pages = max(math.ceil(total / request.per_page), 1)
    has_prev = request.page > 1
    has_next = request.page * request.per_page < total
    return PageMeta(
        page=request.page,
        per_page=request.per_page,
        total=total,
        total_pages=total_pages,
        has_prev=has_prev,
        has_next=has_next,
        prev_page=request.page - 1 if has_prev else None,
        next_page=request.page + 1 if has_next else None,
    )


def resolve_sort(
    sort_by: str | None,
    sort_dir: str | None,
    *,
    allowed: frozenset[str] | set[str],
    default_field: str,
) -> SortSpec:
    """Validate ``sortBy`` against the allow-list; ``asc`` or descending."""
    field = (sort_by or "").strip() or default_field
    if field not in allowed:
        raise validation_error(
            f"Unsupported sortBy '{field}'. Allowed: {', '.join(sorted(allowed))}"
        )
    direction = ASCENDING if (sort_dir or "").strip().lower() == "asc" else DESCENDING
    return SortSpec(field=field, direction=direction)
