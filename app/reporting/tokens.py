"""Random external identifiers and the monotonic sale order label."""

from __future__ import annotations

import secrets
import string
from typing import Any, Callable

from pymongo import ReturnDocument

from app.api.errors import ApiError, ApiErrorCode

TOKEN_ALPHABET = string.ascii_uppercase + string.digits
SHORT_TOKEN_LENGTH = 7
HEX_TOKEN_BYTES = 4
LABEL_COUNTER_ID = "saleOrderLabel"


def random_short_token(length: int = SHORT_TOKEN_LENGTH) -> str:
    """Alphanumeric token used for trackingId and client externalId."""
    return "".join(secrets.choice(TOKEN_ALPHABET) for _ in range(length))


def random_hex_token(nbytes: int = HEX_TOKEN_BYTES) -> str:
    """Hex token used for OrderID and RecordID."""
    return secrets.token_hex(nbytes)


def allocate_unique(
    generate: Callable[[], str],
    exists: Callable[[str], bool],
    *,
    attempts: int,
    entity: str,
) -> str:
    """Draw tokens until one is unused; give up after ``attempts`` collisions."""
    for _ in range(max(1, attempts)):
        token = generate()
        if not exists(token):
            return token
    raise ApiError(
        status_code=500,
        error_code=ApiErrorCode.ALLOCATION_EXHAUSTED,
        message=f"Could not allocate unique {entity} after {attempts} attempts",
    )


def label_counter_update(base: int) -> list[dict[str, Any]]:
    """Pipeline update: ``seq = max(seq or base, base) + 1``."""
    return [
        {
            "$set": {
                "seq": {
                    "$add": [{"$max": [{"$ifNull": ["$seq", base]}, base]}, 1]
                }
            }
        }
    ]


class LabelAllocator:
    """Allocates sale order labels from a single counter document.

    The increment is one ``find_one_and_update`` so concurrent order
    creation never sees the same value.
    """

    def __init__(self, counters: Any, *, base: int) -> None:
        self._counters = counters
        self._base = int(base)

    def next_label(self) -> str:
        doc = self._counters.find_one_and_update(
            {"_id": LABEL_COUNTER_ID},
            label_counter_update(self._base),
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
        return str(int(doc["seq"]))
