"""Pydantic models for sale orders and their line items.

Field names keep the legacy export spelling (``ClientID``, ``SalesRep``, ...)
because stored documents and existing clients use them.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

ORDER_STATUSES: tuple[str, ...] = (
    "Pending",
    "Confirmed",
    "Processing",
    "Shipping",
    "Delivered",
    "Completed",
    "Issued",
    "Pending Payment",
    "Cancelled",
    "Returned",
)
PAYMENT_METHODS = frozenset(
    {
        "",
        "CARD",
        "CASH",
        "CHECK",
        "PAYPAL",
        "VENMO",
        "SQUARE",
        "BANK_TRANSFER",
        "ACH",
        "WIRE",
        "OTHER",
    }
)
SHIPPING_METHODS = frozenset(
    {
        "",
        "PICKUP",
        "LOCAL_COURIER",
        "UPS",
        "FEDEX",
        "USPS",
        "DHL",
        "LTL_FREIGHT",
        "DELIVERY",
        "OTHER",
    }
)

ORDER_SORT_FIELDS = frozenset(
    {
        "_id",
        "TimeStamp",
        "createdAt",
        "OrderID",
        "Label",
        "ClientID",
        "SalesRep",
        "OrderStatus",
        "City",
        "State",
    }
)
ORDER_SEARCH_FIELDS = ("OrderID", "Label", "ClientID", "SalesRep", "City", "State")
ORDER_IMMUTABLE_FIELDS = ("OrderID", "Label")

DETAIL_SORT_FIELDS = frozenset(
    {"_id", "TimeStamp", "createdAt", "RecordID", "OrderID", "SKU", "Warehouse"}
)
DETAIL_IMMUTABLE_FIELDS = ("RecordID", "OrderID")


def _upper_choice(value: Any, choices: frozenset[str], *, field: str) -> Any:
    if value is None:
        return None
    text = str(value).strip().upper()
    if text not in choices:
        raise ValueError(f"Invalid {field}: {text}")
    return text


def _order_status(value: Any) -> Any:
    if value is None:
        return None
    text = str(value).strip()
    for status in ORDER_STATUSES:
        if status.lower() == text.lower():
            return status
    raise ValueError(f"Invalid OrderStatus: {text}")


class _OrderFields(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    @field_validator("PaymentMethod", check_fields=False)
    @classmethod
    def upper_payment_method(cls, value: Any) -> Any:
        return _upper_choice(value, PAYMENT_METHODS, field="PaymentMethod")

    @field_validator("ShippingMethod", check_fields=False)
    @classmethod
    def upper_shipping_method(cls, value: Any) -> Any:
        return _upper_choice(value, SHIPPING_METHODS, field="ShippingMethod")

    @field_validator("OrderStatus", check_fields=False)
    @classmethod
    def fold_order_status(cls, value: Any) -> Any:
        return _order_status(value)


class SaleOrderCreateRequest(_OrderFields):
    """New order; ``ClientID`` and ``SalesRep`` accept a name or a canonical key."""

    ClientID: str = Field(min_length=1)
    SalesRep: str = Field(min_length=1)
    City: str = Field(min_length=1)
    State: str = Field(min_length=1)
    LockPrices: str = Field(min_length=1)
    OrderStatus: str
    Discount: str = ""
    Tax: str = ""
    ShippingCost: str = ""
    PaymentMethod: str = ""
    ShippingMethod: str = ""
    ShiptoAddress: str = ""
    Tracking: str = ""
    Paid: str = ""
    PaymentDate: str = ""
    PaymentAmount: str = ""
    ShippedDate: str = ""


class SaleOrderUpdateRequest(_OrderFields):
    """Partial order update; ``OrderID`` and ``Label`` are ignored."""

    ClientID: str | None = None
    SalesRep: str | None = None
    City: str | None = None
    State: str | None = None
    LockPrices: str | None = None
    OrderStatus: str | None = None
    Discount: str | None = None
    Tax: str | None = None
    ShippingCost: str | None = None
    PaymentMethod: str | None = None
    ShippingMethod: str | None = None
    ShiptoAddress: str | None = None
    Tracking: str | None = None
    Paid: str | None = None
    PaymentDate: str | None = None
    PaymentAmount: str | None = None
    ShippedDate: str | None = None


class SaleOrderDetailCreateRequest(BaseModel):
    """New line item attached to an existing order by its ``OrderID``."""

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    OrderID: str = Field(min_length=1)
    Warehouse: str = Field(min_length=1)
    SKU: str = Field(min_length=1)
    Price: str = Field(min_length=1)
    Total: str = Field(min_length=1)
    Description: str = ""
    LotNumber: str = ""
    QtyShipped: str = ""
    UOM: str = ""


class SaleOrderDetailUpdateRequest(BaseModel):
    """Partial line item update; ``RecordID`` and ``OrderID`` are ignored."""

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    Warehouse: str | None = None
    SKU: str | None = None
    Description: str | None = None
    LotNumber: str | None = None
    QtyShipped: str | None = None
    UOM: str | None = None
    Price: str | None = None
    Total: str | None = None
