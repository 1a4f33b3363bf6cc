"""MongoDB repositories for sale orders and sale order details."""

from __future__ import annotations

from typing import Any

from app.core.repository import CollectionRepository


class SaleOrderRepository(CollectionRepository):
    """Sale orders; ``OrderID`` is the key line items join on."""

    hidden_fields = ("__v",)

    def find_by_order_id(self, order_id: str) -> dict[str, Any] | None:
        return self._collection.find_one(
            {"OrderID": str(order_id or "").strip()}, self._projection()
        )

    def order_id_exists(self, order_id: str) -> bool:
        return self.exists({"OrderID": order_id})

    def find_by_client(self, client_key: str) -> list[dict[str, Any]]:
        return self.find_all({"ClientID": client_key})


class SaleOrderDetailRepository(CollectionRepository):
    """Order line items, joined to orders by the string ``OrderID``."""

    hidden_fields = ("__v",)

    def record_id_exists(self, record_id: str) -> bool:
        return self.exists({"RecordID": record_id})

    def find_for_orders(self, order_ids: list[str]) -> list[dict[str, Any]]:
        if not order_ids:
            return []
        return self.find_all(
            {"OrderID": {"$in": list(order_ids)}}, sort={"_id": 1}
        )
