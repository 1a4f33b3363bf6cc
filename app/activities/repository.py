"""MongoDB repository for the ``activity`` collection."""

from __future__ import annotations

from app.core.repository import CollectionRepository


class ActivityRepository(CollectionRepository):
    """Activity log rows; ``clientId``/``userId`` hold externalId/email strings."""

    def tracking_id_exists(self, tracking_id: str) -> bool:
        return self.exists({"trackingId": tracking_id})
