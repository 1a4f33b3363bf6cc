"""MongoDB repository for the ``usersdb`` collection."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from bson import ObjectId

from app.core.repository import NAME_COLLATION, CollectionRepository
from app.reporting.enrichment import user_display_name

_DISPLAY_PROJECTION = {"_id": 0, "name": 1, "firstName": 1, "lastName": 1, "email": 1}


class UserRepository(CollectionRepository):
    """Users keyed by their lower-cased email."""

    hidden_fields = ("password", "hash", "salt", "__v")

    def find_user_by_email(self, email: str) -> dict[str, Any] | None:
        return self._collection.find_one(
            {"email": str(email or "").strip().lower()}, self._projection()
        )

    def find_user_by_name(self, name: str) -> dict[str, Any] | None:
        return self._collection.find_one(
            {"name": str(name or "").strip()},
            self._projection(),
            collation=NAME_COLLATION,
        )

    def find_credentials(self, email: str) -> dict[str, Any] | None:
        """User document including the password hash, for login only."""
        return self._collection.find_one({"email": str(email or "").strip().lower()})

    def email_taken(self, email: str, *, exclude_id: ObjectId | None = None) -> bool:
        filters: dict[str, Any] = {"email": str(email or "").strip().lower()}
        if exclude_id is not None:
            filters["_id"] = {"$ne": exclude_id}
        return self.exists(filters)

    def stamp_last_login(self, user_id: Any, when: datetime) -> None:
        self._collection.update_one({"_id": user_id}, {"$set": {"lastLogin": when}})

    def display_names_by_email(self, emails: list[str]) -> dict[str, str]:
        """Map each requested email (and its lower-cased form) to a display name."""
        lookup = sorted(set(emails) | {email.lower() for email in emails})
        names: dict[str, str] = {}
        cursor = self._collection.find({"email": {"$in": lookup}}, _DISPLAY_PROJECTION)
        for user in cursor:
            email = str(user.get("email") or "").strip().lower()
            if email:
                names[email] = user_display_name(user, email)
        return names

    def find_by_emails(self, emails: list[str]) -> dict[str, dict[str, Any]]:
        lookup = sorted({email.lower() for email in emails})
        return {
            str(user.get("email") or "").lower(): user
            for user in self._collection.find(
                {"email": {"$in": lookup}}, self._projection()
            )
        }
