"""Pydantic models and canonical vocabularies for clients."""

from __future__ import annotations

from typing import Any, Sequence

from pydantic import BaseModel, ConfigDict, Field, field_validator

CONTACT_STATUSES: tuple[str, ...] = (
    "Sampling",
    "New Prospect",
    "Uncategorized",
    "Closed lost",
    "Initial Contact",
    "Closed won",
    "Committed",
    "Consideration",
)
CONTACT_TYPES: tuple[str, ...] = (
    "Potential Customer",
    "Current Customer",
    "Inactive Customer",
    "Uncategorized",
)
COMPANY_TYPES: tuple[str, ...] = (
    "Smoke Shop",
    "Vape Store",
    "Shop",
    "Distro",
    "Master Distro",
    "Broker/Jobber",
    "Manufacturer",
    "Dispensary",
    "Kratom Dispensary",
    "Kratom Dispensary/Distributor",
    "CBD Dispensary",
    "Kava/Kratom Bar",
    "Kava Bar",
    "Health Food Store",
    "Tobacco Shop",
    "Liquor store",
    "Online Retailer",
    "Franchise",
    "Spa",
    "Individual",
    "Beer and Wine Bar",
    "Market",
    "Amherst Client",
    "Sully's Client",
    "Whole Saler",
    "Gas station",
    "Vape Empire",
)
DEFAULT_CONTACT_STATUS = "New Prospect"

CLIENT_SORT_FIELDS = frozenset(
    {
        "_id",
        "createdAt",
        "name",
        "externalId",
        "email",
        "city",
        "state",
        "contactStatus",
        "contactType",
        "companyType",
        "ownedBy",
        "forecastedAmount",
    }
)
CLIENT_SEARCH_FIELDS = (
    "name",
    "email",
    "phone",
    "city",
    "state",
    "website",
    "ownedBy",
    "contactStatus",
)


def canonical_choice(value: Any, choices: Sequence[str], *, field: str) -> Any:
    """Map ``value`` onto ``choices`` (or ``Other``) ignoring case and padding."""
    if value is None:
        return None
    text = str(value).strip()
    for choice in (*choices, "Other"):
        if choice.lower() == text.lower():
            return choice
    raise ValueError(f"Invalid {field}: {text}")


class _ClientFields(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    industry: str | None = None
    fullName: str | None = None
    facebookPage: str | None = None
    profileImage: str | None = None
    folderLink: str | None = None
    lastNote: str | None = None
    projectedCloseDate: str | None = None
    defaultPaymentMethod: str | None = None
    defaultShippingTerms: str | None = None
    nameOnCard: str | None = None
    ccNumberText: str | None = None
    expirationDateText: str | None = None
    securityCodeText: str | None = None
    zipCodeText: str | None = None

    @field_validator("contactStatus", check_fields=False)
    @classmethod
    def fold_contact_status(cls, value: Any) -> Any:
        return canonical_choice(value, CONTACT_STATUSES, field="contactStatus")

    @field_validator("contactType", check_fields=False)
    @classmethod
    def fold_contact_type(cls, value: Any) -> Any:
        return canonical_choice(value, CONTACT_TYPES, field="contactType")

    @field_validator("companyType", check_fields=False)
    @classmethod
    def fold_company_type(cls, value: Any) -> Any:
        return canonical_choice(value, COMPANY_TYPES, field="companyType")


class ClientCreateRequest(_ClientFields):
    """New client; undeclared fields are dropped."""

    name: str = Field(min_length=1, max_length=200)
    externalId: str | None = None
    ownedBy: str | None = None
    contactStatus: str | None = None
    contactType: str | None = None
    companyType: str | None = None
    email: str | None = None
    phone: str | None = None
    address: str | None = None
    city: str | None = None
    state: str | None = None
    postalCode: str | None = None
    website: str | None = None
    description: str | None = Field(default=None, max_length=1000)
    forecastedAmount: float | None = Field(default=None, ge=0)


class ClientUpdateRequest(_ClientFields):
    """Partial client update."""

    name: str | None = Field(default=None, min_length=1, max_length=200)
    externalId: str | None = None
    ownedBy: str | None = None
    contactStatus: str | None = None
    contactType: str | None = None
    companyType: str | None = None
    email: str | None = None
    phone: str | None = None
    address: str | None = None
    city: str | None = None
    state: str | None = None
    postalCode: str | None = None
    website: str | None = None
    description: str | None = Field(default=None, max_length=1000)
    forecastedAmount: float | None = Field(default=None, ge=0)


class ClientStatusUpdateRequest(BaseModel):
    """Status change; ``userId`` names the acting user (name or email)."""

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    contactStatus: str
    userId: str | None = None

    @field_validator("contactStatus")
    @classmethod
    def fold_contact_status(cls, value: Any) -> Any:
        return canonical_choice(value, CONTACT_STATUSES, field="contactStatus")
