"""Data models for listing monitoring."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Literal
from urllib.parse import urlparse

CodeFamilyName = Literal["numeric-id", "alnum-asin"]
ComplianceStatus = Literal["compliant", "below-minimum"]
ListingOrigin = Literal["complaint-converted", "manual"]
ComplaintStatus = Literal["requested", "in-progress", "resolved"]

COMPLAINT_STATUSES: tuple[ComplaintStatus, ...] = ("requested", "in-progress", "resolved")
# Only these block a new complaint for the same URL
ACTIVE_COMPLAINT_STATUSES: tuple[ComplaintStatus, ...] = ("requested", "in-progress")


@dataclass
class Marketplace:
    """Registered marketplace; its base URL hostname is the matching key."""

    id: str
    name: str
    base_url: str
    active: bool = True

    @property
    def hostname(self) -> str | None:
        """Lower-cased hostname of base_url, or None if it is not an absolute URL."""
        try:
            parsed = urlparse(self.base_url)
        except ValueError:
            return None
        if not parsed.scheme or not parsed.hostname:
            return None
        return parsed.hostname.lower()


@dataclass
class Product:
    """Product with a minimum authorized price."""

    id: str
    name: str
    sku: str
    minimum_price: Decimal
    active: bool = True


@dataclass(frozen=True)
class ListingCode:
    """Canonical listing identifier derived from a URL."""

    value: str  # 'MLB-1234567890' or 'B07XYZ1234'
    family: CodeFamilyName

    def __str__(self) -> str:
        return self.value


@dataclass
class MonitoredListing:
    """Listing under price monitoring."""

    url: str
    product_id: str
    marketplace_id: str
    detected_price: Decimal
    minimum_price: Decimal  # Product minimum at detection time
    status: ComplianceStatus
    origin: ListingOrigin = "manual"
    code: str | None = None  # Older/manual records may lack it
    client_id: str | None = None  # None for admin-entered listings
    updated_at: datetime | None = None
    id: str | None = None


@dataclass
class Complaint:
    """Client report of a listing priced below the minimum."""

    client_id: str
    product_id: str
    marketplace_id: str
    url: str
    reported_price: Decimal
    notes: str | None = None
    status: ComplaintStatus = "requested"
    admin_comment: str | None = None
    created_at: datetime | None = None
    id: str | None = None


@dataclass
class EnrichmentSnapshot:
    """Live listing data from the enrichment service, used to pre-fill forms."""

    price: Decimal | None = None
    title: str | None = None
    sales_text: str | None = None
    rating_text: str | None = None
    seller: str | None = None
    image_url: str | None = None
    discount_percent: str | None = None
    full_price: Decimal | None = None
    raw: dict[str, Any] = field(default_factory=dict)


@dataclass
class ComplianceResult:
    """Derived compliance of a detected price against a minimum."""

    status: ComplianceStatus
    gap_absolute: Decimal  # Negative when below minimum
    gap_percent: Decimal
