"""In-process store backed by dictionaries."""

import uuid
from collections.abc import Sequence
from dataclasses import fields as dataclass_fields
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any

from listingwatch.errors import NotFoundError, StoreError
from listingwatch.models import (
    Complaint,
    ComplaintStatus,
    ComplianceStatus,
    Marketplace,
    MonitoredListing,
    Product,
)
from listingwatch.store.base import ListingStore


def _check_fields(record_type: type, values: dict[str, Any]) -> None:
    known = {f.name for f in dataclass_fields(record_type)}
    unknown = set(values) - known - {"id"}
    if unknown:
        raise StoreError(f"Unknown {record_type.__name__} fields: {', '.join(sorted(unknown))}")
    if "id" in values:
        raise StoreError("Record id cannot be updated")


class MemoryStore(ListingStore):
    """Dictionary store for tests, dry runs and local use."""

    def __init__(self) -> None:
        self.marketplaces: dict[str, Marketplace] = {}
        self.products: dict[str, Product] = {}
        self.listings: dict[str, MonitoredListing] = {}
        self.complaints: dict[str, Complaint] = {}

    @staticmethod
    def _new_id() -> str:
        return str(uuid.uuid4())

    async def list_marketplaces(self, active_only: bool = True) -> list[Marketplace]:
        items = [m for m in self.marketplaces.values() if m.active or not active_only]
        return sorted(items, key=lambda m: m.name)

    async def list_products(self, active_only: bool = True) -> list[Product]:
        items = [p for p in self.products.values() if p.active or not active_only]
        return sorted(items, key=lambda p: p.name)

    async def get_marketplace(self, marketplace_id: str) -> Marketplace | None:
        return self.marketplaces.get(marketplace_id)

    async def get_product(self, product_id: str) -> Product | None:
        return self.products.get(product_id)

    async def add_marketplace(self, marketplace: Marketplace) -> str:
        marketplace_id = marketplace.id or self._new_id()
        self.marketplaces[marketplace_id] = replace(marketplace, id=marketplace_id)
        return marketplace_id

    async def add_product(self, product: Product) -> str:
        if any(p.sku == product.sku for p in self.products.values()):
            raise StoreError(f"Duplicate SKU: {product.sku}")
        product_id = product.id or self._new_id()
        self.products[product_id] = replace(product, id=product_id)
        return product_id

    async def listing_exists(self, code: str) -> bool:
        return any(listing.code == code for listing in self.listings.values())

    async def get_listing(self, listing_id: str) -> MonitoredListing | None:
        return self.listings.get(listing_id)

    async def get_listing_by_code(self, code: str) -> MonitoredListing | None:
        return next((listing for listing in self.listings.values() if listing.code == code), None)

    async def insert_listing(self, listing: MonitoredListing) -> str:
        listing_id = listing.id or self._new_id()
        self.listings[listing_id] = replace(
            listing,
            id=listing_id,
            updated_at=listing.updated_at or datetime.now(timezone.utc),
        )
        return listing_id

    async def update_listing(self, listing_id: str, fields: dict[str, Any]) -> None:
        if listing_id not in self.listings:
            raise NotFoundError(f"Listing not found: {listing_id}")
        _check_fields(MonitoredListing, fields)
        self.listings[listing_id] = replace(self.listings[listing_id], **fields)

    async def list_listings(self, status: ComplianceStatus | None = None) -> list[MonitoredListing]:
        items = [listing for listing in self.listings.values() if status is None or listing.status == status]
        epoch = datetime.min.replace(tzinfo=timezone.utc)
        return sorted(items, key=lambda listing: listing.updated_at or epoch, reverse=True)

    async def complaint_exists(self, url: str, statuses: Sequence[ComplaintStatus] | None = None) -> bool:
        return any(
            complaint.url == url and (statuses is None or complaint.status in statuses)
            for complaint in self.complaints.values()
        )

    async def insert_complaint(self, complaint: Complaint) -> str:
        complaint_id = complaint.id or self._new_id()
        self.complaints[complaint_id] = replace(
            complaint,
            id=complaint_id,
            created_at=complaint.created_at or datetime.now(timezone.utc),
        )
        return complaint_id

    async def get_complaint(self, complaint_id: str) -> Complaint | None:
        return self.complaints.get(complaint_id)

    async def update_complaint(self, complaint_id: str, fields: dict[str, Any]) -> None:
        if complaint_id not in self.complaints:
            raise NotFoundError(f"Complaint not found: {complaint_id}")
        _check_fields(Complaint, fields)
        self.complaints[complaint_id] = replace(self.complaints[complaint_id], **fields)

    async def list_complaints(
        self,
        status: ComplaintStatus | None = None,
        client_id: str | None = None,
    ) -> list[Complaint]:
        items = [
            c
            for c in self.complaints.values()
            if (status is None or c.status == status) and (client_id is None or c.client_id == client_id)
        ]
        epoch = datetime.min.replace(tzinfo=timezone.utc)
        return sorted(items, key=lambda c: c.created_at or epoch, reverse=True)
