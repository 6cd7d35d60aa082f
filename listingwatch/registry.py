"""Listing and complaint operations that persist pipeline results."""

import logging
from datetime import datetime, timezone
from decimal import Decimal

from listingwatch.codes import extract_code
from listingwatch.compliance import apply_compliance, evaluate, to_price
from listingwatch.dedup import ComplaintDuplicateGuard, ListingDuplicateGuard
from listingwatch.errors import DuplicateError, InputError, NotFoundError
from listingwatch.matching import url_hostname
from listingwatch.models import (
    COMPLAINT_STATUSES,
    Complaint,
    ComplaintStatus,
    ListingOrigin,
    MonitoredListing,
    Product,
)
from listingwatch.store.base import ListingStore

logger = logging.getLogger(__name__)


def _require_url(url: str) -> str:
    url = (url or "").strip()
    if not url:
        raise InputError("URL is required")
    if url_hostname(url) is None:
        raise InputError(f"Invalid URL: {url}")
    return url


def _require_price(value: Decimal | float | int | str | None, label: str = "price") -> Decimal:
    if value is None or value == "":
        raise InputError(f"A {label} is required")
    price = to_price(value)
    if price <= 0:
        raise InputError(f"Invalid {label}: {value}")
    return price


class ListingRegistry:
    """Creates and updates monitored listings and complaints.

    Duplicate and input errors abort the submission; store errors are raised
    unchanged and never retried.
    """

    def __init__(self, store: ListingStore):
        """Initialize registry.

        Args:
            store: Backing store.
        """
        self.store = store
        self.listing_guard = ListingDuplicateGuard(store)
        self.complaint_guard = ComplaintDuplicateGuard(store)

    async def _product(self, product_id: str) -> Product:
        if not product_id:
            raise InputError("A product is required")
        product = await self.store.get_product(product_id)
        if product is None:
            raise NotFoundError(f"Product not found: {product_id}")
        return product

    async def _require_marketplace(self, marketplace_id: str) -> None:
        if not marketplace_id:
            raise InputError("A marketplace is required")
        if await self.store.get_marketplace(marketplace_id) is None:
            raise NotFoundError(f"Marketplace not found: {marketplace_id}")

    async def add_listing(
        self,
        url: str,
        product_id: str,
        marketplace_id: str,
        detected_price: Decimal | float | int | str,
        client_id: str | None = None,
        code: str | None = None,
        origin: ListingOrigin = "manual",
    ) -> MonitoredListing:
        """Register a listing for monitoring.

        Args:
            url: Listing URL.
            product_id: Monitored product.
            marketplace_id: Marketplace of the listing.
            detected_price: Current price on the listing.
            client_id: Reporting client, None for admin entries.
            code: Canonical code. Derived from the URL when omitted.
            origin: 'manual' or 'complaint-converted'.

        Returns:
            The stored listing.

        Raises:
            InputError: Missing or invalid field.
            NotFoundError: Unknown product or marketplace.
            DuplicateError: A listing with the same code already exists.
            StoreError: The insert was rejected.
        """
        url = _require_url(url)
        price = _require_price(detected_price, "detected price")
        product = await self._product(product_id)
        await self._require_marketplace(marketplace_id)

        if code is None:
            extracted = extract_code(url)
            code = extracted.value if extracted else None

        if code and await self.listing_guard.is_duplicate(code):
            raise DuplicateError(f"Listing {code} is already monitored")

        result = evaluate(price, product.minimum_price)
        listing = MonitoredListing(
            url=url,
            code=code,
            product_id=product.id,
            marketplace_id=marketplace_id,
            client_id=client_id,
            detected_price=price,
            minimum_price=product.minimum_price,
            status=result.status,
            origin=origin,
            updated_at=datetime.now(timezone.utc),
        )
        listing.id = await self.store.insert_listing(listing)
        logger.info(f"Listing added: {code or url} [{result.status}] gap {result.gap_percent:.1f}%")
        return listing

    async def record_price(self, listing_id: str, detected_price: Decimal | float | int | str) -> MonitoredListing:
        """Update a listing's price and recompute its status.

        Args:
            listing_id: Listing to update.
            detected_price: New price.

        Returns:
            The updated listing.
        """
        price = _require_price(detected_price, "detected price")
        listing = await self.store.get_listing(listing_id)
        if listing is None:
            raise NotFoundError(f"Listing not found: {listing_id}")

        updated = apply_compliance(listing, price)
        await self.store.update_listing(
            listing_id,
            {
                "detected_price": updated.detected_price,
                "status": updated.status,
                "updated_at": updated.updated_at,
            },
        )
        logger.info(f"Listing {listing.code or listing_id} price {price} [{updated.status}]")
        return updated

    async def submit_complaint(
        self,
        client_id: str,
        url: str,
        product_id: str,
        marketplace_id: str,
        reported_price: Decimal | float | int | str,
        notes: str | None = None,
    ) -> Complaint:
        """Register a client complaint.

        Raises:
            InputError: Missing or invalid field.
            DuplicateError: An open complaint exists for the same URL.
            StoreError: The insert was rejected.
        """
        if not client_id:
            raise InputError("A client is required")
        url = _require_url(url)
        price = _require_price(reported_price, "reported price")
        await self._product(product_id)
        await self._require_marketplace(marketplace_id)

        if await self.complaint_guard.is_duplicate(url):
            raise DuplicateError("This listing already has an open complaint")

        complaint = Complaint(
            client_id=client_id,
            product_id=product_id,
            marketplace_id=marketplace_id,
            url=url,
            reported_price=price,
            notes=notes or None,
            status="requested",
            created_at=datetime.now(timezone.utc),
        )
        complaint.id = await self.store.insert_complaint(complaint)
        logger.info(f"Complaint {complaint.id} registered for {url}")
        return complaint

    async def update_complaint(
        self,
        complaint_id: str,
        status: ComplaintStatus,
        admin_comment: str | None = None,
    ) -> Complaint:
        """Change a complaint's status and admin comment."""
        if status not in COMPLAINT_STATUSES:
            raise InputError(f"Invalid complaint status: {status}")
        complaint = await self.store.get_complaint(complaint_id)
        if complaint is None:
            raise NotFoundError(f"Complaint not found: {complaint_id}")

        fields = {"status": status, "admin_comment": admin_comment or None}
        await self.store.update_complaint(complaint_id, fields)
        complaint.status = status
        complaint.admin_comment = admin_comment or None
        logger.info(f"Complaint {complaint_id} -> {status}")
        return complaint

    async def convert_complaint(self, complaint_id: str) -> MonitoredListing:
        """Turn a resolved complaint into a monitored listing.

        The complaint is kept. The listing uses the client-reported price.

        Raises:
            InputError: The complaint is not resolved.
            DuplicateError: The listing code is already monitored.
        """
        complaint = await self.store.get_complaint(complaint_id)
        if complaint is None:
            raise NotFoundError(f"Complaint not found: {complaint_id}")
        if complaint.status != "resolved":
            raise InputError(f"Only resolved complaints can be converted (status: {complaint.status})")

        return await self.add_listing(
            url=complaint.url,
            product_id=complaint.product_id,
            marketplace_id=complaint.marketplace_id,
            detected_price=complaint.reported_price,
            client_id=complaint.client_id,
            origin="complaint-converted",
        )
