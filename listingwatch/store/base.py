"""Base store interface for marketplaces, products, listings and complaints."""

from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any

from listingwatch.models import (
    Complaint,
    ComplaintStatus,
    ComplianceStatus,
    Marketplace,
    MonitoredListing,
    Product,
)


class ListingStore(ABC):
    """Abstract relational store the pipeline reads from and writes to.

    Implementations raise StoreError when a query, insert or update fails.
    """

    # Directory

    @abstractmethod
    async def list_marketplaces(self, active_only: bool = True) -> list[Marketplace]:
        """List marketplaces ordered by name."""
        ...

    @abstractmethod
    async def list_products(self, active_only: bool = True) -> list[Product]:
        """List products ordered by name."""
        ...

    @abstractmethod
    async def get_marketplace(self, marketplace_id: str) -> Marketplace | None: ...

    @abstractmethod
    async def get_product(self, product_id: str) -> Product | None: ...

    @abstractmethod
    async def add_marketplace(self, marketplace: Marketplace) -> str: ...

    @abstractmethod
    async def add_product(self, product: Product) -> str:
        """Insert a product. SKU must be unique."""
        ...

    # Monitored listings

    @abstractmethod
    async def listing_exists(self, code: str) -> bool:
        """Check whether any listing, whatever its status, uses this code."""
        ...

    @abstractmethod
    async def get_listing(self, listing_id: str) -> MonitoredListing | None: ...

    @abstractmethod
    async def get_listing_by_code(self, code: str) -> MonitoredListing | None: ...

    @abstractmethod
    async def insert_listing(self, listing: MonitoredListing) -> str:
        """Insert a listing and return its id."""
        ...

    @abstractmethod
    async def update_listing(self, listing_id: str, fields: dict[str, Any]) -> None: ...

    @abstractmethod
    async def list_listings(self, status: ComplianceStatus | None = None) -> list[MonitoredListing]: ...

    # Complaints

    @abstractmethod
    async def complaint_exists(self, url: str, statuses: Sequence[ComplaintStatus] | None = None) -> bool:
        """Check whether a complaint exists for the exact URL.

        Args:
            url: Complaint URL, compared verbatim.
            statuses: Only count complaints in these statuses. None counts all.
        """
        ...

    @abstractmethod
    async def insert_complaint(self, complaint: Complaint) -> str: ...

    @abstractmethod
    async def get_complaint(self, complaint_id: str) -> Complaint | None: ...

    @abstractmethod
    async def update_complaint(self, complaint_id: str, fields: dict[str, Any]) -> None: ...

    @abstractmethod
    async def list_complaints(
        self,
        status: ComplaintStatus | None = None,
        client_id: str | None = None,
    ) -> list[Complaint]: ...

    async def close(self) -> None:
        """Release resources held by the store."""
        return None
