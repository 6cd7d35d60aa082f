"""Tests for duplicate guards."""

from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from listingwatch.dedup import ComplaintDuplicateGuard, ListingDuplicateGuard
from listingwatch.errors import StoreError
from listingwatch.models import Complaint, MonitoredListing
from listingwatch.store import MemoryStore


def _listing(code: str, status: str = "compliant") -> MonitoredListing:
    return MonitoredListing(
        url=f"https://produto.mercadolivre.com.br/{code}",
        code=code,
        product_id="prod-1",
        marketplace_id="mp-ml",
        detected_price=Decimal("250"),
        minimum_price=Decimal("199.90"),
        status=status,  # type: ignore[arg-type]
    )


def _complaint(url: str, status: str) -> Complaint:
    return Complaint(
        client_id="client-1",
        product_id="prod-1",
        marketplace_id="mp-ml",
        url=url,
        reported_price=Decimal("99"),
        status=status,  # type: ignore[arg-type]
    )


class TestListingDuplicateGuard:
    """Tests for ListingDuplicateGuard."""

    @pytest.mark.asyncio
    async def test_new_code_is_not_duplicate(self, store: MemoryStore) -> None:
        """Test that an unused code passes."""
        guard = ListingDuplicateGuard(store)
        assert not await guard.is_duplicate("MLB-1111111111")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", ["compliant", "below-minimum"])
    async def test_existing_code_is_duplicate_regardless_of_status(self, store: MemoryStore, status: str) -> None:
        """Test that any listing with the code blocks creation."""
        await store.insert_listing(_listing("MLB-1111111111", status))
        guard = ListingDuplicateGuard(store)

        verdict = await guard.check("MLB-1111111111")

        assert verdict.duplicate
        assert verdict.warning is None

    @pytest.mark.asyncio
    async def test_empty_key_is_never_duplicate(self, store: MemoryStore) -> None:
        """Test that listings without a code are not checked."""
        await store.insert_listing(_listing(""))
        guard = ListingDuplicateGuard(store)
        assert not await guard.is_duplicate(None)
        assert not await guard.is_duplicate("")

    @pytest.mark.asyncio
    async def test_store_failure_fails_open_with_warning(self) -> None:
        """Test that a failed query is reported as not duplicate plus a warning."""
        store = AsyncMock()
        store.listing_exists = AsyncMock(side_effect=StoreError("connection refused"))
        guard = ListingDuplicateGuard(store)

        verdict = await guard.check("MLB-1111111111")

        assert not verdict.duplicate
        assert verdict.warning is not None
        assert "connection refused" in verdict.warning


class TestComplaintDuplicateGuard:
    """Tests for ComplaintDuplicateGuard."""

    URL = "https://produto.mercadolivre.com.br/MLB-2222222222-fone"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", ["requested", "in-progress"])
    async def test_open_complaint_blocks(self, store: MemoryStore, status: str) -> None:
        """Test that open complaints for the same URL block a new one."""
        await store.insert_complaint(_complaint(self.URL, status))
        assert await ComplaintDuplicateGuard(store).is_duplicate(self.URL)

    @pytest.mark.asyncio
    async def test_resolved_complaint_does_not_block(self, store: MemoryStore) -> None:
        """Test that a resolved complaint allows a new report."""
        await store.insert_complaint(_complaint(self.URL, "resolved"))
        assert not await ComplaintDuplicateGuard(store).is_duplicate(self.URL)

    @pytest.mark.asyncio
    async def test_url_is_compared_exactly(self, store: MemoryStore) -> None:
        """Test that a different query string is a different URL."""
        await store.insert_complaint(_complaint(self.URL, "requested"))
        assert not await ComplaintDuplicateGuard(store).is_duplicate(self.URL + "?ref=home")
