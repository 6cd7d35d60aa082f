"""Duplicate guards blocking redundant listing and complaint submissions."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

from listingwatch.errors import StoreError
from listingwatch.models import ACTIVE_COMPLAINT_STATUSES
from listingwatch.store.base import ListingStore

logger = logging.getLogger(__name__)


@dataclass
class DuplicateVerdict:
    """Outcome of a duplicate check."""

    key: str
    duplicate: bool
    warning: str | None = None  # Set when the check itself failed


class DuplicateGuard(ABC):
    """Checks the store for an existing record with the same key.

    A failed query is reported as "not a duplicate" with a warning, so a flaky
    check never blocks submission.
    """

    KIND: str = ""
    active_only: bool = False

    def __init__(self, store: ListingStore):
        """Initialize guard.

        Args:
            store: Store to query.
        """
        self.store = store

    @abstractmethod
    async def _exists(self, key: str) -> bool:
        """Query the store for the key."""
        ...

    async def check(self, key: str | None) -> DuplicateVerdict:
        """Check whether a record with this key already exists.

        Args:
            key: Duplicate key. Empty keys are never duplicates.

        Returns:
            DuplicateVerdict for the key.
        """
        if not key:
            return DuplicateVerdict(key="", duplicate=False)

        try:
            found = await self._exists(key)
        except StoreError as e:
            warning = f"Could not check for duplicate {self.KIND}: {e}"
            logger.warning(warning)
            return DuplicateVerdict(key=key, duplicate=False, warning=warning)

        if found:
            logger.info(f"Duplicate {self.KIND}: {key}")
        return DuplicateVerdict(key=key, duplicate=found)

    async def is_duplicate(self, key: str | None) -> bool:
        """Shortcut for check(key).duplicate."""
        verdict = await self.check(key)
        return verdict.duplicate


class ListingDuplicateGuard(DuplicateGuard):
    """Blocks a listing whose canonical code was ever used, whatever its status."""

    KIND = "listing"
    active_only = False

    async def _exists(self, key: str) -> bool:
        return await self.store.listing_exists(key)


class ComplaintDuplicateGuard(DuplicateGuard):
    """Blocks a complaint for a URL that already has an open complaint."""

    KIND = "complaint"
    active_only = True

    async def _exists(self, key: str) -> bool:
        statuses = ACTIVE_COMPLAINT_STATUSES if self.active_only else None
        return await self.store.complaint_exists(key, statuses)
