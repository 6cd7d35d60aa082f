"""Resolution state for the single URL field being edited.

Each URL change starts a new pipeline run (marketplace, code, duplicate
check, enrichment). Runs are numbered; a run only publishes state while its
number is still the current one, and a superseded run's task is cancelled.
"""

import asyncio
import logging
from dataclasses import dataclass, replace
from typing import Literal

from listingwatch.codes import extract_code
from listingwatch.dedup import ComplaintDuplicateGuard, DuplicateGuard, ListingDuplicateGuard
from listingwatch.enrichment import EnrichmentOutcome, EnrichmentPoller
from listingwatch.errors import StoreError
from listingwatch.matching import resolve_marketplace, url_hostname
from listingwatch.models import ListingCode, Marketplace
from listingwatch.store.base import ListingStore

logger = logging.getLogger(__name__)

SessionMode = Literal["listing", "complaint"]


@dataclass
class ResolvedState:
    """Everything derived from the current URL."""

    url: str = ""
    generation: int = 0
    marketplace: Marketplace | None = None
    code: ListingCode | None = None
    duplicate: bool = False
    duplicate_warning: str | None = None
    enrichment: EnrichmentOutcome | None = None
    error: str | None = None  # Input error, blocks submission
    pending: bool = False


class ResolutionSession:
    """Owns the resolved state of one edit session."""

    def __init__(
        self,
        store: ListingStore,
        poller: EnrichmentPoller | None = None,
        mode: SessionMode = "listing",
    ):
        """Initialize session.

        Args:
            store: Store used for marketplaces and duplicate checks.
            poller: Enrichment poller. Enrichment is skipped if None.
            mode: 'listing' checks duplicates by code, 'complaint' by URL.
        """
        self.store = store
        self.poller = poller
        self.mode = mode
        self.guard: DuplicateGuard = (
            ComplaintDuplicateGuard(store) if mode == "complaint" else ListingDuplicateGuard(store)
        )
        self.state = ResolvedState()
        self._generation = 0
        self._task: asyncio.Task | None = None

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def can_submit(self) -> bool:
        """True once the current URL is valid, resolved and not a duplicate."""
        state = self.state
        return bool(state.url) and not state.pending and state.error is None and not state.duplicate

    def set_url(self, url: str) -> asyncio.Task:
        """Start resolving a new URL, superseding any run in flight.

        Must be called from a running event loop.

        Args:
            url: New URL field value.

        Returns:
            Task running the pipeline for this URL.
        """
        self._generation += 1
        generation = self._generation

        if self._task is not None and not self._task.done():
            logger.debug(f"Superseding resolution run {generation - 1}")
            self._task.cancel()

        url = url.strip()
        self.state = ResolvedState(url=url, generation=generation, pending=bool(url))
        self._task = asyncio.create_task(self._run(url, generation))
        return self._task

    async def settle(self) -> ResolvedState:
        """Wait for the current run to finish and return the state."""
        while self._task is not None and not self._task.done():
            task = self._task
            try:
                await task
            except asyncio.CancelledError:
                # Superseded while waiting; wait for the newer run instead
                if task is self._task:
                    raise
        return self.state

    def _publish(self, generation: int, **changes: object) -> bool:
        """Apply changes if the run is still current.

        Returns:
            False if the run has been superseded.
        """
        if generation != self._generation:
            return False
        self.state = replace(self.state, **changes)  # type: ignore[arg-type]
        return True

    async def _run(self, url: str, generation: int) -> None:
        if not url:
            self._publish(generation, pending=False)
            return

        if url_hostname(url) is None:
            self._publish(generation, error="Enter a full URL including http:// or https://", pending=False)
            return

        marketplaces = await self._marketplaces()
        marketplace = resolve_marketplace(url, marketplaces)
        code = extract_code(url, marketplace)
        if not self._publish(generation, marketplace=marketplace, code=code):
            return

        if self.mode == "complaint":
            verdict = await self.guard.check(url)
        elif code is not None:
            verdict = await self.guard.check(str(code))
        else:
            verdict = None
        if verdict is not None:
            if not self._publish(generation, duplicate=verdict.duplicate, duplicate_warning=verdict.warning):
                return
            if verdict.duplicate:
                self._publish(generation, pending=False)
                return

        if code is None or self.poller is None:
            self._publish(generation, pending=False)
            return

        outcome = await self.poller.poll(code, url, marketplace.name if marketplace else "")
        self._publish(generation, enrichment=outcome, pending=False)

    async def _marketplaces(self) -> list[Marketplace]:
        try:
            return await self.store.list_marketplaces(active_only=True)
        except StoreError as e:
            # Detection miss, not a failure: the user picks the marketplace manually
            logger.warning(f"Could not load marketplaces: {e}")
            return []
