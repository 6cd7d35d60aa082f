"""Application wiring: configuration, store, poller and registry."""

import logging
from decimal import Decimal
from pathlib import Path
from typing import Any

import yaml
from playwright.async_api import async_playwright

from listingwatch.capture import ScreenshotCapture
from listingwatch.compliance import to_price
from listingwatch.enrichment import DEFAULT_RETRY_DELAY, EnrichmentPoller
from listingwatch.errors import InputError, NotFoundError
from listingwatch.models import Marketplace, Product
from listingwatch.registry import ListingRegistry
from listingwatch.report import ComplianceReport
from listingwatch.session import ResolutionSession, SessionMode
from listingwatch.store import MemoryStore, SqlStore
from listingwatch.store.base import ListingStore

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///listingwatch.db"


class ListingWatch:
    """Builds all components from config.yaml."""

    def __init__(self, config_path: Path, store: ListingStore | None = None):
        """Initialize from a configuration file.

        Args:
            config_path: Path to config.yaml file.
            store: Store to use instead of the configured database.

        Raises:
            FileNotFoundError: If the config file doesn't exist.
        """
        self.config_path = Path(config_path)
        self.config = self._load_config(self.config_path)

        output_dir = Path(self.config.get("output", {}).get("base_dir", "output"))
        logs_dir = output_dir / self.config.get("output", {}).get("logs_dir", "logs")

        self.store = store or self._create_store(self.config.get("database", {}))
        self.registry = ListingRegistry(self.store)
        self.report = ComplianceReport(logs_dir)
        self.capture = ScreenshotCapture(output_dir)

        enrichment_config = self.config.get("enrichment", {})
        endpoint = enrichment_config.get("endpoint")
        self.poller: EnrichmentPoller | None = None
        if endpoint:
            self.poller = EnrichmentPoller(
                endpoint,
                retry_delay=float(enrichment_config.get("retry_delay_seconds", DEFAULT_RETRY_DELAY)),
                timeout=float(enrichment_config.get("timeout_seconds", 30.0)),
                include_context=bool(enrichment_config.get("include_context", False)),
            )
        else:
            logger.info("No enrichment endpoint configured, listing data will be entered manually")

    def _load_config(self, config_path: Path) -> dict[str, Any]:
        """Load configuration from YAML file.

        Raises:
            FileNotFoundError: If config file doesn't exist.
        """
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_path) as f:
            config: dict[str, Any] = yaml.safe_load(f) or {}
            return config

    def _create_store(self, database_config: dict[str, Any]) -> ListingStore:
        url = database_config.get("url", DEFAULT_DATABASE_URL)
        if url == "memory":
            return MemoryStore()
        return SqlStore(url, echo=database_config.get("echo", False))

    async def start(self) -> None:
        """Create the schema if needed and seed the directory from config."""
        if isinstance(self.store, SqlStore):
            await self.store.create_all()
        await self.seed_directory()

    async def close(self) -> None:
        if self.poller is not None:
            await self.poller.close()
        await self.store.close()

    async def __aenter__(self) -> "ListingWatch":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def seed_directory(self) -> dict[str, int]:
        """Add configured marketplaces and products that are not stored yet.

        Marketplaces are matched by name, products by SKU.

        Returns:
            Counts of added marketplaces and products.
        """
        added = {"marketplaces": 0, "products": 0}

        known_marketplaces = {m.name for m in await self.store.list_marketplaces(active_only=False)}
        for entry in self.config.get("marketplaces", []):
            name = entry.get("name")
            if not name or name in known_marketplaces:
                continue
            marketplace = Marketplace(
                id="",
                name=name,
                base_url=str(entry.get("base_url") or ""),
                active=entry.get("active", True),
            )
            if marketplace.hostname is None:
                logger.warning(f"Skipping marketplace {name}: base URL must be an absolute URL")
                continue
            await self.store.add_marketplace(marketplace)
            known_marketplaces.add(name)
            added["marketplaces"] += 1

        known_skus = {p.sku for p in await self.store.list_products(active_only=False)}
        for entry in self.config.get("products", []):
            sku = str(entry.get("sku", ""))
            if not sku or sku in known_skus:
                continue
            try:
                minimum = to_price(entry.get("minimum_price", "0"))
            except InputError:
                minimum = Decimal("0")
            if minimum <= 0:
                logger.warning(f"Skipping product {sku}: minimum price must be positive")
                continue
            await self.store.add_product(
                Product(
                    id="",
                    name=entry.get("name", sku),
                    sku=sku,
                    minimum_price=minimum,
                    active=entry.get("active", True),
                )
            )
            known_skus.add(sku)
            added["products"] += 1

        if added["marketplaces"] or added["products"]:
            logger.info(f"Seeded {added['marketplaces']} marketplace(s), {added['products']} product(s)")
        return added

    def new_session(self, mode: SessionMode = "listing") -> ResolutionSession:
        """Start an edit session for one URL field."""
        return ResolutionSession(self.store, self.poller, mode=mode)

    async def write_report(self) -> dict[str, Any]:
        """Write the Markdown summary and JSON export.

        Returns:
            Statistics dictionary, plus the written paths.
        """
        listings = await self.store.list_listings()
        complaints = await self.store.list_complaints()
        products = await self.store.list_products(active_only=False)
        marketplaces = await self.store.list_marketplaces(active_only=False)

        summary = self.report.write_summary(listings, complaints, products, marketplaces)
        export = self.report.write_export(listings)

        stats = self.report.get_stats(listings, complaints)
        stats["summary_path"] = summary
        stats["export_path"] = export
        return stats

    async def capture_listing(self, listing_id: str, headless: bool = True) -> Path | None:
        """Save a screenshot of a stored listing.

        Args:
            listing_id: Listing to capture.
            headless: Whether to run browser in headless mode.

        Returns:
            Screenshot path, or None if capture failed.

        Raises:
            NotFoundError: If the listing is unknown.
        """
        listing = await self.store.get_listing(listing_id)
        if listing is None:
            raise NotFoundError(f"Listing not found: {listing_id}")

        async with async_playwright() as p:
            browser = await p.chromium.launch(headless=headless)
            page = await browser.new_page()
            try:
                return await self.capture.capture(page, listing)
            finally:
                await browser.close()
