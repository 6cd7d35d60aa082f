"""Screenshot evidence of monitored listings."""

import base64
import logging
from datetime import datetime
from pathlib import Path

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page

from listingwatch.models import MonitoredListing

logger = logging.getLogger(__name__)

VIEWPORT = {"width": 1024, "height": 768}


class ScreenshotCapture:
    """Captures listing screenshots into date-based folders."""

    def __init__(self, output_dir: Path, settle_ms: int = 2000):
        """Initialize screenshot capture.

        Args:
            output_dir: Base directory for screenshot output.
            settle_ms: Time to let the page render before capturing.
        """
        self.output_dir = Path(output_dir)
        self.settle_ms = settle_ms

    def _get_date_folder(self) -> Path:
        """Get or create today's screenshot folder."""
        date_str = datetime.now().strftime("%Y-%m-%d")
        date_folder = self.output_dir / "screenshots" / date_str
        date_folder.mkdir(parents=True, exist_ok=True)
        return date_folder

    def _generate_filename(self, listing: MonitoredListing) -> str:
        """Generate filename for screenshot.

        Format: {status}_{code}_{timestamp}.png

        Args:
            listing: The listing being captured.

        Returns:
            Filename string.
        """
        timestamp = datetime.now().strftime("%H%M%S")
        code = (listing.code or "nocode").replace("/", "_").replace(":", "")
        return f"{listing.status}_{code}_{timestamp}.png"

    async def _load(self, page: Page, url: str) -> None:
        await page.set_viewport_size(VIEWPORT)
        await page.goto(url, wait_until="domcontentloaded")
        await page.wait_for_timeout(self.settle_ms)

    async def capture(self, page: Page, listing: MonitoredListing) -> Path | None:
        """Capture a full-page screenshot of a listing.

        Args:
            page: Playwright page instance.
            listing: The listing to capture.

        Returns:
            Path to saved screenshot, or None if capture failed.
        """
        try:
            await self._load(page, listing.url)

            filepath = self._get_date_folder() / self._generate_filename(listing)
            await page.screenshot(path=str(filepath), full_page=True)

            logger.info(f"Screenshot saved: {filepath}")
            return filepath

        except PlaywrightError as e:
            logger.error(f"Error capturing screenshot for {listing.url}: {e}")
            return None

    async def capture_data_url(self, page: Page, url: str) -> str | None:
        """Capture the visible viewport as a base64 PNG data URL.

        Args:
            page: Playwright page instance.
            url: Listing URL.

        Returns:
            'data:image/png;base64,...' string, or None if capture failed.
        """
        try:
            await self._load(page, url)
            image = await page.screenshot(type="png")
        except PlaywrightError as e:
            logger.error(f"Error capturing screenshot for {url}: {e}")
            return None

        return "data:image/png;base64," + base64.b64encode(image).decode("ascii")
