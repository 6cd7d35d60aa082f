"""Live listing data from the external enrichment (scraping) service."""

import asyncio
import logging
import re
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Literal

import httpx

from listingwatch.models import EnrichmentSnapshot, ListingCode

logger = logging.getLogger(__name__)

# Body returned while the service is still scraping the listing
PENDING_MESSAGE = "Workflow was started"

DEFAULT_RETRY_DELAY = 3.0  # seconds

EnrichmentState = Literal["complete", "failed", "gave-up", "malformed"]
NoticeLevel = Literal["info", "error"]

# Snapshot field -> accepted response keys, in lookup order
FIELD_KEYS: dict[str, tuple[str, ...]] = {
    "price": ("preco", "price"),
    "title": ("titulo", "title"),
    "sales_text": ("vendidos", "sales", "sold"),
    "rating_text": ("avaliacao", "rating"),
    "seller": ("vendedor", "seller"),
    "image_url": ("imagem", "image", "image_url"),
    "discount_percent": ("desconto", "discount"),
    "full_price": ("preco_original", "full_price", "original_price"),
}

_NOT_JSON = object()

# Dots only as thousands separators: 1.299 or 12.345.678
_THOUSANDS = re.compile(r"\d{1,3}(?:\.\d{3})+")


@dataclass
class EnrichmentOutcome:
    """Terminal state of one enrichment run."""

    state: EnrichmentState
    snapshot: EnrichmentSnapshot | None = None
    notice: str | None = None
    level: NoticeLevel = "info"
    attempts: int = 0


def _first(data: dict[str, Any], keys: tuple[str, ...]) -> Any:
    for key in keys:
        value = data.get(key)
        if value not in (None, ""):
            return value
    return None


def _price(value: Any) -> Decimal | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.replace("R$", "").strip()
        if "," in value:
            # Brazilian format: 1.299,90
            value = value.replace(".", "").replace(",", ".")
        elif _THOUSANDS.fullmatch(value):
            value = value.replace(".", "")
    try:
        result = Decimal(str(value))
    except InvalidOperation:
        return None
    return result if result.is_finite() else None


def _text(value: Any) -> str | None:
    return None if value is None else str(value).strip()


def parse_snapshot(body: Any) -> EnrichmentSnapshot | None:
    """Pull the data object out of a completed response.

    A completed response is a list whose first element holds a 'data' list
    whose first element is the listing data.

    Args:
        body: Decoded JSON body.

    Returns:
        EnrichmentSnapshot, or None if the body has another shape.
    """
    if not isinstance(body, list) or not body or not isinstance(body[0], dict):
        return None
    data = body[0].get("data")
    if not isinstance(data, list) or not data or not isinstance(data[0], dict):
        return None

    item: dict[str, Any] = data[0]
    return EnrichmentSnapshot(
        price=_price(_first(item, FIELD_KEYS["price"])),
        title=_text(_first(item, FIELD_KEYS["title"])),
        sales_text=_text(_first(item, FIELD_KEYS["sales_text"])),
        rating_text=_text(_first(item, FIELD_KEYS["rating_text"])),
        seller=_text(_first(item, FIELD_KEYS["seller"])),
        image_url=_text(_first(item, FIELD_KEYS["image_url"])),
        discount_percent=_text(_first(item, FIELD_KEYS["discount_percent"])),
        full_price=_price(_first(item, FIELD_KEYS["full_price"])),
        raw=item,
    )


def is_pending(body: Any) -> bool:
    """Check for the 'processing started' response."""
    return isinstance(body, dict) and body.get("message") == PENDING_MESSAGE


class EnrichmentPoller:
    """Fetches listing data with one delayed retry while the service is busy.

    At most two GET requests and one fixed delay per run. Both requests are
    plain reads, so the retry has no extra side effects on the service.
    """

    def __init__(
        self,
        endpoint: str,
        client: httpx.AsyncClient | None = None,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        timeout: float = 30.0,
        include_context: bool = False,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        """Initialize poller.

        Args:
            endpoint: Enrichment service URL.
            client: HTTP client to use. One is created (and owned) if omitted.
            retry_delay: Seconds to wait before the single retry.
            timeout: Request timeout for an owned client.
            include_context: Also send listing URL and marketplace name.
            sleep: Delay function, replaceable in tests.
        """
        self.endpoint = endpoint
        self.retry_delay = retry_delay
        self.include_context = include_context
        self._sleep = sleep
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
            headers={"Accept": "application/json"},
        )

    async def close(self) -> None:
        """Close the HTTP client if this poller created it."""
        if self._owns_client:
            await self._client.aclose()

    def _params(self, code: str, url: str, marketplace_name: str) -> dict[str, str]:
        params = {"code": code}
        if self.include_context:
            params["url"] = url
            params["marketplace"] = marketplace_name
        return params

    async def _get(self, params: dict[str, str]) -> Any:
        """Issue one GET and decode its body.

        Returns:
            Decoded JSON, or _NOT_JSON if the body is not JSON.

        Raises:
            httpx.HTTPError: On transport failure or non-success status.
        """
        response = await self._client.get(self.endpoint, params=params)
        response.raise_for_status()
        try:
            return response.json()
        except ValueError:
            return _NOT_JSON

    async def poll(
        self,
        code: ListingCode | str,
        url: str = "",
        marketplace_name: str = "",
    ) -> EnrichmentOutcome:
        """Run one enrichment: request, optional delayed retry, interpret.

        Args:
            code: Canonical listing code.
            url: Listing URL (sent only with include_context).
            marketplace_name: Marketplace name (sent only with include_context).

        Returns:
            EnrichmentOutcome. Never raises for service or transport errors.
        """
        params = self._params(str(code), url, marketplace_name)

        try:
            body = await self._get(params)
        except httpx.HTTPError as e:
            logger.error(f"Enrichment request failed for {code}: {e}")
            return EnrichmentOutcome(
                state="failed",
                notice="Could not reach the listing data service. Enter the details manually.",
                level="error",
                attempts=1,
            )

        if is_pending(body):
            logger.info(f"Enrichment pending for {code}, retrying in {self.retry_delay:.1f}s")
            await self._sleep(self.retry_delay)
            return await self._retry(code, params)

        snapshot = parse_snapshot(body)
        if snapshot is not None:
            logger.info(f"Enrichment complete for {code}")
            return EnrichmentOutcome(state="complete", snapshot=snapshot, attempts=1)

        logger.warning(f"Unexpected enrichment response for {code}: {body!r:.200}")
        return EnrichmentOutcome(
            state="malformed",
            notice="Listing data could not be read. Enter the details manually.",
            attempts=1,
        )

    async def _retry(self, code: ListingCode | str, params: dict[str, str]) -> EnrichmentOutcome:
        gave_up = EnrichmentOutcome(
            state="gave-up",
            notice="Listing data is still being collected. You can continue and fill in the details manually.",
            attempts=2,
        )
        try:
            body = await self._get(params)
        except httpx.HTTPError as e:
            logger.info(f"Enrichment retry failed for {code}: {e}")
            return gave_up

        snapshot = parse_snapshot(body)
        if snapshot is None:
            logger.info(f"Enrichment still not ready for {code}, giving up")
            return gave_up

        logger.info(f"Enrichment complete for {code} after retry")
        return EnrichmentOutcome(state="complete", snapshot=snapshot, attempts=2)

    async def enrich(
        self,
        code: ListingCode | str,
        url: str = "",
        marketplace_name: str = "",
    ) -> EnrichmentSnapshot | None:
        """Fetch a snapshot, or None on any failure."""
        outcome = await self.poll(code, url, marketplace_name)
        return outcome.snapshot
