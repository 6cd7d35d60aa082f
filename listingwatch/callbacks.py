"""Inbound price updates pushed by the enrichment service."""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from listingwatch.compliance import evaluate, to_price
from listingwatch.errors import InputError, NotFoundError
from listingwatch.store.base import ListingStore

logger = logging.getLogger(__name__)

# 'mlb' is the field name the service sends
CODE_KEYS = ("mlb", "code")
PRICE_KEYS = ("preco", "price")


@dataclass
class CallbackResult:
    """Listing touched by a callback and the fields written."""

    listing_id: str
    updated_fields: dict[str, Any] = field(default_factory=dict)


def _lookup(payload: dict[str, Any], keys: tuple[str, ...]) -> Any:
    for key in keys:
        if payload.get(key) is not None:
            return payload[key]
    return None


async def ingest_callback(
    payload: dict[str, Any],
    store: ListingStore,
    now: datetime | None = None,
) -> CallbackResult:
    """Apply a callback payload to the listing with the same code.

    The timestamp is always refreshed. When a price is present, the status is
    recomputed against the listing's minimum price snapshot.

    Args:
        payload: Decoded callback body, e.g. {"mlb": "MLB-123...", "preco": 99.9}.
        store: Store holding the listing.
        now: Update timestamp. Defaults to the current UTC time.

    Returns:
        CallbackResult.

    Raises:
        InputError: The payload has no code or an invalid price.
        NotFoundError: No listing has this code.
        StoreError: The update was rejected.
    """
    if not isinstance(payload, dict):
        raise InputError("Callback payload must be a JSON object")

    code = _lookup(payload, CODE_KEYS)
    if not code:
        raise InputError("Callback payload has no listing code")

    listing = await store.get_listing_by_code(str(code))
    if listing is None or listing.id is None:
        raise NotFoundError(f"Listing not found: {code}")

    fields: dict[str, Any] = {"updated_at": now or datetime.now(timezone.utc)}
    raw_price = _lookup(payload, PRICE_KEYS)
    if raw_price is not None:
        price = to_price(raw_price)
        fields["detected_price"] = price
        fields["status"] = evaluate(price, listing.minimum_price).status

    await store.update_listing(listing.id, fields)
    logger.info(f"Callback applied to {code}: {', '.join(sorted(fields))}")
    return CallbackResult(listing_id=listing.id, updated_fields=fields)
