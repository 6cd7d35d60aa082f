"""Listing code extraction, one strategy per code family."""

import logging

from listingwatch.codes.asin import AsinFamily
from listingwatch.codes.base import CodeFamily
from listingwatch.codes.numeric import NumericIdFamily
from listingwatch.models import CodeFamilyName, ListingCode, Marketplace

logger = logging.getLogger(__name__)

# URL text marker that selects the ASIN family
ASIN_MARKER = "amazon"

FAMILY_MAP: dict[CodeFamilyName, CodeFamily] = {
    "numeric-id": NumericIdFamily(),
    "alnum-asin": AsinFamily(),
}


def select_family(url: str) -> CodeFamily:
    """Pick the code family for a URL.

    This is a URL substring heuristic, not a lookup by marketplace identity.

    Args:
        url: Listing URL.

    Returns:
        The family whose patterns apply to this URL.
    """
    family: CodeFamilyName = "alnum-asin" if ASIN_MARKER in url.lower() else "numeric-id"
    return FAMILY_MAP[family]


def extract_code(url: str, marketplace: Marketplace | None = None) -> ListingCode | None:
    """Extract the canonical listing code from a URL.

    Args:
        url: Listing URL.
        marketplace: Resolved marketplace, if any. Only used for logging.

    Returns:
        ListingCode, or None if no pattern of the selected family matches.
    """
    if not url:
        return None

    family = select_family(url)
    code = family.extract(url)

    where = marketplace.name if marketplace else "unknown marketplace"
    if code is None:
        logger.debug(f"No {family.NAME} code in URL ({where}): {url}")
    else:
        logger.debug(f"Extracted {code} ({where})")
    return code


__all__ = [
    "CodeFamily",
    "NumericIdFamily",
    "AsinFamily",
    "FAMILY_MAP",
    "select_family",
    "extract_code",
]
