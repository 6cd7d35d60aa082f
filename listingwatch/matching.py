"""Marketplace detection from listing URLs."""

import logging
from collections.abc import Iterable
from urllib.parse import urlparse

from listingwatch.models import Marketplace

logger = logging.getLogger(__name__)


def normalize_hostname(hostname: str) -> str:
    """Lower-case a hostname and strip one leading 'www.'.

    Args:
        hostname: Hostname to normalize.

    Returns:
        Normalized hostname.
    """
    hostname = hostname.lower()
    if hostname.startswith("www."):
        hostname = hostname[4:]
    return hostname


def url_hostname(url: str) -> str | None:
    """Return the normalized hostname of an absolute URL.

    Args:
        url: URL to parse.

    Returns:
        Normalized hostname, or None if the URL has no scheme or host.
    """
    try:
        parsed = urlparse(url.strip())
        hostname = parsed.hostname
    except (ValueError, AttributeError):
        return None

    if not parsed.scheme or not hostname:
        return None
    return normalize_hostname(hostname)


def resolve_marketplace(url: str, marketplaces: Iterable[Marketplace]) -> Marketplace | None:
    """Detect which registered marketplace a URL belongs to.

    A marketplace matches when either normalized hostname contains the other.
    When several match, the first in iteration order wins.

    Args:
        url: Listing URL pasted by the user.
        marketplaces: Candidate marketplaces.

    Returns:
        The matching marketplace, or None if the URL does not parse or nothing matches.
    """
    host = url_hostname(url)
    if host is None:
        logger.debug(f"Unparseable URL, no marketplace: {url!r}")
        return None

    for marketplace in marketplaces:
        candidate = marketplace.hostname
        if not candidate:
            continue
        candidate = normalize_hostname(candidate)
        if candidate in host or host in candidate:
            return marketplace

    logger.debug(f"No marketplace matches host {host}")
    return None
