"""Base listing code family interface."""

import re
from abc import ABC, abstractmethod

from listingwatch.models import CodeFamilyName, ListingCode


class CodeFamily(ABC):
    """Abstract base class for marketplace-specific listing code patterns."""

    # Override these in subclasses
    NAME: CodeFamilyName
    PATTERNS: list[str] = []

    def __init__(self) -> None:
        """Compile patterns once, preserving priority order."""
        self._compiled = [re.compile(pattern, re.IGNORECASE) for pattern in self.PATTERNS]

    def extract(self, url: str) -> ListingCode | None:
        """Extract a canonical code from a URL.

        The first pattern whose captured token is accepted wins, even if a
        later pattern would also match.

        Args:
            url: Listing URL.

        Returns:
            ListingCode, or None if no pattern matches.
        """
        for pattern in self._compiled:
            for match in pattern.finditer(url):
                if self._accept(match.group(1)):
                    return ListingCode(value=self._format(match.group(1)), family=self.NAME)
        return None

    def _accept(self, token: str) -> bool:
        """Check a captured token before formatting it.

        Args:
            token: Token captured by a pattern.

        Returns:
            True if the token is a valid code for this family.
        """
        return True

    @abstractmethod
    def _format(self, token: str) -> str:
        """Format a captured token as the canonical code string.

        Args:
            token: Token captured by a pattern.

        Returns:
            Canonical code value.
        """
        ...
