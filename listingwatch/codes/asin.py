"""Amazon-style ASIN codes (e.g. B07XYZ1234)."""

from listingwatch.codes.base import CodeFamily

LEADING_LETTER = "B"

# Token must not continue into a longer alphanumeric run
_TOKEN = r"([A-Z0-9]{10})(?![A-Z0-9])"


class AsinFamily(CodeFamily):
    """10-character alphanumeric codes starting with the leading letter."""

    NAME = "alnum-asin"

    PATTERNS = [
        rf"/dp/{_TOKEN}",
        rf"/product/{_TOKEN}",
        rf"/gp/product/{_TOKEN}",
        rf"[?&]ASIN={_TOKEN}",
        rf"/{_TOKEN}(?:[/?#]|$)",  # Bare path segment
    ]

    def _accept(self, token: str) -> bool:
        return token.upper().startswith(LEADING_LETTER)

    def _format(self, token: str) -> str:
        return token.upper()
