"""Numeric listing ids (Mercado Livre style, e.g. MLB-1234567890)."""

from listingwatch.codes.base import CodeFamily

PREFIX = "MLB"


class NumericIdFamily(CodeFamily):
    """10+ digit ids, optionally written with the fixed prefix and a hyphen."""

    NAME = "numeric-id"

    PATTERNS = [
        rf"/{PREFIX}-?(\d{{10,}})",  # /MLB-1234567890-product-name
        rf"/p/(?:{PREFIX}-?)?(\d{{10,}})",  # /p/MLB1234567890
        rf"[?&]item_id=(?:{PREFIX}-?)?(\d{{10,}})",  # ?item_id=MLB1234567890
    ]

    def _format(self, token: str) -> str:
        return f"{PREFIX}-{token}"
