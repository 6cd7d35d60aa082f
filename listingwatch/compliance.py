"""Compliance of a detected price against the minimum authorized price."""

from dataclasses import replace
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from listingwatch.errors import ComplianceError, InputError
from listingwatch.models import ComplianceResult, MonitoredListing

CENT = Decimal("0.01")


def to_decimal(value: Decimal | float | int | str) -> Decimal:
    """Coerce a price to Decimal via its string form.

    Args:
        value: Price as Decimal, number or numeric string.

    Returns:
        Decimal price.

    Raises:
        InputError: If the value is not a finite number.
    """
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip().replace(",", "."))
        except InvalidOperation:
            raise InputError(f"Invalid price: {value!r}") from None
    if not result.is_finite():
        raise InputError(f"Invalid price: {value!r}")
    return result


def to_price(value: Decimal | float | int | str) -> Decimal:
    """Coerce a price to Decimal rounded to cents, as prices are stored.

    Status must be computed on the rounded value so that a stored record
    re-evaluates to the same status.

    Raises:
        InputError: If the value is not a finite number or is too large.
    """
    try:
        return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise InputError(f"Invalid price: {value!r}") from None


def evaluate(
    detected_price: Decimal | float | int | str,
    minimum_price: Decimal | float | int | str,
) -> ComplianceResult:
    """Derive compliance status and gap for a detected price.

    Equal to the minimum is compliant; only strictly lower is below-minimum.

    Args:
        detected_price: Price seen on the listing.
        minimum_price: Minimum authorized price of the product.

    Returns:
        ComplianceResult with status, absolute gap and percentage gap.

    Raises:
        ComplianceError: If the minimum price is not positive.
    """
    detected = to_decimal(detected_price)
    minimum = to_decimal(minimum_price)
    if minimum <= 0:
        raise ComplianceError(f"Minimum price must be positive, got {minimum}")

    gap = detected - minimum
    return ComplianceResult(
        status="below-minimum" if detected < minimum else "compliant",
        gap_absolute=gap,
        gap_percent=gap / minimum * 100,
    )


def apply_compliance(
    listing: MonitoredListing,
    detected_price: Decimal | float | int | str,
    now: datetime | None = None,
) -> MonitoredListing:
    """Return a copy of a listing with a new price and its recomputed status.

    Args:
        listing: Listing whose minimum price snapshot is used.
        detected_price: Newly detected price.
        now: Update timestamp. Defaults to the current UTC time.

    Returns:
        Updated listing copy.
    """
    price = to_price(detected_price)
    result = evaluate(price, listing.minimum_price)
    return replace(
        listing,
        detected_price=price,
        status=result.status,
        updated_at=now or datetime.now(timezone.utc),
    )
