"""Tests for compliance evaluation."""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from listingwatch.compliance import apply_compliance, evaluate, to_decimal, to_price
from listingwatch.errors import ComplianceError, InputError
from listingwatch.models import MonitoredListing


class TestEvaluate:
    """Tests for evaluate."""

    def test_equal_price_is_compliant(self) -> None:
        """Test the boundary: equal to minimum is not below it."""
        result = evaluate(Decimal("199.90"), Decimal("199.90"))
        assert result.status == "compliant"
        assert result.gap_absolute == 0
        assert result.gap_percent == 0

    def test_one_cent_below_is_below_minimum(self) -> None:
        """Test strict inequality."""
        assert evaluate(Decimal("199.89"), Decimal("199.90")).status == "below-minimum"

    def test_gap_values(self) -> None:
        """Test absolute and percentage gap."""
        result = evaluate("80", "100")
        assert result.status == "below-minimum"
        assert result.gap_absolute == Decimal("-20")
        assert result.gap_percent == Decimal("-20")

    def test_above_minimum(self) -> None:
        """Test a positive gap."""
        result = evaluate(150, 100)
        assert result.status == "compliant"
        assert result.gap_percent == Decimal("50")

    def test_float_inputs_use_string_form(self) -> None:
        """Test that floats do not leak binary rounding."""
        assert evaluate(199.9, "199.90").status == "compliant"

    @pytest.mark.parametrize("minimum", ["0", "-1"])
    def test_non_positive_minimum_raises(self, minimum: str) -> None:
        """Test that a zero or negative minimum is rejected."""
        with pytest.raises(ComplianceError):
            evaluate("10", minimum)

    def test_invalid_price_raises_input_error(self) -> None:
        """Test non-numeric prices."""
        with pytest.raises(InputError):
            to_decimal("abc")

    def test_decimal_comma_is_accepted(self) -> None:
        """Test Brazilian decimal comma input."""
        assert to_decimal("89,90") == Decimal("89.90")


class TestToPrice:
    """Tests for cent rounding of prices."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [("199.899", "199.90"), ("199.894", "199.89"), ("0.005", "0.01"), (150, "150.00"), ("89,905", "89.91")],
    )
    def test_rounds_half_up_to_cents(self, value: object, expected: str) -> None:
        """Test that prices are rounded to two places."""
        assert str(to_price(value)) == expected  # type: ignore[arg-type]

    def test_rounded_price_decides_status(self) -> None:
        """Test that a sub-cent shortfall is compliant once rounded."""
        assert evaluate(to_price("199.899"), Decimal("199.90")).status == "compliant"

    def test_invalid_price(self) -> None:
        """Test non-numeric input."""
        with pytest.raises(InputError):
            to_price("R$ abc")


class TestApplyCompliance:
    """Tests for apply_compliance."""

    def test_recomputes_status_from_price(self) -> None:
        """Test that status follows the new price."""
        listing = MonitoredListing(
            url="https://x.com/MLB-1234567890",
            product_id="p",
            marketplace_id="m",
            detected_price=Decimal("250"),
            minimum_price=Decimal("200"),
            status="compliant",
        )
        now = datetime(2026, 1, 1, tzinfo=timezone.utc)

        updated = apply_compliance(listing, "150", now=now)

        assert updated.status == "below-minimum"
        assert updated.detected_price == Decimal("150")
        assert updated.updated_at == now
        assert listing.status == "compliant"
