"""Tests for compliance reporting."""

import json
from datetime import datetime
from decimal import Decimal
from pathlib import Path

from listingwatch.models import Complaint, Marketplace, MonitoredListing, Product
from listingwatch.report import ComplianceReport

MARKETPLACES = [Marketplace(id="mp-ml", name="Mercado Livre", base_url="https://www.mercadolivre.com.br")]
PRODUCTS = [Product(id="prod-1", name="Fone Bluetooth X1", sku="FBX1", minimum_price=Decimal("200"))]


def _listing(code: str, price: str) -> MonitoredListing:
    status = "below-minimum" if Decimal(price) < Decimal("200") else "compliant"
    return MonitoredListing(
        id=code,
        url=f"https://produto.mercadolivre.com.br/{code}",
        code=code,
        product_id="prod-1",
        marketplace_id="mp-ml",
        detected_price=Decimal(price),
        minimum_price=Decimal("200"),
        status=status,  # type: ignore[arg-type]
    )


def _complaint(status: str) -> Complaint:
    return Complaint(
        client_id="client-1",
        product_id="prod-1",
        marketplace_id="mp-ml",
        url="https://produto.mercadolivre.com.br/MLB-1",
        reported_price=Decimal("100"),
        status=status,  # type: ignore[arg-type]
    )


LISTINGS = [
    _listing("MLB-1111111111", "150"),
    _listing("MLB-2222222222", "190"),
    _listing("MLB-3333333333", "200"),
]
COMPLAINTS = [_complaint("requested"), _complaint("in-progress"), _complaint("resolved")]


class TestComplianceReport:
    """Tests for ComplianceReport."""

    def test_init_creates_directory(self, tmp_path: Path) -> None:
        """Test that the logs directory is created."""
        report = ComplianceReport(tmp_path / "logs")
        assert report.logs_dir.exists()

    def test_get_stats(self, tmp_path: Path) -> None:
        """Test listing and complaint counts."""
        stats = ComplianceReport(tmp_path).get_stats(LISTINGS, COMPLAINTS)

        assert stats == {
            "total": 3,
            "below_minimum": 2,
            "compliant": 1,
            "open_complaints": 2,
            "resolved_complaints": 1,
        }

    def test_write_export(self, tmp_path: Path) -> None:
        """Test JSON export with string prices."""
        path = ComplianceReport(tmp_path).write_export(LISTINGS)

        entries = json.loads(path.read_text())
        assert len(entries) == 3
        assert entries[0]["code"] == "MLB-1111111111"
        assert entries[0]["detected_price"] == "150"
        assert entries[0]["status"] == "below-minimum"

    def test_write_summary(self, tmp_path: Path) -> None:
        """Test Markdown summary content."""
        path = ComplianceReport(tmp_path).write_summary(LISTINGS, COMPLAINTS, PRODUCTS, MARKETPLACES)

        content = path.read_text()
        assert datetime.now().strftime("%Y-%m-%d") in path.name
        assert "**Below Minimum:** 2" in content
        assert "## Listings Below Minimum" in content
        assert "Fone Bluetooth X1" in content
        assert "-25.0%" in content
        assert "**Mercado Livre:** 3 listings" in content
        # Largest gap first
        assert content.index("MLB-1111111111") < content.index("MLB-2222222222")
        assert "MLB-3333333333" not in content

    def test_summary_without_violations(self, tmp_path: Path) -> None:
        """Test that the violations table is omitted when all comply."""
        path = ComplianceReport(tmp_path).write_summary(LISTINGS[2:], [], PRODUCTS, MARKETPLACES)
        assert "## Listings Below Minimum" not in path.read_text()
