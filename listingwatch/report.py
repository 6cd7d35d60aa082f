"""Compliance summary and JSON export of monitored listings."""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any

from listingwatch.compliance import evaluate
from listingwatch.models import ACTIVE_COMPLAINT_STATUSES, Complaint, Marketplace, MonitoredListing, Product

logger = logging.getLogger(__name__)


class ComplianceReport:
    """Multi-format report: Markdown summary and JSON listing export."""

    def __init__(self, logs_dir: Path):
        """Initialize report writer.

        Args:
            logs_dir: Directory for report files.
        """
        self.logs_dir = Path(logs_dir)
        self.logs_dir.mkdir(parents=True, exist_ok=True)
        self.export_path = self.logs_dir / "listings.json"

    def get_stats(self, listings: list[MonitoredListing], complaints: list[Complaint]) -> dict[str, Any]:
        """Get statistics about listings and complaints.

        Returns:
            Dictionary with statistics.
        """
        below = sum(1 for listing in listings if listing.status == "below-minimum")
        return {
            "total": len(listings),
            "below_minimum": below,
            "compliant": len(listings) - below,
            "open_complaints": sum(1 for c in complaints if c.status in ACTIVE_COMPLAINT_STATUSES),
            "resolved_complaints": sum(1 for c in complaints if c.status == "resolved"),
        }

    def write_export(self, listings: list[MonitoredListing]) -> Path:
        """Write all listings to listings.json.

        Returns:
            Path to the export file.
        """
        entries = [
            {
                "id": listing.id,
                "url": listing.url,
                "code": listing.code,
                "product_id": listing.product_id,
                "marketplace_id": listing.marketplace_id,
                "client_id": listing.client_id,
                "detected_price": str(listing.detected_price),
                "minimum_price": str(listing.minimum_price),
                "status": listing.status,
                "origin": listing.origin,
                "updated_at": listing.updated_at.isoformat() if listing.updated_at else None,
            }
            for listing in listings
        ]
        with open(self.export_path, "w") as f:
            json.dump(entries, f, indent=2)
        return self.export_path

    def write_summary(
        self,
        listings: list[MonitoredListing],
        complaints: list[Complaint],
        products: list[Product],
        marketplaces: list[Marketplace],
    ) -> Path:
        """Generate Markdown summary for today.

        Returns:
            Path to the summary file.
        """
        date = datetime.now().strftime("%Y-%m-%d")
        summary_path = self.logs_dir / f"compliance_summary_{date}.md"

        content = self._render_summary(date, listings, complaints, products, marketplaces)
        summary_path.write_text(content)

        logger.info(f"Compliance summary written: {summary_path}")
        return summary_path

    def _render_summary(
        self,
        date: str,
        listings: list[MonitoredListing],
        complaints: list[Complaint],
        products: list[Product],
        marketplaces: list[Marketplace],
    ) -> str:
        stats = self.get_stats(listings, complaints)
        product_names = {p.id: p.name for p in products}
        marketplace_names = {m.id: m.name for m in marketplaces}

        lines = [
            f"# Compliance Summary - {date}",
            "",
            "## Overview",
            "",
            f"- **Monitored Listings:** {stats['total']}",
            f"- **Below Minimum:** {stats['below_minimum']}",
            f"- **Compliant:** {stats['compliant']}",
            f"- **Open Complaints:** {stats['open_complaints']}",
            f"- **Resolved Complaints:** {stats['resolved_complaints']}",
            "",
        ]

        below = [listing for listing in listings if listing.status == "below-minimum"]
        if below:
            lines.extend(
                [
                    "## Listings Below Minimum",
                    "",
                    "| Code | Product | Marketplace | Price | Minimum | Gap |",
                    "|------|---------|-------------|-------|---------|-----|",
                ]
            )
            for listing in sorted(below, key=lambda item: item.detected_price - item.minimum_price):
                gap = evaluate(listing.detected_price, listing.minimum_price).gap_percent
                lines.append(
                    f"| [{listing.code or 'n/a'}]({listing.url}) "
                    f"| {product_names.get(listing.product_id, listing.product_id)} "
                    f"| {marketplace_names.get(listing.marketplace_id, listing.marketplace_id)} "
                    f"| {listing.detected_price:.2f} | {listing.minimum_price:.2f} | {gap:.1f}% |"
                )
            lines.append("")

        # Marketplace breakdown
        counts: dict[str, int] = {}
        for listing in listings:
            name = marketplace_names.get(listing.marketplace_id, listing.marketplace_id)
            counts[name] = counts.get(name, 0) + 1

        lines.extend(["## Marketplaces Breakdown", ""])
        for name, count in sorted(counts.items(), key=lambda x: -x[1]):
            lines.append(f"- **{name}:** {count} listings")

        lines.extend(
            [
                "",
                "---",
                f"*Generated at {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}*",
            ]
        )

        return "\n".join(lines)
