"""Command-line interface for listing monitoring."""

import argparse
import asyncio
import json
import logging
import sys
from collections.abc import Awaitable, Callable
from pathlib import Path

from listingwatch.callbacks import ingest_callback
from listingwatch.errors import DuplicateError, InputError, ListingWatchError, NotFoundError
from listingwatch.matching import resolve_marketplace
from listingwatch.models import Marketplace, Product
from listingwatch.session import ResolvedState
from listingwatch.watch import ListingWatch


def setup_logging(verbose: bool = False) -> None:
    """Configure logging for CLI.

    Args:
        verbose: Whether to enable verbose (DEBUG) logging.
    """
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def _run(args: argparse.Namespace, action: Callable[[ListingWatch], Awaitable[int]]) -> int:
    """Open the app from --config, run an async action and map errors to exit codes."""
    config_path = Path(args.config)
    if not config_path.exists():
        print(f"Error: Config file not found: {config_path}", file=sys.stderr)
        return 1

    async def runner() -> int:
        async with ListingWatch(config_path) as watch:
            return await action(watch)

    try:
        return asyncio.run(runner())
    except ListingWatchError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        logging.exception("Unexpected error")
        print(f"Error: {e}", file=sys.stderr)
        return 1


async def _find_product(watch: ListingWatch, ref: str) -> Product:
    """Find an active product by id or SKU."""
    for product in await watch.store.list_products():
        if ref in (product.id, product.sku):
            return product
    raise NotFoundError(f"Product not found: {ref}")


async def _find_marketplace(watch: ListingWatch, ref: str | None, url: str) -> Marketplace:
    """Find a marketplace by id or name, or detect it from the URL."""
    marketplaces = await watch.store.list_marketplaces()
    if ref:
        for marketplace in marketplaces:
            if ref in (marketplace.id, marketplace.name):
                return marketplace
        raise NotFoundError(f"Marketplace not found: {ref}")

    detected = resolve_marketplace(url, marketplaces)
    if detected is None:
        raise InputError("Marketplace not detected from URL, pass --marketplace")
    return detected


def _print_state(state: ResolvedState) -> None:
    print(f"URL:         {state.url}")
    if state.error:
        print(f"Error:       {state.error}")
        return
    print(f"Marketplace: {state.marketplace.name if state.marketplace else 'not detected'}")
    print(f"Code:        {state.code.value if state.code else 'not detected'}")
    print(f"Duplicate:   {'yes' if state.duplicate else 'no'}")
    if state.duplicate_warning:
        print(f"Warning:     {state.duplicate_warning}")

    outcome = state.enrichment
    if outcome is None:
        return
    print(f"Enrichment:  {outcome.state}")
    if outcome.notice:
        print(f"             {outcome.notice}")
    snapshot = outcome.snapshot
    if snapshot:
        print(f"  Title:     {snapshot.title or '-'}")
        print(f"  Price:     {snapshot.price if snapshot.price is not None else '-'}")
        print(f"  Seller:    {snapshot.seller or '-'}")
        print(f"  Sold:      {snapshot.sales_text or '-'}")
        print(f"  Rating:    {snapshot.rating_text or '-'}")


def resolve_url(args: argparse.Namespace) -> int:
    """Resolve marketplace, code, duplicate status and live data for a URL."""

    async def action(watch: ListingWatch) -> int:
        session = watch.new_session(mode=args.mode)
        session.set_url(args.url)
        state = await session.settle()
        _print_state(state)
        return 0 if session.can_submit else 1

    return _run(args, action)


def add_listing(args: argparse.Namespace) -> int:
    """Add a monitored listing, pre-filling the price from live data."""

    async def action(watch: ListingWatch) -> int:
        session = watch.new_session(mode="listing")
        session.set_url(args.url)
        state = await session.settle()
        if state.error:
            raise InputError(state.error)
        if state.duplicate:
            raise DuplicateError(f"Listing {state.code} is already monitored")

        price = args.price
        if price is None:
            snapshot = state.enrichment.snapshot if state.enrichment else None
            if snapshot is None or snapshot.price is None:
                raise InputError("No live price available, pass --price")
            price = snapshot.price

        product = await _find_product(watch, args.product)
        marketplace = await _find_marketplace(watch, args.marketplace, args.url)
        listing = await watch.registry.add_listing(
            url=args.url,
            product_id=product.id,
            marketplace_id=marketplace.id,
            detected_price=price,
            client_id=args.client,
            code=state.code.value if state.code else None,
        )
        print(f"Listing {listing.id} added: {listing.code or listing.url} [{listing.status}]")
        return 0

    return _run(args, action)


def complain(args: argparse.Namespace) -> int:
    """Register a complaint about a listing."""

    async def action(watch: ListingWatch) -> int:
        product = await _find_product(watch, args.product)
        marketplace = await _find_marketplace(watch, args.marketplace, args.url)
        complaint = await watch.registry.submit_complaint(
            client_id=args.client,
            url=args.url,
            product_id=product.id,
            marketplace_id=marketplace.id,
            reported_price=args.price,
            notes=args.notes,
        )
        print(f"Complaint {complaint.id} registered [{complaint.status}]")
        return 0

    return _run(args, action)


def update_complaint(args: argparse.Namespace) -> int:
    """Change a complaint's status and admin comment."""

    async def action(watch: ListingWatch) -> int:
        complaint = await watch.registry.update_complaint(args.complaint_id, args.status, args.comment)
        print(f"Complaint {complaint.id} is now {complaint.status}")
        return 0

    return _run(args, action)


def convert_complaint(args: argparse.Namespace) -> int:
    """Convert a resolved complaint into a monitored listing."""

    async def action(watch: ListingWatch) -> int:
        listing = await watch.registry.convert_complaint(args.complaint_id)
        print(f"Listing {listing.id} created from complaint [{listing.status}]")
        return 0

    return _run(args, action)


def set_price(args: argparse.Namespace) -> int:
    """Record a new detected price for a listing."""

    async def action(watch: ListingWatch) -> int:
        listing = await watch.registry.record_price(args.listing_id, args.price)
        print(f"Listing {listing.id}: {listing.detected_price} [{listing.status}]")
        return 0

    return _run(args, action)


def ingest(args: argparse.Namespace) -> int:
    """Apply a callback payload from a JSON file or stdin."""

    async def action(watch: ListingWatch) -> int:
        text = sys.stdin.read() if args.payload == "-" else Path(args.payload).read_text()
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as e:
            raise InputError(f"Invalid JSON payload: {e}") from e
        result = await ingest_callback(payload, watch.store)
        print(f"Listing {result.listing_id} updated: {', '.join(sorted(result.updated_fields))}")
        return 0

    return _run(args, action)


def show_report(args: argparse.Namespace) -> int:
    """Write and print the compliance summary."""

    async def action(watch: ListingWatch) -> int:
        stats = await watch.write_report()
        print(Path(stats["summary_path"]).read_text())
        print(f"\nExport written: {stats['export_path']}")
        return 0

    return _run(args, action)


def capture(args: argparse.Namespace) -> int:
    """Save a screenshot of a monitored listing."""

    async def action(watch: ListingWatch) -> int:
        path = await watch.capture_listing(args.listing_id, headless=not args.headed)
        if path is None:
            print("Screenshot capture failed", file=sys.stderr)
            return 1
        print(f"Screenshot saved: {path}")
        return 0

    return _run(args, action)


def main() -> int:
    """Main entry point for CLI.

    Returns:
        Exit code.
    """
    parser = argparse.ArgumentParser(
        description="Listing Watch - Monitor marketplace listings against minimum prices",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  listingwatch resolve https://produto.mercadolivre.com.br/MLB-1234567890-item
  listingwatch add-listing URL --product SKU-001 --price 89.90
  listingwatch complain URL --client acme --product SKU-001 --price 79.90
  listingwatch ingest-callback payload.json
  listingwatch report
        """,
    )

    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose output",
    )
    parser.add_argument(
        "-c",
        "--config",
        default="config.yaml",
        help="Path to config file (default: config.yaml)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    resolve_parser = subparsers.add_parser("resolve", help="Resolve a listing URL")
    resolve_parser.add_argument("url", help="Listing URL")
    resolve_parser.add_argument(
        "--mode",
        choices=["listing", "complaint"],
        default="listing",
        help="Duplicate check to apply (default: listing)",
    )
    resolve_parser.set_defaults(func=resolve_url)

    add_parser = subparsers.add_parser("add-listing", help="Add a monitored listing")
    add_parser.add_argument("url", help="Listing URL")
    add_parser.add_argument("--product", required=True, help="Product id or SKU")
    add_parser.add_argument("--marketplace", help="Marketplace id or name (detected if omitted)")
    add_parser.add_argument("--price", help="Detected price (live price if omitted)")
    add_parser.add_argument("--client", help="Client id the listing belongs to")
    add_parser.set_defaults(func=add_listing)

    complain_parser = subparsers.add_parser("complain", help="Report a listing below the minimum price")
    complain_parser.add_argument("url", help="Listing URL")
    complain_parser.add_argument("--client", required=True, help="Reporting client id")
    complain_parser.add_argument("--product", required=True, help="Product id or SKU")
    complain_parser.add_argument("--marketplace", help="Marketplace id or name (detected if omitted)")
    complain_parser.add_argument("--price", required=True, help="Price seen on the listing")
    complain_parser.add_argument("--notes", help="Free-text notes")
    complain_parser.set_defaults(func=complain)

    update_parser = subparsers.add_parser("update-complaint", help="Change a complaint's status")
    update_parser.add_argument("complaint_id", help="Complaint id")
    update_parser.add_argument(
        "--status",
        required=True,
        choices=["requested", "in-progress", "resolved"],
        help="New status",
    )
    update_parser.add_argument("--comment", help="Administrator comment")
    update_parser.set_defaults(func=update_complaint)

    convert_parser = subparsers.add_parser("convert", help="Convert a resolved complaint into a listing")
    convert_parser.add_argument("complaint_id", help="Complaint id")
    convert_parser.set_defaults(func=convert_complaint)

    price_parser = subparsers.add_parser("set-price", help="Record a new price for a listing")
    price_parser.add_argument("listing_id", help="Listing id")
    price_parser.add_argument("price", help="Detected price")
    price_parser.set_defaults(func=set_price)

    ingest_parser = subparsers.add_parser("ingest-callback", help="Apply a price callback payload")
    ingest_parser.add_argument("payload", help="JSON file with the payload, or - for stdin")
    ingest_parser.set_defaults(func=ingest)

    report_parser = subparsers.add_parser("report", help="Write and show the compliance summary")
    report_parser.set_defaults(func=show_report)

    capture_parser = subparsers.add_parser("capture", help="Screenshot a monitored listing")
    capture_parser.add_argument("listing_id", help="Listing id")
    capture_parser.add_argument(
        "--headed",
        action="store_true",
        help="Run browser in headed mode (visible)",
    )
    capture_parser.set_defaults(func=capture)

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return 1

    setup_logging(args.verbose)
    result: int = args.func(args)
    return result


if __name__ == "__main__":
    sys.exit(main())
