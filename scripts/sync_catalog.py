#!/usr/bin/env python3
"""Operator script to (re)download the eBay category catalog."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from app.config import get_settings
from app.db.session import async_session_maker
from app.services.ebay import (
    PageWritten,
    SyncConflictError,
    SyncError,
    build_ebay_services,
)


async def print_page(event: PageWritten) -> None:
    print(f"  page {event.index + 1}: {event.records} records ({event.total_count} cached)")


async def sync_catalog(scope: str, force: bool) -> int:
    """Run a full sync for a scope unless the cache is already populated."""
    services = build_ebay_services(async_session_maker)
    synchronizer = services.synchronizer

    status = await synchronizer.status(scope)
    print(f"{scope}: {status.record_count} categories cached (outcome: {status.outcome})")

    if not status.needs_sync and not force:
        print("Catalog is populated. Use --force to re-sync anyway.")
        return 0

    print(f"Syncing eBay categories for {scope}...")
    try:
        report = await synchronizer.sync(scope, on_page=print_page)
    except SyncConflictError as e:
        print(f"Error: {e}")
        return 1
    except SyncError as e:
        print(f"Sync failed at cursor {e.cursor or 'start'}: {e.message}")
        print("Pages already written were kept; re-run to retry.")
        return 1

    print(
        f"Done: {report.records_written} records in {report.pages_written} pages "
        f"({report.duration_ms / 1000:.1f}s), {report.record_count} cached"
    )
    return 0


def main() -> None:
    """Main entry point."""
    settings = get_settings()

    parser = argparse.ArgumentParser(description="Sync the eBay category catalog")
    parser.add_argument(
        "--scope",
        default=settings.EBAY_MARKETPLACE_ID,
        help="Marketplace id (default: %(default)s)",
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Sync even if the cache is above the staleness threshold",
    )
    args = parser.parse_args()

    logging.basicConfig(level=settings.LOG_LEVEL)
    sys.exit(asyncio.run(sync_catalog(args.scope, args.force)))


if __name__ == "__main__":
    main()
