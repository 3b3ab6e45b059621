#!/usr/bin/env python3
"""Generate a marketplace feed document from the catalog spreadsheet.

Usage:
    python scripts/generate_feed.py --variant full --output offers.xml
    python scripts/generate_feed.py --variant stock
"""
import argparse
import asyncio
import sys
from pathlib import Path
from typing import Optional

# Add project root to path
script_dir = Path(__file__).parent
project_root = script_dir.parent
sys.path.insert(0, str(project_root))

from dotenv import load_dotenv

env_file = project_root / ".env"
if env_file.exists():
    load_dotenv(env_file)

import structlog

from marketfeed.errors.exceptions import FeedError
from marketfeed.models.feed import FeedVariant
from marketfeed.services.feed_service import FeedService
from marketfeed.services.inventory_client import fetch_inventory
from marketfeed.services.sheets_reader import SpreadsheetReader

logger = structlog.get_logger(__name__)


async def generate(variant: FeedVariant, use_inventory: bool) -> str:
    """Build one feed document with config-driven collaborators."""
    reader = SpreadsheetReader()
    service = FeedService(
        reader,
        inventory_lookup=fetch_inventory if use_inventory else None,
    )
    return await service.generate(variant)


def write_output(xml_text: str, output: Optional[str]) -> None:
    if output is None:
        sys.stdout.write(xml_text)
        return
    Path(output).write_text(xml_text, encoding="utf-8")


def main(argv: Optional[list] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Generate a marketplace XML feed from the catalog spreadsheet",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Full offers feed with live availability
  python scripts/generate_feed.py --variant full --output offers.xml

  # Full offers feed straight from the sheet
  python scripts/generate_feed.py --variant full --no-inventory

  # Stock feed to stdout
  python scripts/generate_feed.py --variant stock
        """
    )
    parser.add_argument(
        "--variant",
        choices=[v.value for v in FeedVariant],
        default=FeedVariant.FULL.value,
        help="Feed variant (default: full)"
    )
    parser.add_argument(
        "--output",
        help="Output file path (stdout when omitted)"
    )
    parser.add_argument(
        "--no-inventory",
        action="store_true",
        help="Skip the inventory lookup (full feed only)"
    )

    args = parser.parse_args(argv)
    variant = FeedVariant(args.variant)

    if args.no_inventory and variant == FeedVariant.STOCK:
        parser.error("--no-inventory is only valid with --variant full")

    try:
        xml_text = asyncio.run(generate(variant, use_inventory=not args.no_inventory))
    except FeedError as e:
        logger.error("feed_generation_failed", variant=variant.value, error=e.message)
        return 1

    write_output(xml_text, args.output)
    if args.output:
        logger.info("feed_written", variant=variant.value, output=args.output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
