"""
Feed generation service.

Orchestrates one feed request:
1. Serve a fresh cached document if there is one
2. Read the Import and Feed Control List tabs (plus Delivery for the
   stock feed) concurrently
3. Collect SKUs and query the inventory backend once
4. Compute dispatch days and delivery methods (stock feed)
5. Run the pure pipeline (``marketfeed.feed.build_feed``)
6. Store the document in the cache
"""

import asyncio
import time
from typing import Dict, List, Mapping, Optional, Protocol, Tuple

import structlog

from marketfeed.config import feed_settings, settings
from marketfeed.feed.builder import Values, build_feed, collect_feed_skus
from marketfeed.feed.inventory_join import InventoryLookup, lookup_inventory
from marketfeed.feed.stock_extras import days_to_dispatch, parse_delivery_methods
from marketfeed.feed.xml_renderer import CONTENT_TYPE
from marketfeed.models.feed import FeedVariant, InventoryRecord, ParseFailurePolicy, StockExtras
from marketfeed.services.feed_cache import (
    Clock,
    FeedCache,
    FreshnessCheck,
    ttl_comparator,
    utc_now,
)

logger = structlog.get_logger(__name__)

__all__ = ["CACHE_KEYS", "CONTENT_TYPE", "FeedService", "TableSource"]

CACHE_KEYS: Dict[FeedVariant, str] = {
    FeedVariant.FULL: "offers-feed.xml",
    FeedVariant.STOCK: "stock-feed.xml",
}


class TableSource(Protocol):
    """Anything that can hand back worksheet values by tab title."""

    import_sheet_name: str
    control_sheet_name: str
    delivery_sheet_name: str

    def read_values(self, sheet_name: str) -> List[List[str]]:
        ...


def default_freshness() -> Dict[FeedVariant, FreshnessCheck]:
    return {
        FeedVariant.FULL: ttl_comparator(settings.cache_ttl_seconds),
        FeedVariant.STOCK: ttl_comparator(settings.stock_cache_ttl_seconds),
    }


class FeedService:
    """
    Builds feed documents from the spreadsheet and the inventory backend.

    Usage:
        service = FeedService(SpreadsheetReader(), fetch_inventory, InMemoryFeedCache())
        xml = await service.generate(FeedVariant.STOCK)
    """

    def __init__(
        self,
        source: TableSource,
        inventory_lookup: Optional[InventoryLookup] = None,
        cache: Optional[FeedCache] = None,
        freshness: Optional[Mapping[FeedVariant, FreshnessCheck]] = None,
        clock: Clock = utc_now,
        dimension_parse_failure: Optional[ParseFailurePolicy] = None,
        full_feed_uses_inventory: Optional[bool] = None,
    ):
        """
        Args:
            source: Spreadsheet reader
            inventory_lookup: Async SKU lookup; None disables the inventory join
            cache: Optional rendered-document cache
            freshness: Per-variant freshness predicates (defaults to config TTLs)
            clock: Current time provider used for freshness checks
            dimension_parse_failure: Override for FEED_DIMENSION_PARSE_FAILURE
            full_feed_uses_inventory: Override for FEED_FULL_FEED_USES_INVENTORY
        """
        self.source = source
        self.inventory_lookup = inventory_lookup
        self.cache = cache
        self.freshness = dict(freshness) if freshness is not None else default_freshness()
        self.clock = clock
        self.dimension_parse_failure = (
            dimension_parse_failure or feed_settings.dimension_parse_failure
        )
        if full_feed_uses_inventory is None:
            full_feed_uses_inventory = feed_settings.full_feed_uses_inventory
        self.full_feed_uses_inventory = full_feed_uses_inventory

    def _cached(self, variant: FeedVariant) -> Optional[str]:
        if self.cache is None:
            return None
        entry = self.cache.get(CACHE_KEYS[variant])
        if entry is None:
            return None
        is_fresh = self.freshness.get(variant)
        if is_fresh is None or not is_fresh(entry.stored_at, self.clock()):
            return None
        return entry.value

    async def _read_tables(self, variant: FeedVariant) -> Tuple[Values, Values, Values]:
        """Import, control and (stock feed only) Delivery tab values."""
        sheet_names = [self.source.import_sheet_name, self.source.control_sheet_name]
        if variant == FeedVariant.STOCK:
            sheet_names.append(self.source.delivery_sheet_name)

        results = await asyncio.gather(
            *(asyncio.to_thread(self.source.read_values, name) for name in sheet_names)
        )
        delivery_values = results[2] if len(results) > 2 else None
        return results[0], results[1], delivery_values

    def _stock_extras(self, delivery_values: Values) -> StockExtras:
        return StockExtras(
            days_to_dispatch=days_to_dispatch(self.clock()),
            delivery_methods=tuple(parse_delivery_methods(delivery_values)),
        )

    def _uses_inventory(self, variant: FeedVariant) -> bool:
        if self.inventory_lookup is None:
            return False
        return variant == FeedVariant.STOCK or self.full_feed_uses_inventory

    async def generate(self, variant: FeedVariant = FeedVariant.FULL) -> str:
        """
        Produce the feed document for one variant.

        Args:
            variant: FULL for the offers feed, STOCK for the stock feed

        Returns:
            XML document text

        Raises:
            SheetsReadError: If the spreadsheet cannot be read
            InventoryLookupError: If the inventory backend fails
        """
        log = logger.bind(variant=variant.value)

        cached = self._cached(variant)
        if cached is not None:
            log.info("feed_cache_hit", size_bytes=len(cached.encode("utf-8")))
            return cached

        started = time.perf_counter()
        import_values, control_values, delivery_values = await self._read_tables(variant)

        inventory: Optional[Dict[str, InventoryRecord]] = None
        if self._uses_inventory(variant):
            skus = collect_feed_skus(import_values, control_values, variant)
            inventory = await lookup_inventory(skus, self.inventory_lookup)
        elif variant == FeedVariant.STOCK:
            log.warning("inventory_lookup_disabled")

        stock_extras = None
        if variant == FeedVariant.STOCK:
            stock_extras = self._stock_extras(delivery_values)

        xml_text = build_feed(
            import_values,
            control_values,
            variant=variant,
            inventory=inventory,
            dimension_parse_failure=self.dimension_parse_failure,
            stock_extras=stock_extras,
        )

        if self.cache is not None:
            self.cache.put(CACHE_KEYS[variant], xml_text)

        log.info(
            "feed_generated",
            size_bytes=len(xml_text.encode("utf-8")),
            duration_ms=round((time.perf_counter() - started) * 1000, 1),
        )
        return xml_text
