"""Feed pipeline: control map -> row extraction -> inventory join -> XML.

``build_feed`` is a pure function of the import values, the control values
and an already-fetched inventory mapping. Fetching data and caching the
result belong to ``marketfeed.services.feed_service``.
"""
from dataclasses import replace
from typing import Any, Dict, List, Mapping, Optional, Sequence

import structlog

from marketfeed.errors.exceptions import ConfigurationError
from marketfeed.feed.control_map import resolve_control_map
from marketfeed.feed.inventory_join import (
    collect_skus,
    find_sku_column,
    join_stock,
    overlay_availability,
)
from marketfeed.feed.row_extractor import extract_offer
from marketfeed.feed.xml_renderer import render_feed
from marketfeed.models.feed import (
    FeedBuildStats,
    FeedVariant,
    FieldMapping,
    InventoryRecord,
    OfferRecord,
    ParseFailurePolicy,
    StockExtras,
    VariantPolicy,
)
from marketfeed.models.sheet_table import SheetTable

logger = structlog.get_logger(__name__)

Values = Optional[Sequence[Sequence[Any]]]


def _resolve(control_values: Values, policy: VariantPolicy) -> Optional[Dict[str, FieldMapping]]:
    try:
        return resolve_control_map(SheetTable(control_values), policy)
    except ConfigurationError as e:
        logger.warning("control_table_invalid", variant=policy.variant.value, error=e.message)
        return None


def collect_feed_skus(
    import_values: Values,
    control_values: Values,
    variant: FeedVariant = FeedVariant.FULL,
) -> List[str]:
    """SKUs that ``build_feed`` will look for in the inventory mapping."""
    policy = VariantPolicy.for_variant(variant)
    control_map = _resolve(control_values, policy)
    if control_map is None:
        return []
    table = SheetTable(import_values)
    rows = [row for row in table.rows if not SheetTable.is_blank_row(row)]
    return collect_skus(rows, find_sku_column(table, control_map))


def _full_offers(
    table: SheetTable,
    control_map: Mapping[str, FieldMapping],
    policy: VariantPolicy,
    inventory: Optional[Mapping[str, InventoryRecord]],
    stats: FeedBuildStats,
) -> List[OfferRecord]:
    sku_index = find_sku_column(table, control_map)
    if inventory is not None and sku_index is None:
        logger.warning("sku_column_missing_inventory_skipped", variant=policy.variant.value)

    offers: List[OfferRecord] = []
    for row in table.rows:
        if SheetTable.is_blank_row(row):
            stats.rows_blank += 1
            continue

        offer = extract_offer(row, table.headers, control_map, policy.dimension_parse_failure)
        if offer.is_empty:
            stats.rows_empty += 1
            continue

        sku = SheetTable.cell(row, sku_index) or None
        if sku and inventory is not None:
            record = inventory.get(sku)
            if record is None:
                stats.skus_unknown.append(sku)
            offer = overlay_availability(offer, record)

        offers.append(replace(offer, sku=sku))
    return offers


def _stock_offers(
    table: SheetTable,
    control_map: Mapping[str, FieldMapping],
    policy: VariantPolicy,
    inventory: Optional[Mapping[str, InventoryRecord]],
    stats: FeedBuildStats,
    extras: Optional[StockExtras] = None,
) -> List[OfferRecord]:
    sku_index = find_sku_column(table, control_map)
    if sku_index is None:
        logger.warning("sku_column_missing", variant=policy.variant.value)
        return []

    # One offer per SKU: first-seen order, last row wins
    rows_by_sku: Dict[str, Sequence[str]] = {}
    for row in table.rows:
        if SheetTable.is_blank_row(row):
            stats.rows_blank += 1
            continue
        sku = SheetTable.cell(row, sku_index)
        if not sku:
            stats.rows_empty += 1
            continue
        rows_by_sku[sku] = row

    inventory = inventory or {}
    offers: List[OfferRecord] = []
    for sku, row in rows_by_sku.items():
        record = inventory.get(sku)
        if record is None:
            stats.skus_unknown.append(sku)

        offer = extract_offer(row, table.headers, control_map, policy.dimension_parse_failure)
        offer = join_stock(offer, record, extras)
        if offer is None:
            stats.rows_unpriced += 1
            continue

        offers.append(replace(offer, sku=sku))
    return offers


def build_offers(
    import_values: Values,
    control_values: Values,
    variant: FeedVariant = FeedVariant.FULL,
    inventory: Optional[Mapping[str, InventoryRecord]] = None,
    dimension_parse_failure: ParseFailurePolicy = ParseFailurePolicy.OMIT,
    stock_extras: Optional[StockExtras] = None,
) -> List[OfferRecord]:
    """Run the pipeline up to (but not including) XML rendering.

    Configuration problems (unusable control table, missing SKU column in
    the stock feed) produce an empty list instead of an exception. Stock
    offers without a positive price are left out.
    """
    policy = VariantPolicy.for_variant(variant, dimension_parse_failure)
    log = logger.bind(variant=variant.value)

    control_map = _resolve(control_values, policy)
    if control_map is None:
        return []

    table = SheetTable(import_values)
    if table.is_empty:
        log.info("import_table_empty")
        return []

    stats = FeedBuildStats(rows_total=len(table))
    if variant == FeedVariant.STOCK:
        offers = _stock_offers(table, control_map, policy, inventory, stats, stock_extras)
    else:
        offers = _full_offers(table, control_map, policy, inventory, stats)
    stats.offers = len(offers)

    if stats.skus_unknown:
        log.warning(
            "inventory_skus_unknown",
            count=len(stats.skus_unknown),
            skus=stats.skus_unknown[:20],
        )
    log.info(
        "offers_built",
        rows_total=stats.rows_total,
        rows_blank=stats.rows_blank,
        rows_empty=stats.rows_empty,
        rows_unpriced=stats.rows_unpriced,
        offers=stats.offers,
    )
    return offers


def build_feed(
    import_values: Values,
    control_values: Values,
    variant: FeedVariant = FeedVariant.FULL,
    inventory: Optional[Mapping[str, InventoryRecord]] = None,
    dimension_parse_failure: ParseFailurePolicy = ParseFailurePolicy.OMIT,
    stock_extras: Optional[StockExtras] = None,
) -> str:
    """Build a complete feed document.

    Args:
        import_values: Import sheet values (header row + data rows)
        control_values: Feed Control List values (header row + mapping rows)
        variant: FULL for the offers feed, STOCK for the stock feed
        inventory: SKU -> InventoryRecord, already fetched; None skips the join
        dimension_parse_failure: Handling of non-numeric dimension cells
        stock_extras: Dispatch days and delivery methods for stock offers

    Returns:
        XML document text
    """
    policy = VariantPolicy.for_variant(variant, dimension_parse_failure)
    offers = build_offers(
        import_values,
        control_values,
        variant=variant,
        inventory=inventory,
        dimension_parse_failure=dimension_parse_failure,
        stock_extras=stock_extras,
    )
    return render_feed(offers, root_tag=policy.root_tag)
