"""Joining sheet offers with live inventory records."""
from dataclasses import replace
from decimal import Decimal
from typing import Awaitable, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Set

import structlog

from marketfeed.errors.exceptions import FeedError, InventoryLookupError
from marketfeed.feed.normalizer import clean_price, format_number, round_two_places
from marketfeed.feed.stock_extras import (
    MAX_PAY_IN_PARTS,
    WARRANTY_TYPE,
    normalize_warranty_period,
)
from marketfeed.models.feed import (
    AVAILABILITY_IN_STOCK,
    AVAILABILITY_OUT_OF_STOCK,
    FieldMapping,
    InventoryRecord,
    OfferRecord,
    StockExtras,
)
from marketfeed.models.sheet_table import SheetTable

logger = structlog.get_logger(__name__)

SKU_FIELD = "sku"
SKU_FALLBACK_HEADER = "SKU"

InventoryLookup = Callable[[Set[str]], Awaitable[Sequence[InventoryRecord]]]


def find_sku_column(
    table: SheetTable,
    control_map: Mapping[str, FieldMapping],
) -> Optional[int]:
    """Locate the SKU column.

    The import field mapped to ``sku`` wins (enabled or not); otherwise a
    header literally named ``SKU`` is used.
    """
    for mapping in control_map.values():
        if mapping.output_name == SKU_FIELD:
            index = table.column_index(mapping.import_field)
            if index is not None:
                return index
    return table.column_index(SKU_FALLBACK_HEADER)


def collect_skus(rows: Iterable[Sequence[str]], sku_index: Optional[int]) -> List[str]:
    """Unique, non-empty SKUs in first-seen order."""
    if sku_index is None:
        return []
    seen: Dict[str, None] = {}
    for row in rows:
        sku = SheetTable.cell(row, sku_index)
        if sku:
            seen.setdefault(sku, None)
    return list(seen)


async def lookup_inventory(
    skus: Iterable[str],
    lookup: InventoryLookup,
) -> Dict[str, InventoryRecord]:
    """Query the backend once for a de-duplicated SKU set.

    Returns:
        SKU -> InventoryRecord; SKUs the backend does not know are absent

    Raises:
        InventoryLookupError: If the lookup fails for any reason
    """
    unique = {sku.strip() for sku in skus if sku and sku.strip()}
    if not unique:
        return {}

    log = logger.bind(requested=len(unique))
    try:
        records = await lookup(unique)
    except FeedError:
        raise
    except Exception as e:
        raise InventoryLookupError(f"Inventory lookup failed: {e}") from e

    by_sku: Dict[str, InventoryRecord] = {}
    for record in records:
        by_sku[record.sku] = record

    log.info(
        "inventory_lookup_completed",
        found=len(by_sku),
        unknown=len(unique - set(by_sku)),
    )
    return by_sku


def availability_label(record: Optional[InventoryRecord]) -> Optional[str]:
    """Tri-state availability: None for unknown SKUs."""
    if record is None:
        return None
    return AVAILABILITY_IN_STOCK if record.in_stock else AVAILABILITY_OUT_OF_STOCK


def overlay_availability(offer: OfferRecord, record: Optional[InventoryRecord]) -> OfferRecord:
    """Replace the sheet availability with the live one when the SKU is known."""
    label = availability_label(record)
    if label is None:
        return offer
    core_fields = dict(offer.core_fields)
    core_fields["availability"] = label
    return replace(offer, core_fields=core_fields)


def _resolve_price(offer: OfferRecord, record: Optional[InventoryRecord]) -> Decimal:
    if record is not None and record.price > 0 and round_two_places(record.price) is not None:
        return record.price
    return clean_price(offer.field_value("price"))


def join_stock(
    offer: OfferRecord,
    record: Optional[InventoryRecord],
    extras: Optional[StockExtras] = None,
) -> Optional[OfferRecord]:
    """Attach stock, price and shipping data to a stock-feed offer.

    The backend price wins when positive, otherwise the sheet ``price`` is
    used; offers whose price is not positive are dropped (None). Unknown
    SKUs keep their sheet availability and get no quantity. ``old_price``
    is dropped when it is zero or equal to the price.

    Args:
        offer: Offer extracted from the stock-enabled columns
        record: Live inventory for the offer's SKU, None when unknown
        extras: Request-time dispatch days and delivery methods

    Returns:
        Enriched offer, or None when it has no positive price
    """
    price = _resolve_price(offer, record)
    if price <= 0:
        return None

    core_fields = dict(offer.core_fields)
    extra_fields = dict(offer.extra_fields)

    if record is not None:
        core_fields["availability"] = availability_label(record)
        extra_fields["quantity"] = str(record.quantity)
    extra_fields["price"] = format_number(price)

    if "old_price" in extra_fields:
        old_price = clean_price(extra_fields["old_price"])
        if old_price == 0 or old_price == price:
            del extra_fields["old_price"]
        else:
            extra_fields["old_price"] = format_number(old_price)

    if "warranty_period" in extra_fields:
        warranty = normalize_warranty_period(extra_fields["warranty_period"])
        if warranty is None:
            del extra_fields["warranty_period"]
        else:
            extra_fields["warranty_period"] = warranty

    extra_fields["warranty_type"] = WARRANTY_TYPE
    extra_fields["max_pay_in_parts"] = str(MAX_PAY_IN_PARTS)

    delivery_methods = offer.delivery_methods
    if extras is not None:
        if extras.days_to_dispatch is not None:
            extra_fields["days_to_dispatch"] = str(extras.days_to_dispatch)
        delivery_methods = tuple(extras.delivery_methods)

    return replace(
        offer,
        core_fields=core_fields,
        extra_fields=extra_fields,
        delivery_methods=delivery_methods,
    )
