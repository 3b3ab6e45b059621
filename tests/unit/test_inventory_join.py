"""Unit tests for the inventory join."""
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from marketfeed.errors.exceptions import InventoryLookupError
from marketfeed.feed.inventory_join import (
    availability_label,
    collect_skus,
    find_sku_column,
    join_stock,
    lookup_inventory,
    overlay_availability,
)
from marketfeed.models.feed import (
    DeliveryMethod,
    FieldMapping,
    InventoryRecord,
    OfferRecord,
    StockExtras,
)
from marketfeed.models.sheet_table import SheetTable


def record(sku="SKU-1", in_stock=True, quantity=3, price="100"):
    return InventoryRecord(sku=sku, in_stock=in_stock, quantity=quantity, price=Decimal(price))


class TestFindSkuColumn:
    """Test SKU column discovery."""

    def test_mapped_sku_field_wins(self):
        table = SheetTable([["SKU", "Article"], ["a", "b"]])
        control = {"Article": FieldMapping("Article", False, "sku")}

        assert find_sku_column(table, control) == 1

    def test_falls_back_to_sku_header(self):
        table = SheetTable([["Name", "SKU"], ["a", "b"]])

        assert find_sku_column(table, {}) == 1

    def test_no_sku_column(self):
        table = SheetTable([["Name"], ["a"]])

        assert find_sku_column(table, {}) is None


class TestCollectSkus:
    """Test SKU de-duplication."""

    def test_unique_in_first_seen_order(self):
        rows = [["B"], ["A"], [" B "], [""], []]

        assert collect_skus(rows, 0) == ["B", "A"]

    def test_missing_column(self):
        assert collect_skus([["A"]], None) == []


class TestLookupInventory:
    """Test the single batched lookup."""

    @pytest.mark.asyncio
    async def test_empty_input_skips_lookup(self):
        lookup = AsyncMock()

        result = await lookup_inventory(["", "  "], lookup)

        assert result == {}
        lookup.assert_not_called()

    @pytest.mark.asyncio
    async def test_deduplicates_and_indexes_by_sku(self):
        lookup = AsyncMock(return_value=[record("A"), record("B", in_stock=False)])

        result = await lookup_inventory(["A", "B", "A", " A "], lookup)

        lookup.assert_awaited_once_with({"A", "B"})
        assert set(result) == {"A", "B"}
        assert result["B"].in_stock is False

    @pytest.mark.asyncio
    async def test_last_duplicate_record_wins(self):
        lookup = AsyncMock(return_value=[record("A", quantity=1), record("A", quantity=7)])

        result = await lookup_inventory(["A"], lookup)

        assert result["A"].quantity == 7

    @pytest.mark.asyncio
    async def test_lookup_errors_propagate(self):
        lookup = AsyncMock(side_effect=InventoryLookupError("HTTP 500", status_code=500))

        with pytest.raises(InventoryLookupError) as exc_info:
            await lookup_inventory(["A"], lookup)

        assert exc_info.value.status_code == 500

    @pytest.mark.asyncio
    async def test_foreign_errors_are_wrapped(self):
        lookup = AsyncMock(side_effect=RuntimeError("boom"))

        with pytest.raises(InventoryLookupError, match="boom"):
            await lookup_inventory(["A"], lookup)


class TestAvailability:
    """Test availability labels and overlay."""

    def test_tri_state_label(self):
        assert availability_label(None) is None
        assert availability_label(record(in_stock=True)) == "in stock"
        assert availability_label(record(in_stock=False)) == "out of stock"

    def test_overlay_replaces_sheet_value(self):
        offer = OfferRecord(core_fields={"title": "Lamp", "availability": "maybe"})

        result = overlay_availability(offer, record(in_stock=False))

        assert result.core_fields == {"title": "Lamp", "availability": "out of stock"}
        assert offer.core_fields["availability"] == "maybe"

    def test_overlay_unknown_sku_keeps_offer(self):
        offer = OfferRecord(core_fields={"availability": "maybe"})

        assert overlay_availability(offer, None) is offer


class TestJoinStock:
    """Test stock-feed enrichment."""

    def test_backend_price_and_quantity(self):
        offer = OfferRecord(core_fields={"code": "A"}, extra_fields={"price": "90"})

        result = join_stock(offer, record(quantity=4, price="120.50"))

        assert result.core_fields["availability"] == "in stock"
        assert result.extra_fields["quantity"] == "4"
        assert result.extra_fields["price"] == "120.5"

    def test_sheet_price_used_when_backend_price_is_zero(self):
        offer = OfferRecord(core_fields={"code": "A"}, extra_fields={"price": "1 200,00"})

        result = join_stock(offer, record(price="0"))

        assert result.extra_fields["price"] == "1200"

    def test_old_price_kept_when_different(self):
        offer = OfferRecord(extra_fields={"old_price": "1 500"})

        result = join_stock(offer, record(price="1200"))

        assert result.extra_fields["old_price"] == "1500"

    @pytest.mark.parametrize("old_price", ["1200", "0", "n/a"])
    def test_old_price_dropped_when_equal_or_zero(self, old_price):
        offer = OfferRecord(extra_fields={"old_price": old_price})

        result = join_stock(offer, record(price="1200"))

        assert "old_price" not in result.extra_fields

    def test_unknown_sku_keeps_sheet_fields(self):
        offer = OfferRecord(
            core_fields={"code": "A", "availability": "sheet"},
            extra_fields={"price": "5"},
        )

        result = join_stock(offer, None)

        assert result.core_fields == {"code": "A", "availability": "sheet"}
        assert result.extra_fields["price"] == "5"
        assert "quantity" not in result.extra_fields

    @pytest.mark.parametrize("sheet_price", [None, "0", "free"])
    def test_offer_without_positive_price_is_dropped(self, sheet_price):
        """Verify offers priced at zero by both sources are left out."""
        extra = {"price": sheet_price} if sheet_price is not None else {}
        offer = OfferRecord(core_fields={"code": "A"}, extra_fields=extra)

        assert join_stock(offer, record(price="0")) is None
        assert join_stock(offer, None) is None

    def test_oversized_backend_price_falls_back_to_sheet(self):
        offer = OfferRecord(extra_fields={"price": "10"})

        result = join_stock(offer, record(price="1" * 30))

        assert result.extra_fields["price"] == "10"

    def test_constant_fields(self):
        result = join_stock(OfferRecord(extra_fields={"price": "10"}), None)

        assert result.extra_fields["warranty_type"] == "manufacturer"
        assert result.extra_fields["max_pay_in_parts"] == "3"
        assert "days_to_dispatch" not in result.extra_fields

    @pytest.mark.parametrize("raw,expected", [
        ("12 міс.", "12"),
        ("24", "24"),
        ("036", "36"),
    ])
    def test_warranty_period_reduced_to_integer(self, raw, expected):
        offer = OfferRecord(extra_fields={"price": "10", "warranty_period": raw})

        result = join_stock(offer, record())

        assert result.extra_fields["warranty_period"] == expected

    def test_warranty_period_without_digits_is_dropped(self):
        offer = OfferRecord(extra_fields={"price": "10", "warranty_period": "lifetime"})

        result = join_stock(offer, record())

        assert "warranty_period" not in result.extra_fields

    def test_stock_extras_are_attached(self):
        extras = StockExtras(
            days_to_dispatch=1,
            delivery_methods=(DeliveryMethod("Nova Poshta", Decimal("60")),),
        )

        result = join_stock(OfferRecord(extra_fields={"price": "10"}), record(), extras)

        assert result.extra_fields["days_to_dispatch"] == "1"
        assert result.delivery_methods == (DeliveryMethod("Nova Poshta", Decimal("60")),)
