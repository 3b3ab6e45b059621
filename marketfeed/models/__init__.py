"""Table abstraction and feed pipeline models."""
from marketfeed.models.sheet_table import SheetTable
from marketfeed.models.feed import (
    CORE_TAGS,
    IDENTITY_TAGS,
    AVAILABILITY_IN_STOCK,
    AVAILABILITY_OUT_OF_STOCK,
    CELL_IMAGE_SENTINEL,
    FeedVariant,
    ParseFailurePolicy,
    VariantPolicy,
    FieldMapping,
    TagParam,
    DeliveryMethod,
    StockExtras,
    OfferRecord,
    InventoryRecord,
    FeedBuildStats,
)

__all__ = [
    "SheetTable",
    "CORE_TAGS",
    "IDENTITY_TAGS",
    "AVAILABILITY_IN_STOCK",
    "AVAILABILITY_OUT_OF_STOCK",
    "CELL_IMAGE_SENTINEL",
    "FeedVariant",
    "ParseFailurePolicy",
    "VariantPolicy",
    "FieldMapping",
    "TagParam",
    "DeliveryMethod",
    "StockExtras",
    "OfferRecord",
    "InventoryRecord",
    "FeedBuildStats",
]
