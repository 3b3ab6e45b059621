"""Data models for the marketplace feed pipeline.

Pipeline records are immutable dataclasses; records that arrive from the
commerce backend are validated with Pydantic.
"""
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


# Privileged output fields, in canonical render order
CORE_TAGS: Tuple[str, ...] = (
    "id",
    "code",
    "vendor_code",
    "title",
    "barcode",
    "category",
    "category_id",
    "brand",
    "availability",
    "weight",
    "height",
    "width",
    "length",
    "description",
)

# Identity fields always lead an offer in this order
IDENTITY_TAGS: Tuple[str, ...] = ("code", "title", "id", "vendor_code")

DIMENSION_TAGS: Tuple[str, ...] = ("height", "width", "length")
WEIGHT_TAG = "weight"

IMAGE_PREFIX = "image_"
TAGS_FIELD = "tags"
CELL_IMAGE_SENTINEL = "CellImage"

AVAILABILITY_IN_STOCK = "in stock"
AVAILABILITY_OUT_OF_STOCK = "out of stock"


class FeedVariant(str, Enum):
    """Document shapes the pipeline can produce."""
    FULL = "full"
    STOCK = "stock"


class ParseFailurePolicy(str, Enum):
    """What to do with a dimension cell that is not a number."""
    OMIT = "omit"
    PASS_THROUGH = "pass_through"


@dataclass(frozen=True)
class VariantPolicy:
    """Behaviour switches that differ between the feed variants.

    The offers feed treats a blank enable cell as "on" and falls back to the
    import field name when ``Feed name`` is blank. The stock feed requires an
    explicit opt-in and skips fields without a feed name.
    """
    variant: FeedVariant
    root_tag: str
    enable_columns: Tuple[str, ...]
    enabled_by_default: bool
    feed_name_fallback: bool
    dimension_parse_failure: ParseFailurePolicy = ParseFailurePolicy.OMIT

    @classmethod
    def for_variant(
        cls,
        variant: FeedVariant,
        dimension_parse_failure: ParseFailurePolicy = ParseFailurePolicy.OMIT,
    ) -> "VariantPolicy":
        if variant == FeedVariant.STOCK:
            return cls(
                variant=variant,
                root_tag="Stock",
                enable_columns=("Stock feed",),
                enabled_by_default=False,
                feed_name_fallback=False,
                dimension_parse_failure=dimension_parse_failure,
            )
        return cls(
            variant=variant,
            root_tag="Market",
            enable_columns=("Enabled", "Offer feed"),
            enabled_by_default=True,
            feed_name_fallback=True,
            dimension_parse_failure=dimension_parse_failure,
        )


@dataclass(frozen=True)
class FieldMapping:
    """How one import column is carried into the feed."""
    import_field: str
    enabled: bool
    output_name: str
    group_tag_name: str = ""
    units: str = ""

    @property
    def is_image(self) -> bool:
        return self.output_name.startswith(IMAGE_PREFIX)

    @property
    def is_tags(self) -> bool:
        return self.output_name == TAGS_FIELD


@dataclass(frozen=True)
class TagParam:
    """A single ``<param name="...">value</param>`` entry."""
    name: str
    value: str


@dataclass(frozen=True)
class DeliveryMethod:
    """An active shipping option from the Delivery tab."""
    method: str
    price: Decimal = Decimal("0")


@dataclass(frozen=True)
class StockExtras:
    """Request-time values attached to every stock offer.

    Kept outside the pipeline so that building a feed stays a pure function
    of its inputs; ``None`` for ``days_to_dispatch`` leaves the field out.
    """
    days_to_dispatch: Optional[int] = None
    delivery_methods: Tuple[DeliveryMethod, ...] = ()


@dataclass(frozen=True)
class OfferRecord:
    """Everything extracted from one import row."""
    core_fields: Dict[str, str] = field(default_factory=dict)
    extra_fields: Dict[str, str] = field(default_factory=dict)
    images: Tuple[str, ...] = ()
    tags: Tuple[TagParam, ...] = ()
    delivery_methods: Tuple[DeliveryMethod, ...] = ()
    sku: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not (self.core_fields or self.extra_fields or self.images or self.tags)

    def field_value(self, name: str) -> Optional[str]:
        if name in self.core_fields:
            return self.core_fields[name]
        return self.extra_fields.get(name)


class InventoryRecord(BaseModel):
    """Live stock and price for one SKU, as reported by the commerce backend."""

    model_config = ConfigDict(frozen=True)

    sku: str = Field(..., min_length=1, description="Stock keeping unit")
    in_stock: bool = Field(default=False, description="Backend reports the item as available")
    quantity: int = Field(default=0, ge=0, description="Units on hand")
    price: Decimal = Field(default=Decimal("0"), ge=Decimal("0"), description="Current price")

    @field_validator("sku")
    @classmethod
    def validate_sku(cls, v: str) -> str:
        """Strip whitespace from SKU."""
        v = v.strip()
        if not v:
            raise ValueError("sku cannot be empty or whitespace")
        return v


@dataclass
class FeedBuildStats:
    """Counters reported after a feed build."""
    rows_total: int = 0
    rows_blank: int = 0
    rows_empty: int = 0
    rows_unpriced: int = 0
    offers: int = 0
    skus_unknown: List[str] = field(default_factory=list)
