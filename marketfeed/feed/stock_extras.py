"""Stock feed enrichment: dispatch days, delivery methods, warranty fields."""
import re
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, List, Optional, Sequence
from zoneinfo import ZoneInfo

import structlog

from marketfeed.feed.normalizer import round_two_places
from marketfeed.models.feed import DeliveryMethod
from marketfeed.models.sheet_table import SheetTable

logger = structlog.get_logger(__name__)

DISPATCH_TIMEZONE = ZoneInfo("Europe/Kyiv")
DISPATCH_CUTOFF_HOUR = 14

WARRANTY_TYPE = "manufacturer"
MAX_PAY_IN_PARTS = 3

DELIVERY_ACTIVE_VALUES = frozenset({"true", "1", "yes", "так"})

# Delivery tab columns: method | active | price
_METHOD_COLUMN = 0
_ACTIVE_COLUMN = 1
_PRICE_COLUMN = 2


def days_to_dispatch(now: datetime) -> int:
    """Working days until an order placed at ``now`` ships.

    Orders before 14:00 Kyiv time on a weekday ship the same day, later ones
    the next day. Saturday orders ship in two days, Sunday orders in one.
    Naive datetimes are taken as UTC.

    >>> days_to_dispatch(datetime(2024, 1, 3, 10, 0, tzinfo=timezone.utc))
    0
    >>> days_to_dispatch(datetime(2024, 1, 6, 10, 0, tzinfo=timezone.utc))
    2
    """
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    local = now.astimezone(DISPATCH_TIMEZONE)

    if local.weekday() == 5:
        return 2
    if local.weekday() == 6:
        return 1
    return 0 if local.hour < DISPATCH_CUTOFF_HOUR else 1


def _delivery_price(raw: Optional[str]) -> Decimal:
    if not raw:
        return Decimal("0")
    try:
        price = Decimal(raw)
    except InvalidOperation:
        return Decimal("0")
    if not price.is_finite() or round_two_places(price) is None:
        return Decimal("0")
    return price


def parse_delivery_methods(values: Optional[Sequence[Sequence[Any]]]) -> List[DeliveryMethod]:
    """Active delivery methods from the Delivery tab.

    The first row is a header. Columns are positional: method name, active
    flag (true/1/yes/так), price. A price that is not a plain number counts
    as 0.
    """
    table = SheetTable(values)
    methods: List[DeliveryMethod] = []
    for row in table.rows:
        method = SheetTable.cell(row, _METHOD_COLUMN)
        active = (SheetTable.cell(row, _ACTIVE_COLUMN) or "").lower()
        if not method or active not in DELIVERY_ACTIVE_VALUES:
            continue
        methods.append(
            DeliveryMethod(method=method, price=_delivery_price(SheetTable.cell(row, _PRICE_COLUMN)))
        )

    logger.debug("delivery_methods_parsed", active=len(methods), rows=len(table))
    return methods


def normalize_warranty_period(raw: Optional[str]) -> Optional[str]:
    """Keep only the digits of a warranty cell ("12 міс." -> "12").

    Returns None when the cell holds no digits.
    """
    if not raw:
        return None
    digits = re.sub(r"[^0-9]", "", raw)
    if not digits:
        return None
    return str(int(digits))
