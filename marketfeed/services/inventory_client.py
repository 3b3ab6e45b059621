"""
Commerce Backend Inventory Client

HTTP client for the store backend that owns live stock and prices.
Uses httpx for async HTTP requests. No retries: a failed lookup fails the
feed request.
"""

from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Optional

import httpx
import structlog
from pydantic import ValidationError as PydanticValidationError

from marketfeed.config import inventory_settings
from marketfeed.errors.exceptions import InventoryLookupError
from marketfeed.feed.normalizer import round_two_places
from marketfeed.models.feed import InventoryRecord

logger = structlog.get_logger(__name__)

PRODUCTS_QUERY_PATH = "/stores/v1/products/query"


def _to_decimal(value: Any) -> Decimal:
    if value is None:
        return Decimal("0")
    try:
        number = Decimal(str(value))
    except InvalidOperation:
        return Decimal("0")
    if not number.is_finite() or number <= 0 or round_two_places(number) is None:
        return Decimal("0")
    return number


def _record(sku: Any, stock: Optional[Dict[str, Any]], price: Any) -> Optional[InventoryRecord]:
    sku = str(sku or "").strip()
    if not sku:
        return None
    stock = stock or {}
    try:
        return InventoryRecord(
            sku=sku,
            in_stock=stock.get("inStock") is True,
            quantity=max(int(stock.get("quantity") or 0), 0),
            price=_to_decimal(price),
        )
    except (PydanticValidationError, TypeError, ValueError) as e:
        logger.warning("inventory_record_invalid", sku=sku, error=str(e))
        return None


def parse_products(products: Iterable[Dict[str, Any]]) -> List[InventoryRecord]:
    """
    Map backend product documents to inventory records.

    Every product yields a record for its own SKU and one per variant SKU.
    Variant price falls back to the product price.
    """
    records: List[InventoryRecord] = []
    for product in products:
        product_price = (product.get("price") or {}).get("price")
        record = _record(product.get("sku"), product.get("stock"), product_price)
        if record:
            records.append(record)

        for variant in product.get("variants") or []:
            variant_data = variant.get("variant") or {}
            variant_price = (variant_data.get("priceData") or {}).get("price", product_price)
            record = _record(variant_data.get("sku"), variant.get("stock"), variant_price)
            if record:
                records.append(record)
    return records


class InventoryClient:
    """
    Async HTTP client for stock and price lookups by SKU.

    Usage:
        async with InventoryClient() as client:
            records = await client.get_inventory_by_skus({"SKU-1", "SKU-2"})
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        access_token: Optional[str] = None,
        site_id: Optional[str] = None,
        timeout: Optional[float] = None,
        batch_size: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize inventory client.

        Args:
            base_url: Backend API URL (defaults to config)
            access_token: Bearer token (defaults to config)
            site_id: Site identifier header (defaults to config)
            timeout: Request timeout in seconds
            batch_size: Maximum SKUs per query
            transport: Optional httpx transport override
        """
        self.base_url = (base_url or inventory_settings.base_url).rstrip("/")
        self.access_token = access_token or inventory_settings.access_token
        self.site_id = site_id or inventory_settings.site_id
        self.batch_size = batch_size or inventory_settings.batch_size
        read_timeout = timeout or inventory_settings.timeout
        self.timeout = httpx.Timeout(
            connect=5.0,
            read=read_timeout,
            write=5.0,
            pool=5.0,
        )
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._log = logger.bind(service="inventory", base_url=self.base_url)

    async def __aenter__(self) -> "InventoryClient":
        """Context manager entry - create async client."""
        if not self.access_token or not self.site_id:
            raise InventoryLookupError(
                "INVENTORY_ACCESS_TOKEN and INVENTORY_SITE_ID are required"
            )
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self._transport,
            headers={
                "Authorization": f"Bearer {self.access_token}",
                "wix-site-id": self.site_id,
                "Content-Type": "application/json",
                "User-Agent": "marketfeed/1.0",
            },
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit - close async client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get the HTTP client, raising if not initialized."""
        if self._client is None:
            raise InventoryLookupError(
                "InventoryClient not initialized. Use 'async with InventoryClient() as client:'"
            )
        return self._client

    async def _query_batch(self, skus: List[str]) -> List[Dict[str, Any]]:
        payload = {"query": {"filter": {"sku": {"$in": skus}}}}

        try:
            response = await self.client.post(PRODUCTS_QUERY_PATH, json=payload)
        except httpx.TimeoutException as e:
            self._log.error("inventory_query_timeout", error=str(e))
            raise InventoryLookupError(f"Inventory backend timeout: {e}") from e
        except httpx.HTTPError as e:
            self._log.error("inventory_query_connection_error", error=str(e))
            raise InventoryLookupError(f"Failed to reach inventory backend: {e}") from e

        if response.status_code != 200:
            self._log.error(
                "inventory_query_failed",
                status_code=response.status_code,
                body=response.text[:200],
            )
            raise InventoryLookupError(
                f"Unexpected response: HTTP {response.status_code} - {response.text[:200]}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise InventoryLookupError(f"Inventory backend returned invalid JSON: {e}") from e
        return data.get("products") or []

    async def get_inventory_by_skus(self, skus: Iterable[str]) -> List[InventoryRecord]:
        """
        Look up stock and price for a set of SKUs.

        Args:
            skus: SKUs to query; duplicates and blanks are ignored

        Returns:
            Inventory records for the SKUs the backend knows (may include
            variant SKUs of matched products)

        Raises:
            InventoryLookupError: On transport errors or non-200 responses
        """
        unique = sorted({str(s).strip() for s in skus if s and str(s).strip()})
        if not unique:
            return []

        records: List[InventoryRecord] = []
        for start in range(0, len(unique), self.batch_size):
            batch = unique[start:start + self.batch_size]
            products = await self._query_batch(batch)
            records.extend(parse_products(products))

        self._log.info(
            "inventory_query_completed",
            requested=len(unique),
            batches=(len(unique) + self.batch_size - 1) // self.batch_size,
            records=len(records),
        )
        return records


async def fetch_inventory(skus: Iterable[str]) -> List[InventoryRecord]:
    """
    One-shot lookup with a client built from config.

    Matches the ``InventoryLookup`` signature so it can be handed straight
    to ``FeedService``.
    """
    async with InventoryClient() as client:
        return await client.get_inventory_by_skus(skus)
