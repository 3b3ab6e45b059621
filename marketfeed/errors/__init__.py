"""Error handling module."""
from marketfeed.errors.exceptions import (
    FeedError,
    ConfigurationError,
    SheetsReadError,
    InventoryLookupError,
)

__all__ = [
    "FeedError",
    "ConfigurationError",
    "SheetsReadError",
    "InventoryLookupError",
]
