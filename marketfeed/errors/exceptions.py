"""Custom exception hierarchy for feed generation errors."""
from typing import Optional


class FeedError(Exception):
    """Base exception for all feed generation errors."""

    def __init__(self, message: str, *args, **kwargs):
        """Initialize error with message."""
        self.message = message
        super().__init__(message, *args, **kwargs)


class ConfigurationError(FeedError):
    """Raised when the control table or import table cannot drive a feed."""
    pass


class SheetsReadError(FeedError):
    """Raised when the spreadsheet cannot be opened or read."""
    pass


class InventoryLookupError(FeedError):
    """Raised when the commerce backend stock/price lookup fails."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        """Initialize error with message and optional HTTP status."""
        self.status_code = status_code
        super().__init__(message)
