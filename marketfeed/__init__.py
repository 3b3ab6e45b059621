"""Marketplace product feed generator."""

# Loads settings and configures structlog for every entry point
from marketfeed import config  # noqa: F401

__version__ = "1.0.0"
