"""Pytest configuration and fixtures for the test suite.

Provides:
- Python path setup (so ``marketfeed`` imports without installation)
- Environment variable defaults, set before any settings are loaded
- Shared spreadsheet fixtures
"""
import os
import sys
from pathlib import Path

import pytest

project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

# Settings are instantiated on import of marketfeed.config
os.environ.setdefault("SPREADSHEET_ID", "test-spreadsheet")
os.environ.setdefault("INVENTORY_ACCESS_TOKEN", "test-token")
os.environ.setdefault("INVENTORY_SITE_ID", "test-site")
os.environ.setdefault("LOG_LEVEL", "INFO")


@pytest.fixture
def import_values():
    """Import tab with the columns used across the end-to-end tests."""
    return [
        ["code", "title", "id", "vendor_code", "height", "width", "Особливості", "Photo1"],
        ["C001", "Product 1", "ID1", "V001", "10", "20", "функція1,функція2", "https://img1"],
    ]


@pytest.fixture
def control_values():
    """Feed Control List enabling every column of ``import_values``."""
    return [
        ["Import field", "Enabled", "Feed name", "Tag name", "Units"],
        ["code", "TRUE", "code", "", ""],
        ["title", "TRUE", "title", "", ""],
        ["id", "TRUE", "id", "", ""],
        ["vendor_code", "TRUE", "vendor_code", "", ""],
        ["height", "TRUE", "height", "", "см"],
        ["width", "TRUE", "width", "", "см"],
        ["Особливості", "TRUE", "tags", "", ""],
        ["Photo1", "TRUE", "image_1", "", ""],
    ]


@pytest.fixture
def stock_import_values():
    """Import tab for stock feed tests (SKU column plus prices)."""
    return [
        ["SKU", "Name", "Price", "Old price", "Availability"],
        ["SKU-1", "Lamp", "1 200,00", "1500", "sheet value"],
        ["SKU-2", "Chair", "850", "850", "sheet value"],
        ["SKU-3", "Table", "2000", "", "sheet value"],
    ]


@pytest.fixture
def stock_control_values():
    """Feed Control List for the stock variant."""
    return [
        ["Import field", "Stock feed", "Feed name", "Tag name", "Units"],
        ["SKU", "TRUE", "code", "", ""],
        ["Name", "TRUE", "title", "", ""],
        ["Price", "TRUE", "price", "", ""],
        ["Old price", "TRUE", "old_price", "", ""],
        ["Availability", "TRUE", "availability", "", ""],
    ]
