"""
Feed generation core: sheet rows + control map + inventory -> marketplace XML.
"""

from .builder import build_feed, build_offers, collect_feed_skus
from .control_map import resolve_control_map
from .inventory_join import InventoryLookup, lookup_inventory
from .normalizer import (
    convert_length,
    convert_weight,
    process_tag_param_value,
    boolean_to_label,
    is_boolean_like,
)
from .stock_extras import days_to_dispatch, normalize_warranty_period, parse_delivery_methods
from .row_extractor import extract_offer
from .xml_renderer import CONTENT_TYPE, render_feed

__all__ = [
    'build_feed',
    'build_offers',
    'collect_feed_skus',
    'resolve_control_map',
    'InventoryLookup',
    'lookup_inventory',
    'convert_length',
    'convert_weight',
    'process_tag_param_value',
    'boolean_to_label',
    'is_boolean_like',
    'extract_offer',
    'days_to_dispatch',
    'normalize_warranty_period',
    'parse_delivery_methods',
    'CONTENT_TYPE',
    'render_feed',
]
