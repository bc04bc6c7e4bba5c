"""Core modules for Wiggle."""

from wiggle.core.page_parser import Found, ItemRecord, NotFound, Unrecognized, parse_item_page
from wiggle.core.sizes import SizeUnit, to_kib

__all__ = [
    "Found",
    "ItemRecord",
    "NotFound",
    "Unrecognized",
    "parse_item_page",
    "SizeUnit",
    "to_kib",
]
