"""Data models for Wiggle."""

from wiggle.models.catalog import Category, CategoryStatus, DownloadStatus, Item, ItemStatus
from wiggle.models.config import SCHEMA_VERSION, Config, Setting

__all__ = [
    "Category",
    "CategoryStatus",
    "Config",
    "DownloadStatus",
    "Item",
    "ItemStatus",
    "SCHEMA_VERSION",
    "Setting",
]
