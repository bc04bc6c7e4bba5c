"""Catalog models - categories and the items discovered on the site."""

from datetime import datetime
from enum import Enum

from sqlalchemy import Column, DateTime, String
from sqlmodel import Field, SQLModel


class CategoryStatus(str, Enum):
    """What to do with items of a category."""

    UNSET = "unset"  # Not classified yet
    DOWNLOAD_ALL = "download_all"
    IGNORE = "ignore"  # Never download or ask
    ASK_EACH = "ask_each"


class ItemStatus(str, Enum):
    """Availability of an item on the site."""

    UNKNOWN = "unknown"
    AVAILABLE = "available"
    DELETED = "deleted"


class DownloadStatus(str, Enum):
    """Download intent for an item. Only ever moves forward."""

    UNSET = "unset"
    QUEUED = "queued"  # Worker fetches the payload
    DOWNLOADED = "downloaded"
    SKIP = "skip"


class Category(SQLModel, table=True):
    """A site category, created the first time an item of it is seen."""

    __tablename__ = "categories"

    id: int | None = Field(default=None, primary_key=True)
    # NOCASE makes both the unique constraint and lookups case-insensitive
    name: str = Field(sa_column=Column(String(collation="NOCASE"), unique=True, nullable=False))
    status: CategoryStatus = CategoryStatus.UNSET


class Item(SQLModel, table=True):
    """One item on the site, keyed by the site's own numeric id."""

    __tablename__ = "items"

    id: int = Field(primary_key=True, sa_column_kwargs={"autoincrement": False})
    status: ItemStatus = ItemStatus.UNKNOWN

    # Populated once from the detail page; deleted items leave these empty
    title: str | None = None
    size_kib: float | None = None
    category_id: int | None = Field(default=None, foreign_key="categories.id", index=True)
    seeders: int = 0
    leechers: int = 0

    # Written as aware UTC; SQLite keeps no offset, so values read back are naive UTC
    last_check: datetime | None = Field(
        default=None, sa_column=Column(DateTime(timezone=True), index=True)
    )
    download: DownloadStatus = Field(default=DownloadStatus.UNSET, index=True)
