"""Shared fixtures for Wiggle tests.

Patches session_factory everywhere so no test touches wiggle.db.
"""

import importlib
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

from wiggle.models import Category, CategoryStatus, DownloadStatus, Item, ItemStatus

_test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

_test_session_factory = sessionmaker(_test_engine, class_=Session, expire_on_commit=False)

# Every module that did `from wiggle.database import session_factory`
_PATCHED_MODULES = [
    "wiggle.database",
    "wiggle.services.config_service",
    "wiggle.services.category_resolver",
    "wiggle.services.ingestion",
    "wiggle.services.classification",
]


@pytest.fixture(autouse=True)
def isolate_database(monkeypatch):
    """Point every service at a fresh in-memory store."""
    SQLModel.metadata.create_all(_test_engine)

    for module_name in _PATCHED_MODULES:
        monkeypatch.setattr(importlib.import_module(module_name), "session_factory", _test_session_factory)

    yield

    SQLModel.metadata.drop_all(_test_engine)


@pytest.fixture
def db_session():
    """Direct session for seeding and asserting."""
    with _test_session_factory() as session:
        yield session


@pytest.fixture
def make_category(db_session):
    """Create a category with a given status."""

    def _make(name: str, status: CategoryStatus = CategoryStatus.UNSET) -> Category:
        category = Category(name=name, status=status)
        db_session.add(category)
        db_session.commit()
        db_session.refresh(category)
        return category

    return _make


@pytest.fixture
def make_item(db_session):
    """Create an item; last_check defaults to `age_minutes` ago."""

    def _make(
        item_id: int,
        category_id: int | None = None,
        seeders: int = 5,
        status: ItemStatus = ItemStatus.AVAILABLE,
        download: DownloadStatus = DownloadStatus.UNSET,
        title: str | None = None,
        age_minutes: int = 60,
    ) -> Item:
        item = Item(
            id=item_id,
            status=status,
            title=title or f"Item {item_id}",
            size_kib=1024.0,
            category_id=category_id,
            seeders=seeders,
            leechers=1,
            last_check=datetime.now(timezone.utc) - timedelta(minutes=age_minutes),
            download=download,
        )
        db_session.add(item)
        db_session.commit()
        return item

    return _make


def get_item(item_id: int) -> Item | None:
    """Read an item back through a fresh session."""
    with _test_session_factory() as session:
        return session.get(Item, item_id)


def get_category(category_id: int) -> Category | None:
    with _test_session_factory() as session:
        return session.get(Category, category_id)
