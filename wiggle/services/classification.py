"""Classification Workflow - turns operator decisions into store updates.

The console UI presents categories and items; this module owns what each
choice does to the catalog. Two loops:

- Category decisions walk the oldest unclassified category first. Download
  All and Ignore cascade to that category's undecided items.
- Item decisions walk undecided, available, seeded items, oldest check first.

Every call opens and commits its own session, so nothing is held while the
operator thinks.
"""

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import func, update
from sqlmodel import select

from wiggle.core.errors import store_checked_read, store_read, store_write
from wiggle.database import session_factory
from wiggle.models import Category, CategoryStatus, DownloadStatus, Item, ItemStatus
from wiggle.services import config_service
from wiggle.services.download_state import sources_for

logger = logging.getLogger(__name__)


class CategoryDecision(str, Enum):
    ASK_EACH = "ask_each"
    DOWNLOAD_ALL = "download_all"
    IGNORE = "ignore"
    EXIT = "exit"


class ItemDecision(str, Enum):
    QUEUE_DOWNLOAD = "queue_download"
    SKIP = "skip"
    DEFER = "defer"  # Ask again later
    MARK_DOWNLOADED = "mark_downloaded"  # Already obtained elsewhere
    EXIT = "exit"


_CATEGORY_STATUS = {
    CategoryDecision.ASK_EACH: CategoryStatus.ASK_EACH,
    CategoryDecision.DOWNLOAD_ALL: CategoryStatus.DOWNLOAD_ALL,
    CategoryDecision.IGNORE: CategoryStatus.IGNORE,
}

_DOWNLOAD_STATUS = {
    ItemDecision.QUEUE_DOWNLOAD: DownloadStatus.QUEUED,
    ItemDecision.SKIP: DownloadStatus.SKIP,
    ItemDecision.MARK_DOWNLOADED: DownloadStatus.DOWNLOADED,
}


@dataclass
class ItemView:
    """An item joined with its category name, for display."""

    id: int
    title: str | None
    category: str | None
    size_kib: float | None
    seeders: int
    leechers: int
    download: DownloadStatus


def _undecided_items_query():
    return (
        select(Item, Category.name)
        .outerjoin(Category, Item.category_id == Category.id)
        .where(
            Item.status == ItemStatus.AVAILABLE,
            Item.download == DownloadStatus.UNSET,
            Item.seeders > 0,
        )
        .order_by(Item.last_check.asc(), Item.id.desc())
    )


def _to_view(item: Item, category_name: str | None) -> ItemView:
    return ItemView(
        id=item.id,
        title=item.title,
        category=category_name,
        size_kib=item.size_kib,
        seeders=item.seeders,
        leechers=item.leechers,
        download=item.download,
    )


# --- Categories ---


@store_checked_read("Could not read unclassified categories")
def next_unset_category() -> Category | None:
    """The oldest category that has not been classified yet."""
    with session_factory() as session:
        return session.execute(
            select(Category)
            .where(Category.status == CategoryStatus.UNSET)
            .order_by(Category.id)
            .limit(1)
        ).scalar_one_or_none()


@store_read("Could not list categories", fallback=[])
def list_categories() -> list[Category]:
    with session_factory() as session:
        return list(session.execute(select(Category).order_by(Category.name)).scalars())


@store_write("Could not apply category decision")
def apply_category_decision(category_id: int, decision: CategoryDecision) -> bool:
    """Classify an unset category and cascade to its undecided items.

    Only the first classification counts: a category that already left
    UNSET is not touched again.

    Returns:
        True if the category was classified by this call.
    """
    if decision == CategoryDecision.EXIT:
        return False
    status = _CATEGORY_STATUS[decision]

    with session_factory() as session:
        result = session.execute(
            update(Category)
            .where(Category.id == category_id, Category.status == CategoryStatus.UNSET)
            .values(status=status)
        )
        if result.rowcount == 0:
            session.rollback()
            logger.debug(f"Category {category_id} already classified, ignoring {decision.value}")
            return False

        cascaded = 0
        if decision == CategoryDecision.DOWNLOAD_ALL:
            cascaded = session.execute(
                update(Item)
                .where(
                    Item.category_id == category_id,
                    Item.download == DownloadStatus.UNSET,
                    Item.status == ItemStatus.AVAILABLE,
                    Item.seeders > 0,
                )
                .values(download=DownloadStatus.QUEUED)
            ).rowcount
        elif decision == CategoryDecision.IGNORE:
            cascaded = session.execute(
                update(Item)
                .where(Item.category_id == category_id, Item.download == DownloadStatus.UNSET)
                .values(download=DownloadStatus.SKIP)
            ).rowcount

        session.commit()

    logger.info(f"Category {category_id} set to {status.value} ({cascaded} items updated)")
    return True


def process_categories(decide: Callable[[Category], CategoryDecision]) -> bool:
    """Ask about each unclassified category until none remain.

    Args:
        decide: Presents a category and returns the operator's choice.

    Returns:
        False if the operator exited early, True otherwise.

    Raises:
        StoreContentionError: If the next category can't be read; an
            abandoned read must not pass for "none left".
    """
    category = next_unset_category()
    while category is not None:
        decision = decide(category)
        if decision == CategoryDecision.EXIT:
            return False
        apply_category_decision(category.id, decision)
        category = next_unset_category()
    return True


# --- Items ---


@store_checked_read("Could not read undecided items")
def next_undecided_item() -> ItemView | None:
    """The available, seeded, undecided item checked longest ago."""
    with session_factory() as session:
        row = session.execute(_undecided_items_query().limit(1)).first()
        if row is None:
            return None
        return _to_view(*row)


@store_read("Could not list undecided items", fallback=[])
def list_undecided_items(limit: int = 10) -> list[ItemView]:
    """A page of undecided items, for triaging several at once."""
    with session_factory() as session:
        rows = session.execute(_undecided_items_query().limit(limit)).all()
        return [_to_view(*row) for row in rows]


@store_read("Could not count undecided items", fallback=0)
def count_undecided_items() -> int:
    with session_factory() as session:
        return session.execute(
            select(func.count())
            .select_from(Item)
            .where(
                Item.status == ItemStatus.AVAILABLE,
                Item.download == DownloadStatus.UNSET,
                Item.seeders > 0,
            )
        ).scalar_one()


@store_write("Could not apply item decision")
def apply_bulk_decision(item_ids: Iterable[int], decision: ItemDecision) -> int:
    """Apply one item decision to several items.

    Items whose current status doesn't allow the move are left alone.

    Returns:
        Number of items updated.
    """
    item_ids = list(item_ids)
    if decision == ItemDecision.EXIT or not item_ids:
        return 0

    if decision == ItemDecision.DEFER:
        statement = (
            update(Item).where(Item.id.in_(item_ids)).values(last_check=datetime.now(timezone.utc))
        )
    else:
        target = _DOWNLOAD_STATUS[decision]
        statement = update(Item).where(
            Item.id.in_(item_ids), Item.download.in_(sources_for(target))
        )
        if target == DownloadStatus.QUEUED:
            # Deleted items have no payload to fetch
            statement = statement.where(Item.status == ItemStatus.AVAILABLE)
        statement = statement.values(download=target)

    with session_factory() as session:
        updated = session.execute(statement).rowcount
        session.commit()

    logger.info(f"{decision.value}: {updated} of {len(item_ids)} items updated")
    return updated


def apply_item_decision(item_id: int, decision: ItemDecision) -> bool:
    """Apply one decision to one item.

    Returns:
        True if the item was updated.
    """
    return apply_bulk_decision([item_id], decision) > 0


def process_items(decide: Callable[[ItemView], ItemDecision]) -> bool:
    """Ask about each undecided item until none remain.

    Deferred items get a fresh check time, so they move to the back of
    the line rather than being asked again straight away.

    Returns:
        False if the operator exited early, True otherwise.
    """
    item = next_undecided_item()
    while item is not None:
        decision = decide(item)
        if decision == ItemDecision.EXIT:
            return False
        apply_item_decision(item.id, decision)
        item = next_undecided_item()
    return True


def process(
    decide_category: Callable[[Category], CategoryDecision],
    decide_item: Callable[[ItemView], ItemDecision],
) -> bool:
    """Triage categories, then items.

    Items are only shown once every category has been classified; exiting
    the category loop skips the item loop for this run.
    """
    return process_categories(decide_category) and process_items(decide_item)


# --- Search ---


@store_read("Could not search the catalog", fallback=[])
def _search(pattern: str, only_seeded: bool, only_undecided: bool) -> list[ItemView]:
    statement = (
        select(Item, Category.name)
        .outerjoin(Category, Item.category_id == Category.id)
        .where(Item.title.like(f"%{pattern}%"))
    )
    if only_seeded:
        statement = statement.where(Item.seeders > 0)
    if only_undecided:
        statement = statement.where(Item.download == DownloadStatus.UNSET)

    with session_factory() as session:
        rows = session.execute(statement.order_by(Item.title)).all()
        return [_to_view(*row) for row in rows]


def search_items(
    pattern: str,
    only_seeded: bool = True,
    only_undecided: bool = True,
) -> list[ItemView]:
    """Find items whose title matches a LIKE pattern.

    ``%`` and ``_`` in the pattern keep their LIKE meaning; the text itself is
    always sent as a bound parameter. The pattern is remembered as the last
    search.
    """
    config_service.set_setting(config_service.LAST_SEARCH, pattern)
    results = _search(pattern, only_seeded, only_undecided)
    logger.info(f"Search {pattern!r}: {len(results)} results")
    return results
