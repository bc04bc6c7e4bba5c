"""Ingestion Loop - the background worker.

Each cycle discovers at most one new item and downloads at most one
queued payload, then sleeps and checks the Stop Signal.

Discovery only ever asks the site for ``max(local id) + 1``. The cursor
advances only when an item is stored (found or deleted). A transient
fetch failure or an unrecognized page stores nothing, so the same id is
retried next cycle: discovery is at-least-once-eventually, never lossy.
"""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError
from sqlmodel import select

from wiggle.config import settings
from wiggle.core.errors import StoreContentionError, WiggleError, store_read, store_write
from wiggle.core.page_parser import Found, ItemRecord, Unrecognized, parse_item_page
from wiggle.database import session_factory
from wiggle.models import DownloadStatus, Item, ItemStatus
from wiggle.services import config_service
from wiggle.services.category_resolver import resolve_category
from wiggle.services.download_state import sources_for
from wiggle.services.site_client import SiteClient

logger = logging.getLogger(__name__)


class IngestionState(str, Enum):
    """Lifecycle of the worker loop."""

    RUNNING = "running"
    STOPPING = "stopping"  # Stop Signal seen; finishing the current cycle
    STOPPED = "stopped"


class DiscoveryOutcome(str, Enum):
    """What one discovery step did."""

    UP_TO_DATE = "up_to_date"
    STORED_AVAILABLE = "stored_available"
    STORED_DELETED = "stored_deleted"
    UNRECOGNIZED = "unrecognized"
    FETCH_FAILED = "fetch_failed"
    STORE_BUSY = "store_busy"


@dataclass
class CycleReport:
    """Summary of one cycle, mainly for logging and tests."""

    discovery: DiscoveryOutcome
    downloaded_id: int | None = None


# --- Store access ---


@store_read("Could not read the catalog cursor")
def get_cursor() -> int:
    """Highest item id in the catalog, 0 when empty."""
    with session_factory() as session:
        return session.execute(select(func.max(Item.id))).scalar_one_or_none() or 0


@store_write("Could not store new item")
def store_found_item(item_id: int, record: ItemRecord) -> None:
    category_id = resolve_category(record.category)
    with session_factory() as session:
        session.add(
            Item(
                id=item_id,
                status=ItemStatus.AVAILABLE,
                title=record.title,
                size_kib=record.size_kib,
                category_id=category_id,
                seeders=record.seeders,
                leechers=record.leechers,
                last_check=datetime.now(timezone.utc),
                download=DownloadStatus.UNSET,
            )
        )
        session.commit()


@store_write("Could not store deleted item")
def store_deleted_item(item_id: int) -> None:
    with session_factory() as session:
        session.add(
            Item(id=item_id, status=ItemStatus.DELETED, last_check=datetime.now(timezone.utc))
        )
        session.commit()


@store_read("Could not read the download queue")
def next_queued_item() -> int | None:
    """The queued, available, seeded item that has waited longest."""
    with session_factory() as session:
        return session.execute(
            select(Item.id)
            .where(
                Item.download == DownloadStatus.QUEUED,
                Item.status == ItemStatus.AVAILABLE,
                Item.seeders > 0,
            )
            .order_by(Item.last_check.asc(), Item.id.desc())
            .limit(1)
        ).scalar_one_or_none()


@store_write("Could not mark item as downloaded")
def mark_downloaded(item_id: int) -> bool:
    """Move an item to DOWNLOADED if its current status allows it."""
    with session_factory() as session:
        result = session.execute(
            update(Item)
            .where(
                Item.id == item_id,
                Item.download.in_(sources_for(DownloadStatus.DOWNLOADED)),
            )
            .values(download=DownloadStatus.DOWNLOADED)
        )
        session.commit()
        return result.rowcount > 0


# --- Worker loop ---


class IngestionLoop:
    """Serial discovery and download worker.

    Args:
        client: Site client with an established session.
        latest_remote_id: Newest id on the site, captured once at start.
        interval: Seconds to sleep between cycles.
        error_backoff: Extra seconds to sleep after a failed fetch.
        sleep: Sleep function, replaceable in tests.
    """

    def __init__(
        self,
        client: SiteClient,
        latest_remote_id: int,
        interval: float | None = None,
        error_backoff: float | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.client = client
        self.latest_remote_id = latest_remote_id
        self.interval = settings.cycle_interval if interval is None else interval
        self.error_backoff = settings.error_backoff if error_backoff is None else error_backoff
        self._sleep = sleep
        self.state = IngestionState.RUNNING
        self.cycles = 0

    def discover_next(self) -> DiscoveryOutcome:
        """Fetch, parse and store the item after the cursor, if any."""
        cursor = get_cursor()
        if cursor is None:
            return DiscoveryOutcome.STORE_BUSY
        if cursor >= self.latest_remote_id:
            return DiscoveryOutcome.UP_TO_DATE

        item_id = cursor + 1
        logger.info(f"Getting item {item_id}")
        try:
            body = self.client.fetch_item_page(item_id)
        except WiggleError as e:
            logger.warning(f"Fetching item {item_id} failed, retrying next cycle: {e}")
            self._sleep(self.error_backoff)
            return DiscoveryOutcome.FETCH_FAILED

        result = parse_item_page(body)
        if isinstance(result, Unrecognized):
            logger.error(
                f"Unexpected page for item {item_id} ({result.reason}). "
                "The site layout may have changed; the parser needs updating."
            )
            return DiscoveryOutcome.UNRECOGNIZED

        try:
            if isinstance(result, Found):
                store_found_item(item_id, result.record)
                logger.info(
                    f"Added item {item_id}: {result.record.title!r} [{result.record.category}]"
                )
                return DiscoveryOutcome.STORED_AVAILABLE

            store_deleted_item(item_id)
            logger.info(f"Item {item_id} doesn't exist on the site")
            return DiscoveryOutcome.STORED_DELETED
        except StoreContentionError:
            return DiscoveryOutcome.STORE_BUSY
        except IntegrityError as e:
            # Only this worker inserts items, so this means a second worker is running
            logger.error(f"Item {item_id} already stored by someone else: {e}")
            return DiscoveryOutcome.STORE_BUSY

    def download_next(self) -> int | None:
        """Download the next queued payload.

        Returns:
            The item id if a payload was saved, else None.
        """
        item_id = next_queued_item()
        if item_id is None:
            return None

        download_dir = config_service.get_setting(config_service.DOWNLOAD_DIR)
        if not download_dir:
            logger.warning(f"Item {item_id} is queued but no download directory is set")
            return None

        logger.info(f"Downloading: {item_id}")
        try:
            self.client.download_payload(item_id, Path(download_dir))
        except WiggleError as e:
            logger.warning(f"Unable to download item {item_id}, will retry: {e}")
            return None

        try:
            mark_downloaded(item_id)
        except StoreContentionError:
            # Payload is on disk; the item stays queued and is fetched again next cycle
            return None
        logger.info(f"Item {item_id} downloaded")
        return item_id

    def run_cycle(self) -> CycleReport:
        """One full cycle: discover, download, sleep, check the Stop Signal."""
        report = CycleReport(discovery=self.discover_next())
        report.downloaded_id = self.download_next()

        self._sleep(self.interval)
        self.cycles += 1

        if config_service.stop_requested():
            logger.info("Stop Signal received, finishing up")
            self.state = IngestionState.STOPPING
        return report

    def run(self) -> int:
        """Run cycles until the Stop Signal is seen.

        Returns:
            Number of cycles run.
        """
        logger.info(f"Background tasks started (site latest id {self.latest_remote_id})")
        while self.state == IngestionState.RUNNING:
            self.run_cycle()

        self.state = IngestionState.STOPPED
        logger.info(f"Background tasks stopped after {self.cycles} cycles")
        return self.cycles
