"""Configuration service for managing store-level settings.

Provides functions to read and write the Config singleton, the free-form
Settings table and the Stop Signal the two processes share.
"""

import logging

from sqlmodel import select

from wiggle.core.errors import store_checked_read, store_read, store_write
from wiggle.database import session_factory
from wiggle.models import Config, Setting

logger = logging.getLogger(__name__)

DOWNLOAD_DIR = "download_dir"
LAST_SEARCH = "last_search"


def normalize_site_url(url: str) -> str:
    """Site paths are appended directly, so the base must end with a slash."""
    url = url.strip()
    if url and not url.endswith("/"):
        url += "/"
    return url


def get_config() -> Config:
    """Get the configuration row, creating it if none exists."""
    with session_factory() as session:
        config = session.execute(select(Config).limit(1)).scalar_one_or_none()

        if config is None:
            config = Config()
            session.add(config)
            session.commit()
            session.refresh(config)
            logger.info("Created default configuration")

        return config


@store_checked_read("Could not read the site URL")
def get_site_url() -> str | None:
    """The stored site URL; a busy store raises rather than reading as unset."""
    with session_factory() as session:
        return session.execute(select(Config.url).limit(1)).scalar_one_or_none()


@store_write("Could not save the site URL")
def set_site_url(url: str) -> str:
    """Store the site base URL and return the normalized value."""
    url = normalize_site_url(url)
    with session_factory() as session:
        config = session.execute(select(Config).limit(1)).scalar_one_or_none()
        if config is None:
            config = Config()
            session.add(config)
        config.url = url or None
        session.commit()

    logger.info(f"Site URL set to {url!r}")
    return url


@store_read("Could not read setting")
def get_setting(name: str) -> str | None:
    """Return a setting's value, or None if it was never written."""
    with session_factory() as session:
        return session.execute(
            select(Setting.value).where(Setting.name == name)
        ).scalar_one_or_none()


@store_write("Could not save setting")
def set_setting(name: str, value: str | None) -> None:
    """Insert the setting if absent, else update it."""
    with session_factory() as session:
        setting = session.execute(select(Setting).where(Setting.name == name)).scalar_one_or_none()
        if setting is None:
            session.add(Setting(name=name, value=value))
        else:
            setting.value = value
        session.commit()

    logger.debug(f"Setting {name} updated")


# --- Stop Signal ---


def _set_stop_flag(value: bool) -> None:
    with session_factory() as session:
        config = session.execute(select(Config).limit(1)).scalar_one_or_none()
        if config is None:
            config = Config()
            session.add(config)
        config.processing_stop = value
        session.commit()


@store_write("Could not request the worker to stop")
def request_stop() -> None:
    """Ask the background worker to stop after its current cycle."""
    _set_stop_flag(True)
    logger.info("Stop requested for background worker")


@store_write("Could not clear the stop flag")
def clear_stop(test_mode: bool = False) -> None:
    """Reset the Stop Signal before starting a worker.

    In test mode the flag is left set, so the worker runs exactly one cycle.
    """
    _set_stop_flag(test_mode)


@store_read("Could not read the stop flag", fallback=False)
def stop_requested() -> bool:
    with session_factory() as session:
        value = session.execute(select(Config.processing_stop).limit(1)).scalar_one_or_none()
        return bool(value)
