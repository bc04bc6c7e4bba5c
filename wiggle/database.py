"""Database setup with SQLModel and SQLite.

Two processes open this database: the console UI and the background
worker. Every service call opens a short session and commits before
returning, so neither process holds the lock across a prompt or a
network request. A statement that can't get the lock waits
``settings.lock_timeout`` seconds before SQLite gives up.
"""

import logging
from collections.abc import Callable
from pathlib import Path

import sqlalchemy
from sqlalchemy import Engine, create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlmodel import SQLModel, select

from wiggle.config import settings
from wiggle.core.errors import DatabaseError

# Import all models so their tables are registered with SQLModel.metadata
from wiggle.models import SCHEMA_VERSION, Config, Setting

logger = logging.getLogger(__name__)


def create_db_engine(database_url: str) -> Engine:
    """Create an engine with the lock timeout and pragmas both processes rely on."""
    db_engine = create_engine(
        database_url,
        echo=settings.debug,
        connect_args={
            "check_same_thread": False,
            "timeout": settings.lock_timeout,
        },
    )

    @sqlalchemy.event.listens_for(db_engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA synchronous=NORMAL")
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    return db_engine


engine = create_db_engine(settings.database_url)

# Session factory
session_factory = sessionmaker(
    engine,
    class_=Session,
    expire_on_commit=False,
)


def _sqlite_path(target_engine: Engine) -> Path | None:
    database = target_engine.url.database
    if not database or database == ":memory:":
        return None
    return Path(database)


def _upgrade_v1(conn) -> None:
    """v1 -> v2: free-form settings table."""
    Setting.__table__.create(conn, checkfirst=True)


# Keyed by the version being upgraded *from*
_UPGRADES: dict[int, Callable] = {
    1: _upgrade_v1,
}


def _upgrade_schema(target_engine: Engine) -> int:
    """Bring the config row and the on-disk layout up to SCHEMA_VERSION.

    Returns:
        The schema version after upgrading.
    """
    with Session(target_engine, expire_on_commit=False) as session:
        config = session.execute(select(Config).limit(1)).scalar_one_or_none()
        if config is None:
            session.add(Config(version=SCHEMA_VERSION))
            session.commit()
            logger.info(f"Created catalog store at schema version {SCHEMA_VERSION}")
            return SCHEMA_VERSION

        version = config.version
        while version < SCHEMA_VERSION:
            _UPGRADES[version](session.connection())
            logger.info(f"Upgraded catalog schema: v{version} -> v{version + 1}")
            version += 1
        config.version = version
        session.commit()
        return version


def init_db(target_engine: Engine | None = None) -> int:
    """Create missing tables and run version-gated upgrades.

    A database file created by a failed initialization is removed again so
    no partial store is left behind.

    Raises:
        DatabaseError: If the store can't be created or upgraded.
    """
    eng = target_engine or engine
    db_path = _sqlite_path(eng)
    existed = db_path is not None and db_path.exists()

    try:
        if db_path is not None:
            db_path.parent.mkdir(parents=True, exist_ok=True)
        SQLModel.metadata.create_all(eng)
        version = _upgrade_schema(eng)
    except (SQLAlchemyError, OSError) as e:
        eng.dispose()
        if db_path is not None and not existed and db_path.exists():
            db_path.unlink()
        raise DatabaseError(f"Could not initialize the catalog store: {e}") from e

    logger.info(f"Database initialized successfully (schema v{version})")
    return version
