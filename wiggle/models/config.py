"""Store-level configuration and free-form settings.

``Config`` is a singleton row read by the worker every cycle; it also
carries the stop flag the foreground process uses to shut the worker down.
``Setting`` is a name/value table for everything else.
"""

from sqlmodel import Field, SQLModel

# Current on-disk layout. Bump and add an upgrade step in database.py when it changes.
SCHEMA_VERSION = 2


class Config(SQLModel, table=True):
    """Singleton configuration row."""

    __tablename__ = "config"

    id: int | None = Field(default=None, primary_key=True)
    version: int = SCHEMA_VERSION
    url: str | None = None  # Site base URL, ends with "/"
    processing_stop: bool = False  # Stop Signal for the background worker


class Setting(SQLModel, table=True):
    """Generic name/value setting, e.g. download_dir or last_search."""

    __tablename__ = "settings"

    id: int | None = Field(default=None, primary_key=True)
    name: str = Field(unique=True, index=True)
    value: str | None = None
