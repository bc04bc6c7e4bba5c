"""Process-level configuration from environment variables.

Only contains settings needed before the database is available:
database URL, cookie jar, log file and loop timings. All fields have
defaults, so no .env file is required.

User-configurable settings (site URL, download directory, last search)
live in the database, see models/config.py.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Process settings. Loaded from WIGGLE_* environment variables; optionally from .env."""

    model_config = SettingsConfigDict(
        env_prefix="WIGGLE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Store
    database_url: str = "sqlite:///./wiggle.db"
    lock_timeout: float = 20.0  # Seconds a statement waits on a locked database

    # Remote site session
    cookie_file: str = ".cookies.txt"
    request_timeout: float = 30.0

    # Background worker
    cycle_interval: float = 1.0  # Sleep between ingestion cycles
    error_backoff: float = 5.0  # Extra sleep after a failed fetch

    # Logging
    log_file: str = "process.log"
    debug: bool = False


settings = Settings()
