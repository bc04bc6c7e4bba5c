"""Error handling framework for Wiggle.

Provides custom exception types and helpers for standardized error handling
across the worker and the console UI.
"""

import logging
from functools import wraps

from sqlalchemy.exc import OperationalError

logger = logging.getLogger(__name__)


# Custom Exception Hierarchy
class WiggleError(Exception):
    """Base exception for all Wiggle-specific errors."""

    pass


class SiteError(WiggleError):
    """Remote site request failed.

    Raised for connection errors, timeouts and bad HTTP status codes.
    Treated as transient by the worker: the same step is retried next cycle.
    """

    pass


class SessionError(WiggleError):
    """No authenticated session could be established with the remote site."""

    pass


class LayoutError(WiggleError):
    """A page did not match any layout the parser knows."""

    pass


class ConfigurationError(WiggleError):
    """Configuration validation failed.

    Raised when a required setting (site URL, download directory) is missing or invalid.
    """

    pass


class DatabaseError(WiggleError):
    """Database operation failed.

    Raised when SQLite operations fail unexpectedly.
    """

    pass


class StoreContentionError(DatabaseError):
    """A statement was abandoned after waiting on the other process's lock."""

    pass


_UNSET = object()


# Error Handling Decorator
def handle_errors(
    *,
    error_types: tuple[type[Exception], ...],
    default_message: str,
    log_level: str = "error",
    wrap_as: type[WiggleError] | None = None,
    fallback=_UNSET,
):
    """Decorator for standardized error handling.

    Args:
        error_types: Tuple of exception types to catch
        default_message: Message to log when error occurs
        log_level: Logging level (error, warning, info, debug)
        wrap_as: Optionally wrap the caught exception in a WiggleError subclass
        fallback: Value returned instead of re-raising.

    Example:
        @handle_errors(
            error_types=(OperationalError,),
            default_message="Could not read the stop flag",
            log_level="warning",
            fallback=False,
        )
        def stop_requested() -> bool:
            # ... query ...
    """

    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except error_types as e:
                log_func = getattr(logger, log_level)
                log_func(
                    f"{default_message}: {e}",
                    exc_info=(log_level == "error"),
                )
                if wrap_as:
                    raise wrap_as(f"{default_message}: {e}") from e
                if fallback is not _UNSET:
                    return fallback
                raise

        return wrapper

    return decorator


def store_read(default_message: str, fallback=None):
    """Treat an abandoned read as "no data" instead of crashing.

    The other process may simply be mid-write; the caller retries on its
    next pass.
    """
    return handle_errors(
        error_types=(OperationalError,),
        default_message=default_message,
        log_level="warning",
        fallback=fallback,
    )


def store_checked_read(default_message: str):
    """Surface an abandoned read as StoreContentionError.

    For reads where "no rows" is itself an answer the caller acts on, so a
    timeout must not look like an empty result.
    """
    return handle_errors(
        error_types=(OperationalError,),
        default_message=default_message,
        log_level="warning",
        wrap_as=StoreContentionError,
    )


def store_write(default_message: str):
    """Surface an abandoned write as StoreContentionError."""
    return handle_errors(
        error_types=(OperationalError,),
        default_message=default_message,
        log_level="warning",
        wrap_as=StoreContentionError,
    )


# Context Manager for Error Handling
class error_context:
    """Context manager for error handling in specific code blocks.

    Example:
        with error_context(
            error_types=(OSError,),
            default_message="Failed to write payload",
            wrap_as=ConfigurationError
        ):
            # ... code that might raise errors ...
    """

    def __init__(
        self,
        *,
        error_types: tuple[type[Exception], ...],
        default_message: str,
        log_level: str = "error",
        wrap_as: type[WiggleError] | None = None,
    ):
        self.error_types = error_types
        self.default_message = default_message
        self.log_level = log_level
        self.wrap_as = wrap_as

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is not None and issubclass(exc_type, self.error_types):
            log_func = getattr(logger, self.log_level)
            log_func(
                f"{self.default_message}: {exc_val}",
                exc_info=(self.log_level == "error"),
            )
            if self.wrap_as:
                raise self.wrap_as(f"{self.default_message}: {exc_val}") from exc_val
            return False  # Re-raise the original exception
        return False  # Don't suppress other exceptions
