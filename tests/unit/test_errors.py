"""Unit tests for the error handling helpers."""

import pytest
from sqlalchemy.exc import OperationalError

from wiggle.core.errors import (
    ConfigurationError,
    StoreContentionError,
    error_context,
    handle_errors,
    store_checked_read,
    store_read,
)


def _locked():
    raise OperationalError("SELECT", {}, Exception("database is locked"))


@pytest.mark.unit
class TestHandleErrors:
    """Tests for handle_errors() and the store helpers built on it."""

    def test_passes_result_through(self):
        @handle_errors(error_types=(ValueError,), default_message="boom")
        def ok():
            return 42

        assert ok() == 42

    def test_reraises_by_default(self):
        @handle_errors(error_types=(ValueError,), default_message="boom")
        def fail():
            raise ValueError("bad value")

        with pytest.raises(ValueError, match="bad value"):
            fail()

    def test_fallback(self):
        @handle_errors(error_types=(ValueError,), default_message="boom", fallback=[])
        def fail():
            raise ValueError("bad value")

        assert fail() == []

    def test_wrap_as(self):
        @handle_errors(error_types=(OSError,), default_message="No disk", wrap_as=ConfigurationError)
        def fail():
            raise OSError("read-only file system")

        with pytest.raises(ConfigurationError, match="No disk: read-only file system") as exc_info:
            fail()
        assert isinstance(exc_info.value.__cause__, OSError)

    def test_other_errors_are_untouched(self):
        @handle_errors(error_types=(ValueError,), default_message="boom", fallback=None)
        def fail():
            raise KeyError("missing")

        with pytest.raises(KeyError):
            fail()

    def test_store_read_falls_back(self):
        assert store_read("Could not read", fallback=0)(_locked)() == 0

    def test_store_checked_read_raises_contention(self):
        with pytest.raises(StoreContentionError, match="Could not read"):
            store_checked_read("Could not read")(_locked)()


@pytest.mark.unit
class TestErrorContext:
    def test_wraps_matching_error(self):
        with pytest.raises(ConfigurationError):
            with error_context(error_types=(OSError,), default_message="No disk", wrap_as=ConfigurationError):
                raise OSError("full")

    def test_reraises_without_wrap(self):
        with pytest.raises(OSError):
            with error_context(error_types=(OSError,), default_message="No disk"):
                raise OSError("full")
