"""Unit tests for size normalization."""

import pytest

from wiggle.core.sizes import SizeUnit, parse_size, to_kib


@pytest.mark.unit
class TestToKib:
    """Tests for to_kib()."""

    @pytest.mark.parametrize(
        "magnitude,unit,expected",
        [
            (500, "Bytes", 500 / 1024),
            (12, "KiB", 12),
            (1.5, "MiB", 1.5 * 1024),
            (2.5, "GiB", 2.5 * 1024 * 1024),
            (1, "TiB", 1024**3),
        ],
    )
    def test_known_units(self, magnitude, unit, expected):
        assert to_kib(magnitude, unit) == pytest.approx(expected)

    def test_accepts_enum_member(self):
        assert to_kib(3, SizeUnit.MIB) == 3 * 1024

    def test_unknown_unit_passes_through(self, caplog):
        """Unknown units are kept as KiB and logged, not rejected."""
        assert to_kib(7.0, "PiB") == 7.0
        assert "Unknown size unit" in caplog.text

    def test_units_are_case_sensitive(self):
        """The site prints 'GiB'; 'gib' is treated as unknown."""
        assert to_kib(2, "gib") == 2


@pytest.mark.unit
class TestParseSize:
    """Tests for parse_size()."""

    def test_parses_pair(self):
        assert parse_size("2.5 GiB") == pytest.approx(2.5 * 1024 * 1024)

    def test_non_breaking_space(self):
        assert parse_size("700\xa0MiB") == pytest.approx(700 * 1024)

    def test_thousands_separator(self):
        assert parse_size("1,536 KiB") == pytest.approx(1536)

    def test_missing_unit_is_kept_as_kib(self):
        assert parse_size("42") == 42

    def test_empty_raises(self):
        with pytest.raises(ValueError):
            parse_size("   ")

    def test_non_numeric_raises(self):
        with pytest.raises(ValueError):
            parse_size("big GiB")
