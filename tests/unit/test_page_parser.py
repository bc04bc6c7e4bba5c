"""Unit tests for the page parser."""

import pytest

from tests.fixtures.pages import (
    CHANGED_LAYOUT_PAGE,
    EMPTY_LISTING_PAGE,
    LISTING_PAGE,
    MAINTENANCE_PAGE,
    NOT_FOUND_PAGE,
    detail_page,
)
from wiggle.core.page_parser import (
    Found,
    ItemRecord,
    NotFound,
    Unrecognized,
    parse_item_page,
    parse_latest_id,
)


@pytest.mark.unit
class TestParseItemPage:
    """Tests for parse_item_page()."""

    def test_detail_page_is_found(self):
        result = parse_item_page(detail_page())

        assert isinstance(result, Found)
        assert result.record == ItemRecord(
            title="Ubuntu 24.04 Desktop amd64",
            size_kib=pytest.approx(2.5 * 1024 * 1024),
            category="Linux ISOs",
            seeders=12,
            leechers=3,
        )

    def test_size_is_normalized_to_kib(self):
        result = parse_item_page(detail_page(size="500 Bytes"))
        assert result.record.size_kib == pytest.approx(500 / 1024)

    def test_unknown_unit_keeps_magnitude(self):
        result = parse_item_page(detail_page(size="3 PiB"))
        assert isinstance(result, Found)
        assert result.record.size_kib == 3

    def test_quotes_in_title_are_kept(self):
        result = parse_item_page(detail_page(title="Schindler's List"))
        assert result.record.title == "Schindler's List"

    def test_category_falls_back_to_cell_text(self):
        page = detail_page().replace(
            '<img src="pic/cats/linux.png" border="0" alt="Linux ISOs" />', "Software"
        )
        result = parse_item_page(page)
        assert result.record.category == "Software"

    def test_zero_seeders(self):
        result = parse_item_page(detail_page(seeders="0", leechers="0"))
        assert result.record.seeders == 0
        assert result.record.leechers == 0

    def test_not_found_page(self):
        assert parse_item_page(NOT_FOUND_PAGE) == NotFound()

    def test_page_without_markers_is_unrecognized(self):
        result = parse_item_page(MAINTENANCE_PAGE)
        assert isinstance(result, Unrecognized)
        assert "marker" in result.reason

    def test_changed_layout_is_unrecognized(self):
        """Detail marker alone is not enough; the row must parse too."""
        assert isinstance(parse_item_page(CHANGED_LAYOUT_PAGE), Unrecognized)

    def test_non_numeric_seeders_is_unrecognized(self):
        result = parse_item_page(detail_page(seeders="n/a"))
        assert isinstance(result, Unrecognized)

    def test_bad_size_is_unrecognized(self):
        result = parse_item_page(detail_page(size="unknown"))
        assert isinstance(result, Unrecognized)

    def test_empty_body_is_unrecognized(self):
        assert isinstance(parse_item_page(""), Unrecognized)


@pytest.mark.unit
class TestParseLatestId:
    """Tests for parse_latest_id()."""

    def test_first_link_wins(self):
        assert parse_latest_id(LISTING_PAGE) == 1205

    def test_no_links(self):
        assert parse_latest_id(EMPTY_LISTING_PAGE) is None
