"""Page Parser - turns the site's HTML into typed results.

Every assumption about the site's page layout lives in this module, so a
layout change on the site is a fix here and nowhere else.

An item page produces exactly one of three outcomes:

- ``Found``: the page carries the detail marker and the detail row parsed.
- ``NotFound``: the page carries the site's "not found" marker.
- ``Unrecognized``: anything else. The layout has probably changed.
"""

import re
from dataclasses import dataclass

from bs4 import BeautifulSoup
from loguru import logger

from wiggle.core.sizes import parse_size

DETAIL_MARKER = "Torrent info"
MISSING_MARKER = "Torrent not found"

PAYLOAD_LINK = re.compile(r"gettorrent\.php\?fid=\d+")
PROFILE_LINK = re.compile(r"torrentprofile\.php\?fid=(\d+)")

# Cell positions inside the detail row
TITLE_CELL = 0
SIZE_CELL = 3
CATEGORY_CELL = 5
SEEDERS_CELL = 6
LEECHERS_CELL = 7


@dataclass(frozen=True)
class ItemRecord:
    """Fields read from an item detail page."""

    title: str
    size_kib: float
    category: str
    seeders: int
    leechers: int


@dataclass(frozen=True)
class Found:
    record: ItemRecord


@dataclass(frozen=True)
class NotFound:
    pass


@dataclass(frozen=True)
class Unrecognized:
    reason: str


PageResult = Found | NotFound | Unrecognized


def _cell_text(cell) -> str:
    return cell.get_text(" ", strip=True).replace("\xa0", " ").strip()


def _category_label(cell) -> str:
    """Category is shown as an icon; prefer its alt text, then its title."""
    img = cell.find("img")
    if img is not None:
        for attr in ("alt", "title"):
            value = (img.get(attr) or "").strip()
            if value:
                return value
    return _cell_text(cell)


def _parse_count(text: str) -> int:
    return int(text.replace(",", "").strip())


def _parse_detail(soup: BeautifulSoup) -> PageResult:
    link = soup.find("a", href=PAYLOAD_LINK)
    if link is None:
        return Unrecognized("detail marker present but no payload link")

    row = link.find_parent("tr")
    if row is None:
        return Unrecognized("payload link is not inside a table row")

    cells = row.find_all("td", recursive=False)
    if len(cells) <= LEECHERS_CELL:
        return Unrecognized(f"detail row has {len(cells)} cells, expected {LEECHERS_CELL + 1}")

    title = link.get_text(" ", strip=True)
    if not title:
        return Unrecognized("empty title")

    try:
        size_kib = parse_size(_cell_text(cells[SIZE_CELL]))
        seeders = _parse_count(_cell_text(cells[SEEDERS_CELL]))
        leechers = _parse_count(_cell_text(cells[LEECHERS_CELL]))
    except ValueError as e:
        return Unrecognized(f"unparseable detail row: {e}")

    category = _category_label(cells[CATEGORY_CELL])
    if not category:
        return Unrecognized("empty category label")

    return Found(
        ItemRecord(
            title=title,
            size_kib=size_kib,
            category=category,
            seeders=seeders,
            leechers=leechers,
        )
    )


def parse_item_page(body: str) -> PageResult:
    """Classify and parse one item page. Pure; the caller owns persistence."""
    body = body.replace("\r", "")
    if DETAIL_MARKER in body:
        result = _parse_detail(BeautifulSoup(body, "html.parser"))
        if isinstance(result, Unrecognized):
            logger.debug(f"Detail page did not parse: {result.reason}")
        return result
    if MISSING_MARKER in body:
        return NotFound()
    return Unrecognized("neither the detail nor the not-found marker is present")


def parse_latest_id(body: str) -> int | None:
    """Return the newest item id on the listing page.

    The listing is newest first, so the first profile link wins.
    """
    soup = BeautifulSoup(body, "html.parser")
    link = soup.find("a", href=PROFILE_LINK)
    if link is None:
        return None
    return int(PROFILE_LINK.search(link["href"]).group(1))
