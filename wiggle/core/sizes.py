"""Size normalization to kibibytes."""

import logging
from enum import Enum

logger = logging.getLogger(__name__)


class SizeUnit(str, Enum):
    """Unit labels as the site prints them."""

    BYTES = "Bytes"
    KIB = "KiB"
    MIB = "MiB"
    GIB = "GiB"
    TIB = "TiB"


# Multiplier that takes one unit to KiB
_TO_KIB = {
    SizeUnit.BYTES: 1 / 1024,
    SizeUnit.KIB: 1,
    SizeUnit.MIB: 1024,
    SizeUnit.GIB: 1024 * 1024,
    SizeUnit.TIB: 1024 * 1024 * 1024,
}


def to_kib(magnitude: float, unit: str) -> float:
    """Express magnitude in KiB.

    An unknown unit is logged and the magnitude is returned unconverted;
    a slightly wrong size is still useful in the catalog.
    """
    try:
        factor = _TO_KIB[SizeUnit(unit)]
    except ValueError:
        logger.warning(f"Unknown size unit {unit!r}, keeping {magnitude} as KiB")
        return magnitude
    return magnitude * factor


def parse_size(text: str) -> float:
    """Parse a "1.5 GiB" pair into KiB.

    Raises:
        ValueError: If the magnitude is missing or not a number.
    """
    parts = text.replace("\xa0", " ").split()
    if not parts:
        raise ValueError("empty size")
    magnitude = float(parts[0].replace(",", ""))
    unit = parts[1] if len(parts) > 1 else ""
    return to_kib(magnitude, unit)
