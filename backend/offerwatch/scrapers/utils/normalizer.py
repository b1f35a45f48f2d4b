"""Data normalization utilities shared by source adapters.

Every helper here is total: unrecognized input yields None or an empty
string instead of raising.
"""

import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import List, Optional, Union
from urllib.parse import parse_qs, urljoin, urlsplit

Number = Union[int, float]

# Polish month abbreviations used in listing dates ("12 sty")
POLISH_MONTHS = {
    "sty": 1,
    "lut": 2,
    "mar": 3,
    "kwi": 4,
    "maj": 5,
    "cze": 6,
    "lip": 7,
    "sie": 8,
    "wrz": 9,
    "paź": 10,
    "lis": 11,
    "gru": 12,
}

# Seller categories shared by the real-estate sources
PRIVATE_SELLER = "Osoba prywatna"
AGENCY_SELLER = "Biuro / Deweloper"


class PriceNormalizer:
    """Price and number parsing for Polish listing formats."""

    @staticmethod
    def round_half_up(value: Union[Decimal, float, int]) -> int:
        """Round to the nearest integer, halves away from zero."""
        return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))

    @staticmethod
    def clean_price_string(raw: Optional[str]) -> Optional[int]:
        """Parse a price string into whole złoty.

        Handles formats like:
        - " 450 000 zł" -> 450000
        - "12 345,60 zł/m²" -> 12346
        - "50.21 zł" -> 50

        Args:
            raw: Raw price string

        Returns:
            Rounded integer price, or None if parsing fails
        """
        if raw is None:
            return None
        cleaned = raw.replace("zł", "")
        cleaned = re.sub(r"[zł/m²]", "", cleaned)
        cleaned = re.sub(r"\s", "", cleaned).replace(",", ".", 1)

        if not cleaned:
            return None

        try:
            return PriceNormalizer.round_half_up(Decimal(cleaned))
        except (InvalidOperation, ValueError):
            return None

    @staticmethod
    def to_number(raw: Optional[Union[str, Number]]) -> Optional[Number]:
        """Cast a string to a number, keeping integers integral.

        Returns None for None/empty/non-numeric input.
        """
        if raw is None or raw == "":
            return None
        if isinstance(raw, (int, float)):
            return raw
        try:
            value = Decimal(raw.strip())
        except InvalidOperation:
            return None
        if not value.is_finite():
            return None
        if value == value.to_integral_value():
            return int(value)
        return float(value)

    @staticmethod
    def leading_number(raw: Optional[str]) -> Optional[Number]:
        """Number from the first whitespace-separated token ("38,5 m²" -> 38.5)."""
        if not raw:
            return None
        token = raw.replace(",", ".").strip().split(" ")[0]
        return PriceNormalizer.to_number(token)


def to_lower(raw: Optional[str]) -> str:
    if not raw:
        return ""
    return raw.lower()


def clean_listing_url(url: Optional[str]) -> Optional[str]:
    """Strip the fragment and a dangling '?' from a listing URL."""
    if not url:
        return None
    cleaned = url.split("#")[0]
    if cleaned.endswith("?"):
        cleaned = cleaned[:-1]
    return cleaned


def to_absolute_url(url: Optional[str], base: str) -> str:
    """Resolve a relative listing URL against the origin."""
    if not url:
        return ""
    return urljoin(base, url)


def split_location(raw: Optional[str]) -> List[str]:
    """Split a comma-separated location string into trimmed parts."""
    if not raw:
        return []
    return [part.strip() for part in raw.split(",")]


def to_iso_date(value: Union[date, datetime]) -> str:
    return value.strftime("%Y-%m-%d")


def to_clock_time(value: datetime) -> str:
    return value.strftime("%H:%M")


def bool_to_yes_no(value: object) -> str:
    return "tak" if value else "nie"


def day_month_to_date(day: str, month_abbrev: str, year: int) -> Optional[date]:
    """Build a date from a day number and a Polish month abbreviation."""
    month = POLISH_MONTHS.get(month_abbrev.strip().lower()[:3])
    if not month or not day.isdigit():
        return None
    try:
        return date(year, month, int(day))
    except ValueError:
        return None


def query_coords(url: Optional[str], param: str) -> Optional[List[str]]:
    """Extract "x,y" coordinates from a map link query parameter.

    Args:
        url: Map link, e.g. "https://maps.google.com/maps?ll=52.1,21.0"
        param: Query parameter holding the coordinates ("ll", "q")

    Returns:
        [x, y] strings, or None when the link carries no coordinate pair
    """
    if not url:
        return None
    try:
        values = parse_qs(urlsplit(url).query).get(param)
    except ValueError:
        return None
    if not values:
        return None
    coords = values[0].split(",")
    if len(coords) != 2:
        return None
    return [c.strip() for c in coords]
