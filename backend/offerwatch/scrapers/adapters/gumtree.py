"""Gumtree (gumtree.pl) real-estate listing adapter.

Stateless: result and detail pages are plain HTML.

Result page structure: .view > div (one tile per listing)
  - .addAdTofav[data-short-id][data-adid] (ids)
  - .title > a (title and relative link)
  - .creation-date ("5 godzin temu", "1 dzień temu")
  - .category-location ("District, City")
  - .ad-price
Detail page structure:
  - .selMenu .attribute > .name / .value (labelled attributes)
  - .description, .username > a, #phone-number, .google-maps-link[data-uri], .address
"""

import calendar
import re
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Union
from urllib.parse import urljoin, urlsplit, urlunsplit

from offerwatch.scrapers.base import BaseStaticAdapter, RecordDetail, RecordSummary
from offerwatch.scrapers.utils.fetch import PageFetcher
from offerwatch.scrapers.utils.normalizer import (
    AGENCY_SELLER,
    PRIVATE_SELLER,
    PriceNormalizer,
    query_coords,
    split_location,
    to_absolute_url,
    to_clock_time,
    to_iso_date,
)


_DETAIL_LABELS = {
    "Liczba pokoi": "raw_rooms",
    "Wielkość (m2)": "raw_area",
    "Na sprzedaż przez": "raw_seller",
}

_SELLER_CATEGORIES = {
    "Właściciel": PRIVATE_SELLER,
    "Agencja": AGENCY_SELLER,
}

_STUDIO_FLAT = "Kawalerka lub garsoniera"


def page_index_position(path: str) -> int:
    """Index in a result path where the page number starts (after the last 'p')."""
    return path.rfind("p") + 1


def _months_back(now: datetime, months: int) -> datetime:
    year, month_zero = divmod(now.month - 1 - months, 12)
    year += now.year
    day = min(now.day, calendar.monthrange(year, month_zero + 1)[1])
    return now.replace(year=year, month=month_zero + 1, day=day)


def relative_posted_at(raw: Optional[str], now: datetime) -> Optional[datetime]:
    """Resolve a relative posting time ("5 godzin temu") against now.

    A missing number counts as 1. Anything older than months is placed
    on the last day of the year that many years ago. Offsets outside the
    datetime range yield None.
    """
    if not raw:
        return None
    match = re.match(r"\s*(\d+)", raw)
    offset = int(match.group(1)) if match else 1

    try:
        if "minut" in raw:
            return now - timedelta(minutes=offset)
        if "godzin" in raw:
            return now - timedelta(hours=offset)
        if "dzień" in raw or "dni" in raw:
            return now - timedelta(days=offset)
        if "mies" in raw:
            return _months_back(now, offset)
        return datetime(now.year - offset, 12, 31)
    except (OverflowError, ValueError):
        return None


def rooms_from_label(raw: Optional[str]) -> Union[int, str, None]:
    if not raw:
        return ""
    if raw.strip() == _STUDIO_FLAT:
        return 1
    match = re.match(r"\s*(\d+)", raw)
    return int(match.group(1)) if match else None


def seller_category(raw: Optional[str]) -> Optional[str]:
    if not raw:
        return None
    return _SELLER_CATEGORIES.get(raw.strip(), raw)


def address_without_city(raw: Optional[str], city: str = "Warszawa") -> Optional[str]:
    if not raw:
        return None
    return raw.replace(city, "", 1).strip(" ,")


class GumtreeAdapter(BaseStaticAdapter):
    """Gumtree apartment listings adapter."""

    source_slug = "gumtree"
    base_url = "https://www.gumtree.pl"
    max_result_pages = 50

    def __init__(
        self,
        fetcher: Optional[PageFetcher] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        super().__init__(fetcher)
        self.clock = clock

    def build_page_url(self, search_url: str, page_index: int) -> str:
        parts = urlsplit(search_url)
        base_path = parts.path[: page_index_position(parts.path)]
        return urlunsplit(parts._replace(path=f"{base_path}{page_index}"))

    async def discover_page_count(self, search_url: str) -> int:
        soup = await self._fetch_soup(search_url)
        last_link = soup.select_one(".pag-box-last")
        if last_link is None or not last_link.get("href"):
            raise self._extraction_error("pagination marker '.pag-box-last' not found", search_url)

        path = urlsplit(urljoin(search_url, last_link["href"])).path
        page_number = path[page_index_position(path):]
        if not page_number.isdigit():
            raise self._extraction_error(f"unexpected last page path {path!r}", search_url)
        return int(page_number)

    async def list_summaries(self, page_url: str) -> List[RecordSummary]:
        soup = await self._fetch_soup(page_url)
        if soup.select_one(".view") is None:
            raise self._extraction_error("listing container '.view' not found", page_url)

        summaries = [
            self._parse_tile(tile, page_url)
            for tile in soup.select(".view > div:not(.banner-css)")
        ]
        self.logger.info("gumtree_summaries_found", url=page_url, count=len(summaries))
        return summaries

    def _parse_tile(self, tile, page_url: str) -> RecordSummary:
        favourite = tile.select_one(".addAdTofav")
        link = tile.select_one(".title > a")
        if favourite is None or not favourite.get("data-short-id") or link is None:
            raise self._extraction_error("listing tile without id or link", page_url)

        thumbnail = tile.select_one('.tile-img-section [type="image/jpeg"]')
        return RecordSummary(
            id=favourite["data-short-id"],
            url=link.get("href", ""),
            title=self._text(tile.select_one(".title")),
            thumbnail=thumbnail.get("data-srcset", "") if thumbnail else "",
            fields={
                "raw_ad_id": favourite.get("data-adid", ""),
                "raw_datetime": self._text(tile.select_one(".creation-date")),
                "raw_location": self._text(tile.select_one(".category-location")),
                "raw_price": self._text(tile.select_one(".ad-price")),
            },
        )

    def is_from_today(self, summary: RecordSummary) -> bool:
        raw = summary.get("raw_datetime") or ""
        return "godzin" in raw or "minut" in raw

    def is_from_yesterday(self, summary: RecordSummary) -> bool:
        return (summary.get("raw_datetime") or "").strip() == "1 dzień temu"

    def enhance_summary(self, summary: RecordSummary) -> RecordSummary:
        # Location reads "District, City"
        location = split_location(summary.get("raw_location"))
        posted_at = relative_posted_at(summary.get("raw_datetime"), self.clock())

        fields = {
            **summary.fields,
            "district": location[0] if location else "",
            "city": location[1] if len(location) > 1 else "",
            "price": PriceNormalizer.clean_price_string(summary.get("raw_price")),
            "date": to_iso_date(posted_at) if posted_at else "",
            "time": to_clock_time(posted_at) if posted_at else "",
        }
        return replace(summary, url=to_absolute_url(summary.url, self.base_url), fields=fields)

    async def fetch_detail(self, url: str) -> Dict[str, Any]:
        soup = await self._fetch_soup(url)
        menu = soup.select_one(".selMenu")
        if menu is None:
            raise self._extraction_error("detail attributes '.selMenu' not found", url)

        details: Dict[str, Any] = {}
        for attribute in menu.select(".attribute"):
            key = _DETAIL_LABELS.get(self._text(attribute.select_one(".name")))
            if key:
                details[key] = self._text(attribute.select_one(".value"))

        seller_link = soup.select_one(".username > a")
        seller_name = seller_link.find(string=True, recursive=False) if seller_link else None
        map_link = soup.select_one(".google-maps-link")

        details.update(
            description=self._text(soup.select_one(".description")),
            seller_name=seller_name.strip() if seller_name else "",
            seller_contact=self._text(soup.select_one("#phone-number")),
            raw_location_link=map_link.get("data-uri", "") if map_link else "",
            raw_address=self._text(soup.select_one(".address")),
        )
        return details

    def enhance_detail(self, record: RecordDetail) -> RecordDetail:
        return record.with_fields(
            area=PriceNormalizer.leading_number(record.get("raw_area")),
            rooms=rooms_from_label(record.get("raw_rooms")),
            seller=seller_category(record.get("raw_seller")),
            address=address_without_city(record.get("raw_address")),
            raw_coords=query_coords(record.get("raw_location_link"), "q"),
        )
