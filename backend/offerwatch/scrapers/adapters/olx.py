"""OLX (olx.pl) real-estate listing adapter.

OLX needs a live browser session: the seller's phone number and the
otodom.pl map link only appear after clicking. Listings posted through
otodom.pl link out to that site and are parsed with its own layout.

Result page structure: .dontHasPromoted + ul > li[data-id]
  - .inner strong (title), .inner .link (href), .tdnone img (thumbnail)
  - .date-location > li (location "City, District", then "dzisiaj 12:30")
  - .price (with a nested span when negotiable)
"""

import hashlib
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional

from bs4 import BeautifulSoup
from playwright.async_api import Error as PlaywrightError

from offerwatch.scrapers.base import BaseBrowserAdapter, RecordDetail, RecordSummary
from offerwatch.scrapers.utils.browser_manager import BrowserManager
from offerwatch.scrapers.utils.normalizer import (
    AGENCY_SELLER,
    PRIVATE_SELLER,
    PriceNormalizer,
    bool_to_yes_no,
    clean_listing_url,
    day_month_to_date,
    query_coords,
    split_location,
    to_absolute_url,
    to_iso_date,
    to_lower,
)


_DETAIL_LABELS = {
    "Oferta od": "raw_seller",
    "Cena za m²": "raw_pricem2",
    "Poziom": "floor",
    "Umeblowane": "interior_status",
    "Rynek": "market",
    "Rodzaj zabudowy": "building_type",
    "Powierzchnia": "raw_area",
    "Liczba pokoi": "raw_rooms",
    "Finanse": "finance",
}

# otodom.pl sections labelled with aria-label; the value sits in the second child
_OTODOM_WHOLE_SECTIONS = {
    "Adres": "raw_address",
    "Cena za metr kwadratowy": "raw_pricem2",
}
_OTODOM_VALUE_SECTIONS = {
    "Powierzchnia": "raw_area",
    "Liczba pokoi": "raw_rooms",
    "Rynek": "market",
    "Rodzaj zabudowy": "building_type",
    "Piętro": "floor",
    "Ogrzewanie": "heating",
    "Materiał budynku": "building_material",
    "Okna": "window_type",
    "Rok budowy": "build_year",
    "Dostępne od": "availability_date",
    "Stan wykończenia": "interior_status",
    "Czynsz": "rent_price",
    "Forma własności": "legal_status",
}
_OTODOM_APPROXIMATE_LOCATION = (
    "Nieruchomość znajduje się w zaznaczonym obszarze mapy. "
    "Niestety ogłoszeniodawca nie wskazał dokładnego adresu."
)

_JAKDOJADE_LINK = (
    "https://jakdojade.pl/warszawa/trasa/?tc=52.22968:21.01017&fc={x}:{y}"
    "&fn=MIESZKANIE&tn=CENTRUM&h=12:05&act=3"
)

_PRIVATE_SELLER_LABELS = ("osoby prywatnej", "oferta prywatna")
_AGENCY_SELLER_LABELS = ("oferta biura nieruchomości", "oferta dewelopera")

_PHONE_BUTTON = '[data-cy="ad-contact-phone"]'
_UNKNOWN_FLOOR = 99


def label_to_key(label: str, index: int) -> str:
    """Field key for a detail label; unknown labels get a per-index placeholder."""
    return _DETAIL_LABELS.get(label.strip(), f"unknown{index}")


def listing_date(raw: str, now: datetime) -> str:
    """ISO date of "dzisiaj 12:30", "wczoraj 08:10" or "12 sty"."""
    tokens = raw.split()
    if not tokens:
        return ""
    if tokens[0] == "dzisiaj":
        return to_iso_date(now)
    if tokens[0] == "wczoraj":
        return to_iso_date(now - timedelta(days=1))
    if tokens[0].isdigit() and len(tokens) > 1:
        parsed = day_month_to_date(tokens[0], tokens[1], now.year)
        return to_iso_date(parsed) if parsed else ""
    return ""


def listing_time(raw: str) -> str:
    tokens = raw.split()
    if len(tokens) > 1 and tokens[0] in ("dzisiaj", "wczoraj"):
        return tokens[1]
    return ""


def seller_category(raw: Optional[str]) -> Optional[str]:
    if not raw:
        return None
    label = raw.strip().lower()
    if label in _PRIVATE_SELLER_LABELS:
        return PRIVATE_SELLER
    if label in _AGENCY_SELLER_LABELS:
        return AGENCY_SELLER
    return raw


def interior_status(raw: Optional[str]) -> Optional[str]:
    return {"Tak": "umeblowane", "Nie": "nieumeblowane"}.get((raw or "").strip())


def floor_number(raw: Optional[str]) -> Optional[int]:
    """Numeric floor; a present but non-numeric value (e.g. "Parter") maps to 99."""
    if raw is None or raw == "":
        return None
    value = PriceNormalizer.to_number(raw)
    if value is None:
        return _UNKNOWN_FLOOR
    return int(value)


def address_without_city(raw: Optional[str]) -> str:
    """Drop the leading "City, District" parts of an otodom address."""
    if not raw:
        return " "
    parts = raw.split(",")
    if len(parts) <= 2:
        return " "
    return ",".join(parts[2:])


def fallback_listing_id(url: str, base_url: str) -> str:
    """Stable id for a tile without data-id, derived from its cleaned absolute URL."""
    absolute = clean_listing_url(to_absolute_url(url, base_url)) or ""
    return hashlib.sha1(absolute.encode("utf-8")).hexdigest()[:16]


def transit_link(map_link: Optional[str]) -> Optional[str]:
    """Public transport route link built from a Google Maps link."""
    coords = query_coords(map_link, "ll")
    if not coords:
        return None
    return _JAKDOJADE_LINK.format(x=coords[0], y=coords[1])


class OlxAdapter(BaseBrowserAdapter):
    """OLX apartment listings adapter (Playwright session)."""

    source_slug = "olx"
    base_url = "https://www.olx.pl"
    max_result_pages = 25

    def __init__(
        self,
        browser_manager: Optional[BrowserManager] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        super().__init__(browser_manager)
        self.clock = clock

    def build_page_url(self, search_url: str, page_index: int) -> str:
        # Search URLs end with "page="
        return f"{search_url}{page_index}"

    async def discover_page_count(self, search_url: str) -> int:
        html = await self._navigate(search_url)
        soup = BeautifulSoup(html, "html.parser")
        marker = soup.select_one('[data-cy="page-link-last"]')
        page_number = self._text(marker)
        if not page_number.isdigit():
            raise self._extraction_error("pagination marker 'page-link-last' not found", search_url)
        return int(page_number)

    async def list_summaries(self, page_url: str) -> List[RecordSummary]:
        html = await self._navigate(page_url)
        summaries = self.parse_summaries(html, page_url)
        self.logger.info("olx_summaries_found", url=page_url, count=len(summaries))
        return summaries

    def parse_summaries(self, html: str, page_url: str) -> List[RecordSummary]:
        """Parse listing tiles from a result page."""
        soup = BeautifulSoup(html, "html.parser")
        listing = soup.select_one(".dontHasPromoted + ul")
        if listing is None:
            raise self._extraction_error("offer list '.dontHasPromoted + ul' not found", page_url)
        return [self._parse_offer(offer, page_url) for offer in listing.find_all("li", recursive=False)]

    def _parse_offer(self, offer, page_url: str) -> RecordSummary:
        link = offer.select_one(".inner .link")
        date_location = offer.select(".date-location > li")
        if link is None or len(date_location) < 2:
            raise self._extraction_error("offer tile without link or date/location", page_url)

        price = offer.select_one(".price")
        price_text = ""
        if price is not None:
            # The nested span only says "do negocjacji"
            price_text = " ".join(s.strip() for s in price.find_all(string=True, recursive=False)).strip()
        thumbnail = offer.select_one(".tdnone img")

        href = link.get("href", "")
        return RecordSummary(
            id=(offer.get("data-id") or "").strip() or fallback_listing_id(href, self.base_url),
            url=href,
            title=self._text(offer.select_one(".inner strong")),
            thumbnail=thumbnail.get("src", "") if thumbnail else "",
            fields={
                "raw_location": self._text(date_location[0]),
                "raw_datetime": self._text(date_location[1]),
                "raw_price": price_text,
                "is_price_negotiable": bool(offer.select_one(".price > span")),
                "is_offer_promoted": "promoted" in (offer.get("class") or []),
            },
        )

    def is_from_today(self, summary: RecordSummary) -> bool:
        return (summary.get("raw_datetime") or "")[:7] == "dzisiaj"

    def is_from_yesterday(self, summary: RecordSummary) -> bool:
        return (summary.get("raw_datetime") or "")[:7] == "wczoraj"

    def enhance_summary(self, summary: RecordSummary) -> RecordSummary:
        raw_datetime = summary.get("raw_datetime") or ""
        # Location reads "City, District"
        location = split_location(summary.get("raw_location"))
        record_id = str(int(summary.id)) if summary.id.isdigit() else summary.id

        fields = {
            **summary.fields,
            "date": listing_date(raw_datetime, self.clock()),
            "time": listing_time(raw_datetime),
            "city": location[0] if location else "",
            "district": location[1] if len(location) > 1 else "",
            "price": PriceNormalizer.clean_price_string(summary.get("raw_price")),
            "is_offer_promoted": bool_to_yes_no(summary.get("is_offer_promoted")),
            "is_price_negotiable": bool_to_yes_no(summary.get("is_price_negotiable")),
        }
        url = clean_listing_url(to_absolute_url(summary.url, self.base_url)) or ""
        return replace(summary, id=record_id, url=url, fields=fields)

    async def fetch_detail(self, url: str) -> Dict[str, Any]:
        if "otodom.pl" in url:
            html = await self._navigate(url)
            details = self.parse_otodom_detail(html, url)
            details.update(await self._reveal_otodom_contact())
            map_link = await self._otodom_map_link()
            if map_link:
                details["raw_location_link"] = map_link
            return details

        if "olx.pl" in url:
            html = await self._navigate(url, wait_selector="#root")
            details = self.parse_olx_detail(html, url)
            details.update(await self._reveal_olx_contact())
            return details

        self.logger.warning("detail_host_unsupported", url=url)
        return {}

    def parse_olx_detail(self, html: str, url: str) -> Dict[str, Any]:
        """Parse the "Label: value" parameter list of an olx.pl detail page."""
        soup = BeautifulSoup(html, "html.parser")
        parameters = soup.select(".css-ox1ptj")
        description = soup.select_one(".css-g5mtbi-Text")
        if not parameters and description is None:
            raise self._extraction_error("detail parameters not found", url)

        details: Dict[str, Any] = {}
        for index, parameter in enumerate(parameters):
            label, _, value = self._text(parameter).partition(": ")
            if not value:
                continue
            details[label_to_key(label, index)] = value

        details["description"] = self._text(description)
        return details

    def parse_otodom_detail(self, html: str, url: str) -> Dict[str, Any]:
        """Parse the aria-labelled sections of an otodom.pl detail page."""
        soup = BeautifulSoup(html, "html.parser")
        details: Dict[str, Any] = {}

        for label, key in _OTODOM_WHOLE_SECTIONS.items():
            node = soup.select_one(f'[aria-label="{label}"]')
            if node is not None:
                details[key] = self._text(node)

        for label, key in _OTODOM_VALUE_SECTIONS.items():
            node = soup.select_one(f'[aria-label="{label}"] > div:nth-child(2)')
            if node is not None:
                details[key] = self._text(node)

        seller_name = soup.select_one(".contactPersonName")
        if seller_name is not None:
            details["seller_name"] = self._text(seller_name)
            aside = seller_name.find_parent("aside")
            if aside is not None:
                details["raw_seller"] = self._text(aside.select_one("div > div > div"))

        description = soup.select_one('[data-cy="adPageAdDescription"]')
        if description is not None:
            details["description"] = self._text(description)

        if not details:
            raise self._extraction_error("otodom detail sections not found", url)
        return details

    async def _reveal_olx_contact(self) -> Dict[str, str]:
        """Click the phone button and read the revealed number."""
        page = self._require_page()
        try:
            button = await page.wait_for_selector(_PHONE_BUTTON, timeout=5000)
            if button is None:
                return {}
            await button.click()
            await page.wait_for_timeout(250)
            contact = {"seller_contact": (await page.inner_text(_PHONE_BUTTON)).strip()}
            seller = await page.query_selector('[data-cy="seller_card"] h2')
            if seller is not None:
                contact["seller_name"] = (await seller.inner_text()).strip()
            return contact
        except PlaywrightError as e:
            self.logger.info("contact_reveal_failed", error=str(e))
            return {}

    async def _reveal_otodom_contact(self) -> Dict[str, str]:
        page = self._require_page()
        try:
            button = await page.wait_for_selector(".phoneNumber button", timeout=5000)
            await button.click()
            phone = await page.wait_for_selector('[href^="tel:"]', timeout=3000)
            return {"seller_contact": (await phone.inner_text()).strip()}
        except PlaywrightError as e:
            self.logger.info("contact_reveal_failed", error=str(e))
            return {}

    async def _otodom_map_link(self) -> Optional[str]:
        """Google Maps link of the listing, None when only an area is shown."""
        page = self._require_page()
        try:
            map_node = await page.wait_for_selector("#map", timeout=5000)
            await map_node.scroll_into_view_if_needed()
            link = await page.wait_for_selector(
                '[title^="Pokaż ten obszar w Mapach Google"]', timeout=8000
            )
            notice = await page.query_selector("#map > div > div > div")
            if notice is not None and (await notice.text_content() or "").strip() == _OTODOM_APPROXIMATE_LOCATION:
                return None
            return await link.get_attribute("href")
        except PlaywrightError as e:
            self.logger.info("map_link_failed", error=str(e))
            return None

    def enhance_detail(self, record: RecordDetail) -> RecordDetail:
        map_link = record.get("raw_location_link")
        return record.with_fields(
            area=PriceNormalizer.leading_number(record.get("raw_area")),
            pricem2=PriceNormalizer.clean_price_string(record.get("raw_pricem2")),
            rooms=PriceNormalizer.leading_number(record.get("raw_rooms")),
            market=to_lower(record.get("market")),
            address=address_without_city(record.get("raw_address")),
            interior_status=interior_status(record.get("interior_status")),
            seller=seller_category(record.get("raw_seller")),
            floor=floor_number(record.get("floor")),
            build_year=PriceNormalizer.to_number(record.get("build_year")),
            building_type=to_lower(record.get("building_type")),
            location_link=transit_link(map_link),
            raw_coords=query_coords(map_link, "ll"),
        )
