"""Business filters applied to real-estate records before diffing."""

from typing import Any, Dict, Iterable, List, Optional

import structlog

from offerwatch.config import settings
from offerwatch.scrapers.base import RecordDetail

logger = structlog.get_logger(__name__)

RAW_FIELD_PREFIX = "raw"


def _as_float(value: Any) -> Optional[float]:
    """Numeric value, None for missing or non-numeric input."""
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def add_price_per_m2(record: RecordDetail) -> RecordDetail:
    """Add pricem2 = round(price / area) when both are known."""
    price = _as_float(record.get("price"))
    area = _as_float(record.get("area"))
    if not price or not area:
        return record
    return record.with_fields(pricem2=round(price / area))


def strip_raw_fields(record: Dict[str, Any]) -> Dict[str, Any]:
    """Drop raw_* scraping leftovers from a flat record."""
    return {k: v for k, v in record.items() if not k.startswith(RAW_FIELD_PREFIX)}


class RecordFilter:
    """Keeps apartments matching the configured search criteria.

    A record missing a value (or holding a non-numeric one) passes the
    rule that checks it; only the city must match exactly.
    """

    def __init__(
        self,
        city: Optional[str] = None,
        min_build_year: Optional[int] = None,
        excluded_districts: Optional[Iterable[str]] = None,
        max_price_per_m2: Optional[float] = None,
        min_price: Optional[float] = None,
        excluded_seller_name: Optional[str] = None,
    ):
        self.city = settings.FILTER_CITY if city is None else city
        self.min_build_year = (
            settings.FILTER_MIN_BUILD_YEAR if min_build_year is None else min_build_year
        )
        districts = (
            settings.get_excluded_districts() if excluded_districts is None else excluded_districts
        )
        self.excluded_districts = {d.strip().lower() for d in districts}
        self.max_price_per_m2 = (
            settings.FILTER_MAX_PRICE_PER_M2 if max_price_per_m2 is None else max_price_per_m2
        )
        self.min_price = settings.FILTER_MIN_PRICE if min_price is None else min_price
        self.excluded_seller_name = (
            settings.FILTER_EXCLUDED_SELLER_NAME
            if excluded_seller_name is None
            else excluded_seller_name
        )

    def matches(self, record: RecordDetail) -> bool:
        return (
            self._in_city(record)
            and self._new_enough(record)
            and self._district_allowed(record)
            and self._not_too_expensive(record)
            and self._not_too_cheap(record)
            and self._seller_allowed(record)
        )

    def apply(self, records: Iterable[RecordDetail]) -> List[RecordDetail]:
        """Add computed columns, then keep matching records."""
        records = [add_price_per_m2(record) for record in records]
        kept = [record for record in records if self.matches(record)]
        logger.info("records_filtered", total=len(records), kept=len(kept))
        return kept

    def _in_city(self, record: RecordDetail) -> bool:
        return record.get("city") == self.city

    def _new_enough(self, record: RecordDetail) -> bool:
        build_year = _as_float(record.get("build_year"))
        return not build_year or build_year >= self.min_build_year

    def _district_allowed(self, record: RecordDetail) -> bool:
        district = record.get("district")
        return not district or district.strip().lower() not in self.excluded_districts

    def _not_too_expensive(self, record: RecordDetail) -> bool:
        pricem2 = _as_float(record.get("pricem2"))
        return not pricem2 or pricem2 <= self.max_price_per_m2

    def _not_too_cheap(self, record: RecordDetail) -> bool:
        price = _as_float(record.get("price"))
        return not price or price >= self.min_price

    def _seller_allowed(self, record: RecordDetail) -> bool:
        seller_name = record.get("seller_name")
        return not seller_name or seller_name != self.excluded_seller_name
